"""
Constraint backend interface.

A backend answers one question, satisfiability, with a three-valued result:
True (some context satisfies the condition), False (none does) or None
(undecided). Every other query is derived from it here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from statute_verifier.conditions.schema import And, Condition, Not, Or


class ConstraintBackend(ABC):
    """Decides satisfiability of conditions and derived relations."""

    name: str = "base"
    precise: bool = False
    # Set when this backend stands in for an unavailable one
    degraded: bool = False

    @abstractmethod
    def is_satisfiable(self, condition: Condition) -> bool | None:
        """Whether some context satisfies the condition (None if undecided)."""

    def is_tautology(self, condition: Condition) -> bool | None:
        """Whether every context satisfies the condition."""
        return _negate(self.is_satisfiable(Not(inner=condition)))

    def implies(self, premise: Condition, conclusion: Condition) -> bool | None:
        """Whether every context satisfying ``premise`` satisfies ``conclusion``."""
        counterexample = And(left=premise, right=Not(inner=conclusion))
        return _negate(self.is_satisfiable(counterexample))

    def equivalent(self, a: Condition, b: Condition) -> bool | None:
        forward = self.implies(a, b)
        if forward is False:
            return False
        backward = self.implies(b, a)
        if backward is False:
            return False
        if forward is None or backward is None:
            return None
        return True

    def contradict(self, a: Condition, b: Condition) -> bool | None:
        """Whether no context satisfies both conditions."""
        return _negate(self.is_satisfiable(And(left=a, right=b)))

    def simplify(self, condition: Condition) -> tuple[Condition, bool]:
        """Simplify a condition without changing its meaning.

        Applies double-negation elimination, drops a conjunct implied by the
        other conjunct (or a disjunct implying the other), drops tautological
        conjuncts and unsatisfiable disjuncts. Only definite answers trigger a
        rewrite.

        Returns:
            (simplified condition, whether anything changed)
        """
        simplified = self._simplify(condition)
        return simplified, simplified != condition

    def _simplify(self, condition: Condition) -> Condition:
        if isinstance(condition, Not):
            inner = self._simplify(condition.inner)
            if isinstance(inner, Not):
                return inner.inner
            return Not(inner=inner)

        if isinstance(condition, And):
            left = self._simplify(condition.left)
            right = self._simplify(condition.right)
            if left == right:
                return left
            if self.is_tautology(left) is True:
                return right
            if self.is_tautology(right) is True:
                return left
            if self.implies(left, right) is True:
                return left
            if self.implies(right, left) is True:
                return right
            return And(left=left, right=right)

        if isinstance(condition, Or):
            left = self._simplify(condition.left)
            right = self._simplify(condition.right)
            if left == right:
                return left
            if self.is_satisfiable(left) is False:
                return right
            if self.is_satisfiable(right) is False:
                return left
            if self.implies(left, right) is True:
                return right
            if self.implies(right, left) is True:
                return left
            return Or(left=left, right=right)

        return condition


def _negate(answer: bool | None) -> bool | None:
    return None if answer is None else not answer
