"""
Heuristic constraint backend.

Works without an SMT solver: the condition is pushed to negation normal form
and expanded into a bounded disjunction of conjunctive terms, then every term
is checked for clashing literals. Attributes follow the evaluator's
semantics: a comparison or value test on a missing attribute is false, so
each positive leaf implies the attribute is present and each negated leaf
splits into "absent" or "present with the complementary test".
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

from statute_verifier.conditions.schema import (
    Age,
    And,
    AttributeEquals,
    ComparisonOp,
    Condition,
    Custom,
    Duration,
    HasAttribute,
    Income,
    Not,
    Or,
    Pattern,
    Percentage,
    SetMembership,
    is_valid_regex,
    negate_op,
    regex_search,
)
from statute_verifier.core.logging import get_logger
from statute_verifier.solver.base import ConstraintBackend

logger = get_logger("verifier.solver.heuristic")

DEFAULT_MAX_TERMS = 64

# Atom kinds
HAS = "has"
NUM = "num"
VAL = "val"
PAT = "pat"
CUSTOM = "custom"

# Candidate strings tried as witnesses for string constraints
_WITNESS_CANDIDATES = ("", "x", "0", "a", "A", "zz", "_", "-", "1")


@dataclass(frozen=True)
class Atom:
    """A literal in a DNF term."""

    kind: str
    key: str
    positive: bool = True
    op: ComparisonOp | None = None
    value: Any = None
    integral: bool = True


Term = tuple[Atom, ...]


class TooManyTermsError(Exception):
    """DNF expansion exceeded the configured term budget."""


def _has(key: str, positive: bool = True) -> Atom:
    return Atom(kind=HAS, key=key, positive=positive)


def _val(key: str, value: str, positive: bool = True) -> Atom:
    return Atom(kind=VAL, key=key, positive=positive, value=value)


def _pat(key: str, regex: str, positive: bool = True) -> Atom:
    return Atom(kind=PAT, key=key, positive=positive, value=regex)


def numeric_leaf(condition: Condition) -> tuple[str, bool, Any] | None:
    """Context key, integrality and threshold of a comparison leaf.

    The context key doubles as the solver variable, so every comparison
    reading the same attribute constrains the same number.
    """
    if isinstance(condition, Age):
        return "age", True, condition.value
    if isinstance(condition, Income):
        return "income", True, condition.value
    if isinstance(condition, Duration):
        return "duration_days", True, condition.days
    if isinstance(condition, Percentage):
        return condition.context, False, condition.value
    return None


def numeric_literal(text: str, integral: bool) -> int | float | None:
    """The number whose ``str()`` is exactly ``text``, if any.

    This is the value an attribute must hold for both a numeric comparison
    and an equality test against ``text`` to pass.
    """
    try:
        number = int(text)
    except ValueError:
        pass
    else:
        return number if str(number) == text else None
    if integral:
        return None
    try:
        real = float(text)
    except ValueError:
        return None
    return real if str(real) == text else None


class HeuristicBackend(ConstraintBackend):
    """Bounded NNF/DNF satisfiability check with per-term clash detection."""

    name = "heuristic"
    precise = False

    def __init__(self, max_terms: int = DEFAULT_MAX_TERMS):
        """Initialize the backend.

        Args:
            max_terms: Largest DNF expansion attempted before answering None
        """
        self.max_terms = max_terms

    def is_satisfiable(self, condition: Condition) -> bool | None:
        try:
            terms = self.to_dnf(condition)
        except TooManyTermsError:
            logger.debug("dnf_budget_exceeded", max_terms=self.max_terms)
            return None

        undecided = False
        for term in terms:
            verdict = check_term(term)
            if verdict is True:
                return True
            if verdict is None:
                undecided = True
        return None if undecided else False

    def to_dnf(self, condition: Condition) -> list[Term]:
        """Expand a condition into a list of conjunctive terms.

        Terms already known to clash are dropped during expansion.

        Raises:
            TooManyTermsError: If the expansion exceeds max_terms
        """
        return self._dnf(condition, True)

    # =========================================================================
    # Expansion
    # =========================================================================

    def _dnf(self, condition: Condition, positive: bool) -> list[Term]:
        if isinstance(condition, Not):
            return self._dnf(condition.inner, not positive)

        if isinstance(condition, (And, Or)):
            # De Morgan: a negated AND expands like an OR and vice versa
            conjunctive = isinstance(condition, And) == positive
            left = self._dnf(condition.left, positive)
            if conjunctive:
                if not left:
                    return []
                return self._product(left, self._dnf(condition.right, positive))
            return self._union(left, self._dnf(condition.right, positive))

        return _leaf_terms(condition, positive)

    def _product(self, left: list[Term], right: list[Term]) -> list[Term]:
        combined: list[Term] = []
        for a in left:
            for b in right:
                term = a + b
                if check_term(term) is False:
                    continue
                combined.append(term)
                if len(combined) > self.max_terms:
                    raise TooManyTermsError()
        return combined

    def _union(self, left: list[Term], right: list[Term]) -> list[Term]:
        combined = left + right
        if len(combined) > self.max_terms:
            raise TooManyTermsError()
        return combined


def _leaf_terms(condition: Condition, positive: bool) -> list[Term]:
    numeric = numeric_leaf(condition)
    if numeric is not None:
        key, integral, threshold = numeric
        op = condition.op if positive else negate_op(condition.op)
        compare = Atom(kind=NUM, key=key, op=op, value=threshold, integral=integral)
        if positive:
            return [(_has(key), compare)]
        return [(_has(key, False),), (_has(key), compare)]

    if isinstance(condition, SetMembership):
        attr = condition.attribute
        values = list(dict.fromkeys(condition.values))
        member = [(_val(attr, v),) for v in values]
        excluded: Term = (_has(attr),) + tuple(_val(attr, v, False) for v in values)
        if condition.negated == positive:
            # value present and outside the set
            return [excluded] if positive else [(_has(attr, False),), excluded]
        return member if positive else [(_has(attr, False),)] + member

    if isinstance(condition, Pattern):
        attr = condition.attribute
        if is_valid_regex(condition.regex):
            match: list[Term] = [(_pat(attr, condition.regex),)]
            no_match: Term = (_has(attr), _pat(attr, condition.regex, False))
        else:
            # An invalid regex matches nothing
            match, no_match = [], (_has(attr),)
        outcome = match if condition.negated != positive else [no_match]
        return outcome if positive else [(_has(attr, False),)] + outcome

    if isinstance(condition, HasAttribute):
        return [(_has(condition.key, positive),)]

    if isinstance(condition, AttributeEquals):
        if positive:
            return [(_val(condition.key, condition.value),)]
        absent: Term = (_has(condition.key, False),)
        return [absent, (_has(condition.key), _val(condition.key, condition.value, False))]

    if isinstance(condition, Custom):
        return [(Atom(kind=CUSTOM, key=condition.description, positive=positive),)]

    raise TypeError(f"Unknown condition type: {type(condition).__name__}")


# =============================================================================
# Term checking
# =============================================================================

def check_term(term: Term) -> bool | None:
    """Decide whether a conjunction of atoms can hold.

    Returns:
        False on a clash, True when the term is satisfiable, None when the
        string constraints on some attribute are beyond the heuristic
    """
    presence: dict[str, bool] = {}
    customs: dict[str, bool] = {}
    bounds: dict[str, list[Atom]] = defaultdict(list)
    required: dict[str, set[str]] = defaultdict(set)
    forbidden: dict[str, set[str]] = defaultdict(set)
    patterns: dict[str, set[tuple[str, bool]]] = defaultdict(set)

    for atom in term:
        if atom.kind == HAS:
            if presence.setdefault(atom.key, atom.positive) != atom.positive:
                return False
        elif atom.kind == CUSTOM:
            if customs.setdefault(atom.key, atom.positive) != atom.positive:
                return False
        elif atom.kind == NUM:
            bounds[atom.key].append(atom)
        elif atom.kind == VAL:
            if atom.positive:
                if presence.setdefault(atom.key, True) is False:
                    return False
                required[atom.key].add(atom.value)
            else:
                forbidden[atom.key].add(atom.value)
        elif atom.kind == PAT:
            if presence.setdefault(atom.key, True) is False:
                return False
            patterns[atom.key].add((atom.value, atom.positive))

    for atoms in bounds.values():
        if not _numeric_feasible(atoms):
            return False

    undecided = False
    for attr in set(required) | set(forbidden) | set(patterns):
        verdict = _strings_feasible(required[attr], forbidden[attr], patterns[attr])
        if verdict is False:
            return False
        if verdict is None:
            undecided = True

    # Attributes read both as numbers and as strings
    for key in set(bounds) & (set(required) | set(forbidden) | set(patterns)):
        integral = all(atom.integral for atom in bounds[key])
        if required[key]:
            number = numeric_literal(next(iter(required[key])), integral)
            if number is None:
                return False
            pinned = [Atom(kind=NUM, key=key, op=ComparisonOp.EQ, value=number, integral=integral)]
            if not _numeric_feasible(bounds[key] + pinned):
                return False
        elif patterns[key]:
            undecided = True
        else:
            excluded = [
                Atom(kind=NUM, key=key, op=ComparisonOp.NE, value=number, integral=integral)
                for number in (numeric_literal(text, integral) for text in forbidden[key])
                if number is not None
            ]
            if not _numeric_feasible(bounds[key] + excluded):
                # 5 and 5.0 print differently, so only integers are pinned by their text
                if integral:
                    return False
                undecided = True

    return None if undecided else True


def _numeric_feasible(atoms: list[Atom]) -> bool:
    """Interval check with strict bounds and point exclusions."""
    lo, lo_strict = -math.inf, False
    hi, hi_strict = math.inf, False
    excluded: set[Any] = set()

    def raise_lo(value: Any, strict: bool) -> None:
        nonlocal lo, lo_strict
        if value > lo or (value == lo and strict and not lo_strict):
            lo, lo_strict = value, strict

    def lower_hi(value: Any, strict: bool) -> None:
        nonlocal hi, hi_strict
        if value < hi or (value == hi and strict and not hi_strict):
            hi, hi_strict = value, strict

    for atom in atoms:
        if atom.op is ComparisonOp.EQ:
            raise_lo(atom.value, False)
            lower_hi(atom.value, False)
        elif atom.op is ComparisonOp.NE:
            excluded.add(atom.value)
        elif atom.op is ComparisonOp.GT:
            raise_lo(atom.value, True)
        elif atom.op is ComparisonOp.GE:
            raise_lo(atom.value, False)
        elif atom.op is ComparisonOp.LT:
            lower_hi(atom.value, True)
        elif atom.op is ComparisonOp.LE:
            lower_hi(atom.value, False)

    if all(atom.integral for atom in atoms):
        if math.isinf(lo) or math.isinf(hi):
            return True
        first = math.floor(lo) + 1 if lo_strict else math.ceil(lo)
        last = math.ceil(hi) - 1 if hi_strict else math.floor(hi)
        if first > last:
            return False
        if last - first + 1 > len(excluded):
            return True
        return any(value not in excluded for value in range(first, last + 1))

    if lo > hi:
        return False
    if lo == hi:
        return not (lo_strict or hi_strict) and lo not in excluded
    return True


def _strings_feasible(
    required: set[str],
    forbidden: set[str],
    patterns: set[tuple[str, bool]],
) -> bool | None:
    """Whether one string value can meet the equality, exclusion and pattern atoms."""
    if len(required) > 1:
        return False

    if required:
        value = next(iter(required))
        if value in forbidden:
            return False
        for regex, wanted in patterns:
            if regex_search(regex, value) != wanted:
                return False
        return True

    regexes = {regex for regex, _ in patterns}
    if any((regex, not wanted) in patterns for regex, wanted in patterns):
        return False
    if not patterns:
        # Infinitely many strings avoid a finite exclusion set
        return True

    for candidate in _WITNESS_CANDIDATES:
        if candidate in forbidden:
            continue
        if all(regex_search(regex, candidate) == wanted for regex, wanted in patterns):
            return True

    positives = [regex for regex, wanted in patterns if wanted]
    if len(regexes) == 1 and positives and not forbidden:
        # A single positive pattern is assumed to match some string
        return True
    return None
