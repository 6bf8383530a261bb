"""
Z3 constraint backend.

Translates conditions into Z3 formulas over a fixed variable vocabulary:
one numeric variable per context key (integer for age, income and
duration in days, real once the key is compared as a percentage), and
boolean indicators for attribute presence, attribute equality, pattern
matches and custom predicates. Variable names are derived
from a hash of their meaning so the same attribute always maps to the same
variable.

Each backend instance owns its own ``z3.Context``; instances must not be
shared across threads.
"""

from __future__ import annotations

import hashlib
import threading
from collections import defaultdict
from fractions import Fraction
from typing import Any

from statute_verifier.conditions.schema import (
    And,
    AttributeEquals,
    ComparisonOp,
    Condition,
    Custom,
    HasAttribute,
    Not,
    Or,
    Pattern,
    SetMembership,
    is_valid_regex,
    regex_search,
    walk,
)
from statute_verifier.core.exceptions import SolverUnavailableError
from statute_verifier.core.logging import get_logger
from statute_verifier.solver.base import ConstraintBackend
from statute_verifier.solver.heuristic import (
    DEFAULT_MAX_TERMS,
    HeuristicBackend,
    numeric_leaf,
    numeric_literal,
)

logger = get_logger("verifier.solver.z3")

DEFAULT_TIMEOUT_MS = 2000


def variable_name(sort: str, key: str) -> str:
    """Stable solver variable name for a semantic key (e.g. ``int_<hash>``)."""
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).hexdigest()
    return f"{sort}_{digest}"


class _Translation:
    """Variables and side facts collected while translating one query."""

    def __init__(self, z3: Any, ctx: Any, real_keys: set[str] | None = None):
        self.z3 = z3
        self.ctx = ctx
        # Numeric keys compared against a percentage are real, the rest integer
        self.real_keys = real_keys or set()
        self.variables: dict[str, Any] = {}
        # context key -> numeric variable
        self.numbers: dict[str, Any] = {}
        # attribute -> {value: indicator}
        self.equalities: dict[str, dict[str, Any]] = defaultdict(dict)
        # attribute -> {regex: indicator}
        self.patterns: dict[str, dict[str, Any]] = defaultdict(dict)

    @property
    def mixed(self) -> bool:
        """Whether some attribute is read both as a number and as a string.

        The side facts only rule out contradictory readings, so a sat answer
        for such a query is not trusted.
        """
        return any(key in self.equalities or key in self.patterns for key in self.numbers)

    def var(self, sort: str, key: str) -> Any:
        name = variable_name(sort, key)
        if name not in self.variables:
            if sort == "int":
                self.variables[name] = self.z3.Int(name, self.ctx)
            elif sort == "real":
                self.variables[name] = self.z3.Real(name, self.ctx)
            else:
                self.variables[name] = self.z3.Bool(name, self.ctx)
        return self.variables[name]

    def number(self, key: str) -> Any:
        sort = "real" if key in self.real_keys else "int"
        variable = self.numbers[key] = self.var(sort, key)
        return variable

    def constant(self, key: str, value: Any) -> Any:
        """A literal of the sort of ``key``'s variable."""
        if key not in self.real_keys:
            return self.z3.IntVal(int(value), self.ctx)
        exact = Fraction(str(value))
        return self.z3.RatVal(exact.numerator, exact.denominator, self.ctx)

    def has(self, attribute: str) -> Any:
        return self.var("bool", f"has:{attribute}")

    def equals(self, attribute: str, value: str) -> Any:
        indicator = self.var("bool", f"eq:{attribute}={value}")
        self.equalities[attribute][value] = indicator
        return indicator

    def matches(self, attribute: str, regex: str) -> Any:
        indicator = self.var("bool", f"pattern:{attribute}:{regex}")
        self.patterns[attribute][regex] = indicator
        return indicator

    def axioms(self) -> list[Any]:
        """Side facts tying indicators of the same attribute together."""
        z3 = self.z3
        facts: list[Any] = []
        for attribute, indicators in self.equalities.items():
            present = self.has(attribute)
            values = list(indicators.items())
            for i, (value, indicator) in enumerate(values):
                facts.append(z3.Implies(indicator, present))
                # An attribute holds at most one value
                for _, other in values[i + 1:]:
                    facts.append(z3.Not(z3.And(indicator, other)))
                for regex, matched in self.patterns.get(attribute, {}).items():
                    outcome = matched if regex_search(regex, value) else z3.Not(matched)
                    facts.append(z3.Implies(indicator, outcome))
                if attribute in self.numbers:
                    facts.append(self._numeric_reading(attribute, value, indicator))
        for attribute, indicators in self.patterns.items():
            present = self.has(attribute)
            for matched in indicators.values():
                facts.append(z3.Implies(matched, present))
        return facts

    def _numeric_reading(self, key: str, value: str, indicator: Any) -> Any:
        """A numeric attribute equal to ``value`` holds the number that prints as ``value``."""
        z3 = self.z3
        number = numeric_literal(value, integral=key not in self.real_keys)
        if number is None:
            return z3.Not(indicator)
        return z3.Implies(indicator, self.numbers[key] == self.constant(key, number))


def _real_keys(condition: Condition) -> set[str]:
    keys = set()
    for node in walk(condition):
        numeric = numeric_leaf(node)
        if numeric is not None and not numeric[1]:
            keys.add(numeric[0])
    return keys


class Z3Backend(ConstraintBackend):
    """SMT-backed satisfiability with per-query heuristic fallback."""

    name = "z3"
    precise = True

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        fallback: ConstraintBackend | None = None,
    ):
        """Initialize the backend.

        Args:
            timeout_ms: Per-query solver timeout
            fallback: Backend consulted when Z3 answers unknown or fails

        Raises:
            SolverUnavailableError: If the z3 bindings are not installed
        """
        try:
            import z3
        except ImportError as e:
            raise SolverUnavailableError() from e

        self._z3 = z3
        self._ctx = z3.Context()
        self._lock = threading.Lock()
        self.timeout_ms = timeout_ms
        self.fallback = fallback or HeuristicBackend(max_terms=DEFAULT_MAX_TERMS)
        self.fallback_count = 0
        self.query_count = 0

    def is_satisfiable(self, condition: Condition) -> bool | None:
        z3 = self._z3
        with self._lock:
            self.query_count += 1
            try:
                translation = _Translation(z3, self._ctx, real_keys=_real_keys(condition))
                formula = self._translate(condition, translation)
                solver = z3.Solver(ctx=self._ctx)
                solver.set("timeout", self.timeout_ms)
                solver.add(*translation.axioms())
                solver.add(formula)
                result = solver.check()
            except z3.Z3Exception as e:
                logger.warning("solver_error", error=str(e), condition=str(condition))
                return self._fall_back(condition, reason="error")

            if result == z3.sat:
                if translation.mixed:
                    return self._fall_back(condition, reason="mixed_attribute_types")
                return True
            if result == z3.unsat:
                return False
            return self._fall_back(condition, reason=str(solver.reason_unknown()))

    def _fall_back(self, condition: Condition, reason: str) -> bool | None:
        self.fallback_count += 1
        logger.info("solver_fallback", reason=reason, backend=self.fallback.name)
        return self.fallback.is_satisfiable(condition)

    # =========================================================================
    # Translation
    # =========================================================================

    def _translate(self, condition: Condition, t: _Translation) -> Any:
        z3 = self._z3

        if isinstance(condition, And):
            return z3.And(self._translate(condition.left, t), self._translate(condition.right, t))
        if isinstance(condition, Or):
            return z3.Or(self._translate(condition.left, t), self._translate(condition.right, t))
        if isinstance(condition, Not):
            return z3.Not(self._translate(condition.inner, t))

        numeric = numeric_leaf(condition)
        if numeric is not None:
            key, _, threshold = numeric
            return z3.And(t.has(key), _compare(condition.op, t.number(key), t.constant(key, threshold)))

        if isinstance(condition, SetMembership):
            attr = condition.attribute
            indicators = [t.equals(attr, value) for value in dict.fromkeys(condition.values)]
            if condition.negated:
                return z3.And(t.has(attr), *[z3.Not(i) for i in indicators])
            if not indicators:
                return z3.BoolVal(False, self._ctx)
            return z3.Or(*indicators) if len(indicators) > 1 else indicators[0]

        if isinstance(condition, Pattern):
            if is_valid_regex(condition.regex):
                matched = t.matches(condition.attribute, condition.regex)
            else:
                # An invalid regex matches nothing
                matched = z3.BoolVal(False, self._ctx)
            if condition.negated:
                return z3.And(t.has(condition.attribute), z3.Not(matched))
            return matched

        if isinstance(condition, HasAttribute):
            return t.has(condition.key)

        if isinstance(condition, AttributeEquals):
            return t.equals(condition.key, condition.value)

        if isinstance(condition, Custom):
            return t.var("bool", f"custom:{condition.description}")

        raise TypeError(f"Unknown condition type: {type(condition).__name__}")


def _compare(op: ComparisonOp, variable: Any, bound: Any) -> Any:
    if op is ComparisonOp.EQ:
        return variable == bound
    if op is ComparisonOp.NE:
        return variable != bound
    if op is ComparisonOp.LT:
        return variable < bound
    if op is ComparisonOp.LE:
        return variable <= bound
    if op is ComparisonOp.GT:
        return variable > bound
    return variable >= bound
