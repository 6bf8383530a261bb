"""
Condition evaluator.

Evaluates a condition tree against an attribute context (a plain mapping).
And/Or short-circuit left to right, so a right operand that would fail a
strict lookup is never touched once the left operand decides the result.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Callable, Mapping

from statute_verifier.core.cache import BoundedCache
from statute_verifier.core.exceptions import ConditionTooDeepError, MissingAttributeError
from statute_verifier.conditions.schema import (
    Age,
    And,
    AttributeEquals,
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
    depth,
    regex_search,
)

CustomPredicate = Callable[[Mapping[str, Any]], bool]

# Context keys for the built-in numeric attributes
AGE_KEY = "age"
INCOME_KEY = "income"
DURATION_KEY = "duration_days"


def _json_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(str(item) for item in value)
    return str(value)


def context_fingerprint(context: Mapping[str, Any]) -> str:
    """Stable SHA-256 over the sorted JSON form of a context."""
    payload = json.dumps(dict(context), sort_keys=True, default=_json_default)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class EvaluationCache(BoundedCache[tuple[str, str, str], bool]):
    """Memo of evaluation results.

    Entries are keyed by (condition digest, context fingerprint, evaluator
    configuration), so two structurally equal trees share an entry while
    evaluators with different strictness, depth limits or custom predicates
    never see each other's answers. The digest of a tree is remembered by
    object identity, so repeated lookups with the same tree skip
    re-serializing it.
    """

    def __init__(self, max_size: int = 1000):
        super().__init__(max_size)
        # id(condition) -> (condition, digest); the condition is held so its id stays unique
        self._digests: BoundedCache[int, tuple[Condition, str]] = BoundedCache(max_size)
        self._predicates: dict[int, CustomPredicate] = {}

    def has_digest(self, condition: Condition) -> bool:
        entry = self._digests.get(id(condition))
        return entry is not None and entry[0] is condition

    def condition_digest(self, condition: Condition) -> str:
        entry = self._digests.get(id(condition))
        if entry is not None and entry[0] is condition:
            return entry[1]
        digest = hashlib.sha256(condition.model_dump_json().encode("utf-8")).hexdigest()
        self._digests.put(id(condition), (condition, digest))
        return digest

    def config_token(
        self,
        strict: bool,
        max_depth: int,
        predicates: Mapping[str, CustomPredicate],
    ) -> str:
        """Identify an evaluator configuration.

        Predicates are identified by object identity; the cache keeps them
        alive so an identity is never reused for a different callable.
        """
        parts = []
        for name in sorted(predicates):
            predicate = predicates[name]
            self._predicates.setdefault(id(predicate), predicate)
            parts.append(f"{name}={id(predicate)}")
        return f"strict={strict};max_depth={max_depth};predicates={','.join(parts)}"

    def key(
        self,
        condition: Condition,
        context: Mapping[str, Any],
        config: str = "",
    ) -> tuple[str, str, str]:
        return (self.condition_digest(condition), context_fingerprint(context), config)

    def lookup(self, condition: Condition, context: Mapping[str, Any], config: str = "") -> bool | None:
        return self.get(self.key(condition, context, config))

    def store(
        self,
        condition: Condition,
        context: Mapping[str, Any],
        result: bool,
        config: str = "",
    ) -> None:
        self.put(self.key(condition, context, config), result)


class ConditionEvaluator:
    """Evaluates conditions against attribute contexts."""

    def __init__(
        self,
        custom_predicates: Mapping[str, CustomPredicate] | None = None,
        strict: bool = False,
        max_depth: int | None = None,
        cache: EvaluationCache | None = None,
    ):
        """Initialize the evaluator.

        Args:
            custom_predicates: Callbacks for Custom conditions, keyed by description
            strict: Raise MissingAttributeError when AttributeEquals reads a missing key
            max_depth: Nesting guard (defaults to Settings.max_condition_depth)
            cache: Optional memo shared across evaluations
        """
        if max_depth is None:
            from statute_verifier.core.config import get_settings

            max_depth = get_settings().max_condition_depth
        self.custom_predicates: dict[str, CustomPredicate] = dict(custom_predicates or {})
        self.strict = strict
        self.max_depth = max_depth
        self.cache = cache

    def register(self, description: str, predicate: CustomPredicate) -> None:
        """Register a predicate for Custom conditions with this description."""
        self.custom_predicates[description] = predicate

    def evaluate(self, condition: Condition, context: Mapping[str, Any]) -> bool:
        """Evaluate a condition tree.

        Args:
            condition: The condition to evaluate
            context: Attribute values (age, income, duration_days, ...)

        Returns:
            True if the condition holds in the context

        Raises:
            ConditionTooDeepError: If the tree is deeper than max_depth
            MissingAttributeError: In strict mode, for a missing AttributeEquals key
        """
        if self.cache is None:
            self._check_depth(condition)
            return self._eval(condition, context)

        if not self.cache.has_digest(condition):
            # Unseen trees are guarded before they are serialized for the key
            self._check_depth(condition)
        config = self.cache.config_token(self.strict, self.max_depth, self.custom_predicates)
        cached = self.cache.lookup(condition, context, config)
        if cached is not None:
            return cached

        self._check_depth(condition)
        result = self._eval(condition, context)
        self.cache.store(condition, context, result, config)
        return result

    def _check_depth(self, condition: Condition) -> None:
        if depth(condition) > self.max_depth:
            raise ConditionTooDeepError(self.max_depth)

    # =========================================================================
    # Node evaluation
    # =========================================================================

    def _eval(self, condition: Condition, context: Mapping[str, Any]) -> bool:
        if isinstance(condition, And):
            return self._eval(condition.left, context) and self._eval(condition.right, context)
        if isinstance(condition, Or):
            return self._eval(condition.left, context) or self._eval(condition.right, context)
        if isinstance(condition, Not):
            return not self._eval(condition.inner, context)

        if isinstance(condition, Age):
            return self._compare(context, AGE_KEY, condition.op, condition.value)
        if isinstance(condition, Income):
            return self._compare(context, INCOME_KEY, condition.op, condition.value)
        if isinstance(condition, Duration):
            return self._compare(context, DURATION_KEY, condition.op, condition.days)
        if isinstance(condition, Percentage):
            return self._compare(context, condition.context, condition.op, condition.value)

        if isinstance(condition, SetMembership):
            if condition.attribute not in context:
                return False
            is_member = str(context[condition.attribute]) in condition.values
            return not is_member if condition.negated else is_member

        if isinstance(condition, Pattern):
            if condition.attribute not in context:
                return False
            matched = regex_search(condition.regex, str(context[condition.attribute]))
            return not matched if condition.negated else matched

        if isinstance(condition, HasAttribute):
            return condition.key in context

        if isinstance(condition, AttributeEquals):
            if condition.key not in context:
                if self.strict:
                    raise MissingAttributeError(condition.key)
                return False
            return str(context[condition.key]) == condition.value

        if isinstance(condition, Custom):
            predicate = self.custom_predicates.get(condition.description)
            if predicate is not None:
                return bool(predicate(context))
            return bool(context.get(condition.description))

        raise TypeError(f"Unknown condition type: {type(condition).__name__}")

    @staticmethod
    def _compare(context: Mapping[str, Any], key: str, op: Any, expected: Any) -> bool:
        actual = context.get(key)
        # Missing or non-numeric attributes never satisfy a comparison
        if isinstance(actual, bool) or not isinstance(actual, (int, float)):
            return False
        return op.apply(actual, expected)


def evaluate(
    condition: Condition,
    context: Mapping[str, Any],
    custom_predicates: Mapping[str, CustomPredicate] | None = None,
    strict: bool = False,
) -> bool:
    """Evaluate a condition with a one-off evaluator."""
    return ConditionEvaluator(custom_predicates=custom_predicates, strict=strict).evaluate(
        condition, context
    )
