"""Tests for the condition model and evaluator."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from statute_verifier.conditions import (
    Age,
    And,
    AttributeEquals,
    ComparisonOp,
    Condition,
    ConditionEvaluator,
    Custom,
    Duration,
    DurationUnit,
    EvaluationCache,
    HasAttribute,
    Income,
    Not,
    Or,
    Pattern,
    Percentage,
    SetMembership,
    all_of,
    any_of,
    context_fingerprint,
    depth,
    evaluate,
    negate_op,
    size,
    walk,
)
import statute_verifier.conditions.evaluator as evaluator_module
from statute_verifier.core import ConditionTooDeepError, MissingAttributeError


# =============================================================================
# Model Tests
# =============================================================================

class TestConditionModel:
    """Test condition construction, rendering and traversal."""

    def test_operator_parsed_from_symbol(self):
        """Operators can be given by their symbol."""
        condition = Age(op=">=", value=18)
        assert condition.op is ComparisonOp.GE

    def test_conditions_are_frozen(self):
        """Conditions cannot be mutated after construction."""
        condition = Age(op=">=", value=18)
        with pytest.raises(ValidationError):
            condition.value = 21

    def test_structural_equality_and_hash(self):
        """Equal trees compare and hash equal."""
        a = And(left=Age(op=">=", value=18), right=HasAttribute(key="resident"))
        b = And(left=Age(op=">=", value=18), right=HasAttribute(key="resident"))
        assert a == b
        assert hash(a) == hash(b)

    def test_str_rendering(self):
        """Conditions render in a readable form."""
        condition = And(
            left=Age(op=">=", value=18),
            right=Not(inner=Custom(description="good character")),
        )
        assert str(condition) == "(age >= 18 AND NOT custom(good character))"
        assert str(Or(left=Income(op="<", value=30000), right=HasAttribute(key="x"))) == (
            "(income < 30000 OR has_attribute(x))"
        )

    def test_duration_normalised_to_days(self):
        """Durations convert with 7-day weeks, 30-day months and 365-day years."""
        assert Duration(op=">=", value=2, unit=DurationUnit.WEEKS).days == 14
        assert Duration(op=">=", value=3, unit="months").days == 90
        assert Duration(op=">=", value=1, unit="years").days == 365

    def test_depth_and_size(self):
        """Depth counts nesting levels; size counts nodes."""
        leaf = Age(op=">=", value=18)
        tree = And(left=leaf, right=Not(inner=leaf))
        assert depth(leaf) == 1
        assert depth(tree) == 3
        assert size(tree) == 4

    def test_walk_is_preorder(self):
        """walk yields parents before children, left before right."""
        a = Age(op=">=", value=18)
        b = Income(op="<", value=100)
        tree = Or(left=a, right=b)
        assert list(walk(tree)) == [tree, a, b]

    def test_all_of_and_any_of(self):
        """Folds build left-nested connectives."""
        a, b, c = Age(op=">=", value=18), HasAttribute(key="x"), HasAttribute(key="y")
        assert all_of([a, b, c]) == And(left=And(left=a, right=b), right=c)
        assert any_of([a, b]) == Or(left=a, right=b)
        assert all_of([]) is None
        assert any_of([a]) == a

    def test_negate_op(self):
        """Each operator maps to its complement."""
        assert negate_op(ComparisonOp.GE) is ComparisonOp.LT
        assert negate_op(ComparisonOp.LT) is ComparisonOp.GE
        assert negate_op(ComparisonOp.EQ) is ComparisonOp.NE
        assert negate_op(ComparisonOp.GT) is ComparisonOp.LE

    def test_discriminated_union_from_json(self):
        """Nested conditions parse back from plain data by their kind."""
        adapter = TypeAdapter(Condition)
        condition = adapter.validate_python({
            "kind": "and",
            "left": {"kind": "age", "op": ">=", "value": 18},
            "right": {"kind": "not", "inner": {"kind": "has_attribute", "key": "convicted"}},
        })
        assert condition == And(
            left=Age(op=">=", value=18),
            right=Not(inner=HasAttribute(key="convicted")),
        )


# =============================================================================
# Evaluator Tests
# =============================================================================

class TestEvaluator:
    """Test evaluation semantics against attribute contexts."""

    def test_numeric_comparisons(self):
        """Age, income, duration and percentage read their context keys."""
        context = {"age": 30, "income": 25000, "duration_days": 400, "ownership": 51.0}
        assert evaluate(Age(op=">=", value=18), context)
        assert evaluate(Income(op="<", value=30000), context)
        assert evaluate(Duration(op=">=", value=1, unit="years"), context)
        assert evaluate(Percentage(op=">", value=50, context="ownership"), context)
        assert not evaluate(Age(op="<", value=18), context)

    def test_missing_numeric_attribute_is_false(self):
        """A comparison on a missing attribute never holds."""
        assert not evaluate(Age(op=">=", value=18), {})
        assert not evaluate(Age(op="<", value=18), {})

    def test_set_membership_and_pattern(self):
        """Membership and pattern tests use the named attribute."""
        context = {"status": "married", "postcode": "9016"}
        assert evaluate(SetMembership(attribute="status", values=["single", "married"]), context)
        assert not evaluate(
            SetMembership(attribute="status", values=["single"], negated=False), context
        )
        assert evaluate(SetMembership(attribute="status", values=["single"], negated=True), context)
        assert evaluate(Pattern(attribute="postcode", regex=r"^9\d{3}$"), context)
        assert evaluate(Pattern(attribute="postcode", regex=r"^1", negated=True), context)

    def test_invalid_pattern_matches_nothing(self):
        """A regex that does not compile never matches and never raises."""
        assert evaluate(Pattern(attribute="name", regex="("), {"name": "x"}) is False
        assert evaluate(Pattern(attribute="name", regex="(", negated=True), {"name": "x"}) is True
        assert evaluate(Pattern(attribute="name", regex="(", negated=True), {}) is False

    def test_has_attribute_never_raises(self):
        """HasAttribute is an existence check in strict mode too."""
        strict = ConditionEvaluator(strict=True)
        assert strict.evaluate(HasAttribute(key="resident"), {"resident": False})
        assert not strict.evaluate(HasAttribute(key="resident"), {})

    def test_attribute_equals_missing_key(self):
        """Strict mode raises on a missing key; lenient mode returns False."""
        condition = AttributeEquals(key="citizenship", value="NZ")
        assert not evaluate(condition, {})
        with pytest.raises(MissingAttributeError) as exc_info:
            ConditionEvaluator(strict=True).evaluate(condition, {})
        assert "citizenship" in str(exc_info.value)

    def test_and_short_circuits(self):
        """A false left operand stops evaluation of the right operand."""
        strict = ConditionEvaluator(strict=True)
        condition = And(left=Age(op=">=", value=18), right=AttributeEquals(key="missing", value="x"))
        assert strict.evaluate(condition, {"age": 10}) is False
        with pytest.raises(MissingAttributeError):
            strict.evaluate(condition, {"age": 20})

    def test_or_short_circuits(self):
        """A true left operand stops evaluation of the right operand."""
        strict = ConditionEvaluator(strict=True)
        condition = Or(left=HasAttribute(key="age"), right=AttributeEquals(key="missing", value="x"))
        assert strict.evaluate(condition, {"age": 10}) is True

    def test_double_negation_identity(self):
        """NOT NOT c evaluates like c."""
        condition = Age(op=">=", value=18)
        for context in ({"age": 17}, {"age": 18}, {}):
            assert evaluate(Not(inner=Not(inner=condition)), context) == evaluate(condition, context)

    def test_custom_predicate(self):
        """Registered predicates decide Custom conditions."""
        evaluator = ConditionEvaluator(
            custom_predicates={"is_resident": lambda ctx: ctx.get("country") == "NZ"}
        )
        assert evaluator.evaluate(Custom(description="is_resident"), {"country": "NZ"})
        assert not evaluator.evaluate(Custom(description="is_resident"), {"country": "AU"})

    def test_custom_without_predicate_uses_context_truthiness(self):
        """Unregistered Custom conditions read the context by description."""
        condition = Custom(description="has_license")
        assert evaluate(condition, {"has_license": True})
        assert not evaluate(condition, {"has_license": False})
        assert not evaluate(condition, {})

    def test_depth_guard(self):
        """Trees deeper than max_depth are rejected."""
        condition: Condition = HasAttribute(key="x")
        for _ in range(10):
            condition = Not(inner=condition)
        with pytest.raises(ConditionTooDeepError):
            ConditionEvaluator(max_depth=5).evaluate(condition, {"x": 1})


# =============================================================================
# Cache Tests
# =============================================================================

class TestEvaluationCache:
    """Test memoised evaluation."""

    def test_fingerprint_ignores_key_order(self):
        """Context fingerprints are stable under key ordering."""
        assert context_fingerprint({"a": 1, "b": 2}) == context_fingerprint({"b": 2, "a": 1})
        assert context_fingerprint({"a": 1}) != context_fingerprint({"a": 2})

    def test_hit_matches_cold_evaluation(self):
        """A cached answer equals the uncached one and is counted as a hit."""
        cache = EvaluationCache()
        evaluator = ConditionEvaluator(cache=cache)
        condition = And(left=Age(op=">=", value=18), right=Income(op="<", value=50000))
        context = {"age": 40, "income": 20000}

        first = evaluator.evaluate(condition, context)
        second = evaluator.evaluate(condition, dict(reversed(list(context.items()))))

        assert first is second is True
        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_bounded_size(self):
        """The cache evicts old entries instead of growing without bound."""
        cache = EvaluationCache(max_size=4)
        evaluator = ConditionEvaluator(cache=cache)
        for age in range(10):
            evaluator.evaluate(Age(op=">=", value=18), {"age": age})
        assert len(cache) <= 4

    def test_custom_predicates_are_part_of_the_key(self):
        """Evaluators with different predicates keep separate answers in a shared cache."""
        cache = EvaluationCache()
        condition = Custom(description="good character")
        vouched = ConditionEvaluator(cache=cache, custom_predicates={"good character": lambda ctx: True})
        plain = ConditionEvaluator(cache=cache)

        assert vouched.evaluate(condition, {}) is True
        assert plain.evaluate(condition, {}) is False
        assert cache.get_stats()["hits"] == 0

    def test_strictness_is_part_of_the_key(self):
        """A lenient answer is never served to a strict evaluator."""
        cache = EvaluationCache()
        condition = AttributeEquals(key="status", value="single")
        assert ConditionEvaluator(cache=cache).evaluate(condition, {}) is False
        with pytest.raises(MissingAttributeError):
            ConditionEvaluator(cache=cache, strict=True).evaluate(condition, {})

    def test_hit_skips_depth_walk(self, monkeypatch):
        """Repeat evaluations of the same tree answer from the cache without re-walking it."""
        cache = EvaluationCache()
        evaluator = ConditionEvaluator(cache=cache)
        condition = And(left=Age(op=">=", value=18), right=Not(inner=HasAttribute(key="banned")))
        assert evaluator.evaluate(condition, {"age": 30}) is True

        walked = []
        monkeypatch.setattr(evaluator_module, "depth", lambda c: walked.append(c) or 1)
        assert evaluator.evaluate(condition, {"age": 30}) is True
        assert walked == []

    def test_deep_tree_rejected_before_caching(self):
        cache = EvaluationCache()
        condition: Condition = HasAttribute(key="x")
        for _ in range(10):
            condition = Not(inner=condition)
        with pytest.raises(ConditionTooDeepError):
            ConditionEvaluator(max_depth=5, cache=cache).evaluate(condition, {"x": 1})
        assert len(cache) == 0
