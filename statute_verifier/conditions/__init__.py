"""Condition model and evaluator."""

from .schema import (
    ComparisonOp,
    DurationUnit,
    DURATION_UNIT_DAYS,
    Age,
    Income,
    Duration,
    Percentage,
    SetMembership,
    Pattern,
    HasAttribute,
    AttributeEquals,
    Custom,
    And,
    Or,
    Not,
    Condition,
    LEAF_TYPES,
    COMPARISON_TYPES,
    CONNECTIVE_TYPES,
    children,
    walk,
    depth,
    size,
    is_connective,
    all_of,
    any_of,
    negate_op,
    condition_type_name,
    is_valid_regex,
    regex_search,
)
from .evaluator import (
    ConditionEvaluator,
    EvaluationCache,
    context_fingerprint,
    evaluate,
)

__all__ = [
    # Operators and units
    "ComparisonOp",
    "DurationUnit",
    "DURATION_UNIT_DAYS",
    # Variants
    "Age",
    "Income",
    "Duration",
    "Percentage",
    "SetMembership",
    "Pattern",
    "HasAttribute",
    "AttributeEquals",
    "Custom",
    "And",
    "Or",
    "Not",
    "Condition",
    "LEAF_TYPES",
    "COMPARISON_TYPES",
    "CONNECTIVE_TYPES",
    # Helpers
    "children",
    "walk",
    "depth",
    "size",
    "is_connective",
    "all_of",
    "any_of",
    "negate_op",
    "condition_type_name",
    "is_valid_regex",
    "regex_search",
    # Evaluation
    "ConditionEvaluator",
    "EvaluationCache",
    "context_fingerprint",
    "evaluate",
]
