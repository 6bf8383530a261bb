"""Pydantic models for legal preconditions.

A condition is a recursive, immutable value: leaf predicates over an
attribute context (age, income, durations, percentages, set membership,
patterns, attributes, free-text custom predicates) composed with AND / OR /
NOT. Every node owns its children by value, so trees are finite and acyclic
by construction.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any, Iterable, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Operators and Units
# =============================================================================

class ComparisonOp(str, Enum):
    """Comparison operators for numeric conditions."""
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="

    def apply(self, actual: Any, expected: Any) -> bool:
        """Compare ``actual <op> expected``."""
        if self is ComparisonOp.EQ:
            return actual == expected
        if self is ComparisonOp.NE:
            return actual != expected
        if self is ComparisonOp.LT:
            return actual < expected
        if self is ComparisonOp.LE:
            return actual <= expected
        if self is ComparisonOp.GT:
            return actual > expected
        return actual >= expected


NEGATED_OPS: dict[ComparisonOp, ComparisonOp] = {
    ComparisonOp.EQ: ComparisonOp.NE,
    ComparisonOp.NE: ComparisonOp.EQ,
    ComparisonOp.LT: ComparisonOp.GE,
    ComparisonOp.GE: ComparisonOp.LT,
    ComparisonOp.LE: ComparisonOp.GT,
    ComparisonOp.GT: ComparisonOp.LE,
}


def negate_op(op: ComparisonOp) -> ComparisonOp:
    """Return the operator whose result is the complement of ``op``."""
    return NEGATED_OPS[op]


class DurationUnit(str, Enum):
    """Units for duration conditions."""
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"

    @property
    def days(self) -> int:
        """Number of days in one unit (months and years are calendar-agnostic)."""
        return DURATION_UNIT_DAYS[self]


DURATION_UNIT_DAYS: dict[DurationUnit, int] = {
    DurationUnit.DAYS: 1,
    DurationUnit.WEEKS: 7,
    DurationUnit.MONTHS: 30,
    DurationUnit.YEARS: 365,
}


# =============================================================================
# Leaf Conditions
# =============================================================================

class _ConditionNode(BaseModel):
    """Shared configuration: conditions are frozen, hashable values."""

    model_config = ConfigDict(frozen=True)


class Age(_ConditionNode):
    """Age comparison (e.g., age >= 18)."""
    kind: Literal["age"] = "age"
    op: ComparisonOp = Field(..., description="Comparison operator")
    value: int = Field(..., description="Age in years")

    def __str__(self) -> str:
        return f"age {self.op.value} {self.value}"


class Income(_ConditionNode):
    """Income comparison."""
    kind: Literal["income"] = "income"
    op: ComparisonOp
    value: int

    def __str__(self) -> str:
        return f"income {self.op.value} {self.value}"


class Duration(_ConditionNode):
    """Duration comparison (residency, employment, notice periods)."""
    kind: Literal["duration"] = "duration"
    op: ComparisonOp
    value: int
    unit: DurationUnit = DurationUnit.DAYS

    @property
    def days(self) -> int:
        """The threshold normalised to days."""
        return self.value * self.unit.days

    def __str__(self) -> str:
        return f"duration {self.op.value} {self.value} {self.unit.value}"


class Percentage(_ConditionNode):
    """Percentage comparison within a named context (e.g., 'ownership')."""
    kind: Literal["percentage"] = "percentage"
    op: ComparisonOp
    value: float
    context: str = Field(..., description="What the percentage measures")

    def __str__(self) -> str:
        return f"{self.context}% {self.op.value} {self.value}"


class SetMembership(_ConditionNode):
    """Attribute value is (or, if negated, is not) one of a set of values."""
    kind: Literal["set_membership"] = "set_membership"
    attribute: str
    values: tuple[str, ...] = ()
    negated: bool = False

    def __str__(self) -> str:
        keyword = "not in" if self.negated else "in"
        return f"{self.attribute} {keyword} {{{', '.join(self.values)}}}"


class Pattern(_ConditionNode):
    """Attribute value matches (or, if negated, does not match) a regex."""
    kind: Literal["pattern"] = "pattern"
    attribute: str
    regex: str
    negated: bool = False

    def __str__(self) -> str:
        keyword = "!~" if self.negated else "=~"
        return f"{self.attribute} {keyword} /{self.regex}/"


def is_valid_regex(regex: str) -> bool:
    try:
        re.compile(regex)
    except re.error:
        return False
    return True


def regex_search(regex: str, value: str) -> bool:
    """Whether ``regex`` matches somewhere in ``value``.

    An invalid regex matches nothing.
    """
    try:
        return re.search(regex, value) is not None
    except re.error:
        return False


class HasAttribute(_ConditionNode):
    """Attribute existence check."""
    kind: Literal["has_attribute"] = "has_attribute"
    key: str

    def __str__(self) -> str:
        return f"has_attribute({self.key})"


class AttributeEquals(_ConditionNode):
    """Attribute value check."""
    kind: Literal["attribute_equals"] = "attribute_equals"
    key: str
    value: str

    def __str__(self) -> str:
        return f'{self.key} == "{self.value}"'


class Custom(_ConditionNode):
    """Free-text predicate, evaluated by a registered callback."""
    kind: Literal["custom"] = "custom"
    description: str

    def __str__(self) -> str:
        return f"custom({self.description})"


# =============================================================================
# Connectives
# =============================================================================

class And(_ConditionNode):
    """Logical AND of two conditions."""
    kind: Literal["and"] = "and"
    left: Condition
    right: Condition

    def __str__(self) -> str:
        return f"({self.left} AND {self.right})"


class Or(_ConditionNode):
    """Logical OR of two conditions."""
    kind: Literal["or"] = "or"
    left: Condition
    right: Condition

    def __str__(self) -> str:
        return f"({self.left} OR {self.right})"


class Not(_ConditionNode):
    """Logical NOT."""
    kind: Literal["not"] = "not"
    inner: Condition

    def __str__(self) -> str:
        return f"NOT {self.inner}"


Condition = Annotated[
    Union[
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
    ],
    Field(discriminator="kind"),
]

LEAF_TYPES: tuple[type, ...] = (
    Age,
    Income,
    Duration,
    Percentage,
    SetMembership,
    Pattern,
    HasAttribute,
    AttributeEquals,
    Custom,
)

COMPARISON_TYPES: tuple[type, ...] = (Age, Income, Duration, Percentage)

CONNECTIVE_TYPES: tuple[type, ...] = (And, Or, Not)


# Enable forward references for recursive types
And.model_rebuild()
Or.model_rebuild()
Not.model_rebuild()


# =============================================================================
# Traversal Helpers
# =============================================================================

def children(condition: Condition) -> tuple[Condition, ...]:
    """Direct sub-conditions of a node (empty for leaves)."""
    if isinstance(condition, (And, Or)):
        return (condition.left, condition.right)
    if isinstance(condition, Not):
        return (condition.inner,)
    return ()


def walk(condition: Condition) -> Iterator[Condition]:
    """Yield every node of the tree in pre-order, left before right."""
    stack = [condition]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(children(node)))


def depth(condition: Condition) -> int:
    """Nesting depth; a leaf has depth 1."""
    deepest = 0
    stack = [(condition, 1)]
    while stack:
        node, level = stack.pop()
        deepest = max(deepest, level)
        stack.extend((child, level + 1) for child in children(node))
    return deepest


def size(condition: Condition) -> int:
    """Total number of nodes in the tree."""
    return sum(1 for _ in walk(condition))


def is_connective(condition: Condition) -> bool:
    return isinstance(condition, CONNECTIVE_TYPES)


def all_of(conditions: Iterable[Condition]) -> Condition | None:
    """Fold conditions into a left-nested AND (None for an empty input)."""
    combined: Condition | None = None
    for condition in conditions:
        combined = condition if combined is None else And(left=combined, right=condition)
    return combined


def any_of(conditions: Iterable[Condition]) -> Condition | None:
    """Fold conditions into a left-nested OR (None for an empty input)."""
    combined: Condition | None = None
    for condition in conditions:
        combined = condition if combined is None else Or(left=combined, right=condition)
    return combined


def condition_type_name(condition: Condition) -> str:
    """Variant name used in metrics and reports (e.g., 'Age', 'SetMembership')."""
    return type(condition).__name__
