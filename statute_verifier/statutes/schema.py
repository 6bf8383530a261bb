"""
Pydantic models for statutes.

A statute pairs a list of preconditions (implicitly ANDed) with an effect,
plus jurisdiction, temporal validity, version and explicit references to
other statutes.
"""

from __future__ import annotations

import re
from datetime import date
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from statute_verifier.core.exceptions import InvalidStatuteError
from statute_verifier.conditions.schema import (
    Age,
    Condition,
    Custom,
    Duration,
    Pattern,
    all_of,
    walk,
)

# Legacy reference convention: a Custom precondition "statute:<id>"
LEGACY_REFERENCE_PREFIX = "statute:"

STATUTE_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")

MAX_REALISTIC_AGE = 150
MAX_REALISTIC_DURATION_DAYS = 100 * 365


# =============================================================================
# Enums
# =============================================================================

class EffectType(str, Enum):
    """What a statute does when its preconditions hold."""
    GRANT = "grant"
    REVOKE = "revoke"
    OBLIGATION = "obligation"
    PROHIBITION = "prohibition"
    MONETARY_TRANSFER = "monetary_transfer"
    STATUS_CHANGE = "status_change"
    COMPOUND = "compound"
    CONDITIONAL = "conditional"
    DELAYED = "delayed"
    CUSTOM = "custom"


# Pairs of effect types that cannot both apply to the same resource
EXCLUSIVE_EFFECTS: frozenset[frozenset[EffectType]] = frozenset({
    frozenset({EffectType.GRANT, EffectType.REVOKE}),
    frozenset({EffectType.OBLIGATION, EffectType.PROHIBITION}),
})


class LegalHierarchy(IntEnum):
    """Rank of a legal instrument; higher values take precedence."""
    GUIDANCE = 1
    ORDINANCE = 2
    REGULATION = 3
    STATUTE = 4
    CONSTITUTION = 5


# =============================================================================
# Effect and Temporal Validity
# =============================================================================

class Effect(BaseModel):
    """The legal consequence of a statute."""

    model_config = ConfigDict(frozen=True)

    effect_type: EffectType
    description: str = Field(..., description="Human-readable effect description")
    parameters: dict[str, str] = Field(default_factory=dict)

    @property
    def resource(self) -> str:
        """The right, duty or asset the effect acts on.

        Taken from ``parameters["resource"]`` when present, otherwise the
        lowercased, whitespace-normalised description.
        """
        explicit = self.parameters.get("resource")
        if explicit:
            return explicit.strip().lower()
        return " ".join(self.description.lower().split())

    def conflicts_with(self, other: Effect) -> bool:
        """Whether the two effects are mutually exclusive on the same resource."""
        if self.resource != other.resource:
            return False
        return frozenset({self.effect_type, other.effect_type}) in EXCLUSIVE_EFFECTS


class TemporalValidity(BaseModel):
    """Dates during which a statute applies.

    Ranges are closed; a missing bound is open.
    """

    model_config = ConfigDict(frozen=True)

    effective_date: date | None = None
    expiry_date: date | None = None
    enacted_at: date | None = None
    amended_at: date | None = None

    def is_active(self, as_of: date | None = None) -> bool:
        as_of = as_of or date.today()
        if self.effective_date is not None and as_of < self.effective_date:
            return False
        if self.expiry_date is not None and as_of > self.expiry_date:
            return False
        return True

    def overlaps(self, other: TemporalValidity) -> bool:
        """Whether the two validity windows share at least one day."""
        starts = [d for d in (self.effective_date, other.effective_date) if d is not None]
        ends = [d for d in (self.expiry_date, other.expiry_date) if d is not None]
        if not starts or not ends:
            return True
        return max(starts) <= min(ends)


# =============================================================================
# Statute
# =============================================================================

class StatuteValidationIssue(BaseModel):
    """A single problem found by Statute.validate()."""

    code: str
    message: str


class Statute(BaseModel):
    """A legal rule: preconditions (ANDed) producing an effect."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique statute identifier")
    title: str
    preconditions: tuple[Condition, ...] = ()
    effect: Effect
    discretion_logic: str | None = Field(
        None, description="Free text describing human judgement in applying the statute"
    )
    jurisdiction: str | None = None
    temporal_validity: TemporalValidity = Field(default_factory=TemporalValidity)
    version: int = 1
    references: tuple[str, ...] = Field(
        default=(), description="IDs of statutes this statute depends on"
    )
    hierarchy: LegalHierarchy | None = None

    @property
    def condition(self) -> Condition | None:
        """All preconditions as one left-nested AND (None when unconditional)."""
        return all_of(self.preconditions)

    @property
    def has_discretion(self) -> bool:
        return bool(self.discretion_logic and self.discretion_logic.strip())

    def is_active(self, as_of: date | None = None) -> bool:
        return self.temporal_validity.is_active(as_of)

    def legacy_references(self) -> list[str]:
        """Statute IDs referenced through ``Custom("statute:<id>")`` preconditions."""
        found: list[str] = []
        for precondition in self.preconditions:
            for node in walk(precondition):
                if isinstance(node, Custom) and node.description.startswith(LEGACY_REFERENCE_PREFIX):
                    target = node.description[len(LEGACY_REFERENCE_PREFIX):].strip()
                    if target and target not in found:
                        found.append(target)
        return found

    def referenced_ids(self, include_legacy: bool = True) -> list[str]:
        """Referenced statute IDs in declaration order, without duplicates."""
        found = list(dict.fromkeys(self.references))
        if include_legacy:
            for target in self.legacy_references():
                if target not in found:
                    found.append(target)
        return found

    def amend(self, **changes: Any) -> Statute:
        """Return a new statute with ``changes`` applied and the version bumped."""
        changes.pop("version", None)
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        values["version"] = self.version + 1
        return type(self)(**values)

    def validate_statute(self) -> list[StatuteValidationIssue]:
        """Check the statute for structural problems.

        Returns:
            List of issues (empty if the statute is well-formed)
        """
        issues: list[StatuteValidationIssue] = []

        if not self.id.strip():
            issues.append(StatuteValidationIssue(code="empty_id", message="Statute ID is empty"))
        elif not STATUTE_ID_PATTERN.match(self.id):
            issues.append(StatuteValidationIssue(
                code="invalid_id",
                message=(
                    f"Statute ID '{self.id}' must start with a letter and contain "
                    "only letters, digits, '-' or '_'"
                ),
            ))

        if not self.title.strip():
            issues.append(StatuteValidationIssue(code="empty_title", message="Statute title is empty"))

        validity = self.temporal_validity
        if (
            validity.effective_date is not None
            and validity.expiry_date is not None
            and validity.expiry_date < validity.effective_date
        ):
            issues.append(StatuteValidationIssue(
                code="expiry_before_effective",
                message=(
                    f"Expiry date {validity.expiry_date} is before effective date "
                    f"{validity.effective_date}"
                ),
            ))

        for precondition in self.preconditions:
            for node in walk(precondition):
                issue = _check_condition_values(node)
                if issue is not None:
                    issues.append(issue)

        if not self.effect.description.strip():
            issues.append(StatuteValidationIssue(
                code="empty_effect", message="Effect description is empty"
            ))

        if self.version < 1:
            issues.append(StatuteValidationIssue(
                code="invalid_version", message=f"Version must be at least 1, got {self.version}"
            ))

        return issues

    def is_valid(self) -> bool:
        return not self.validate_statute()


def _check_condition_values(node: Condition) -> StatuteValidationIssue | None:
    if isinstance(node, Age) and not 0 <= node.value <= MAX_REALISTIC_AGE:
        return StatuteValidationIssue(
            code="unrealistic_age", message=f"Age threshold {node.value} is unrealistic"
        )
    if isinstance(node, Duration) and node.days > MAX_REALISTIC_DURATION_DAYS:
        return StatuteValidationIssue(
            code="unrealistic_duration",
            message=f"Duration {node.value} {node.unit.value} exceeds 100 years",
        )
    if isinstance(node, Pattern):
        try:
            re.compile(node.regex)
        except re.error as e:
            return StatuteValidationIssue(
                code="invalid_pattern", message=f"Invalid pattern /{node.regex}/: {e}"
            )
    return None


# =============================================================================
# Builder
# =============================================================================

class StatuteBuilder:
    """Fluent builder for statutes.

    Example:
        statute = (
            StatuteBuilder("benefit-1", "Child benefit", effect)
            .with_precondition(Age(op=">=", value=18))
            .with_jurisdiction("federal")
            .build()
        )
    """

    def __init__(self, statute_id: str, title: str, effect: Effect):
        self._values: dict[str, Any] = {"id": statute_id, "title": title, "effect": effect}
        self._preconditions: list[Condition] = []
        self._references: list[str] = []

    def with_precondition(self, condition: Condition) -> StatuteBuilder:
        self._preconditions.append(condition)
        return self

    def with_discretion(self, logic: str) -> StatuteBuilder:
        self._values["discretion_logic"] = logic
        return self

    def with_jurisdiction(self, jurisdiction: str) -> StatuteBuilder:
        self._values["jurisdiction"] = jurisdiction
        return self

    def with_temporal_validity(self, validity: TemporalValidity) -> StatuteBuilder:
        self._values["temporal_validity"] = validity
        return self

    def with_version(self, version: int) -> StatuteBuilder:
        self._values["version"] = version
        return self

    def with_reference(self, statute_id: str) -> StatuteBuilder:
        self._references.append(statute_id)
        return self

    def with_hierarchy(self, level: LegalHierarchy) -> StatuteBuilder:
        self._values["hierarchy"] = level
        return self

    def build(self, validate: bool = True) -> Statute:
        """Build the statute.

        Args:
            validate: Run Statute.validate_statute() and reject issues

        Raises:
            InvalidStatuteError: If validation finds any issue
        """
        statute = Statute(
            **self._values,
            preconditions=tuple(self._preconditions),
            references=tuple(self._references),
        )
        if validate:
            issues = statute.validate_statute()
            if issues:
                raise InvalidStatuteError(
                    f"Invalid statute '{statute.id}'", [issue.message for issue in issues]
                )
        return statute
