"""Pydantic models for verification findings and reports."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Hashable, Iterable

from pydantic import BaseModel, Field, field_validator, model_validator

from statute_verifier.graph.analyzer import GraphMetrics


# =============================================================================
# Enums
# =============================================================================

class Severity(str, Enum):
    """Finding severity, ordered INFO < WARNING < ERROR < CRITICAL."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
    Severity.CRITICAL: 3,
}


class FindingKind(str, Enum):
    """Kinds of verification findings."""
    CIRCULAR_REFERENCE = "circular_reference"
    DEAD_STATUTE = "dead_statute"
    CONSTITUTIONAL_CONFLICT = "constitutional_conflict"
    LOGICAL_CONTRADICTION = "logical_contradiction"
    AMBIGUITY = "ambiguity"
    UNREACHABLE_CODE = "unreachable_code"
    ID_COLLISION = "id_collision"
    JURISDICTIONAL_OVERLAP = "jurisdictional_overlap"
    TEMPORAL_CONFLICT = "temporal_conflict"
    HIERARCHY_VIOLATION = "hierarchy_violation"


DEFAULT_SEVERITY: dict[FindingKind, Severity] = {
    FindingKind.CIRCULAR_REFERENCE: Severity.ERROR,
    FindingKind.DEAD_STATUTE: Severity.ERROR,
    FindingKind.CONSTITUTIONAL_CONFLICT: Severity.CRITICAL,
    FindingKind.LOGICAL_CONTRADICTION: Severity.ERROR,
    FindingKind.AMBIGUITY: Severity.WARNING,
    FindingKind.UNREACHABLE_CODE: Severity.WARNING,
    FindingKind.ID_COLLISION: Severity.ERROR,
    FindingKind.JURISDICTIONAL_OVERLAP: Severity.WARNING,
    FindingKind.TEMPORAL_CONFLICT: Severity.WARNING,
    FindingKind.HIERARCHY_VIOLATION: Severity.ERROR,
}

CONFLICT_KINDS = frozenset({
    FindingKind.ID_COLLISION,
    FindingKind.JURISDICTIONAL_OVERLAP,
    FindingKind.TEMPORAL_CONFLICT,
    FindingKind.HIERARCHY_VIOLATION,
})


# =============================================================================
# Findings
# =============================================================================

class VerificationError(BaseModel):
    """A single verification finding.

    Severity defaults to the kind's usual severity when not given.
    """

    kind: FindingKind
    severity: Severity
    message: str
    statute_ids: list[str] = Field(default_factory=list)
    principle: str | None = Field(None, description="Principle ID for constitutional conflicts")

    @model_validator(mode="before")
    @classmethod
    def _default_severity(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("severity") is None and "kind" in data:
            data = dict(data)
            data["severity"] = DEFAULT_SEVERITY[FindingKind(data["kind"])]
        return data

    @property
    def key(self) -> tuple[FindingKind, Severity, str, tuple[str, ...], str | None]:
        """Hashable identity used when unioning findings."""
        return (self.kind, self.severity, self.message, tuple(self.statute_ids), self.principle)

    def __str__(self) -> str:
        return f"[{self.severity.value.upper()}] {self.kind.value}: {self.message}"


def _union(
    groups: Iterable[Iterable[Any]],
    key: Callable[[Any], Hashable] = lambda item: item,
) -> list[Any]:
    """Order-preserving union without duplicates, linear in the total size."""
    seen: set[Hashable] = set()
    merged: list[Any] = []
    for group in groups:
        for item in group:
            identity = key(item)
            if identity not in seen:
                seen.add(identity)
                merged.append(item)
    return merged


class VerificationResult(BaseModel):
    """Aggregated outcome of a verification run."""

    passed: bool = True
    errors: list[VerificationError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls) -> VerificationResult:
        return cls(passed=True)

    @classmethod
    def fail(cls, errors: Iterable[VerificationError]) -> VerificationResult:
        result = cls()
        for error in errors:
            result.add_error(error)
        return result

    def add_error(self, error: VerificationError) -> VerificationResult:
        """Record a finding; ERROR and CRITICAL findings fail the result."""
        self.errors.append(error)
        if error.severity >= Severity.ERROR:
            self.passed = False
        return self

    def add_warning(self, warning: str) -> VerificationResult:
        if warning not in self.warnings:
            self.warnings.append(warning)
        return self

    def add_suggestion(self, suggestion: str) -> VerificationResult:
        if suggestion not in self.suggestions:
            self.suggestions.append(suggestion)
        return self

    def merge(self, other: VerificationResult) -> VerificationResult:
        """Combine two results into a new one (lists unioned, passed ANDed)."""
        return VerificationResult.merge_all([self, other])

    @classmethod
    def merge_all(cls, results: Iterable[VerificationResult]) -> VerificationResult:
        """Combine any number of results in one pass.

        Equivalent to folding ``merge`` over ``results`` but linear in the
        total number of findings.
        """
        results = list(results)
        return cls(
            passed=all(result.passed for result in results),
            errors=_union((result.errors for result in results), key=lambda error: error.key),
            warnings=_union(result.warnings for result in results),
            suggestions=_union(result.suggestions for result in results),
        )

    def errors_by_severity(self, min_severity: Severity) -> list[VerificationError]:
        """Findings at or above ``min_severity``."""
        return [error for error in self.errors if error.severity >= min_severity]

    def errors_of_kind(self, kind: FindingKind) -> list[VerificationError]:
        return [error for error in self.errors if error.kind == kind]

    def severity_counts(self) -> dict[Severity, int]:
        counts = {severity: 0 for severity in Severity}
        for error in self.errors:
            counts[error.severity] += 1
        return counts

    def has_critical_errors(self) -> bool:
        return any(error.severity == Severity.CRITICAL for error in self.errors)

    def summary(self) -> str:
        status = "PASSED" if self.passed else "FAILED"
        return (
            f"{status}: {len(self.errors)} finding(s), {len(self.warnings)} warning(s), "
            f"{len(self.suggestions)} suggestion(s)"
        )

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(indent=indent)

    @classmethod
    def from_json(cls, data: str) -> VerificationResult:
        return cls.model_validate_json(data)


# =============================================================================
# Conflicts
# =============================================================================

class Conflict(BaseModel):
    """A conflict between two statutes."""

    conflict_type: FindingKind
    severity: Severity
    statute_ids: tuple[str, str]
    description: str
    resolution: str | None = Field(None, description="Suggested way to resolve the conflict")

    @field_validator("statute_ids")
    @classmethod
    def _sort_ids(cls, value: tuple[str, str]) -> tuple[str, str]:
        first, second = sorted(value)
        return (first, second)

    @property
    def key(self) -> tuple[FindingKind, tuple[str, str]]:
        """Identity used to de-duplicate conflicts."""
        return (self.conflict_type, self.statute_ids)

    def to_error(self) -> VerificationError:
        message = self.description
        if self.resolution:
            message = f"{message} (resolution: {self.resolution})"
        return VerificationError(
            kind=self.conflict_type,
            severity=self.severity,
            message=message,
            statute_ids=list(self.statute_ids),
        )


# =============================================================================
# Complexity
# =============================================================================

class ComplexityLevel(str, Enum):
    """Complexity band of a statute's conditions."""
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    VERY_COMPLEX = "very_complex"

    @classmethod
    def from_score(cls, score: int) -> ComplexityLevel:
        if score <= 25:
            return cls.SIMPLE
        if score <= 50:
            return cls.MODERATE
        if score <= 75:
            return cls.COMPLEX
        return cls.VERY_COMPLEX


class ComplexityMetrics(BaseModel):
    """Complexity measurements for one statute."""

    statute_id: str
    condition_count: int = 0
    max_depth: int = 0
    logical_operator_count: int = 0
    condition_types: list[str] = Field(default_factory=list)
    has_discretion: bool = False
    cyclomatic_complexity: int = 1
    complexity_score: int = 0
    level: ComplexityLevel = ComplexityLevel.SIMPLE

    @property
    def condition_type_count(self) -> int:
        return len(self.condition_types)


# =============================================================================
# Coverage
# =============================================================================

class CoverageInfo(BaseModel):
    """Which preconditions can be satisfied at all, per statute."""

    total_conditions: int = 0
    satisfiable_conditions: int = 0
    unsatisfiable_conditions: int = 0
    undecided_conditions: int = 0
    covered_conditions: dict[str, list[int]] = Field(default_factory=dict)
    uncovered_conditions: dict[str, list[int]] = Field(default_factory=dict)
    undecided: dict[str, list[int]] = Field(default_factory=dict)
    coverage_percentage: float = 0.0

    def compute_percentage(self) -> None:
        if self.total_conditions > 0:
            covered = sum(len(indices) for indices in self.covered_conditions.values())
            self.coverage_percentage = covered / self.total_conditions * 100.0
        else:
            self.coverage_percentage = 0.0

    def is_complete(self) -> bool:
        return self.coverage_percentage >= 100.0

    def report(self) -> str:
        """Plain-text coverage report."""
        lines = [
            "# Condition Coverage Report",
            "",
            f"Total Conditions: {self.total_conditions}",
            f"Satisfiable: {self.satisfiable_conditions}",
            f"Unsatisfiable: {self.unsatisfiable_conditions}",
            f"Undecided: {self.undecided_conditions}",
            f"Coverage: {self.coverage_percentage:.2f}%",
            "",
        ]
        for heading, section in (
            ("Covered Conditions", self.covered_conditions),
            ("Uncovered Conditions", self.uncovered_conditions),
            ("Undecided Conditions", self.undecided),
        ):
            if section:
                lines.append(f"## {heading}")
                lines.extend(f"- {statute_id}: {indices}" for statute_id, indices in section.items())
                lines.append("")
        return "\n".join(lines)


__all__ = [
    "Severity",
    "FindingKind",
    "DEFAULT_SEVERITY",
    "CONFLICT_KINDS",
    "VerificationError",
    "VerificationResult",
    "Conflict",
    "ComplexityLevel",
    "ComplexityMetrics",
    "CoverageInfo",
    "GraphMetrics",
]
