"""
Inter-statute conflict detection.

Each rule inspects one unordered pair of statutes. Rules are symmetric:
checking (A, B) and (B, A) yields the same conflict, with statute IDs
sorted.
"""

from __future__ import annotations

import re
from typing import Sequence

from statute_verifier.conditions.schema import all_of
from statute_verifier.core.logging import get_logger
from statute_verifier.solver.base import ConstraintBackend
from statute_verifier.solver.heuristic import HeuristicBackend
from statute_verifier.statutes.schema import Statute
from statute_verifier.verification.schemas import Conflict, FindingKind, Severity

logger = get_logger("verifier.conflicts")

DEFAULT_TITLE_SIMILARITY = 0.5

_WORD = re.compile(r"\w+")


def title_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the lowercase word sets of two titles."""
    words_a = set(_WORD.findall(a.lower()))
    words_b = set(_WORD.findall(b.lower()))
    if not words_a and not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def conditions_overlap(a: Statute, b: Statute, backend: ConstraintBackend) -> bool | None:
    """Whether some context satisfies both statutes' preconditions."""
    combined = all_of([c for c in (a.condition, b.condition) if c is not None])
    if combined is None:
        return True
    return backend.is_satisfiable(combined)


def _ordered(a: Statute, b: Statute) -> tuple[Statute, Statute]:
    return (a, b) if (a.id, a.version) <= (b.id, b.version) else (b, a)


class ConflictRule:
    """Base class for pairwise conflict rules."""

    conflict_type: FindingKind
    uses_solver: bool = False

    def check(
        self,
        a: Statute,
        b: Statute,
        backend: ConstraintBackend | None = None,
    ) -> Conflict | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        params = ", ".join(f"{name}={value!r}" for name, value in sorted(vars(self).items()))
        return f"{type(self).__name__}({params})"


class IdCollisionRule(ConflictRule):
    """Two statutes share an ID."""

    conflict_type = FindingKind.ID_COLLISION

    def check(self, a, b, backend=None):
        if a.id != b.id:
            return None
        return Conflict(
            conflict_type=self.conflict_type,
            severity=Severity.ERROR,
            statute_ids=(a.id, b.id),
            description=f"Duplicate statute ID '{a.id}'",
            resolution="Give each statute a unique ID",
        )


class JurisdictionalOverlapRule(ConflictRule):
    """Similar statutes in the same jurisdiction whose conditions can both hold."""

    conflict_type = FindingKind.JURISDICTIONAL_OVERLAP
    uses_solver = True

    def __init__(self, threshold: float = DEFAULT_TITLE_SIMILARITY):
        self.threshold = threshold

    def check(self, a, b, backend=None):
        if a.id == b.id or not a.jurisdiction or a.jurisdiction != b.jurisdiction:
            return None
        similarity = title_similarity(a.title, b.title)
        if similarity < self.threshold:
            return None
        if conditions_overlap(a, b, backend or HeuristicBackend()) is False:
            return None
        first, second = _ordered(a, b)
        return Conflict(
            conflict_type=self.conflict_type,
            severity=Severity.WARNING,
            statute_ids=(first.id, second.id),
            description=(
                f"Statutes '{first.id}' and '{second.id}' overlap in jurisdiction "
                f"'{a.jurisdiction}' (title similarity {similarity:.2f})"
            ),
            resolution="Consolidate the statutes or narrow their preconditions",
        )


class TemporalConflictRule(ConflictRule):
    """Different versions of a similar statute in force at the same time."""

    conflict_type = FindingKind.TEMPORAL_CONFLICT

    def __init__(self, threshold: float = DEFAULT_TITLE_SIMILARITY):
        self.threshold = threshold

    def check(self, a, b, backend=None):
        if a.version == b.version:
            return None
        if title_similarity(a.title, b.title) < self.threshold:
            return None
        if not a.temporal_validity.overlaps(b.temporal_validity):
            return None
        first, second = _ordered(a, b)
        older, newer = (a, b) if a.version < b.version else (b, a)
        return Conflict(
            conflict_type=self.conflict_type,
            severity=Severity.WARNING,
            statute_ids=(first.id, second.id),
            description=(
                f"Version {older.version} ('{older.id}') and version {newer.version} "
                f"('{newer.id}') have overlapping validity periods"
            ),
            resolution=f"Set an expiry date on '{older.id}' before '{newer.id}' takes effect",
        )


class HierarchyViolationRule(ConflictRule):
    """A lower-ranked instrument contradicts a higher-ranked one."""

    conflict_type = FindingKind.HIERARCHY_VIOLATION
    uses_solver = True

    def check(self, a, b, backend=None):
        if a.hierarchy is None or b.hierarchy is None or a.hierarchy == b.hierarchy:
            return None
        if not a.effect.conflicts_with(b.effect):
            return None
        if conditions_overlap(a, b, backend or HeuristicBackend()) is not True:
            return None
        lower, higher = (a, b) if a.hierarchy < b.hierarchy else (b, a)
        return Conflict(
            conflict_type=self.conflict_type,
            severity=Severity.ERROR,
            statute_ids=(a.id, b.id),
            description=(
                f"Lower-ranked {lower.hierarchy.name.lower()} '{lower.id}' contradicts "
                f"higher-ranked {higher.hierarchy.name.lower()} '{higher.id}'"
            ),
            resolution=f"Amend '{lower.id}' to conform to '{higher.id}'",
        )


def default_conflict_rules(threshold: float | None = None) -> list[ConflictRule]:
    if threshold is None:
        from statute_verifier.core.config import get_settings

        threshold = get_settings().title_similarity_threshold
    return [
        IdCollisionRule(),
        JurisdictionalOverlapRule(threshold),
        TemporalConflictRule(threshold),
        HierarchyViolationRule(),
    ]


def check_pair(
    a: Statute,
    b: Statute,
    rules: Sequence[ConflictRule],
    backend: ConstraintBackend | None = None,
) -> list[Conflict]:
    """Run every rule on one pair, in rule order."""
    found = []
    for rule in rules:
        conflict = rule.check(a, b, backend)
        if conflict is not None:
            found.append(conflict)
    return found


def dedupe_conflicts(conflicts: Sequence[Conflict]) -> list[Conflict]:
    """Keep the first conflict per (type, statute pair)."""
    seen: set[tuple[FindingKind, tuple[str, str]]] = set()
    unique = []
    for conflict in conflicts:
        if conflict.key in seen:
            continue
        seen.add(conflict.key)
        unique.append(conflict)
    return unique


def detect_statute_conflicts(
    statutes: Sequence[Statute],
    rules: Sequence[ConflictRule] | None = None,
    backend: ConstraintBackend | None = None,
) -> list[Conflict]:
    """Detect conflicts across every unordered pair of statutes.

    Args:
        statutes: Statute collection
        rules: Conflict rules in order (defaults to all built-in rules)
        backend: Constraint backend for condition overlap queries

    Returns:
        De-duplicated conflicts in pair order
    """
    rules = list(rules) if rules is not None else default_conflict_rules()
    backend = backend or HeuristicBackend()
    statutes = list(statutes)

    found: list[Conflict] = []
    for i, a in enumerate(statutes):
        for b in statutes[i + 1:]:
            found.extend(check_pair(a, b, rules, backend))

    conflicts = dedupe_conflicts(found)
    logger.debug("conflicts_detected", statutes=len(statutes), conflicts=len(conflicts))
    return conflicts
