"""Statute verifier.

Runs every check over a statute collection in a single pass:
- Input validation (empty IDs raise, duplicate IDs become findings)
- Graph checks on the dependency snapshot (cycles, dangling references)
- Per-statute checks (dead statutes, unreachable branches, redundant
  preconditions, ambiguity, constitutional principles, complexity)
- Per-pair checks (logical contradictions, conflict rules)

Per-statute and per-pair work is independent and can run on a thread pool;
each worker thread owns its own constraint backend.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Sequence, TypeVar

from statute_verifier.conditions.schema import (
    Condition,
    Custom,
    Not,
    Or,
    depth,
    walk,
)
from statute_verifier.core.config import Settings, get_settings
from statute_verifier.core.exceptions import InvalidStatuteError
from statute_verifier.core.logging import get_logger
from statute_verifier.graph.analyzer import detect_cycles
from statute_verifier.graph.builder import DependencyGraph
from statute_verifier.solver import create_backend
from statute_verifier.solver.base import ConstraintBackend
from statute_verifier.statutes.schema import LEGACY_REFERENCE_PREFIX, Statute
from statute_verifier.verification.cache import VerificationCache, cache_key
from statute_verifier.verification.complexity import analyze_complexity
from statute_verifier.verification.conflicts import (
    ConflictRule,
    check_pair,
    conditions_overlap,
    dedupe_conflicts,
    default_conflict_rules,
    detect_statute_conflicts as _detect_conflicts,
)
from statute_verifier.verification.coverage import analyze_coverage as _analyze_coverage
from statute_verifier.verification.principles import Principle, default_principles
from statute_verifier.verification.schemas import (
    ComplexityLevel,
    ComplexityMetrics,
    Conflict,
    CoverageInfo,
    FindingKind,
    Severity,
    VerificationError,
    VerificationResult,
)

logger = get_logger("verifier.service")

T = TypeVar("T")
R = TypeVar("R")

REDUCED_PRECISION_WARNING = (
    "Some solver queries timed out or failed and were answered by the heuristic "
    "backend; results have reduced precision"
)


# =============================================================================
# Budget
# =============================================================================

class _Budget:
    """Shared check counter and deadline for one verification run."""

    def __init__(self, max_checks: int | None, time_budget_seconds: float | None):
        self._lock = threading.Lock()
        self._max_checks = max_checks
        self._deadline = (
            time.monotonic() + time_budget_seconds if time_budget_seconds is not None else None
        )
        self.used = 0
        self.exhausted = False

    def take(self) -> bool:
        """Reserve one check; False once the budget is spent."""
        with self._lock:
            if self.exhausted:
                return False
            if self._max_checks is not None and self.used >= self._max_checks:
                self.exhausted = True
                return False
            if self._deadline is not None and time.monotonic() > self._deadline:
                self.exhausted = True
                return False
            self.used += 1
            return True


# =============================================================================
# Check results
# =============================================================================

class _StatuteOutcome:
    """Findings for one statute plus whether it was proven dead."""

    def __init__(self, result: VerificationResult, dead: bool = False, skipped: bool = False):
        self.result = result
        self.dead = dead
        self.skipped = skipped


class _PairOutcome:
    def __init__(
        self,
        result: VerificationResult,
        conflicts: list[Conflict] | None = None,
        skipped: bool = False,
    ):
        self.result = result
        self.conflicts = conflicts or []
        self.skipped = skipped


# =============================================================================
# Verifier
# =============================================================================

class StatuteVerifier:
    """Verifies statute collections for consistency."""

    def __init__(
        self,
        principles: Sequence[Principle] | None = None,
        settings: Settings | None = None,
        backend_factory: Callable[[], ConstraintBackend] | None = None,
        cache: VerificationCache | None = None,
        conflict_rules: Sequence[ConflictRule] | None = None,
    ):
        """Initialize the verifier.

        Args:
            principles: Constitutional principles (defaults to NoDiscrimination
                and RequiresProcedure)
            settings: Verifier settings (defaults to get_settings())
            backend_factory: Builds one constraint backend per worker thread
            cache: Optional result cache, shared only if the caller shares it
            conflict_rules: Pairwise conflict rules (defaults to all built-in rules)
        """
        self.settings = settings or get_settings()
        self.principles = list(principles) if principles is not None else default_principles()
        self.backend_factory = backend_factory or (lambda: create_backend(self.settings))
        self.cache = cache
        self.conflict_rules = (
            list(conflict_rules)
            if conflict_rules is not None
            else default_conflict_rules(self.settings.title_similarity_threshold)
        )
        self._local = threading.local()
        self._backends: list[ConstraintBackend] = []
        self._backends_lock = threading.Lock()

    # =========================================================================
    # Backends
    # =========================================================================

    def backend(self) -> ConstraintBackend:
        """The calling thread's constraint backend."""
        backend = getattr(self._local, "backend", None)
        if backend is None:
            backend = self.backend_factory()
            self._local.backend = backend
            with self._backends_lock:
                self._backends.append(backend)
        return backend

    def _fallback_total(self) -> int:
        with self._backends_lock:
            return sum(getattr(b, "fallback_count", 0) for b in self._backends)

    def _degraded(self) -> bool:
        """Whether any worker runs on a stand-in for the configured backend."""
        with self._backends_lock:
            return any(getattr(b, "degraded", False) for b in self._backends)

    # =========================================================================
    # Public API
    # =========================================================================

    def verify(
        self,
        statutes: Iterable[Statute],
        principles: Sequence[Principle] | None = None,
        parallel: bool | None = None,
    ) -> VerificationResult:
        """Verify a statute collection.

        Args:
            statutes: Statutes to verify
            principles: Override the verifier's principles for this run
            parallel: Run checks on a thread pool (defaults to Settings.parallel)

        Returns:
            VerificationResult with all findings

        Raises:
            InvalidStatuteError: If any statute has an empty ID
        """
        statutes = list(statutes)
        validate_input(statutes)
        principles = list(principles) if principles is not None else self.principles
        parallel = self.settings.parallel if parallel is None else parallel

        if self.cache is None:
            return self._run(statutes, principles, parallel)

        key = cache_key(
            statutes,
            principles,
            self.backend().name,
            settings=self.settings,
            conflict_rules=self.conflict_rules,
        )
        return self.cache.get_or_compute(key, lambda: self._run(statutes, principles, parallel))

    def verify_parallel(
        self,
        statutes: Iterable[Statute],
        principles: Sequence[Principle] | None = None,
    ) -> VerificationResult:
        """Verify on a thread pool; findings match a sequential run."""
        return self.verify(statutes, principles, parallel=True)

    def verify_statute(self, statute: Statute) -> VerificationResult:
        """Run the per-statute checks for one statute in isolation."""
        validate_input([statute])
        too_deep = any(
            depth(c) > self.settings.max_condition_depth for c in statute.preconditions
        )
        outcome = self._check_statute(statute, self.principles, _Budget(None, None), too_deep)
        return outcome.result

    # =========================================================================
    # Orchestration
    # =========================================================================

    def _run(
        self,
        statutes: list[Statute],
        principles: list[Principle],
        parallel: bool,
    ) -> VerificationResult:
        started = time.monotonic()
        fallbacks_before = self._fallback_total()
        budget = _Budget(self.settings.max_checks, self.settings.time_budget_seconds)
        log = logger.bind(statutes=len(statutes), parallel=parallel)
        log.info("verification_started", principles=[p.principle_id for p in principles])

        result = VerificationResult()

        # Graph checks run once on the immutable snapshot
        graph = DependencyGraph.from_statutes(
            statutes, legacy_custom_references=self.settings.legacy_custom_references
        )
        for cycle in detect_cycles(graph):
            path = " -> ".join(cycle + [cycle[0]])
            result.add_error(VerificationError(
                kind=FindingKind.CIRCULAR_REFERENCE,
                message=f"Circular reference detected: {path}",
                statute_ids=cycle,
            ))
        for source, target in graph.dangling_references:
            result.add_warning(f"Statute '{source}' references unknown statute '{target}'")

        excluded = {
            s.id for s in statutes
            if s.preconditions
            and max(depth(c) for c in s.preconditions) > self.settings.max_condition_depth
        }
        for statute_id in sorted(excluded):
            result.add_warning(
                f"Statute '{statute_id}' exceeds the maximum condition depth of "
                f"{self.settings.max_condition_depth} and was excluded from solver checks"
            )

        statute_outcomes = self._map(
            lambda s: self._check_statute(s, principles, budget, s.id in excluded),
            statutes,
            parallel,
        )
        dead = {
            index for index, outcome in enumerate(statute_outcomes) if outcome.dead
        }

        pairs = [(i, j) for i in range(len(statutes)) for j in range(i + 1, len(statutes))]
        pair_outcomes = self._map(
            lambda pair: self._check_pair(statutes, pair, dead, excluded, budget),
            pairs,
            parallel,
        )
        result = VerificationResult.merge_all(
            [result]
            + [outcome.result for outcome in statute_outcomes]
            + [outcome.result for outcome in pair_outcomes]
        )
        conflicts = [conflict for outcome in pair_outcomes for conflict in outcome.conflicts]
        for conflict in dedupe_conflicts(conflicts):
            result.add_error(conflict.to_error())

        if budget.exhausted:
            log.warning("budget_exceeded", checks_run=budget.used)
            result.add_warning(
                f"Verification budget exceeded after {budget.used} checks; "
                "remaining checks were skipped and the result is partial"
            )

        fallbacks = self._fallback_total() - fallbacks_before
        degraded = self._degraded()
        if fallbacks > 0 or degraded:
            log.warning("reduced_precision", fallbacks=fallbacks, degraded=degraded)
            result.add_warning(REDUCED_PRECISION_WARNING)

        log.info(
            "verification_completed",
            passed=result.passed,
            errors=len(result.errors),
            warnings=len(result.warnings),
            duration_ms=round((time.monotonic() - started) * 1000, 2),
        )
        return result

    def _map(self, fn: Callable[[T], R], items: Sequence[T], parallel: bool) -> list[R]:
        """Apply fn to items, preserving input order in the output."""
        if not parallel or len(items) < 2:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
            return list(executor.map(fn, items))

    # =========================================================================
    # Per-statute checks
    # =========================================================================

    def _check_statute(
        self,
        statute: Statute,
        principles: Sequence[Principle],
        budget: _Budget,
        excluded: bool = False,
    ) -> _StatuteOutcome:
        if not budget.take():
            return _StatuteOutcome(VerificationResult(), skipped=True)

        result = VerificationResult()
        dead = False

        if not excluded and statute.preconditions:
            backend = self.backend()
            condition = statute.condition
            satisfiable = backend.is_satisfiable(condition)
            if satisfiable is False:
                dead = True
                result.add_error(VerificationError(
                    kind=FindingKind.DEAD_STATUTE,
                    message=(
                        f"Statute '{statute.id}' can never apply: "
                        "its preconditions are unsatisfiable"
                    ),
                    statute_ids=[statute.id],
                ))
            else:
                self._check_unreachable(statute, backend, result)
                self._check_redundant(statute, backend, result)

        self._check_ambiguity(statute, result)

        for principle in principles:
            error = principle.check(statute)
            if error is not None:
                result.add_error(error)

        if statute.has_discretion:
            result.add_warning(
                f"Statute '{statute.id}' contains discretionary elements "
                "that require human review"
            )

        metrics = analyze_complexity(statute)
        if metrics.level == ComplexityLevel.VERY_COMPLEX:
            result.add_suggestion(
                f"Statute '{statute.id}' is very complex (score {metrics.complexity_score}); "
                "consider splitting it into simpler statutes"
            )

        return _StatuteOutcome(result, dead=dead)

    @staticmethod
    def _check_unreachable(
        statute: Statute,
        backend: ConstraintBackend,
        result: VerificationResult,
    ) -> None:
        reported: list[Condition] = []
        for precondition in statute.preconditions:
            for node in walk(precondition):
                if isinstance(node, Or):
                    for branch in (node.left, node.right):
                        if branch not in reported and backend.is_satisfiable(branch) is False:
                            reported.append(branch)
                            result.add_error(VerificationError(
                                kind=FindingKind.UNREACHABLE_CODE,
                                message=(
                                    f"Statute '{statute.id}': branch '{branch}' "
                                    "can never be true"
                                ),
                                statute_ids=[statute.id],
                            ))
                elif isinstance(node, Not) and node not in reported:
                    if backend.is_tautology(node.inner) is True:
                        reported.append(node)
                        result.add_error(VerificationError(
                            kind=FindingKind.UNREACHABLE_CODE,
                            message=(
                                f"Statute '{statute.id}': '{node}' negates a condition "
                                "that always holds"
                            ),
                            statute_ids=[statute.id],
                        ))

    @staticmethod
    def _check_redundant(
        statute: Statute,
        backend: ConstraintBackend,
        result: VerificationResult,
    ) -> None:
        preconditions = list(statute.preconditions)
        redundant: set[int] = set()
        for i, a in enumerate(preconditions):
            for j in range(i + 1, len(preconditions)):
                if i in redundant or j in redundant:
                    continue
                b = preconditions[j]
                if backend.implies(a, b) is True:
                    redundant.add(j)
                    implied, by = b, a
                elif backend.implies(b, a) is True:
                    redundant.add(i)
                    implied, by = a, b
                else:
                    continue
                result.add_suggestion(
                    f"Statute '{statute.id}': precondition '{implied}' is implied by "
                    f"'{by}' and can be removed"
                )

    @staticmethod
    def _check_ambiguity(statute: Statute, result: VerificationResult) -> None:
        for precondition in statute.preconditions:
            for node in walk(precondition):
                if isinstance(node, Custom) and not node.description.startswith(LEGACY_REFERENCE_PREFIX):
                    result.add_error(VerificationError(
                        kind=FindingKind.AMBIGUITY,
                        message=(
                            f"Statute '{statute.id}': custom condition "
                            f"'{node.description}' cannot be checked automatically"
                        ),
                        statute_ids=[statute.id],
                    ))

    # =========================================================================
    # Per-pair checks
    # =========================================================================

    def _check_pair(
        self,
        statutes: list[Statute],
        pair: tuple[int, int],
        dead: set[int],
        excluded: set[str],
        budget: _Budget,
    ) -> _PairOutcome:
        if not budget.take():
            return _PairOutcome(VerificationResult(), skipped=True)

        i, j = pair
        a, b = statutes[i], statutes[j]
        result = VerificationResult()
        solver_ok = a.id not in excluded and b.id not in excluded
        backend = self.backend() if solver_ok else None

        if (
            backend is not None
            and i not in dead
            and j not in dead
            and a.effect.conflicts_with(b.effect)
            and conditions_overlap(a, b, backend) is True
        ):
            first, second = sorted((a.id, b.id))
            result.add_error(VerificationError(
                kind=FindingKind.LOGICAL_CONTRADICTION,
                severity=Severity(self.settings.contradiction_severity),
                message=(
                    f"Statutes '{first}' and '{second}' can apply to the same case "
                    f"with contradictory effects on '{a.effect.resource}'"
                ),
                statute_ids=[first, second],
            ))

        rules = [r for r in self.conflict_rules if solver_ok or not r.uses_solver]
        conflicts = check_pair(a, b, rules, backend)
        return _PairOutcome(result, conflicts)


# =============================================================================
# Input validation
# =============================================================================

def validate_input(statutes: Sequence[Statute]) -> None:
    """Reject input no check can run on.

    Raises:
        InvalidStatuteError: If any statute has an empty ID
    """
    empty = [index for index, statute in enumerate(statutes) if not statute.id.strip()]
    if empty:
        raise InvalidStatuteError(
            "Statutes with empty IDs",
            [f"statute at position {index} has an empty ID" for index in empty],
        )


# =============================================================================
# Module-level API
# =============================================================================

def verify(
    statutes: Iterable[Statute],
    principles: Sequence[Principle] | None = None,
    settings: Settings | None = None,
    cache: VerificationCache | None = None,
    parallel: bool | None = None,
) -> VerificationResult:
    """Verify a statute collection with a fresh verifier."""
    verifier = StatuteVerifier(principles=principles, settings=settings, cache=cache)
    return verifier.verify(statutes, parallel=parallel)


def verify_integrity(statutes: Iterable[Statute]) -> VerificationResult:
    """Verify a collection with default principles and settings."""
    return StatuteVerifier().verify(statutes)


def analyze_complexity_all(statutes: Iterable[Statute]) -> list[ComplexityMetrics]:
    return [analyze_complexity(statute) for statute in statutes]


def detect_statute_conflicts(
    statutes: Sequence[Statute],
    rules: Sequence[ConflictRule] | None = None,
    backend: ConstraintBackend | None = None,
) -> list[Conflict]:
    """Detect pairwise conflicts using the configured backend by default."""
    return _detect_conflicts(statutes, rules=rules, backend=backend or create_backend())


def analyze_coverage(
    statutes: Sequence[Statute],
    backend: ConstraintBackend | None = None,
) -> CoverageInfo:
    return _analyze_coverage(statutes, backend=backend)
