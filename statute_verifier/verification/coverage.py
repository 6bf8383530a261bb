"""Precondition coverage: which individual preconditions can hold at all."""

from __future__ import annotations

from typing import Sequence

from statute_verifier.solver.base import ConstraintBackend
from statute_verifier.statutes.schema import Statute
from statute_verifier.verification.schemas import CoverageInfo


def analyze_coverage(
    statutes: Sequence[Statute],
    backend: ConstraintBackend | None = None,
) -> CoverageInfo:
    """Classify every precondition as satisfiable, unsatisfiable or undecided.

    Args:
        statutes: Statute collection
        backend: Constraint backend (defaults to the configured one)

    Returns:
        CoverageInfo keyed by statute ID and precondition index
    """
    if backend is None:
        from statute_verifier.solver import create_backend

        backend = create_backend()

    coverage = CoverageInfo()
    for statute in statutes:
        covered: list[int] = []
        uncovered: list[int] = []
        undecided: list[int] = []
        for index, precondition in enumerate(statute.preconditions):
            coverage.total_conditions += 1
            verdict = backend.is_satisfiable(precondition)
            if verdict is True:
                coverage.satisfiable_conditions += 1
                covered.append(index)
            elif verdict is False:
                coverage.unsatisfiable_conditions += 1
                uncovered.append(index)
            else:
                coverage.undecided_conditions += 1
                undecided.append(index)

        if covered:
            coverage.covered_conditions.setdefault(statute.id, []).extend(covered)
        if uncovered:
            coverage.uncovered_conditions.setdefault(statute.id, []).extend(uncovered)
        if undecided:
            coverage.undecided.setdefault(statute.id, []).extend(undecided)

    coverage.compute_percentage()
    return coverage
