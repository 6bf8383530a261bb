"""Constraint backends for satisfiability, implication and simplification."""

from __future__ import annotations

from statute_verifier.conditions.schema import Condition
from statute_verifier.core.config import Settings, get_settings
from statute_verifier.core.exceptions import SolverUnavailableError
from statute_verifier.core.logging import get_logger

from .base import ConstraintBackend
from .heuristic import HeuristicBackend, TooManyTermsError, check_term
from .z3_backend import Z3Backend, variable_name

logger = get_logger("verifier.solver")


def create_backend(settings: Settings | None = None) -> ConstraintBackend:
    """Build the backend selected by ``settings.solver_backend``.

    When Z3 is selected but not installed the heuristic backend is returned
    instead, marked ``degraded`` so verification reports reduced precision.
    """
    settings = settings or get_settings()
    heuristic = HeuristicBackend(max_terms=settings.heuristic_max_terms)
    if settings.solver_backend == "z3":
        try:
            return Z3Backend(timeout_ms=settings.solver_timeout_ms, fallback=heuristic)
        except SolverUnavailableError as e:
            logger.warning(
                "solver_fallback", reason="z3_unavailable", backend=heuristic.name, error=str(e)
            )
            heuristic.degraded = True
    return heuristic


def is_satisfiable(condition: Condition, backend: ConstraintBackend | None = None) -> bool | None:
    return (backend or create_backend()).is_satisfiable(condition)


def implies(
    premise: Condition,
    conclusion: Condition,
    backend: ConstraintBackend | None = None,
) -> bool | None:
    return (backend or create_backend()).implies(premise, conclusion)


def equivalent(a: Condition, b: Condition, backend: ConstraintBackend | None = None) -> bool | None:
    return (backend or create_backend()).equivalent(a, b)


def simplify(
    condition: Condition,
    backend: ConstraintBackend | None = None,
) -> tuple[Condition, bool]:
    return (backend or create_backend()).simplify(condition)


__all__ = [
    "ConstraintBackend",
    "HeuristicBackend",
    "Z3Backend",
    "TooManyTermsError",
    "check_term",
    "variable_name",
    "create_backend",
    "is_satisfiable",
    "implies",
    "equivalent",
    "simplify",
]
