"""Pytest fixtures for test suite."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from statute_verifier.conditions import Age, Condition
from statute_verifier.core import Settings
from statute_verifier.solver import HeuristicBackend
from statute_verifier.statutes import Effect, EffectType, Statute
from statute_verifier.verification import StatuteVerifier


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def heuristic_settings() -> Settings:
    """Settings selecting the heuristic backend (no Z3 needed)."""
    return Settings(solver_backend="heuristic")


@pytest.fixture
def heuristic() -> HeuristicBackend:
    """Heuristic constraint backend with the default term budget."""
    return HeuristicBackend()


@pytest.fixture
def verifier(heuristic_settings: Settings) -> StatuteVerifier:
    """Verifier with default principles on the heuristic backend."""
    return StatuteVerifier(settings=heuristic_settings)


# =============================================================================
# Statute Fixtures
# =============================================================================


@pytest.fixture
def make_statute() -> Callable[..., Statute]:
    """Factory for statutes with a grant effect unless told otherwise."""

    def _make(
        statute_id: str,
        *preconditions: Condition,
        title: str | None = None,
        effect_type: EffectType = EffectType.GRANT,
        resource: str = "benefit",
        parameters: dict[str, str] | None = None,
        **fields: Any,
    ) -> Statute:
        effect_parameters = {"resource": resource, **(parameters or {})}
        return Statute(
            id=statute_id,
            title=title or f"Statute {statute_id}",
            preconditions=preconditions,
            effect=Effect(
                effect_type=effect_type,
                description=f"{effect_type.value} {resource}",
                parameters=effect_parameters,
            ),
            **fields,
        )

    return _make


@pytest.fixture
def adult() -> Condition:
    """Age >= 18."""
    return Age(op=">=", value=18)


@pytest.fixture
def minor() -> Condition:
    """Age < 18."""
    return Age(op="<", value=18)
