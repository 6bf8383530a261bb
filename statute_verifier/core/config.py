"""Verifier configuration and feature flags."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Verifier settings loaded from environment (prefix ``STATUTE_VERIFIER_``)."""

    # Constraint backend
    solver_backend: Literal["z3", "heuristic"] = "z3"
    solver_timeout_ms: int = 2000
    heuristic_max_terms: int = 64

    # Resource guards
    max_condition_depth: int = 200
    max_checks: int | None = None
    time_budget_seconds: float | None = None

    # Check policy
    legacy_custom_references: bool = True
    contradiction_severity: Literal["warning", "error"] = "error"
    title_similarity_threshold: float = 0.5

    # Execution
    parallel: bool = False
    max_workers: int = 4
    cache_max_size: int = 1000

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    model_config = SettingsConfigDict(
        env_prefix="STATUTE_VERIFIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def z3_available() -> bool:
    """Check if the Z3 solver bindings are installed."""
    try:
        import z3  # noqa: F401
        return True
    except ImportError:
        return False
