"""Operational exceptions.

Verification *findings* (dead statutes, cycles, conflicts) are never raised;
they are collected in a VerificationResult. The exceptions here cover
malformed input and resource guards only.
"""

from __future__ import annotations


class StatuteVerifierError(Exception):
    """Base class for all statute verifier errors."""


class InvalidStatuteError(StatuteVerifierError, ValueError):
    """Statute input failed hard validation before any check ran."""

    def __init__(self, message: str, issues: list[str] | None = None):
        self.issues = issues or []
        if self.issues:
            message = f"{message}: {'; '.join(self.issues)}"
        super().__init__(message)


class MissingAttributeError(StatuteVerifierError, KeyError):
    """A strict evaluation looked up an attribute the context does not have."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Context has no attribute '{self.key}'"


class ConditionTooDeepError(StatuteVerifierError):
    """A condition tree exceeded the configured nesting guard."""

    def __init__(self, max_depth: int):
        self.max_depth = max_depth
        super().__init__(f"Condition nesting exceeds maximum depth of {max_depth}")


class SolverUnavailableError(StatuteVerifierError, ImportError):
    """The Z3 backend was requested but the z3 bindings are not installed."""

    def __init__(self) -> None:
        super().__init__(
            "z3-solver is required for the Z3 constraint backend. "
            "Install with: pip install z3-solver"
        )
