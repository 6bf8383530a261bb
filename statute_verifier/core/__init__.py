"""Core package - configuration, logging, and operational exceptions."""

from .config import Settings, get_settings, z3_available
from .exceptions import (
    StatuteVerifierError,
    InvalidStatuteError,
    MissingAttributeError,
    ConditionTooDeepError,
    SolverUnavailableError,
)
from .logging import setup_logging, get_logger
from .cache import BoundedCache

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "z3_available",
    # Exceptions
    "StatuteVerifierError",
    "InvalidStatuteError",
    "MissingAttributeError",
    "ConditionTooDeepError",
    "SolverUnavailableError",
    # Logging
    "setup_logging",
    "get_logger",
    # Cache
    "BoundedCache",
]
