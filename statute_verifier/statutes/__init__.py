"""Statute models, builder and structural validation."""

from .schema import (
    EffectType,
    EXCLUSIVE_EFFECTS,
    LegalHierarchy,
    Effect,
    TemporalValidity,
    StatuteValidationIssue,
    Statute,
    StatuteBuilder,
    LEGACY_REFERENCE_PREFIX,
)

__all__ = [
    "EffectType",
    "EXCLUSIVE_EFFECTS",
    "LegalHierarchy",
    "Effect",
    "TemporalValidity",
    "StatuteValidationIssue",
    "Statute",
    "StatuteBuilder",
    "LEGACY_REFERENCE_PREFIX",
]
