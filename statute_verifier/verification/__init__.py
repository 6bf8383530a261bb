"""Verification: findings, principles, conflicts, complexity, coverage and the verifier."""

from .schemas import (
    Severity,
    FindingKind,
    DEFAULT_SEVERITY,
    CONFLICT_KINDS,
    VerificationError,
    VerificationResult,
    Conflict,
    ComplexityLevel,
    ComplexityMetrics,
    CoverageInfo,
    GraphMetrics,
)
from .principles import (
    Principle,
    NoDiscrimination,
    RequiresProcedure,
    NoRetroactivity,
    CustomPrinciple,
    default_principles,
)
from .conflicts import (
    ConflictRule,
    IdCollisionRule,
    JurisdictionalOverlapRule,
    TemporalConflictRule,
    HierarchyViolationRule,
    default_conflict_rules,
    title_similarity,
)
from .complexity import analyze_complexity, complexity_report
from .cache import VerificationCache, statute_fingerprint, collection_fingerprint
from .service import (
    StatuteVerifier,
    validate_input,
    verify,
    verify_integrity,
    analyze_complexity_all,
    detect_statute_conflicts,
    analyze_coverage,
)
from statute_verifier.graph.analyzer import analyze_graph_metrics

__all__ = [
    # Schemas
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
    # Principles
    "Principle",
    "NoDiscrimination",
    "RequiresProcedure",
    "NoRetroactivity",
    "CustomPrinciple",
    "default_principles",
    # Conflicts
    "ConflictRule",
    "IdCollisionRule",
    "JurisdictionalOverlapRule",
    "TemporalConflictRule",
    "HierarchyViolationRule",
    "default_conflict_rules",
    "title_similarity",
    # Complexity
    "analyze_complexity",
    "complexity_report",
    # Cache
    "VerificationCache",
    "statute_fingerprint",
    "collection_fingerprint",
    # Verifier
    "StatuteVerifier",
    "validate_input",
    "verify",
    "verify_integrity",
    "analyze_complexity_all",
    "detect_statute_conflicts",
    "analyze_graph_metrics",
    "analyze_coverage",
]
