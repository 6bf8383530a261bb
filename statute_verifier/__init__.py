"""Statute Verifier - static consistency analysis for structured legal rules."""

from statute_verifier.conditions import (
    ComparisonOp,
    DurationUnit,
    Age,
    Income,
    Duration,
    Percentage,
    SetMembership,
    Pattern,
    HasAttribute,
    AttributeEquals,
    Custom,
    And,
    Or,
    Not,
    Condition,
    all_of,
    any_of,
    ConditionEvaluator,
    EvaluationCache,
    evaluate,
)
from statute_verifier.core import (
    Settings,
    get_settings,
    setup_logging,
    StatuteVerifierError,
    InvalidStatuteError,
    MissingAttributeError,
    ConditionTooDeepError,
    SolverUnavailableError,
)
from statute_verifier.statutes import (
    EffectType,
    Effect,
    TemporalValidity,
    LegalHierarchy,
    Statute,
    StatuteBuilder,
)
from statute_verifier.solver import (
    ConstraintBackend,
    HeuristicBackend,
    Z3Backend,
    create_backend,
    is_satisfiable,
    implies,
    equivalent,
    simplify,
)
from statute_verifier.graph import DependencyGraph, detect_cycles, pagerank
from statute_verifier.verification import (
    Severity,
    FindingKind,
    VerificationError,
    VerificationResult,
    Conflict,
    ComplexityLevel,
    ComplexityMetrics,
    CoverageInfo,
    GraphMetrics,
    Principle,
    NoDiscrimination,
    RequiresProcedure,
    NoRetroactivity,
    CustomPrinciple,
    StatuteVerifier,
    VerificationCache,
    verify,
    verify_integrity,
    analyze_complexity,
    detect_statute_conflicts,
    analyze_graph_metrics,
    analyze_coverage,
)

__version__ = "0.1.0"

__all__ = [
    # Conditions
    "ComparisonOp",
    "DurationUnit",
    "Age",
    "Income",
    "Duration",
    "Percentage",
    "SetMembership",
    "Pattern",
    "HasAttribute",
    "AttributeEquals",
    "Custom",
    "And",
    "Or",
    "Not",
    "Condition",
    "all_of",
    "any_of",
    "ConditionEvaluator",
    "EvaluationCache",
    "evaluate",
    # Core
    "Settings",
    "get_settings",
    "setup_logging",
    "StatuteVerifierError",
    "InvalidStatuteError",
    "MissingAttributeError",
    "ConditionTooDeepError",
    "SolverUnavailableError",
    # Statutes
    "EffectType",
    "Effect",
    "TemporalValidity",
    "LegalHierarchy",
    "Statute",
    "StatuteBuilder",
    # Solver
    "ConstraintBackend",
    "HeuristicBackend",
    "Z3Backend",
    "create_backend",
    "is_satisfiable",
    "implies",
    "equivalent",
    "simplify",
    # Graph
    "DependencyGraph",
    "detect_cycles",
    "pagerank",
    # Verification
    "Severity",
    "FindingKind",
    "VerificationError",
    "VerificationResult",
    "Conflict",
    "ComplexityLevel",
    "ComplexityMetrics",
    "CoverageInfo",
    "GraphMetrics",
    "Principle",
    "NoDiscrimination",
    "RequiresProcedure",
    "NoRetroactivity",
    "CustomPrinciple",
    "StatuteVerifier",
    "VerificationCache",
    "verify",
    "verify_integrity",
    "analyze_complexity",
    "detect_statute_conflicts",
    "analyze_graph_metrics",
    "analyze_coverage",
]
