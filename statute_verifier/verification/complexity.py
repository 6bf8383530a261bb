"""Complexity metrics for statute preconditions."""

from __future__ import annotations

from statute_verifier.conditions.schema import (
    CONNECTIVE_TYPES,
    condition_type_name,
    depth,
    walk,
)
from statute_verifier.statutes.schema import Statute
from statute_verifier.verification.schemas import ComplexityLevel, ComplexityMetrics


def analyze_complexity(statute: Statute) -> ComplexityMetrics:
    """Measure how hard a statute's conditions are to read and test.

    Score components (each capped):
        conditions    10 per precondition beyond the first, max 30
        nesting       15 per depth level beyond the first, max 30
        operators     8 per AND/OR/NOT, max 24
        variety       6 per distinct leaf type beyond the first, max 12
        discretion    10 if the statute involves human judgement

    Returns:
        ComplexityMetrics with score capped at 100 and its level band
    """
    condition_count = len(statute.preconditions)
    max_depth = max((depth(c) for c in statute.preconditions), default=0)

    operator_count = 0
    condition_types: list[str] = []
    for precondition in statute.preconditions:
        for node in walk(precondition):
            if isinstance(node, CONNECTIVE_TYPES):
                operator_count += 1
                continue
            name = condition_type_name(node)
            if name not in condition_types:
                condition_types.append(name)

    has_discretion = statute.has_discretion

    score = 0
    score += min(30, 10 * max(0, condition_count - 1))
    score += min(30, 15 * max(0, max_depth - 1))
    score += min(24, 8 * operator_count)
    score += min(12, 6 * max(0, len(condition_types) - 1))
    if has_discretion:
        score += 10
    score = min(100, score)

    return ComplexityMetrics(
        statute_id=statute.id,
        condition_count=condition_count,
        max_depth=max_depth,
        logical_operator_count=operator_count,
        condition_types=sorted(condition_types),
        has_discretion=has_discretion,
        cyclomatic_complexity=1 + condition_count + operator_count,
        complexity_score=score,
        level=ComplexityLevel.from_score(score),
    )


def complexity_report(metrics: list[ComplexityMetrics]) -> str:
    """Plain-text table of complexity metrics, most complex first."""
    lines = ["# Complexity Report", ""]
    for m in sorted(metrics, key=lambda m: (-m.complexity_score, m.statute_id)):
        lines.append(
            f"- {m.statute_id}: {m.level.value} (score {m.complexity_score}, "
            f"conditions {m.condition_count}, depth {m.max_depth}, "
            f"cyclomatic {m.cyclomatic_complexity})"
        )
    return "\n".join(lines)
