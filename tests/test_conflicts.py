"""Tests for inter-statute conflict rules."""

from __future__ import annotations

from datetime import date

import pytest

from statute_verifier.conditions import Income
from statute_verifier.solver import HeuristicBackend
from statute_verifier.statutes import EffectType, LegalHierarchy, TemporalValidity
from statute_verifier.verification import (
    FindingKind,
    HierarchyViolationRule,
    IdCollisionRule,
    JurisdictionalOverlapRule,
    Severity,
    TemporalConflictRule,
    default_conflict_rules,
    title_similarity,
)
from statute_verifier.verification.conflicts import dedupe_conflicts, detect_statute_conflicts


@pytest.fixture
def backend() -> HeuristicBackend:
    return HeuristicBackend()


class TestTitleSimilarity:
    """Test word-set similarity of titles."""

    def test_jaccard(self):
        assert title_similarity(
            "Housing benefit eligibility", "Housing benefit eligibility rules"
        ) == pytest.approx(0.75)

    def test_case_and_punctuation_ignored(self):
        assert title_similarity("Housing, Benefit", "housing benefit") == 1.0

    def test_empty_titles(self):
        assert title_similarity("", "") == 0.0


class TestIdCollisionRule:

    def test_same_id(self, make_statute):
        conflict = IdCollisionRule().check(make_statute("s1"), make_statute("s1"))
        assert conflict.conflict_type == FindingKind.ID_COLLISION
        assert conflict.severity == Severity.ERROR

    def test_distinct_ids(self, make_statute):
        assert IdCollisionRule().check(make_statute("s1"), make_statute("s2")) is None


class TestJurisdictionalOverlapRule:
    """Test overlap between similar statutes in one jurisdiction."""

    def _pair(self, make_statute, first, second, jurisdiction="NZ"):
        a = make_statute("hb1", first, title="Housing benefit eligibility", jurisdiction="NZ")
        b = make_statute(
            "hb2", second, title="Housing benefit eligibility rules", jurisdiction=jurisdiction
        )
        return a, b

    def test_overlapping_conditions(self, make_statute, backend, adult):
        a, b = self._pair(make_statute, adult, Income(op="<", value=30000))
        conflict = JurisdictionalOverlapRule(0.5).check(a, b, backend)

        assert conflict.conflict_type == FindingKind.JURISDICTIONAL_OVERLAP
        assert conflict.severity == Severity.WARNING
        assert conflict.statute_ids == ("hb1", "hb2")
        assert "0.75" in conflict.description

    def test_disjoint_conditions(self, make_statute, backend, adult, minor):
        a, b = self._pair(make_statute, adult, minor)
        assert JurisdictionalOverlapRule(0.5).check(a, b, backend) is None

    def test_other_jurisdiction(self, make_statute, backend, adult):
        a, b = self._pair(make_statute, adult, adult, jurisdiction="AU")
        assert JurisdictionalOverlapRule(0.5).check(a, b, backend) is None

    def test_threshold(self, make_statute, backend, adult):
        a, b = self._pair(make_statute, adult, adult)
        assert JurisdictionalOverlapRule(0.8).check(a, b, backend) is None


class TestTemporalConflictRule:
    """Test overlapping versions of the same statute."""

    def _versions(self, make_statute, first_expiry=None):
        old = make_statute(
            "hb-v1",
            title="Housing benefit",
            temporal_validity=TemporalValidity(
                effective_date=date(2020, 1, 1), expiry_date=first_expiry
            ),
        )
        new = make_statute(
            "hb-v2",
            title="Housing benefit",
            version=2,
            temporal_validity=TemporalValidity(effective_date=date(2022, 1, 1)),
        )
        return old, new

    def test_overlapping_versions(self, make_statute):
        old, new = self._versions(make_statute)
        conflict = TemporalConflictRule().check(old, new)

        assert conflict.conflict_type == FindingKind.TEMPORAL_CONFLICT
        assert "'hb-v1'" in conflict.resolution

    def test_expired_version(self, make_statute):
        old, new = self._versions(make_statute, first_expiry=date(2021, 12, 31))
        assert TemporalConflictRule().check(old, new) is None


class TestHierarchyViolationRule:
    """Test lower-ranked instruments contradicting higher-ranked ones."""

    def test_lower_contradicts_higher(self, make_statute, backend, adult):
        regulation = make_statute(
            "reg", adult, resource="licence", hierarchy=LegalHierarchy.REGULATION
        )
        act = make_statute(
            "act",
            adult,
            effect_type=EffectType.REVOKE,
            resource="licence",
            hierarchy=LegalHierarchy.STATUTE,
        )
        conflict = HierarchyViolationRule().check(regulation, act, backend)

        assert conflict.conflict_type == FindingKind.HIERARCHY_VIOLATION
        assert conflict.description == (
            "Lower-ranked regulation 'reg' contradicts higher-ranked statute 'act'"
        )

    def test_same_rank(self, make_statute, backend, adult):
        a = make_statute("a", adult, resource="licence", hierarchy=LegalHierarchy.STATUTE)
        b = make_statute(
            "b", adult, effect_type=EffectType.REVOKE, resource="licence",
            hierarchy=LegalHierarchy.STATUTE,
        )
        assert HierarchyViolationRule().check(a, b, backend) is None


class TestDetection:
    """Test collection-level detection."""

    def test_rules_are_symmetric(self, make_statute, backend, adult):
        a = make_statute(
            "reg", adult, title="Housing benefit", resource="licence",
            jurisdiction="NZ", hierarchy=LegalHierarchy.REGULATION,
        )
        b = make_statute(
            "act", adult, title="Housing benefit", effect_type=EffectType.REVOKE,
            resource="licence", jurisdiction="NZ", hierarchy=LegalHierarchy.STATUTE, version=2,
        )
        for rule in default_conflict_rules(0.5):
            assert rule.check(a, b, backend) == rule.check(b, a, backend)

    def test_duplicate_ids_reported_once_per_pair(self, make_statute, backend):
        statutes = [make_statute("s1") for _ in range(3)]
        conflicts = detect_statute_conflicts(statutes, backend=backend)
        assert len(conflicts) == 1
        assert conflicts[0].statute_ids == ("s1", "s1")

    def test_dedupe_keeps_first(self, make_statute):
        first = IdCollisionRule().check(make_statute("s1"), make_statute("s1"))
        second = first.model_copy(update={"description": "later"})
        assert dedupe_conflicts([first, second]) == [first]

    def test_to_error(self, make_statute):
        error = IdCollisionRule().check(make_statute("s1"), make_statute("s1")).to_error()
        assert error.kind == FindingKind.ID_COLLISION
        assert "resolution: Give each statute a unique ID" in error.message
