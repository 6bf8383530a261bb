"""Tests for statute models, builder and validation."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from statute_verifier.conditions import Age, And, Custom, Duration, HasAttribute, Pattern
from statute_verifier.core import InvalidStatuteError
from statute_verifier.statutes import (
    Effect,
    EffectType,
    LegalHierarchy,
    Statute,
    StatuteBuilder,
    TemporalValidity,
)


@pytest.fixture
def grant() -> Effect:
    return Effect(effect_type=EffectType.GRANT, description="Grant voting rights")


def _codes(statute: Statute) -> set[str]:
    return {issue.code for issue in statute.validate_statute()}


# =============================================================================
# Effect Tests
# =============================================================================

class TestEffect:
    """Test effect resources and exclusivity."""

    def test_resource_from_parameters(self):
        """An explicit resource parameter wins over the description."""
        effect = Effect(
            effect_type=EffectType.GRANT,
            description="Issue a licence",
            parameters={"resource": "Driving-Licence"},
        )
        assert effect.resource == "driving-licence"

    def test_resource_from_description(self):
        """Without a parameter, the normalised description is the resource."""
        effect = Effect(effect_type=EffectType.GRANT, description="  Driving   Licence ")
        assert effect.resource == "driving licence"

    def test_grant_revoke_conflict(self):
        """Grant and revoke on the same resource are mutually exclusive."""
        grant = Effect(effect_type=EffectType.GRANT, description="licence")
        revoke = Effect(effect_type=EffectType.REVOKE, description="Licence")
        assert grant.conflicts_with(revoke)
        assert revoke.conflicts_with(grant)

    def test_obligation_prohibition_conflict(self):
        """Obligation and prohibition on the same resource are mutually exclusive."""
        must = Effect(effect_type=EffectType.OBLIGATION, description="x", parameters={"resource": "r"})
        must_not = Effect(effect_type=EffectType.PROHIBITION, description="y", parameters={"resource": "r"})
        assert must.conflicts_with(must_not)

    def test_no_conflict_on_different_resources(self):
        """Opposite effects on different resources do not conflict."""
        grant = Effect(effect_type=EffectType.GRANT, description="licence")
        revoke = Effect(effect_type=EffectType.REVOKE, description="permit")
        assert not grant.conflicts_with(revoke)
        assert not grant.conflicts_with(grant)


# =============================================================================
# Temporal Validity Tests
# =============================================================================

class TestTemporalValidity:
    """Test activity windows."""

    def test_is_active_within_window(self):
        validity = TemporalValidity(
            effective_date=date(2020, 1, 1), expiry_date=date(2020, 12, 31)
        )
        assert validity.is_active(date(2020, 6, 1))
        assert validity.is_active(date(2020, 12, 31))
        assert not validity.is_active(date(2021, 1, 1))
        assert not validity.is_active(date(2019, 12, 31))

    def test_open_bounds(self):
        """Missing bounds are open."""
        assert TemporalValidity().is_active(date(1900, 1, 1))
        assert TemporalValidity(effective_date=date(2020, 1, 1)).is_active(date(2099, 1, 1))

    def test_overlaps(self):
        first = TemporalValidity(effective_date=date(2020, 1, 1), expiry_date=date(2020, 12, 31))
        second = TemporalValidity(effective_date=date(2021, 1, 1))
        third = TemporalValidity(effective_date=date(2020, 12, 31))
        assert not first.overlaps(second)
        assert first.overlaps(third)
        assert third.overlaps(first)
        assert first.overlaps(TemporalValidity())


# =============================================================================
# Statute Tests
# =============================================================================

class TestStatute:
    """Test statute behaviour."""

    def test_statutes_are_frozen(self, grant):
        statute = Statute(id="s1", title="Voting", effect=grant)
        with pytest.raises(ValidationError):
            statute.title = "Changed"

    def test_condition_combines_preconditions(self, grant):
        a, b = Age(op=">=", value=18), HasAttribute(key="citizen")
        statute = Statute(id="s1", title="Voting", preconditions=[a, b], effect=grant)
        assert statute.condition == And(left=a, right=b)
        assert Statute(id="s2", title="Voting", effect=grant).condition is None

    def test_referenced_ids(self, grant):
        """Explicit references come first, then legacy Custom references."""
        statute = Statute(
            id="s1",
            title="Voting",
            preconditions=[And(left=Custom(description="statute:s3"), right=Age(op=">=", value=18))],
            effect=grant,
            references=["s2", "s2"],
        )
        assert statute.referenced_ids() == ["s2", "s3"]
        assert statute.referenced_ids(include_legacy=False) == ["s2"]

    def test_amend_bumps_version(self, grant):
        """Amending returns a new statute with the next version."""
        original = Statute(id="s1", title="Voting", effect=grant)
        amended = original.amend(title="Voting rights")
        assert amended.version == 2
        assert amended.title == "Voting rights"
        assert original.version == 1
        assert original.title == "Voting"

    def test_json_round_trip(self, grant):
        """Statutes survive a JSON round trip unchanged."""
        statute = Statute(
            id="s1",
            title="Voting",
            preconditions=[And(left=Age(op=">=", value=18), right=HasAttribute(key="citizen"))],
            effect=grant,
            temporal_validity=TemporalValidity(effective_date=date(2020, 1, 1)),
            hierarchy=LegalHierarchy.STATUTE,
        )
        assert Statute.model_validate_json(statute.model_dump_json()) == statute

    def test_hierarchy_ordering(self):
        assert LegalHierarchy.CONSTITUTION > LegalHierarchy.STATUTE > LegalHierarchy.REGULATION
        assert LegalHierarchy.ORDINANCE > LegalHierarchy.GUIDANCE


# =============================================================================
# Validation Tests
# =============================================================================

class TestStatuteValidation:
    """Test structural validation."""

    def test_valid_statute(self, grant):
        statute = Statute(id="voting-age_1", title="Voting", effect=grant)
        assert statute.validate_statute() == []
        assert statute.is_valid()

    def test_empty_and_invalid_ids(self, grant):
        assert "empty_id" in _codes(Statute(id="", title="Voting", effect=grant))
        assert "invalid_id" in _codes(Statute(id="1abc", title="Voting", effect=grant))
        assert "invalid_id" in _codes(Statute(id="a b", title="Voting", effect=grant))

    def test_empty_title_and_effect(self):
        statute = Statute(
            id="s1",
            title=" ",
            effect=Effect(effect_type=EffectType.GRANT, description=""),
        )
        assert {"empty_title", "empty_effect"} <= _codes(statute)

    def test_expiry_before_effective(self, grant):
        statute = Statute(
            id="s1",
            title="Voting",
            effect=grant,
            temporal_validity=TemporalValidity(
                effective_date=date(2021, 1, 1), expiry_date=date(2020, 1, 1)
            ),
        )
        assert "expiry_before_effective" in _codes(statute)

    def test_unrealistic_values(self, grant):
        statute = Statute(
            id="s1",
            title="Voting",
            preconditions=[
                Age(op=">=", value=200),
                Duration(op=">=", value=101, unit="years"),
                Pattern(attribute="code", regex="("),
            ],
            effect=grant,
        )
        assert {"unrealistic_age", "unrealistic_duration", "invalid_pattern"} <= _codes(statute)

    def test_version_must_be_positive(self, grant):
        assert "invalid_version" in _codes(Statute(id="s1", title="Voting", effect=grant, version=0))


# =============================================================================
# Builder Tests
# =============================================================================

class TestStatuteBuilder:
    """Test the fluent builder."""

    def test_build(self, grant):
        statute = (
            StatuteBuilder("voting", "Voting rights", grant)
            .with_precondition(Age(op=">=", value=18))
            .with_precondition(HasAttribute(key="citizen"))
            .with_discretion("Registrar may waive residency")
            .with_jurisdiction("NZ")
            .with_version(3)
            .with_reference("electoral-roll")
            .with_hierarchy(LegalHierarchy.STATUTE)
            .build()
        )
        assert statute.id == "voting"
        assert len(statute.preconditions) == 2
        assert statute.has_discretion
        assert statute.jurisdiction == "NZ"
        assert statute.version == 3
        assert statute.references == ("electoral-roll",)
        assert statute.hierarchy is LegalHierarchy.STATUTE

    def test_build_rejects_invalid(self, grant):
        builder = StatuteBuilder("1bad", "", grant)
        with pytest.raises(InvalidStatuteError) as exc_info:
            builder.build()
        assert len(exc_info.value.issues) == 2
        assert "1bad" in str(exc_info.value)

    def test_build_without_validation(self, grant):
        statute = StatuteBuilder("1bad", "", grant).build(validate=False)
        assert statute.id == "1bad"
