"""
Constitutional principles.

A principle inspects one statute and returns a constitutional_conflict
finding when the statute violates it. Principles run in list order; the
verifier keeps every finding they produce.
"""

from __future__ import annotations

from typing import Callable

from statute_verifier.conditions.schema import (
    AttributeEquals,
    HasAttribute,
    Pattern,
    Percentage,
    SetMembership,
    walk,
)
from statute_verifier.statutes.schema import EffectType, Statute
from statute_verifier.verification.schemas import FindingKind, Severity, VerificationError

PROTECTED_ATTRIBUTES = frozenset({
    "race",
    "ethnicity",
    "religion",
    "gender",
    "sex",
    "nationality",
    "national_origin",
    "disability",
    "sexual_orientation",
})

# Effects that take something away and therefore need a procedure
ADVERSE_EFFECTS = frozenset({
    EffectType.REVOKE,
    EffectType.PROHIBITION,
    EffectType.MONETARY_TRANSFER,
    EffectType.STATUS_CHANGE,
})

PROCEDURE_PARAMETERS = ("procedure", "appeal", "notice")


class Principle:
    """Base class for constitutional principles."""

    principle_id: str = "principle"
    description: str = ""

    def check(self, statute: Statute) -> VerificationError | None:
        raise NotImplementedError

    def violation(self, statute: Statute, detail: str) -> VerificationError:
        return VerificationError(
            kind=FindingKind.CONSTITUTIONAL_CONFLICT,
            severity=Severity.CRITICAL,
            message=f"Statute '{statute.id}' violates {self.principle_id}: {detail}",
            statute_ids=[statute.id],
            principle=self.principle_id,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.principle_id!r})"

    def fingerprint(self) -> str:
        """Identity of this principle's behaviour, used in verification cache keys."""
        return f"{type(self).__module__}.{type(self).__qualname__}:{self.principle_id}"


class NoDiscrimination(Principle):
    """Statutes must not condition on protected attributes."""

    principle_id = "equality"
    description = "Equal treatment regardless of protected characteristics"

    def __init__(self, protected_attributes: frozenset[str] | None = None):
        self.protected_attributes = protected_attributes or PROTECTED_ATTRIBUTES

    def fingerprint(self) -> str:
        return f"{super().fingerprint()}[{','.join(sorted(self.protected_attributes))}]"

    def check(self, statute: Statute) -> VerificationError | None:
        tested: list[str] = []
        for precondition in statute.preconditions:
            for node in walk(precondition):
                attribute = _tested_attribute(node)
                protected = attribute and attribute.lower() in self.protected_attributes
                if protected and attribute not in tested:
                    tested.append(attribute)
        if not tested:
            return None
        return self.violation(
            statute, f"conditions test protected attribute(s): {', '.join(tested)}"
        )


def _tested_attribute(node: object) -> str | None:
    if isinstance(node, (SetMembership, Pattern)):
        return node.attribute
    if isinstance(node, (AttributeEquals, HasAttribute)):
        return node.key
    if isinstance(node, Percentage):
        return node.context
    return None


class RequiresProcedure(Principle):
    """Adverse effects require a procedure, appeal or notice, or human discretion."""

    principle_id = "due_process"
    description = "Adverse effects must follow a fair procedure"

    def check(self, statute: Statute) -> VerificationError | None:
        effect = statute.effect
        if effect.effect_type not in ADVERSE_EFFECTS:
            return None
        if any(effect.parameters.get(name) for name in PROCEDURE_PARAMETERS):
            return None
        if statute.has_discretion:
            return None
        return self.violation(
            statute,
            f"{effect.effect_type.value} effect has no procedure, appeal or notice",
        )


class NoRetroactivity(Principle):
    """A statute may not take effect before it was enacted."""

    principle_id = "non_retroactivity"
    description = "Laws apply only from their enactment onward"

    def check(self, statute: Statute) -> VerificationError | None:
        validity = statute.temporal_validity
        if validity.effective_date is None or validity.enacted_at is None:
            return None
        if validity.effective_date >= validity.enacted_at:
            return None
        return self.violation(
            statute,
            f"effective {validity.effective_date} precedes enactment {validity.enacted_at}",
        )


class CustomPrinciple(Principle):
    """Principle backed by a predicate that returns True when the statute complies."""

    def __init__(
        self,
        principle_id: str,
        description: str,
        predicate: Callable[[Statute], bool],
    ):
        self.principle_id = principle_id
        self.description = description
        self.predicate = predicate

    def fingerprint(self) -> str:
        predicate = self.predicate
        name = getattr(predicate, "__qualname__", type(predicate).__qualname__)
        return f"{super().fingerprint()}[{self.description}|{name}@{id(predicate):x}]"

    def check(self, statute: Statute) -> VerificationError | None:
        if self.predicate(statute):
            return None
        return self.violation(statute, self.description)


def default_principles() -> list[Principle]:
    return [NoDiscrimination(), RequiresProcedure()]


__all__ = [
    "PROTECTED_ATTRIBUTES",
    "ADVERSE_EFFECTS",
    "Principle",
    "NoDiscrimination",
    "RequiresProcedure",
    "NoRetroactivity",
    "CustomPrinciple",
    "default_principles",
]
