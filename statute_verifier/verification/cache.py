"""
Verification result cache.

Results are keyed by a content fingerprint of the statutes plus everything
else that shapes the findings: the active principles, the backend, the
check-policy settings and the conflict rules. Editing a statute (even
without changing its ID), reconfiguring a principle or changing a severity
setting therefore never serves a stale result. The cache is passed to the
verifier explicitly; there is no module-level instance.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Iterable, Sequence

from statute_verifier.core.cache import BoundedCache
from statute_verifier.core.config import Settings
from statute_verifier.statutes.schema import Statute
from statute_verifier.verification.conflicts import ConflictRule
from statute_verifier.verification.principles import Principle
from statute_verifier.verification.schemas import VerificationResult

# Settings that change how a run executes but not what it finds
EXECUTION_SETTINGS = frozenset({"parallel", "max_workers", "cache_max_size", "log_level", "log_format"})


def statute_fingerprint(statute: Statute) -> str:
    """SHA-256 over the statute's canonical JSON form."""
    payload = statute.model_dump_json()
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def collection_fingerprint(statutes: Iterable[Statute]) -> str:
    """Order-sensitive fingerprint of a statute collection."""
    digest = hashlib.sha256()
    for statute in statutes:
        digest.update(statute_fingerprint(statute).encode("ascii"))
    return digest.hexdigest()


def settings_fingerprint(settings: Settings) -> str:
    return settings.model_dump_json(exclude=set(EXECUTION_SETTINGS))


def cache_key(
    statutes: Sequence[Statute],
    principles: Sequence[Principle],
    backend_name: str,
    settings: Settings | None = None,
    conflict_rules: Sequence[ConflictRule] = (),
) -> str:
    parts = [
        collection_fingerprint(statutes),
        ",".join(principle.fingerprint() for principle in principles),
        backend_name,
        settings_fingerprint(settings) if settings is not None else "",
        ",".join(repr(rule) for rule in conflict_rules),
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


class VerificationCache(BoundedCache[str, VerificationResult]):
    """Thread-safe cache of verification results.

    Stored results are copied on the way in and out so callers can mutate
    what they receive without affecting the cache.
    """

    def get(self, key: str) -> VerificationResult | None:
        result = super().get(key)
        return result.model_copy(deep=True) if result is not None else None

    def put(self, key: str, value: VerificationResult) -> None:
        super().put(key, value.model_copy(deep=True))

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], VerificationResult],
    ) -> VerificationResult:
        result = super().get_or_compute(key, compute)
        return result.model_copy(deep=True)

    def lookup(
        self,
        statutes: Sequence[Statute],
        principles: Sequence[Principle],
        backend_name: str,
        settings: Settings | None = None,
        conflict_rules: Sequence[ConflictRule] = (),
    ) -> VerificationResult | None:
        return self.get(cache_key(statutes, principles, backend_name, settings, conflict_rules))
