"""
Domain models — immutable value objects for certificate binding.

They describe the certificate material handed in by the caller, the
certificate objects found on the gateway, and the decision the reconciler
takes about them. None of them perform I/O.

All models are frozen dataclasses (immutable) following functional principles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique

NOTE_PREFIX = "allinssl-"


@unique
class SniRelation(Enum):
    """How a gateway object's SNI list relates to the requested domain list."""

    DISJOINT = "disjoint"
    PARTIAL = "partial"
    EXACT = "exact"


@dataclass(frozen=True, slots=True)
class CertificateMaterial:
    """
    PEM certificate and private key as supplied by the caller.

    Never persisted; lives only for the duration of one reconciliation.
    """

    pem_certificate: str = field(repr=False)
    pem_key: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class RemoteCertObject:
    """
    A certificate object stored on the gateway (one entry of `GET /ssls`).

    `id` is empty when the gateway entry carries no string id; such objects
    are never deleted or reused. `snis` is None when the entry's SNI list is
    missing or holds non-string values, and then never matches anything.
    """

    id: str
    desc: str = ""
    snis: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class ReconciliationPlan:
    """
    Result of scanning the gateway listing against the desired binding.

    `matched_id` is the first exact, same-note object (empty if none).
    `to_delete` holds stale and conflicting object ids, de-duplicated,
    in listing order.
    """

    matched_id: str = ""
    to_delete: tuple[str, ...] = ()

    @property
    def has_match(self) -> bool:
        return self.matched_id != ""


@dataclass(frozen=True, slots=True)
class ReconciliationOutcome:
    """What a reconciliation did to the gateway."""

    matched_id: str
    to_delete: tuple[str, ...]
    created: bool
    created_id: str = ""

    @property
    def message(self) -> str:
        return "uploaded and bound" if self.created else "already bound"
