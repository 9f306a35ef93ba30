"""
Ports — Protocol-based interfaces for infrastructure adapters.

These define WHAT the reconciler needs from the outside world without
specifying HOW it is done. Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters — and test doubles —
satisfy the contract simply by implementing the methods.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from railway.result import Result

from apisix_certbind.domain.models import RemoteCertObject


@runtime_checkable
class CertificateStore(Protocol):
    """
    Port: the gateway's certificate object store.

    Every method performs exactly one remote call and never retries;
    failures come back as Result.failure(TRANSPORT_ERROR | PROTOCOL_ERROR).
    """

    def list_certificates(self) -> Result[list[RemoteCertObject]]:
        """Return every certificate object currently stored on the gateway."""
        ...

    def create_certificate(
        self, cert: str, key: str, desc: str, snis: Sequence[str]
    ) -> Result[str]:
        """Upload a certificate object and return the gateway-assigned id."""
        ...

    def delete_certificate(self, cert_id: str) -> Result[str]:
        """
        Delete one certificate object.

        Succeeds only if the gateway confirms deletion of exactly `cert_id`;
        returns the confirmed id.
        """
        ...


@runtime_checkable
class Fingerprinter(Protocol):
    """Port: derive the content key of a PEM certificate."""

    def __call__(self, pem_certificate: str) -> Result[str]: ...
