"""
Shared test fixtures and helpers for the apisix-certbind test suite.

Certificates are generated with cryptography at test time (self-signed
EC P-256), so no key material is checked into the repository.

FakeCertificateStore is an in-memory CertificateStore used to exercise the
reconciler against a stateful gateway without HTTP.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from railway import ErrorCode
from railway.result import Result

from apisix_certbind.domain.models import RemoteCertObject


@dataclass(frozen=True)
class GeneratedCertificate:
    """A freshly generated certificate with its key, DER bytes and expected fingerprint."""

    cert_pem: str
    key_pem: str
    der: bytes

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.der).hexdigest()

    @property
    def note(self) -> str:
        return f"allinssl-{self.sha256}"


def make_certificate(common_name: str = "a.com", sans: Sequence[str] = ("a.com", "b.com")) -> GeneratedCertificate:
    """Build a self-signed certificate for `common_name` covering `sans`."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=90))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(s) for s in sans]), critical=False)
        .sign(key, hashes.SHA256())
    )
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    return GeneratedCertificate(
        cert_pem=cert.public_bytes(serialization.Encoding.PEM).decode(),
        key_pem=key_pem,
        der=cert.public_bytes(serialization.Encoding.DER),
    )


@pytest.fixture(scope="session")
def certificate() -> GeneratedCertificate:
    """One certificate shared by the whole session (generation is not free)."""
    return make_certificate()


@pytest.fixture(scope="session")
def other_certificate() -> GeneratedCertificate:
    """A second, different certificate for the same domains."""
    return make_certificate()


class FakeCertificateStore:
    """
    In-memory gateway certificate store implementing the CertificateStore port.

    `fail_delete` lists ids whose deletion fails with PROTOCOL_ERROR.
    Deleting an unknown id also fails, as the real gateway does.
    Every call is recorded in `calls` as (operation, argument).
    """

    def __init__(
        self,
        objects: Iterable[RemoteCertObject] = (),
        fail_delete: Iterable[str] = (),
        fail_list: bool = False,
        fail_create: bool = False,
    ) -> None:
        self.objects: dict[str, RemoteCertObject] = {obj.id: obj for obj in objects}
        self.fail_delete = set(fail_delete)
        self.fail_list = fail_list
        self.fail_create = fail_create
        self.calls: list[tuple[str, str]] = []
        self._next_id = 1000

    def list_certificates(self) -> Result[list[RemoteCertObject]]:
        self.calls.append(("list", ""))
        if self.fail_list:
            return Result.failure(ErrorCode.TRANSPORT_ERROR, "connection refused")
        return Result.success(list(self.objects.values()))

    def create_certificate(self, cert: str, key: str, desc: str, snis: Sequence[str]) -> Result[str]:
        self.calls.append(("create", desc))
        if self.fail_create:
            return Result.failure(ErrorCode.PROTOCOL_ERROR, "gateway API error: invalid certificate")
        self._next_id += 1
        cert_id = str(self._next_id)
        self.objects[cert_id] = RemoteCertObject(id=cert_id, desc=desc, snis=tuple(snis))
        return Result.success(cert_id)

    def delete_certificate(self, cert_id: str) -> Result[str]:
        self.calls.append(("delete", cert_id))
        if cert_id in self.fail_delete:
            return Result.failure(ErrorCode.PROTOCOL_ERROR, "gateway API error: certificate is in use")
        if cert_id not in self.objects:
            return Result.failure(ErrorCode.PROTOCOL_ERROR, "gateway API error: Key not found")
        del self.objects[cert_id]
        return Result.success(cert_id)

    def operations(self, name: str) -> list[str]:
        return [arg for op, arg in self.calls if op == name]

    def tagged(self, note: str) -> list[RemoteCertObject]:
        return [obj for obj in self.objects.values() if obj.desc == note]
