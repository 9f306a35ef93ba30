"""
Certificate fingerprint adapter — PEM decoding + X.509 parsing via cryptography.

Pipeline:
  PEM text
    → first decodable PEM block (base64 body between BEGIN/END armour)
    → cryptography: x509.load_der_x509_certificate()
    → SHA-256 over the certificate's DER encoding
    → lowercase hex string

The digest covers the DER bytes, not the PEM text, so re-wrapping or
re-indenting the same certificate yields the same fingerprint. For a chain
("fullchain.pem") only the first block — the leaf — is fingerprinted.
"""

from __future__ import annotations

import base64
import binascii
import re

import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from railway import ErrorCode
from railway.result import Result

from apisix_certbind.domain.models import NOTE_PREFIX

log = structlog.get_logger()

_PEM_BLOCK = re.compile(
    r"-----BEGIN (?P<label>[^-\r\n]*)-----(?P<body>.*?)-----END (?P=label)-----",
    re.DOTALL,
)
_PEM_HEADER = re.compile(r"^[A-Za-z0-9-]+:.*$", re.MULTILINE)


def _decode_first_pem_block(pem_text: str) -> Result[bytes]:
    """
    Return the DER bytes of the first PEM block whose body is valid base64.

    Blocks with a corrupt body are skipped. RFC 1421 headers inside the
    block (e.g. "Proc-Type: ...") are ignored.
    """
    for match in _PEM_BLOCK.finditer(pem_text):
        body = _PEM_HEADER.sub("", match.group("body"))
        try:
            der = base64.b64decode("".join(body.split()), validate=True)
        except (binascii.Error, ValueError):
            continue
        if der:
            return Result.success(der)
    return Result.failure(ErrorCode.DECODE_ERROR, "no valid PEM block found in certificate")


def _load_certificate(der: bytes) -> Result[x509.Certificate]:
    return Result.from_computation(
        lambda: x509.load_der_x509_certificate(der),
        ErrorCode.PARSE_ERROR,
        "failed to parse X.509 certificate",
    )


def fingerprint_certificate(pem_certificate: str) -> Result[str]:
    """
    Compute the lowercase hex SHA-256 fingerprint of a PEM certificate.

    Returns Result.failure(DECODE_ERROR) if no PEM block can be decoded,
    Result.failure(PARSE_ERROR) if the first block is not a certificate.
    """
    return (
        _decode_first_pem_block(pem_certificate)
        .flat_map(_load_certificate)
        .map(lambda cert: cert.fingerprint(hashes.SHA256()).hex())
        .peek(lambda digest: log.debug("certificate.fingerprinted", sha256=digest))
    )


def certificate_note(fingerprint: str) -> str:
    """Build the note that tags gateway objects owned by this plugin."""
    return f"{NOTE_PREFIX}{fingerprint}"
