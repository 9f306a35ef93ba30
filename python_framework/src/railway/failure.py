"""
Failure description — structured error information for the failure track.

A failure carries an ErrorCode, a human-readable message, the exception that
caused it (if any) and, when one failure is reported in terms of another,
the underlying FailureDescription as `cause`.

Enum + frozen dataclass keeps failures comparable and hashable, and lets
callers branch on `error.code is ErrorCode.X`.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """
    Structured error codes for the failure track.

    Grouped by the layer that produces them:
    - Input: INVALID_PARAMETERS
    - Certificate material: DECODE_ERROR, PARSE_ERROR
    - Gateway transport: TRANSPORT_ERROR, PROTOCOL_ERROR
    - Reconciliation: INVALID_CERTIFICATE, UPSTREAM_UNAVAILABLE, UPLOAD_FAILED,
      DELETE_FAILED, CLEANUP_FAILED
    - Runtime: CONFIGURATION_ERROR, TECHNICAL_ERROR
    """

    # --- Input ---
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    """Missing, empty or wrongly-typed caller parameters. No network activity happened."""

    # --- Certificate material ---
    DECODE_ERROR = "DECODE_ERROR"
    """Input holds no decodable PEM block."""

    PARSE_ERROR = "PARSE_ERROR"
    """PEM block is not a well-formed X.509 certificate."""

    # --- Gateway transport ---
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    """Network failure, timeout, unreachable gateway."""

    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    """Gateway answered, but not with the expected JSON shape or a success code."""

    # --- Reconciliation ---
    INVALID_CERTIFICATE = "INVALID_CERTIFICATE"
    """Certificate could not be fingerprinted."""

    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    """Listing the gateway certificate store failed."""

    UPLOAD_FAILED = "UPLOAD_FAILED"
    """Creating the certificate object failed or returned no identifier."""

    DELETE_FAILED = "DELETE_FAILED"
    """A single certificate object could not be deleted."""

    CLEANUP_FAILED = "CLEANUP_FAILED"
    """A deletion failed after a successful upload; the upload was rolled back."""

    # --- Runtime ---
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Invalid settings or plugin metadata."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Unexpected exception escaped a computation."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception and cause.

    >>> desc = FailureDescription(ErrorCode.INVALID_PARAMETERS, "cert is required")
    >>> desc.code
    <ErrorCode.INVALID_PARAMETERS: 'INVALID_PARAMETERS'>
    >>> desc.message
    'cert is required'
    """

    code: ErrorCode
    message: str
    exception: Optional[BaseException] = field(default=None, repr=False)
    cause: Optional[FailureDescription] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def wrap(self, code: ErrorCode, context: str) -> FailureDescription:
        """
        Re-report this failure under a new code, keeping it as `cause`.

        The new message is "<context>: <original message>", and the original
        exception (if any) is carried over so stack traces are not lost.

            err.wrap(ErrorCode.UPLOAD_FAILED, "failed to upload certificate")
        """
        return FailureDescription(
            code=code,
            message=f"{context}: {self.message}",
            exception=self.exception,
            cause=self,
        )

    def root_cause(self) -> FailureDescription:
        """Follow the `cause` chain down to the first failure that was reported."""
        current = self
        while current.cause is not None:
            current = current.cause
        return current

    def full_stack_trace(self) -> str:
        """Message plus the formatted exception chain, if an exception is attached."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__)
        )
        return f"{self.message}\n{tb}"
