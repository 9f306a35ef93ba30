"""
Caller contract — validation of the `upload_bind` parameter bundle.

The plugin host sends untyped JSON. It is validated exactly once, here,
into a frozen BindRequest; everything downstream works with typed fields.
Validation failures are INVALID_PARAMETERS and happen before any network
call.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError
from railway import ErrorCode
from railway.result import Result

from apisix_certbind.domain.models import CertificateMaterial

RequiredStr = Annotated[str, StringConstraints(strict=True, min_length=1)]
DomainName = Annotated[str, StringConstraints(strict=True)]


class BindRequest(BaseModel):
    """
    Validated `upload_bind` parameters.

    `domain` keeps the caller's order and duplicates; comparison against
    gateway objects treats it as a multiset.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    cert: RequiredStr = Field(repr=False, description="PEM certificate (leaf first)")
    key: RequiredStr = Field(repr=False, description="PEM private key")
    admin_key: RequiredStr = Field(repr=False, description="APISIX admin API key")
    server_address: RequiredStr = Field(description="Admin API base URL, e.g. http://127.0.0.1:9180/apisix/admin")
    domain: list[DomainName] = Field(min_length=1, description="Domain names to bind (SNIs)")

    @property
    def material(self) -> CertificateMaterial:
        return CertificateMaterial(pem_certificate=self.cert, pem_key=self.key)


def _describe(error: ValidationError) -> str:
    """Flatten pydantic errors into "field: reason; field: reason"."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "params"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def parse_bind_request(params: Any) -> Result[BindRequest]:
    """
    Validate the raw `params` object of an `upload_bind` call.

    Returns Result.failure(INVALID_PARAMETERS) naming every offending field
    when something is missing, empty or of the wrong type.
    """
    if not isinstance(params, dict) or not params:
        return Result.failure(ErrorCode.INVALID_PARAMETERS, "params must be a non-empty object")
    try:
        return Result.success(BindRequest.model_validate(params))
    except ValidationError as e:
        return Result.failure(ErrorCode.INVALID_PARAMETERS, f"invalid parameters: {_describe(e)}", e)
