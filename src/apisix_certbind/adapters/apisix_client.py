"""
HTTP adapter — APISIX admin API certificate store via httpx.

Adapter layer — implements the CertificateStore port using httpx for sync
HTTP calls against the gateway's `/ssls` resource:

  GET    {server}/ssls        → {"list": {<k>: {"value": {id, desc, snis}}, ...}}
  POST   {server}/ssls        → {"code": 200, "msg": ..., "data": {"key": <id>}}
  DELETE {server}/ssls/{id}   → {"deleted": ..., "key": ".../<id>", "message": ...}

Every request carries the `X-API-KEY` header. GET and DELETE send no body;
other methods send a JSON body.

No retries: a failed call is reported once and the reconciler decides what
to do. Network errors become TRANSPORT_ERROR, anything the gateway says that
is not the expected success shape becomes PROTOCOL_ERROR. No exceptions
leak to the business logic layer.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import PurePosixPath
from typing import Any, TypeAlias

import httpx
import structlog
from railway import ErrorCode
from railway.result import Result

from apisix_certbind.domain.models import RemoteCertObject

log = structlog.get_logger()

API_KEY_HEADER = "X-API-KEY"
SSL_RESOURCE = "/ssls"

JsonObject: TypeAlias = dict[str, Any]


class ApisixCertificateStore:
    """
    Certificate store backed by the APISIX admin API.

    Implements the CertificateStore port. One short-lived httpx.Client per
    call; the adapter holds no connection state between calls.
    """

    def __init__(
        self,
        server_address: str,
        admin_key: str,
        timeout: int = 30,
        verify: bool = True,
    ) -> None:
        self._server_address = server_address.rstrip("/")
        self._admin_key = admin_key
        self._timeout = timeout
        self._verify = verify

    def list_certificates(self) -> Result[list[RemoteCertObject]]:
        """
        List all certificate objects on the gateway.

        Entries without a `value` object are skipped; entries whose id or
        SNI list is unusable are still returned (see RemoteCertObject).
        Returns Result.failure(TRANSPORT_ERROR | PROTOCOL_ERROR) on failure.
        """
        return (
            self._call("GET", SSL_RESOURCE)
            .flat_map(_parse_listing)
            .peek(lambda certs: log.info("apisix.list.complete", count=len(certs)))
        )

    def create_certificate(
        self, cert: str, key: str, desc: str, snis: Sequence[str]
    ) -> Result[str]:
        """
        Upload a certificate/key pair tagged with `desc` and bound to `snis`.

        Returns Result[str] with the gateway-assigned id from `data.key`.
        A response whose `code` is not 200 is a PROTOCOL_ERROR carrying the
        gateway's `msg`.
        """
        payload: JsonObject = {
            "cert": cert,
            "key": key,
            "desc": desc,
            "snis": list(snis),
        }
        return (
            self._call("POST", SSL_RESOURCE, payload)
            .flat_map(_parse_created)
            .peek(lambda cert_id: log.info("apisix.create.complete", cert_id=cert_id, snis=list(snis)))
        )

    def delete_certificate(self, cert_id: str) -> Result[str]:
        """
        Delete one certificate object and verify the gateway deleted that one.

        The last path segment of the returned `key` must equal `cert_id`;
        anything else is a PROTOCOL_ERROR ("deleted key mismatch").
        """
        return (
            self._call("DELETE", f"{SSL_RESOURCE}/{cert_id}")
            .flat_map(lambda body: _parse_deleted(body, cert_id))
            .peek(lambda deleted: log.info("apisix.delete.complete", cert_id=deleted))
        )

    # ─────────────────────── HTTP plumbing ───────────────────────

    def _call(self, method: str, path: str, payload: JsonObject | None = None) -> Result[JsonObject]:
        """Send one request and decode the JSON object it returns."""
        method = method.upper()
        return Result.from_computation(
            lambda: self._send(method, path, payload),
            ErrorCode.TRANSPORT_ERROR,
            f"failed to call gateway API {method} {path}",
        ).flat_map(_decode_json_object)

    def _send(self, method: str, path: str, payload: JsonObject | None) -> httpx.Response:
        """HTTP call without retry — exceptions caught by from_computation."""
        headers = {API_KEY_HEADER: self._admin_key}
        url = f"{self._server_address}{path}"
        with httpx.Client(timeout=self._timeout, verify=self._verify) as client:
            if method in ("GET", "DELETE"):
                response = client.request(method, url, headers=headers)
            else:
                headers["Content-Type"] = "application/json"
                response = client.request(method, url, headers=headers, json=payload or {})
        log.debug("apisix.response", method=method, path=path, status=response.status_code)
        return response


# ─────────────────────── Response decoding ───────────────────────


def _decode_json_object(response: httpx.Response) -> Result[JsonObject]:
    try:
        body = response.json()
    except ValueError as e:
        return Result.failure(
            ErrorCode.PROTOCOL_ERROR,
            f"gateway returned a non-JSON response (HTTP {response.status_code})",
            e,
        )
    if not isinstance(body, dict):
        return Result.failure(
            ErrorCode.PROTOCOL_ERROR,
            f"gateway returned {type(body).__name__} instead of a JSON object (HTTP {response.status_code})",
        )
    return Result.success(body)


def _parse_listing(body: JsonObject) -> Result[list[RemoteCertObject]]:
    """
    Turn a `GET /ssls` body into RemoteCertObjects.

    `list` is normally an object keyed by etcd path; newer gateways return
    an array of the same entries, which is accepted too.
    """
    container = body.get("list")
    if isinstance(container, dict):
        entries = list(container.values())
    elif isinstance(container, list):
        entries = container
    else:
        return Result.failure(ErrorCode.PROTOCOL_ERROR, "invalid response format: list not found")

    certs: list[RemoteCertObject] = []
    for entry in entries:
        if not isinstance(entry, dict):
            return Result.failure(
                ErrorCode.PROTOCOL_ERROR, "invalid response format: certificate entry is not an object"
            )
        value = entry.get("value")
        if not isinstance(value, dict):
            continue
        certs.append(_to_remote_object(value))
    return Result.success(certs)


def _to_remote_object(value: JsonObject) -> RemoteCertObject:
    cert_id = value.get("id")
    desc = value.get("desc")
    snis = value.get("snis")
    if isinstance(snis, list) and all(isinstance(name, str) for name in snis):
        parsed_snis: tuple[str, ...] | None = tuple(snis)
    else:
        parsed_snis = None
    return RemoteCertObject(
        id=cert_id if isinstance(cert_id, str) else "",
        desc=desc if isinstance(desc, str) else "",
        snis=parsed_snis,
    )


def _parse_created(body: JsonObject) -> Result[str]:
    code = body.get("code")
    if isinstance(code, bool) or not isinstance(code, (int, float)):
        return Result.failure(ErrorCode.PROTOCOL_ERROR, "invalid response format: code not found")
    if code != 200:
        reason = body.get("msg") or body.get("error_msg")
        return Result.failure(ErrorCode.PROTOCOL_ERROR, f"gateway API error: {reason}")
    data = body.get("data")
    if not isinstance(data, dict):
        return Result.failure(ErrorCode.PROTOCOL_ERROR, "invalid response format: data not found")
    cert_id = data.get("key")
    if not isinstance(cert_id, str):
        return Result.failure(ErrorCode.PROTOCOL_ERROR, "invalid response format: key not found")
    return Result.success(cert_id)


def _parse_deleted(body: JsonObject, cert_id: str) -> Result[str]:
    if not isinstance(body.get("deleted"), str):
        reason = body.get("message") or body.get("error_msg")
        return Result.failure(ErrorCode.PROTOCOL_ERROR, f"gateway API error: {reason}")
    key = body.get("key")
    if not isinstance(key, str):
        return Result.failure(ErrorCode.PROTOCOL_ERROR, "invalid response format: key not found")
    if PurePosixPath(key).name != cert_id:
        return Result.failure(
            ErrorCode.PROTOCOL_ERROR,
            f"deleted key mismatch: expected {cert_id}, got {key}",
        )
    return Result.success(cert_id)
