"""
Plugin entry point — reads one JSON request from stdin, writes one JSON response to stdout.

Composition root: validates the request, creates the concrete APISIX
adapter, and hands both to the reconciler. This is the ONLY place where
concrete adapter classes are instantiated.

Wire protocol:
  stdin   {"action": "upload_bind", "params": {...}}
  stdout  {"status": "success" | "error", "message": "...", "result": {...}}

Supported actions: get_metadata, list_actions, upload_bind.

Responsibilities:
  1. Configure structlog (to stderr — stdout carries the protocol)
  2. Load and validate settings from the environment
  3. Dispatch on the action name
  4. Serialize exactly one response document
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from typing import Any, Literal, TypeAlias

import structlog
from pydantic import BaseModel
from railway import FailureDescription, LoggingExecutionContext

from apisix_certbind.adapters.apisix_client import ApisixCertificateStore
from apisix_certbind.config import AppSettings, PluginMetadata, load_metadata, load_settings
from apisix_certbind.domain.models import ReconciliationOutcome
from apisix_certbind.reconciler import reconcile
from apisix_certbind.request import BindRequest, parse_bind_request


class PluginResponse(BaseModel):
    """The single JSON document written to stdout."""

    status: Literal["success", "error"]
    message: str
    result: dict[str, Any] | None = None


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for human-readable console output on stderr.

    The stdlib root logger (used by railway.execution) gets the same level
    and stream.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(stream=sys.stderr, level=level, format="%(levelname)s %(name)s: %(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _error(context: str, detail: str) -> PluginResponse:
    return PluginResponse(status="error", message=f"{context}: {detail}")


def _create_store(request: BindRequest, settings: AppSettings) -> ApisixCertificateStore:
    return ApisixCertificateStore(
        server_address=request.server_address,
        admin_key=request.admin_key,
        timeout=settings.http_timeout_seconds,
        verify=settings.verify_tls,
    )


# ─────────────────────── Actions ───────────────────────


def _get_metadata(_params: Any, _settings: AppSettings) -> PluginResponse:
    return load_metadata().either(
        on_success=lambda meta: PluginResponse(status="success", message="plugin metadata", result=meta.as_dict()),
        on_failure=lambda err: _error("get_metadata failed", err.message),
    )


def _list_actions(_params: Any, _settings: AppSettings) -> PluginResponse:
    def _actions(meta: PluginMetadata) -> PluginResponse:
        actions = [action.model_dump(mode="json") for action in meta.actions]
        return PluginResponse(status="success", message="supported actions", result={"actions": actions})

    return load_metadata().either(
        on_success=_actions,
        on_failure=lambda err: _error("list_actions failed", err.message),
    )


def _bound(outcome: ReconciliationOutcome) -> PluginResponse:
    return PluginResponse(
        status="success",
        message=f"certificate {outcome.message}",
        result={
            "message": outcome.message,
            "matched_id": outcome.matched_id,
            "created_id": outcome.created_id,
            "deleted": list(outcome.to_delete),
            "created": outcome.created,
        },
    )


def _bind_failed(err: FailureDescription) -> PluginResponse:
    log = structlog.get_logger()
    log.error("upload_bind.failed", code=err.code.value, error=err.message)
    log.debug("upload_bind.trace", trace=err.root_cause().full_stack_trace())
    return _error("upload_bind failed", err.message)


def _upload_bind(params: Any, settings: AppSettings) -> PluginResponse:
    ctx = LoggingExecutionContext(operation="upload_bind")
    result = ctx.execute(
        lambda: parse_bind_request(params).flat_map(
            lambda request: reconcile(request, _create_store(request, settings))
        )
    )
    return result.either(on_success=_bound, on_failure=_bind_failed)


_Action: TypeAlias = Callable[[Any, AppSettings], PluginResponse]

ACTIONS: dict[str, _Action] = {
    "get_metadata": _get_metadata,
    "list_actions": _list_actions,
    "upload_bind": _upload_bind,
}


def handle_request(raw: str | bytes, settings: AppSettings) -> PluginResponse:
    """
    Decode one request document and dispatch it to its action.

    Raw bytes are decoded by json.loads, so malformed UTF-8 is reported as
    an invalid request like any other undecodable document.
    """
    try:
        request = json.loads(raw)
    except ValueError as e:
        return _error("invalid request", str(e))
    if not isinstance(request, dict):
        return _error("invalid request", "request must be a JSON object")

    action = request.get("action")
    name = action if isinstance(action, str) else ""
    handler = ACTIONS.get(name)
    if handler is None:
        return PluginResponse(status="error", message=f"unknown action: {name}")
    return handler(request.get("params"), settings)


def _write(response: PluginResponse) -> None:
    sys.stdout.write(response.model_dump_json() + "\n")
    sys.stdout.flush()


def main() -> None:
    """Read the request from stdin, run it, and print the response."""
    settings_result = load_settings()
    if settings_result.is_failure():
        _write(_error("configuration error", settings_result.error().message))
        return

    settings = settings_result.value()
    configure_structlog(settings.log_level)
    log = structlog.get_logger()

    try:
        raw = sys.stdin.buffer.read()
    except OSError as e:
        _write(_error("failed to read request", str(e)))
        return

    response = handle_request(raw, settings)
    log.info("plugin.response", status=response.status)
    _write(response)


if __name__ == "__main__":
    main()
