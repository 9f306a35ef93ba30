"""
Reconciler — the certificate binding workflow.

Domain layer — the decision logic lives here; all I/O is injected via ports
(the CertificateStore and the fingerprinter).

  fingerprint(cert) → note
    → store.list_certificates()
      → plan_reconciliation(objects, note, domains)
        → reuse the exact match                     (no mutation)
        → or: store.create_certificate(...)
              → store.delete_certificate(stale) ...  (one at a time)
                → on the first failed delete: delete the new upload again

States: Scanning → Uploading → Deleting → Done, Deleting → RollingBack →
Failed, and Scanning → Done when an exact match already exists. A rollback
never turns a failed cleanup into a success.

Each stage returns Result[T]. Failures short-circuit through the railway and
are re-reported with the reconciliation error code, keeping the lower-level
failure as `cause`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog
from railway import ErrorCode, FailureDescription
from railway.result import Result

from apisix_certbind.adapters.fingerprint import certificate_note, fingerprint_certificate
from apisix_certbind.domain.models import (
    ReconciliationOutcome,
    ReconciliationPlan,
    RemoteCertObject,
    SniRelation,
)
from apisix_certbind.domain.ports import CertificateStore, Fingerprinter
from apisix_certbind.domain.relation import classify_relation
from apisix_certbind.request import BindRequest

log = structlog.get_logger()


def plan_reconciliation(
    objects: Iterable[RemoteCertObject],
    note: str,
    domains: Sequence[str],
) -> ReconciliationPlan:
    """
    Scan the gateway listing once and decide what to reuse and what to delete.

    An object is a deletion candidate when it has an id and either
      - carries our note but its SNIs are not exactly `domains` (stale), or
      - overlaps `domains` partially under a different note (conflict).
    The first object with our note and exactly `domains` becomes the reuse
    candidate; later duplicates do not replace it. Objects with malformed
    SNIs count as DISJOINT.
    """
    matched_id = ""
    to_delete: dict[str, None] = {}

    for obj in objects:
        if not obj.id:
            continue
        relation = classify_relation(obj.snis, domains) if obj.snis is not None else SniRelation.DISJOINT
        same_note = obj.desc == note

        if (same_note and relation is not SniRelation.EXACT) or (
            relation is SniRelation.PARTIAL and not same_note
        ):
            to_delete.setdefault(obj.id, None)
        if same_note and relation is SniRelation.EXACT and not matched_id:
            matched_id = obj.id

    return ReconciliationPlan(matched_id=matched_id, to_delete=tuple(to_delete))


def _scan(store: CertificateStore, note: str, domains: Sequence[str]) -> Result[ReconciliationPlan]:
    return (
        store.list_certificates()
        .map_failure(lambda err: err.wrap(ErrorCode.UPSTREAM_UNAVAILABLE, "failed to list certificates from gateway"))
        .map(lambda objects: plan_reconciliation(objects, note, domains))
        .peek(
            lambda plan: log.info(
                "reconcile.planned",
                note=note,
                matched_id=plan.matched_id or None,
                to_delete=list(plan.to_delete),
            )
        )
    )


def _upload(store: CertificateStore, request: BindRequest, note: str) -> Result[str]:
    material = request.material
    return (
        store.create_certificate(material.pem_certificate, material.pem_key, note, request.domain)
        .map_failure(lambda err: err.wrap(ErrorCode.UPLOAD_FAILED, "failed to upload certificate"))
        .ensure(
            lambda cert_id: cert_id != "",
            ErrorCode.UPLOAD_FAILED,
            "failed to upload certificate: gateway returned an empty certificate id",
        )
        .peek(lambda cert_id: log.info("reconcile.uploaded", cert_id=cert_id, note=note))
    )


def _delete_stale(store: CertificateStore, cert_id: str) -> Result[str]:
    return store.delete_certificate(cert_id).map_failure(
        lambda err: err.wrap(ErrorCode.DELETE_FAILED, f"failed to delete old certificate {cert_id}")
    )


def _rollback(store: CertificateStore, new_id: str, failure: FailureDescription) -> FailureDescription:
    """
    Best-effort removal of the certificate uploaded in this run.

    The outcome of the rollback is only logged; the returned failure is
    always the original deletion failure reported as CLEANUP_FAILED.
    """
    log.warning("reconcile.cleanup_failed", cert_id=new_id, error=failure.message)
    rollback = store.delete_certificate(new_id)
    rollback.peek(lambda _: log.info("reconcile.rolled_back", cert_id=new_id))
    rollback.peek_failure(lambda err: log.warning("reconcile.rollback_failed", cert_id=new_id, error=err.message))
    return failure.wrap(ErrorCode.CLEANUP_FAILED, f"cleanup after uploading certificate {new_id} failed")


def _cleanup(store: CertificateStore, new_id: str, to_delete: Sequence[str]) -> Result[list[str]]:
    """Delete stale ids in order, stopping at (and rolling back on) the first failure."""
    deleted = Result.all_of(_delete_stale(store, cert_id) for cert_id in to_delete)
    if deleted.is_failure():
        return Result.failure_from(_rollback(store, new_id, deleted.error()))
    return deleted


def _apply(
    plan: ReconciliationPlan,
    note: str,
    request: BindRequest,
    store: CertificateStore,
) -> Result[ReconciliationOutcome]:
    if plan.has_match:
        # Stale or conflicting objects are left alone until the next upload.
        log.info("reconcile.already_bound", cert_id=plan.matched_id, skipped_deletions=len(plan.to_delete))
        return Result.success(ReconciliationOutcome(matched_id=plan.matched_id, to_delete=(), created=False))

    return _upload(store, request, note).flat_map(
        lambda new_id: _cleanup(store, new_id, plan.to_delete).map(
            lambda _: ReconciliationOutcome(
                matched_id="",
                to_delete=plan.to_delete,
                created=True,
                created_id=new_id,
            )
        )
    )


def reconcile(
    request: BindRequest,
    store: CertificateStore,
    fingerprinter: Fingerprinter = fingerprint_certificate,
) -> Result[ReconciliationOutcome]:
    """
    Make the gateway hold exactly one current object for this certificate and domain set.

    Flow:
      1. Fingerprint the certificate and build the note   (INVALID_CERTIFICATE)
      2. List the gateway's certificate objects           (UPSTREAM_UNAVAILABLE)
      3. Plan: reuse candidate + stale/conflicting ids
      4. Exact match → return it, touch nothing
      5. Otherwise upload                                 (UPLOAD_FAILED)
         and delete the planned ids one by one            (CLEANUP_FAILED ← DELETE_FAILED)

    Returns Result[ReconciliationOutcome] on success, or the failure of the
    first failing stage.
    """
    return (
        fingerprinter(request.cert)
        .map_failure(lambda err: err.wrap(ErrorCode.INVALID_CERTIFICATE, "failed to fingerprint certificate"))
        .map(certificate_note)
        .flat_map(
            lambda note: _scan(store, note, request.domain).flat_map(
                lambda plan: _apply(plan, note, request, store)
            )
        )
    )
