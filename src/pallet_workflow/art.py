"""Art-proof approval sub-workflow run inside the Art Confirmation stage.

Functions mutate the ``Order`` they are given. ``OrderStore`` always passes a
working copy and only commits it when the call returns, so a raised error
never leaves a half-applied change behind.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .errors import InvalidTransitionError, NotFoundError
from .models import (
    ArtFile,
    ArtFileSource,
    ArtFileType,
    ArtOverallStatus,
    ArtPlacement,
    ArtProof,
    ArtRevision,
    ArtStatus,
    Order,
    OrderStatus,
    ProofStatus,
    RevisionAction,
)

logger = logging.getLogger(__name__)

CUSTOMER_ACTOR = "Customer"


def ensure_art_editable(order: Order) -> None:
    """Art work happens in Art Confirmation, or later while art is still pending."""
    if order.status is OrderStatus.ART_CONFIRMATION:
        return
    if order.art_status is ArtStatus.PENDING and order.status is not OrderStatus.CLOSED:
        return
    raise InvalidTransitionError(
        f"Art confirmation can only be edited in the Art Confirmation stage (order is {order.status.value})",
        order_number=order.order_number,
    )


def find_placement(order: Order, placement_id: str) -> ArtPlacement:
    placement = order.placement(placement_id)
    if placement is None:
        raise NotFoundError("placement", placement_id)
    return placement


def find_proof(order: Order, placement_id: str, proof_id: str) -> tuple[ArtPlacement, ArtProof]:
    placement = find_placement(order, placement_id)
    for proof in placement.proofs:
        if proof.id == proof_id:
            return placement, proof
    raise NotFoundError("proof", proof_id)


def _record(
    order: Order,
    *,
    now: datetime,
    action: RevisionAction,
    description: str,
    performed_by: str,
    placement_id: str | None = None,
    proof_id: str | None = None,
    file_id: str | None = None,
) -> ArtRevision:
    revision = ArtRevision(
        timestamp=now,
        action=action,
        description=description,
        performed_by=performed_by,
        related_placement_id=placement_id,
        related_proof_id=proof_id,
        related_file_id=file_id,
    )
    order.art_confirmation.revision_history.append(revision)
    logger.debug("Order %s art revision %s: %s", order.order_number, action.value, description)
    return revision


def _set_overall(order: Order, status: ArtOverallStatus) -> None:
    """Set the detailed status and mirror it onto the coarse ``art_status``.

    A coarse ``Pending`` (art-pending override) is only replaced once the
    detailed status reaches Approved.
    """
    order.art_confirmation.overall_status = status
    if order.art_status is ArtStatus.PENDING and status is not ArtOverallStatus.APPROVED:
        return
    order.art_status = ArtStatus(status.value)


def _require_proof_status(order: Order, proof: ArtProof, expected: ProofStatus, verb: str) -> None:
    if proof.status is not expected:
        raise InvalidTransitionError(
            f"Cannot {verb} proof v{proof.version}: status is {proof.status.value}, expected {expected.value}",
            order_number=order.order_number,
        )


def _complete_if_all_approved(order: Order, now: datetime) -> bool:
    art = order.art_confirmation
    if not art.all_placements_approved():
        return False
    _set_overall(order, ArtOverallStatus.APPROVED)
    art.completed_at = now
    return True


def add_placement(
    order: Order,
    *,
    location: str,
    now: datetime,
    performed_by: str,
    width: str | None = None,
    height: str | None = None,
    color_count: int = 1,
    description: str | None = None,
) -> ArtPlacement:
    ensure_art_editable(order)
    if not location.strip():
        raise ValueError("location must be non-empty")
    art = order.art_confirmation
    placement = ArtPlacement(
        location=location.strip(),
        width=width,
        height=height,
        color_count=color_count,
        description=description,
    )
    art.placements.append(placement)
    if art.overall_status is ArtOverallStatus.NOT_STARTED:
        _set_overall(order, ArtOverallStatus.IN_PROGRESS)
    if art.started_at is None:
        art.started_at = now
    _record(
        order,
        now=now,
        action=RevisionAction.PLACEMENT_ADDED,
        description=f"Added placement: {placement.location}",
        performed_by=performed_by,
        placement_id=placement.id,
    )
    return placement


def remove_placement(order: Order, placement_id: str, *, now: datetime, performed_by: str) -> ArtPlacement:
    ensure_art_editable(order)
    placement = find_placement(order, placement_id)
    art = order.art_confirmation
    art.placements = [p for p in art.placements if p.id != placement_id]
    _record(
        order,
        now=now,
        action=RevisionAction.PLACEMENT_REMOVED,
        description=f"Removed placement: {placement.location} ({len(placement.proofs)} proof(s))",
        performed_by=performed_by,
        placement_id=placement.id,
    )
    if art.overall_status is not ArtOverallStatus.APPROVED:
        _complete_if_all_approved(order, now)
    return placement


def add_proof(
    order: Order,
    placement_id: str,
    *,
    now: datetime,
    performed_by: str,
    proof_name: str | None = None,
    proof_url: str | None = None,
    proof_notes: str | None = None,
    files: list[ArtFile] | None = None,
) -> ArtProof:
    ensure_art_editable(order)
    placement = find_placement(order, placement_id)
    version = max((proof.version for proof in placement.proofs), default=0) + 1
    proof = ArtProof(
        version=version,
        proof_name=proof_name or f"{placement.location} v{version}",
        proof_url=proof_url,
        proof_notes=proof_notes,
        files=list(files or []),
        created_at=now,
    )
    placement.proofs.append(proof)
    _record(
        order,
        now=now,
        action=RevisionAction.PROOF_CREATED,
        description=f"Created proof v{version} for {placement.location}",
        performed_by=performed_by,
        placement_id=placement.id,
        proof_id=proof.id,
    )
    return proof


def send_proof(
    order: Order,
    placement_id: str,
    proof_id: str,
    *,
    now: datetime,
    performed_by: str,
    contact_method: str | None = None,
) -> ArtProof:
    ensure_art_editable(order)
    placement, proof = find_proof(order, placement_id, proof_id)
    _require_proof_status(order, proof, ProofStatus.DRAFT, "send")
    proof.status = ProofStatus.SENT
    proof.sent_to_customer_at = now
    art = order.art_confirmation
    _set_overall(order, ArtOverallStatus.SENT_TO_CUSTOMER)
    art.last_contacted_at = now
    if contact_method:
        art.customer_contact_method = contact_method
    _record(
        order,
        now=now,
        action=RevisionAction.PROOF_SENT,
        description=f"Sent proof v{proof.version} for {placement.location} to customer",
        performed_by=performed_by,
        placement_id=placement.id,
        proof_id=proof.id,
    )
    return proof


def record_feedback(
    order: Order,
    placement_id: str,
    proof_id: str,
    feedback: str,
    *,
    now: datetime,
    performed_by: str = CUSTOMER_ACTOR,
) -> ArtProof:
    ensure_art_editable(order)
    if not feedback.strip():
        raise ValueError("feedback must be non-empty")
    placement, proof = find_proof(order, placement_id, proof_id)
    _require_proof_status(order, proof, ProofStatus.SENT, "record feedback on")
    _request_revision(order, proof, now=now, feedback=feedback.strip())
    _record(
        order,
        now=now,
        action=RevisionAction.FEEDBACK_RECEIVED,
        description=f"Customer requested changes to {placement.location} v{proof.version}: {feedback.strip()}",
        performed_by=performed_by,
        placement_id=placement.id,
        proof_id=proof.id,
    )
    return proof


def _request_revision(order: Order, proof: ArtProof, *, now: datetime, feedback: str | None) -> None:
    if feedback is not None:
        proof.customer_feedback = feedback
    proof.feedback_received_at = now
    proof.status = ProofStatus.REVISION_NEEDED
    _set_overall(order, ArtOverallStatus.REVISION_REQUESTED)


def approve_proof(
    order: Order,
    placement_id: str,
    proof_id: str,
    *,
    now: datetime,
    performed_by: str,
) -> ArtProof:
    ensure_art_editable(order)
    placement, proof = find_proof(order, placement_id, proof_id)
    _require_proof_status(order, proof, ProofStatus.SENT, "approve")
    proof.status = ProofStatus.APPROVED

    if _complete_if_all_approved(order, now):
        description = f"Approved {placement.location} v{proof.version}; all placements approved"
        logger.info("Order %s art fully approved", order.order_number)
    else:
        description = f"Approved {placement.location} v{proof.version}"
    _record(
        order,
        now=now,
        action=RevisionAction.APPROVED,
        description=description,
        performed_by=performed_by,
        placement_id=placement.id,
        proof_id=proof.id,
    )
    return proof


def upload_client_file(
    order: Order,
    *,
    file_name: str,
    file_url: str,
    now: datetime,
    performed_by: str,
    file_type: ArtFileType = ArtFileType.ORIGINAL,
    uploaded_by: ArtFileSource = ArtFileSource.CLIENT,
    notes: str | None = None,
) -> ArtFile:
    ensure_art_editable(order)
    art_file = ArtFile(
        file_name=file_name,
        file_type=file_type,
        file_url=file_url,
        uploaded_at=now,
        uploaded_by=uploaded_by,
        is_markup=False,
        notes=notes,
    )
    order.art_confirmation.client_files.append(art_file)
    _record(
        order,
        now=now,
        action=RevisionAction.FILE_UPLOADED,
        description=f"Uploaded {art_file.file_type.value} file {file_name}",
        performed_by=performed_by,
        file_id=art_file.id,
    )
    return art_file


def upload_markup_file(
    order: Order,
    placement_id: str,
    proof_id: str,
    *,
    file_name: str,
    file_url: str,
    now: datetime,
    performed_by: str = CUSTOMER_ACTOR,
    uploaded_by: ArtFileSource = ArtFileSource.CLIENT,
    notes: str | None = None,
) -> ArtFile:
    """Attach a marked-up copy to a proof.

    Markup on a proof the customer has been sent counts as a revision
    request, the same as written feedback.
    """
    ensure_art_editable(order)
    placement, proof = find_proof(order, placement_id, proof_id)
    art_file = ArtFile(
        file_name=file_name,
        file_type=ArtFileType.MARKUP,
        file_url=file_url,
        uploaded_at=now,
        uploaded_by=uploaded_by,
        is_markup=True,
        notes=notes,
    )
    proof.markup_files.append(art_file)
    if proof.status is ProofStatus.SENT:
        _request_revision(order, proof, now=now, feedback=None)
    _record(
        order,
        now=now,
        action=RevisionAction.MARKUP_UPLOADED,
        description=f"Markup {file_name} uploaded for {placement.location} v{proof.version}",
        performed_by=performed_by,
        placement_id=placement.id,
        proof_id=proof.id,
        file_id=art_file.id,
    )
    return art_file


def record_final_approval(
    order: Order,
    *,
    approval_name: str,
    approval_method: str,
    now: datetime,
    performed_by: str,
    approval_date: datetime | None = None,
) -> None:
    """Force the art to Approved for sign-off given outside the proof flow."""
    ensure_art_editable(order)
    if not approval_name.strip():
        raise ValueError("approval_name must be non-empty")
    art = order.art_confirmation
    art.customer_approval_name = approval_name.strip()
    art.customer_approval_method = approval_method
    art.customer_approval_date = approval_date or now
    art.completed_at = now
    _set_overall(order, ArtOverallStatus.APPROVED)
    _record(
        order,
        now=now,
        action=RevisionAction.FINAL_APPROVAL,
        description=f"Final approval by {art.customer_approval_name} via {approval_method}",
        performed_by=performed_by,
    )
