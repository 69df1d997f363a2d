"""Order stage graph, gate predicates and transition side effects.

Everything here is decision-making over an ``Order`` value: checks return a
``TransitionCheck`` and ``apply_*`` functions return a modified deep copy.
Raising is left to the store boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .models import ArtOverallStatus, ArtStatus, Order, OrderStatus, ProductionMethod, StatusChangeLog

logger = logging.getLogger(__name__)

ORDER_STAGES: tuple[OrderStatus, ...] = tuple(OrderStatus)
STAGE_NUMBER: dict[OrderStatus, int] = {stage: number for number, stage in enumerate(ORDER_STAGES)}

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    stage: frozenset({ORDER_STAGES[number + 1]}) if stage is not OrderStatus.CLOSED else frozenset()
    for number, stage in enumerate(ORDER_STAGES)
}

REOPEN_TARGETS: tuple[OrderStatus, ...] = tuple(
    stage
    for stage in ORDER_STAGES
    if STAGE_NUMBER[OrderStatus.QUOTE] <= STAGE_NUMBER[stage] <= STAGE_NUMBER[OrderStatus.INVOICE]
)

GATE_CONDITIONS: dict[OrderStatus, str] = {
    OrderStatus.LEAD: "Always permitted; due date seeded from the lead's event date",
    OrderStatus.QUOTE: "At least one line item",
    OrderStatus.APPROVAL: "Customer approval recorded outside the system",
    OrderStatus.ART_CONFIRMATION: "Art approved, or advanced with art pending",
    OrderStatus.INVENTORY_ORDER: "All line items ordered",
    OrderStatus.PRODUCTION_PREP: "Gang sheet / digitizing / screens done where the decoration methods need them",
    OrderStatus.INVENTORY_RECEIVED: "All line items received",
    OrderStatus.PRODUCTION: "All line items decorated and packed",
    OrderStatus.FULFILLMENT: "Shipping label printed or customer picked up",
    OrderStatus.INVOICE: "Invoice created and sent",
    OrderStatus.CLOSEOUT: "Files saved, Canva archived, summary uploaded",
    OrderStatus.CLOSED: "Terminal; reopen to a prior stage",
}

HISTORY_STATUS_CHANGED = "Status Changed"
HISTORY_MOVED_BACK = "Moved Back"
HISTORY_REOPENED = "Order Reopened"
CLOSED_REASON_COMPLETED = "Completed"


@dataclass(frozen=True)
class TransitionCheck:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def ok(cls) -> "TransitionCheck":
        return cls(True)

    @classmethod
    def rejected(cls, reason: str) -> "TransitionCheck":
        return cls(False, reason)


@dataclass(frozen=True)
class AdvanceOptions:
    """Caller overrides for ``advance``.

    ``art_pending`` lets an order leave Art Confirmation before the proofs
    are approved; the order's coarse ``art_status`` becomes ``Pending`` and
    the detailed ``art_confirmation.overall_status`` is left as it was.
    """

    art_pending: bool = False
    note: str | None = None
    actor: str | None = None


@dataclass(frozen=True)
class PrepRequirements:
    needs_gang_sheet: bool
    needs_digitizing: bool
    needs_screens: bool

    @property
    def any(self) -> bool:
        return self.needs_gang_sheet or self.needs_digitizing or self.needs_screens


def next_stage(status: OrderStatus) -> OrderStatus | None:
    number = STAGE_NUMBER[status]
    if status is OrderStatus.CLOSED:
        return None
    return ORDER_STAGES[number + 1]


def previous_stage(status: OrderStatus) -> OrderStatus | None:
    number = STAGE_NUMBER[status]
    return ORDER_STAGES[number - 1] if number > 0 else None


def required_prep_tasks(order: Order) -> PrepRequirements:
    methods = {item.decoration_type for item in order.line_items}
    return PrepRequirements(
        needs_gang_sheet=ProductionMethod.DTF in methods,
        needs_digitizing=ProductionMethod.EMBROIDERY in methods,
        needs_screens=ProductionMethod.SCREEN_PRINT in methods,
    )


def missing_prep_tasks(order: Order) -> list[str]:
    required = required_prep_tasks(order)
    prep = order.prep_status
    missing: list[str] = []
    if required.needs_gang_sheet and not prep.gang_sheet_created:
        missing.append("gang sheet")
    if required.needs_digitizing and not prep.artwork_digitized:
        missing.append("artwork digitizing")
    if required.needs_screens and not prep.screens_burned:
        missing.append("screens")
    return missing


def gate_failure(order: Order, options: AdvanceOptions | None = None) -> str | None:
    """Return why ``order`` cannot leave its current stage, or None if it can."""
    options = options or AdvanceOptions()
    status = order.status
    items = order.line_items

    if status is OrderStatus.QUOTE:
        if not items:
            return "Must have at least one line item"
    elif status is OrderStatus.ART_CONFIRMATION:
        approved = order.art_confirmation.overall_status is ArtOverallStatus.APPROVED
        if not approved and not options.art_pending:
            return "Art must be approved before advancing (or advance with art pending)"
    elif status is OrderStatus.INVENTORY_ORDER:
        if not items or not all(item.ordered for item in items):
            return "All items must be marked as ordered"
    elif status is OrderStatus.PRODUCTION_PREP:
        missing = missing_prep_tasks(order)
        if missing:
            return "Production prep incomplete: " + ", ".join(missing)
    elif status is OrderStatus.INVENTORY_RECEIVED:
        if not items or not all(item.received for item in items):
            return "All items must be marked as received"
    elif status is OrderStatus.PRODUCTION:
        if not items or not all(item.decorated and item.packed for item in items):
            return "All items must be decorated and packed"
    elif status is OrderStatus.FULFILLMENT:
        fulfillment = order.fulfillment
        if not (fulfillment.shipping_label_printed or fulfillment.customer_picked_up):
            return "Order must be shipped or picked up"
    elif status is OrderStatus.INVOICE:
        invoice = order.invoice_status
        if not (invoice.invoice_created and invoice.invoice_sent):
            return "Invoice must be created and sent"
    elif status is OrderStatus.CLOSEOUT:
        checklist = order.closeout_checklist
        if not (checklist.files_saved and checklist.canva_archived and checklist.summary_uploaded):
            return "All closeout tasks must be completed"
    elif status is OrderStatus.CLOSED:
        return "Closed orders can only be reopened"
    return None


def check_transition(
    order: Order,
    target: OrderStatus,
    options: AdvanceOptions | None = None,
) -> TransitionCheck:
    current = order.status
    if current is OrderStatus.CLOSED:
        return check_reopen(order, target)

    if target not in ALLOWED_TRANSITIONS[current]:
        expected = next_stage(current)
        return TransitionCheck.rejected(
            f"Cannot skip stages. Must go from {current.value} ({STAGE_NUMBER[current]}) "
            f"to {expected.value} ({STAGE_NUMBER[expected]}), not {target.value} ({STAGE_NUMBER[target]})"
        )

    reason = gate_failure(order, options)
    if reason is not None:
        return TransitionCheck.rejected(reason)
    return TransitionCheck.ok()


def check_advance(order: Order, options: AdvanceOptions | None = None) -> TransitionCheck:
    target = next_stage(order.status)
    if target is None:
        return TransitionCheck.rejected("Closed orders can only be reopened")
    return check_transition(order, target, options)


def check_move_back(order: Order) -> TransitionCheck:
    if order.status is OrderStatus.LEAD:
        return TransitionCheck.rejected("Lead is the first stage; there is no stage to move back to")
    if order.status is OrderStatus.CLOSED:
        return TransitionCheck.rejected("Closed orders must be reopened, not moved back")
    if order.status is OrderStatus.QUOTE and order.lead_info is None:
        return TransitionCheck.rejected("Order was created as a quote and has no lead details to move back to")
    return TransitionCheck.ok()


def check_reopen(order: Order, target: OrderStatus) -> TransitionCheck:
    if order.status is not OrderStatus.CLOSED:
        return TransitionCheck.rejected(f"Only Closed orders can be reopened (order is {order.status.value})")
    if target not in REOPEN_TARGETS:
        choices = ", ".join(stage.value for stage in REOPEN_TARGETS)
        return TransitionCheck.rejected(f"Cannot reopen to {target.value}; choose one of: {choices}")
    return TransitionCheck.ok()


def append_history(
    order: Order,
    *,
    now: datetime,
    action: str,
    previous_value: Any = None,
    new_value: Any = None,
    actor: str | None = None,
    notes: str | None = None,
) -> StatusChangeLog:
    entry = StatusChangeLog(
        timestamp=now,
        action=action,
        previous_value=previous_value,
        new_value=new_value,
        user_id=actor,
        notes=notes,
    )
    order.history.append(entry)
    return entry


def apply_advance(
    order: Order,
    *,
    now: datetime,
    options: AdvanceOptions | None = None,
    actor: str | None = None,
) -> Order:
    """Return a copy of ``order`` moved to the next stage with its side effects.

    The caller is expected to have obtained an allowed ``check_advance``.
    """
    options = options or AdvanceOptions()
    previous = order.status
    target = next_stage(previous)
    if target is None:
        raise ValueError("apply_advance called on a Closed order")

    updated = order.model_copy(deep=True)
    note = options.note

    if previous is OrderStatus.LEAD:
        if updated.lead_info is not None and updated.lead_info.event_date:
            updated.due_date = updated.lead_info.event_date
    elif previous is OrderStatus.ART_CONFIRMATION:
        if updated.art_confirmation.overall_status is ArtOverallStatus.APPROVED:
            updated.art_status = ArtStatus.APPROVED
        else:
            updated.art_status = ArtStatus.PENDING
            note = note or "Advanced with art pending"
    elif previous is OrderStatus.CLOSEOUT:
        updated.closed_at = now
        updated.closed_reason = CLOSED_REASON_COMPLETED
        updated.reopened_from = OrderStatus.CLOSEOUT
        updated.is_archived = False

    updated.status = target
    updated.updated_at = now
    append_history(
        updated,
        now=now,
        action=HISTORY_STATUS_CHANGED,
        previous_value=previous.value,
        new_value=target.value,
        actor=options.actor or actor,
        notes=note,
    )
    logger.debug("Order %s advanced %s -> %s", updated.order_number, previous.value, target.value)
    return updated


def apply_move_back(order: Order, *, now: datetime, actor: str | None = None, note: str | None = None) -> Order:
    """Return a copy one stage earlier. Checklists and line-item flags are kept as they are."""
    previous = order.status
    target = previous_stage(previous)
    if target is None:
        raise ValueError("apply_move_back called on a Lead order")

    updated = order.model_copy(deep=True)
    updated.status = target
    updated.updated_at = now
    append_history(
        updated,
        now=now,
        action=HISTORY_MOVED_BACK,
        previous_value=previous.value,
        new_value=target.value,
        actor=actor,
        notes=note,
    )
    return updated


def apply_reopen(
    order: Order,
    target: OrderStatus,
    *,
    now: datetime,
    actor: str | None = None,
    note: str | None = None,
) -> Order:
    updated = order.model_copy(deep=True)
    updated.status = target
    updated.closed_at = None
    updated.closed_reason = None
    updated.reopened_from = None
    updated.updated_at = now
    append_history(
        updated,
        now=now,
        action=HISTORY_REOPENED,
        previous_value=OrderStatus.CLOSED.value,
        new_value=target.value,
        actor=actor,
        notes=note,
    )
    return updated
