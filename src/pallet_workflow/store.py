"""In-memory order store: the lifecycle facade over the workflow rules.

Every mutating call loads a deep copy of the stored order, applies the
change to the copy, re-validates it and only then replaces the stored value.
A raised error therefore never leaves the store half-updated. Callers get
copies back as well, so the only way to change a stored order is through
this class.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel

from . import art
from .errors import ConflictError, DuplicateError, InvalidTransitionError, NotFoundError, OrderValidationError
from .models import (
    ArtFile,
    ArtFileSource,
    ArtFileType,
    ArtPlacement,
    ArtProof,
    CreationMode,
    FulfillmentMethod,
    LeadInfo,
    LineItem,
    Order,
    OrderDraft,
    OrderStatus,
)
from .settings import WorkflowSettings
from .validation import validate_order
from .workflow import (
    ORDER_STAGES,
    AdvanceOptions,
    TransitionCheck,
    append_history,
    apply_advance,
    apply_move_back,
    apply_reopen,
    check_move_back,
    check_reopen,
    check_transition,
    next_stage,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
T = TypeVar("T")

LINE_ITEM_FLAGS = ("ordered", "received", "decorated", "packed")
CHECKLISTS = ("prep_status", "fulfillment", "invoice_status", "closeout_checklist")

HISTORY_CREATED = "Order Created"
HISTORY_UPDATED = "Order Updated"
HISTORY_ARCHIVED = "Archived"
HISTORY_DEAD_OPPORTUNITY = "Dead Opportunity"
HISTORY_PERMANENTLY_ARCHIVED = "Permanently Archived"
HISTORY_LINE_ITEMS_ADDED = "Line Items Added"
HISTORY_LINE_ITEM_REMOVED = "Line Item Removed"
CLOSED_REASON_DEAD_OPPORTUNITY = "Dead Opportunity"

_STAMPED_CHECKLIST_FIELDS = {
    "invoice_status": {"invoice_sent": "invoice_sent_at", "payment_received": "payment_received_at"},
}


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class DeadOpportunityResult:
    archived: Order
    spawned: Order | None = None


class OrderStore:
    """Collection of ``Order`` aggregates keyed by id."""

    def __init__(
        self,
        orders: Iterable[Order] = (),
        *,
        settings: WorkflowSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings or WorkflowSettings()
        self._clock = clock or utc_now
        self._orders: dict[str, Order] = {}
        self._sequences: dict[tuple[str, int], int] = {}
        self._number_pattern = re.compile(
            rf"^({re.escape(self.settings.lead_prefix)}|{re.escape(self.settings.quote_prefix)})-(\d{{4}})-(\d+)$"
        )
        for order in orders:
            self._ensure_unique(order)
            self._insert(order.model_copy(deep=True))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def __iter__(self) -> Iterator[Order]:
        return iter(self.list_orders(include_archived=True))

    def get(self, order_id: str) -> Order:
        return self._require(order_id).model_copy(deep=True)

    def get_by_number(self, order_number: str) -> Order:
        for order in self._orders.values():
            if order.order_number == order_number:
                return order.model_copy(deep=True)
        raise NotFoundError("order", order_number)

    def list_orders(self, status: OrderStatus | None = None, *, include_archived: bool = False) -> list[Order]:
        return [
            order.model_copy(deep=True)
            for order in self._orders.values()
            if (include_archived or not order.is_archived) and (status is None or order.status is status)
        ]

    def orders_by_customer(self, customer: str, *, include_archived: bool = False) -> list[Order]:
        wanted = customer.strip().casefold()
        return [order for order in self.list_orders(include_archived=include_archived) if order.customer.strip().casefold() == wanted]

    def stage_counts(self) -> dict[OrderStatus, int]:
        """Active (non-archived) orders per stage; every stage is present."""
        counts = dict.fromkeys(ORDER_STAGES, 0)
        for order in self._orders.values():
            if not order.is_archived:
                counts[order.status] += 1
        return counts

    def can_advance(self, order_id: str, options: AdvanceOptions | None = None) -> TransitionCheck:
        order = self._require(order_id)
        target = next_stage(order.status)
        if target is None:
            return TransitionCheck.rejected("Closed orders can only be reopened")
        return check_transition(order, target, options)

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def create(self, draft: OrderDraft) -> Order:
        now = self._clock()
        order = self._build_order(draft, now)
        self._validate(order, context=f"new order {order.order_number}")
        self._insert(order)
        logger.info("Created %s order %s for %s", order.status.value, order.order_number, order.customer)
        return order.model_copy(deep=True)

    def update(self, order: Order, expected_version: int | None = None) -> Order:
        """Replace the stored order with ``order`` after re-validating it.

        Stage and archive changes are refused; those go through the
        workflow operations. With ``expected_version`` the write is rejected
        with ``ConflictError`` when the stored version has moved on.
        """
        stored = self._require_mutable(order.id)
        if expected_version is not None and expected_version != stored.version:
            raise ConflictError(order.id, expected_version, stored.version)
        if order.status is not stored.status:
            raise self._reject(stored, "Status changes must go through advance, move back or reopen")
        if order.is_archived != stored.is_archived or order.permanently_archived != stored.permanently_archived:
            raise self._reject(stored, "Archive state changes must go through the archive operations")
        if order.order_number != stored.order_number and self._number_taken(order.order_number):
            raise DuplicateError("orderNumber", order.order_number)

        updated = order.model_copy(deep=True)
        updated.created_at = stored.created_at
        updated.history = [entry.model_copy(deep=True) for entry in stored.history]
        append_history(updated, now=self._clock(), action=HISTORY_UPDATED, actor=self.settings.default_actor)
        return self._commit(stored, updated, "updated")

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    def transition(self, order_id: str, target: OrderStatus, options: AdvanceOptions | None = None) -> Order:
        stored = self._require_mutable(order_id)
        if stored.status is OrderStatus.CLOSED:
            options = options or AdvanceOptions()
            return self.reopen(order_id, target, note=options.note, actor=options.actor)

        check = check_transition(stored, target, options)
        if not check:
            raise self._reject(stored, check.reason or "Transition rejected")
        options = options or AdvanceOptions()
        updated = apply_advance(
            stored,
            now=self._clock(),
            options=options,
            actor=options.actor or self.settings.default_actor,
        )
        return self._commit(stored, updated, f"advanced {stored.status.value} -> {updated.status.value}")

    def advance(self, order_id: str, options: AdvanceOptions | None = None) -> Order:
        stored = self._require_mutable(order_id)
        target = next_stage(stored.status)
        if target is None:
            raise self._reject(stored, "Closed orders can only be reopened")
        return self.transition(order_id, target, options)

    def move_back(self, order_id: str, *, note: str | None = None, actor: str | None = None) -> Order:
        stored = self._require_mutable(order_id)
        check = check_move_back(stored)
        if not check:
            raise self._reject(stored, check.reason or "Move back rejected")
        updated = apply_move_back(stored, now=self._clock(), actor=actor or self.settings.default_actor, note=note)
        return self._commit(stored, updated, f"moved back {stored.status.value} -> {updated.status.value}")

    def reopen(self, order_id: str, target: OrderStatus, *, note: str | None = None, actor: str | None = None) -> Order:
        stored = self._require_mutable(order_id)
        check = check_reopen(stored, target)
        if not check:
            raise self._reject(stored, check.reason or "Reopen rejected")
        updated = apply_reopen(stored, target, now=self._clock(), actor=actor or self.settings.default_actor, note=note)
        return self._commit(stored, updated, f"reopened to {target.value}")

    # ------------------------------------------------------------------
    # Archival
    # ------------------------------------------------------------------

    def archive(self, order_id: str, *, note: str | None = None) -> Order:
        stored = self._require_mutable(order_id)
        if stored.status is not OrderStatus.CLOSED:
            raise self._reject(stored, f"Only Closed orders can be archived (order is {stored.status.value})")
        now = self._clock()
        updated = self._archived_copy(stored, now)
        append_history(updated, now=now, action=HISTORY_ARCHIVED, new_value=True, actor=self.settings.default_actor, notes=note)
        return self._commit(stored, updated, "archived")

    def archive_as_dead_opportunity(
        self,
        order_id: str,
        spawn_lead: bool,
        *,
        note: str | None = None,
    ) -> DeadOpportunityResult:
        """Archive an abandoned Quote, optionally opening a fresh Lead for the same customer.

        The quote keeps its status and line items. Both orders are validated
        before either is written.
        """
        stored = self._require_mutable(order_id)
        if stored.status is not OrderStatus.QUOTE:
            raise self._reject(stored, f"Only Quote orders can be marked as a dead opportunity (order is {stored.status.value})")

        now = self._clock()
        archived = self._archived_copy(stored, now)
        archived.closed_reason = CLOSED_REASON_DEAD_OPPORTUNITY
        append_history(
            archived,
            now=now,
            action=HISTORY_DEAD_OPPORTUNITY,
            previous_value=stored.status.value,
            new_value="Lead" if spawn_lead else None,
            actor=self.settings.default_actor,
            notes=note,
        )
        archived.version = stored.version + 1
        archived.updated_at = now
        self._validate(archived, context=f"order {stored.order_number}")

        spawned: Order | None = None
        if spawn_lead:
            lead_info = LeadInfo(
                contacted_at=now,
                contact_notes=f"Follow-up lead from dead opportunity {stored.order_number}",
            )
            if stored.lead_info is not None:
                lead_info.source = stored.lead_info.source
            draft = OrderDraft(
                mode=CreationMode.LEAD,
                customer=stored.customer,
                customer_email=stored.customer_email,
                customer_phone=stored.customer_phone,
                project_name=stored.project_name,
                lead_info=lead_info,
            )
            spawned = self._build_order(draft, now)
            self._validate(spawned, context=f"new order {spawned.order_number}")

        self._orders[archived.id] = archived
        logger.info("Order %s archived as dead opportunity", archived.order_number)
        if spawned is not None:
            self._insert(spawned)
            logger.info("Spawned lead %s from %s", spawned.order_number, archived.order_number)
        return DeadOpportunityResult(
            archived=archived.model_copy(deep=True),
            spawned=spawned.model_copy(deep=True) if spawned is not None else None,
        )

    def permanently_archive(self, order_id: str, *, note: str | None = None) -> Order:
        stored = self._require(order_id)
        if stored.permanently_archived:
            raise self._reject(stored, "Order is permanently archived")
        if stored.status is not OrderStatus.CLOSED and not stored.is_archived:
            raise self._reject(stored, "Only Closed or archived orders can be permanently archived")
        now = self._clock()
        updated = self._archived_copy(stored, now)
        updated.permanently_archived = True
        append_history(
            updated,
            now=now,
            action=HISTORY_PERMANENTLY_ARCHIVED,
            new_value=True,
            actor=self.settings.default_actor,
            notes=note,
        )
        return self._commit(stored, updated, "permanently archived")

    # ------------------------------------------------------------------
    # Line items and checklists
    # ------------------------------------------------------------------

    def add_line_items(self, order_id: str, items: Iterable[LineItem]) -> Order:
        stored = self._require_mutable(order_id)
        self._reject_closed(stored, "add line items to")
        new_items = [item.model_copy(deep=True) for item in items]
        if not new_items:
            return stored.model_copy(deep=True)
        existing = {item.id for item in stored.line_items}
        for item in new_items:
            if item.id in existing:
                raise DuplicateError("lineItem.id", item.id)
            existing.add(item.id)

        updated = stored.model_copy(deep=True)
        updated.line_items.extend(new_items)
        append_history(
            updated,
            now=self._clock(),
            action=HISTORY_LINE_ITEMS_ADDED,
            new_value=len(new_items),
            actor=self.settings.default_actor,
        )
        return self._commit(stored, updated, f"added {len(new_items)} line item(s)")

    def remove_line_item(self, order_id: str, item_id: str) -> Order:
        stored = self._require_mutable(order_id)
        self._reject_closed(stored, "remove line items from")
        item = stored.line_item(item_id)
        if item is None:
            raise NotFoundError("line item", item_id)
        updated = stored.model_copy(deep=True)
        updated.line_items = [i for i in updated.line_items if i.id != item_id]
        append_history(
            updated,
            now=self._clock(),
            action=HISTORY_LINE_ITEM_REMOVED,
            previous_value=f"{item.name} {item.color} {item.size} x{item.qty}",
            actor=self.settings.default_actor,
        )
        return self._commit(stored, updated, f"removed line item {item_id}")

    def toggle_line_item_flag(self, order_id: str, item_id: str, flag: str) -> Order:
        """Flip one production flag on a line item and stamp or clear its timestamp.

        Packing an item that is not decorated yet leaves the order untouched.
        Clearing ``decorated`` on a packed item also clears ``packed``.
        """
        if flag not in LINE_ITEM_FLAGS:
            raise ValueError(f"flag must be one of {', '.join(LINE_ITEM_FLAGS)}, got: {flag!r}")
        stored = self._require_mutable(order_id)
        self._reject_closed(stored, "change line items on")
        if stored.line_item(item_id) is None:
            raise NotFoundError("line item", item_id)

        updated = stored.model_copy(deep=True)
        item = updated.line_item(item_id)
        value = not getattr(item, flag)
        if flag == "packed" and value and not item.decorated:
            logger.debug("Order %s: cannot pack undecorated item %s", stored.order_number, item_id)
            return stored.model_copy(deep=True)

        now = self._clock()
        _set_item_flag(item, flag, value, now)
        if flag == "decorated" and not value and item.packed:
            _set_item_flag(item, "packed", False, now)
        return self._commit(stored, updated, f"set {flag}={value} on item {item_id}")

    def mark_all_line_items(self, order_id: str, flag: str, value: bool = True) -> Order:
        """Set ``flag`` on every line item. Only decorated items are packed."""
        if flag not in LINE_ITEM_FLAGS:
            raise ValueError(f"flag must be one of {', '.join(LINE_ITEM_FLAGS)}, got: {flag!r}")
        stored = self._require_mutable(order_id)
        self._reject_closed(stored, "change line items on")
        updated = stored.model_copy(deep=True)
        now = self._clock()
        for item in updated.line_items:
            if flag == "packed" and value and not item.decorated:
                continue
            _set_item_flag(item, flag, value, now)
            if flag == "decorated" and not value and item.packed:
                _set_item_flag(item, "packed", False, now)
        return self._commit(stored, updated, f"set {flag}={value} on all items")

    def update_checklist(self, order_id: str, name: str, **flags: Any) -> Order:
        """Set fields on one of the per-stage checklists.

        ``name`` is ``prep_status``, ``fulfillment``, ``invoice_status`` or
        ``closeout_checklist``. Sent and paid flags on the invoice stamp their
        timestamps, and marking the order shipped or picked up stamps
        ``fulfilled_at`` and fills in the fulfillment method.
        """
        if name not in CHECKLISTS:
            raise ValueError(f"checklist must be one of {', '.join(CHECKLISTS)}, got: {name!r}")
        stored = self._require_mutable(order_id)
        self._reject_closed(stored, "change checklists on")
        updated = stored.model_copy(deep=True)
        checklist = getattr(updated, name)
        unknown = sorted(set(flags) - set(type(checklist).model_fields))
        if unknown:
            raise ValueError(f"Unknown {name} field(s): {', '.join(unknown)}")

        now = self._clock()
        stamps = _STAMPED_CHECKLIST_FIELDS.get(name, {})
        for key, value in flags.items():
            changed = getattr(checklist, key) != value
            setattr(checklist, key, value)
            if changed and key in stamps and stamps[key] not in flags:
                setattr(checklist, stamps[key], now if value else None)

        if name == "fulfillment":
            fulfillment = updated.fulfillment
            done = fulfillment.shipping_label_printed or fulfillment.customer_picked_up
            if done and fulfillment.fulfilled_at is None:
                fulfillment.fulfilled_at = now
            if not done and "fulfilled_at" not in flags:
                fulfillment.fulfilled_at = None
            if fulfillment.method is None and "method" not in flags:
                if fulfillment.shipping_label_printed:
                    fulfillment.method = FulfillmentMethod.SHIPPED
                elif fulfillment.customer_picked_up:
                    fulfillment.method = FulfillmentMethod.PICKED_UP
        return self._commit(stored, updated, f"updated {name}")

    def update_lead_info(self, order_id: str, **fields: Any) -> Order:
        stored = self._require_mutable(order_id)
        if stored.lead_info is None:
            raise NotFoundError("leadInfo", stored.order_number)
        unknown = sorted(set(fields) - set(LeadInfo.model_fields))
        if unknown:
            raise ValueError(f"Unknown leadInfo field(s): {', '.join(unknown)}")
        updated = stored.model_copy(deep=True)
        for key, value in fields.items():
            setattr(updated.lead_info, key, value)
        return self._commit(stored, updated, "updated lead info")

    # ------------------------------------------------------------------
    # Art confirmation
    # ------------------------------------------------------------------

    def add_placement(
        self,
        order_id: str,
        location: str,
        *,
        width: str | None = None,
        height: str | None = None,
        color_count: int = 1,
        description: str | None = None,
        performed_by: str | None = None,
    ) -> ArtPlacement:
        return self._art(
            order_id,
            art.add_placement,
            location=location,
            width=width,
            height=height,
            color_count=color_count,
            description=description,
            performed_by=performed_by or self.settings.designer_actor,
        )

    def remove_placement(self, order_id: str, placement_id: str, *, performed_by: str | None = None) -> ArtPlacement:
        return self._art(
            order_id,
            art.remove_placement,
            placement_id,
            performed_by=performed_by or self.settings.designer_actor,
        )

    def add_proof(
        self,
        order_id: str,
        placement_id: str,
        *,
        proof_name: str | None = None,
        proof_url: str | None = None,
        proof_notes: str | None = None,
        files: list[ArtFile] | None = None,
        performed_by: str | None = None,
    ) -> ArtProof:
        return self._art(
            order_id,
            art.add_proof,
            placement_id,
            proof_name=proof_name,
            proof_url=proof_url,
            proof_notes=proof_notes,
            files=files,
            performed_by=performed_by or self.settings.designer_actor,
        )

    def send_proof(
        self,
        order_id: str,
        placement_id: str,
        proof_id: str,
        *,
        contact_method: str | None = None,
        performed_by: str | None = None,
    ) -> ArtProof:
        return self._art(
            order_id,
            art.send_proof,
            placement_id,
            proof_id,
            contact_method=contact_method,
            performed_by=performed_by or self.settings.designer_actor,
        )

    def record_feedback(
        self,
        order_id: str,
        placement_id: str,
        proof_id: str,
        feedback: str,
        *,
        performed_by: str = art.CUSTOMER_ACTOR,
    ) -> ArtProof:
        return self._art(order_id, art.record_feedback, placement_id, proof_id, feedback, performed_by=performed_by)

    def approve_proof(
        self,
        order_id: str,
        placement_id: str,
        proof_id: str,
        *,
        performed_by: str = art.CUSTOMER_ACTOR,
    ) -> ArtProof:
        return self._art(order_id, art.approve_proof, placement_id, proof_id, performed_by=performed_by)

    def upload_client_file(
        self,
        order_id: str,
        file_name: str,
        file_url: str,
        *,
        file_type: ArtFileType = ArtFileType.ORIGINAL,
        uploaded_by: ArtFileSource = ArtFileSource.CLIENT,
        notes: str | None = None,
        performed_by: str | None = None,
    ) -> ArtFile:
        return self._art(
            order_id,
            art.upload_client_file,
            file_name=file_name,
            file_url=file_url,
            file_type=file_type,
            uploaded_by=uploaded_by,
            notes=notes,
            performed_by=performed_by or self.settings.designer_actor,
        )

    def upload_markup_file(
        self,
        order_id: str,
        placement_id: str,
        proof_id: str,
        file_name: str,
        file_url: str,
        *,
        uploaded_by: ArtFileSource = ArtFileSource.CLIENT,
        notes: str | None = None,
        performed_by: str = art.CUSTOMER_ACTOR,
    ) -> ArtFile:
        return self._art(
            order_id,
            art.upload_markup_file,
            placement_id,
            proof_id,
            file_name=file_name,
            file_url=file_url,
            uploaded_by=uploaded_by,
            notes=notes,
            performed_by=performed_by,
        )

    def record_final_approval(
        self,
        order_id: str,
        approval_name: str,
        approval_method: str,
        *,
        approval_date: datetime | None = None,
        performed_by: str | None = None,
    ) -> Order:
        self._art(
            order_id,
            art.record_final_approval,
            approval_name=approval_name,
            approval_method=approval_method,
            approval_date=approval_date,
            performed_by=performed_by or self.settings.designer_actor,
        )
        return self.get(order_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _art(self, order_id: str, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        stored = self._require_mutable(order_id)
        updated = stored.model_copy(deep=True)
        try:
            result = operation(updated, *args, now=self._clock(), **kwargs)
        except InvalidTransitionError as exc:
            logger.warning("Rejected %s on order %s: %s", operation.__name__, stored.order_number, exc.reason)
            raise
        self._commit(stored, updated, operation.__name__.replace("_", " "))
        return result.model_copy(deep=True) if isinstance(result, BaseModel) else result

    def _require(self, order_id: str) -> Order:
        try:
            return self._orders[order_id]
        except KeyError:
            raise NotFoundError("order", order_id) from None

    def _require_mutable(self, order_id: str) -> Order:
        order = self._require(order_id)
        if order.permanently_archived:
            raise self._reject(order, "Order is permanently archived")
        if order.is_archived:
            raise self._reject(order, "Archived orders are read-only")
        return order

    def _reject_closed(self, order: Order, verb: str) -> None:
        if order.status is OrderStatus.CLOSED:
            raise self._reject(order, f"Cannot {verb} a Closed order; reopen it first")

    def _reject(self, order: Order, reason: str) -> InvalidTransitionError:
        logger.warning("Rejected operation on order %s (%s): %s", order.order_number, order.status.value, reason)
        return InvalidTransitionError(reason, order_number=order.order_number)

    def _validate(self, order: Order, *, context: str) -> None:
        result = validate_order(order)
        if not result.valid:
            logger.warning("%s failed validation: %s", context, "; ".join(result.report.errors))
            raise OrderValidationError(result.report, context=context)

    def _commit(self, stored: Order, updated: Order, action: str) -> Order:
        updated.version = stored.version + 1
        updated.updated_at = self._clock()
        self._validate(updated, context=f"order {stored.order_number}")
        self._orders[updated.id] = updated
        logger.info("Order %s %s (version %d)", updated.order_number, action, updated.version)
        return updated.model_copy(deep=True)

    def _archived_copy(self, order: Order, now: datetime) -> Order:
        updated = order.model_copy(deep=True)
        updated.is_archived = True
        if updated.archived_at is None:
            updated.archived_at = now
        return updated

    def _build_order(self, draft: OrderDraft, now: datetime) -> Order:
        is_lead = draft.mode is CreationMode.LEAD
        if draft.order_number and draft.order_number.strip():
            order_number = draft.order_number.strip()
            if self._number_taken(order_number):
                raise DuplicateError("orderNumber", order_number)
        else:
            prefix = self.settings.lead_prefix if is_lead else self.settings.quote_prefix
            order_number = self._next_order_number(prefix, now.year)

        lead_info = draft.lead_info.model_copy(deep=True) if draft.lead_info is not None else None
        if is_lead and lead_info is None:
            lead_info = LeadInfo(contacted_at=now)

        status = OrderStatus.LEAD if is_lead else OrderStatus.QUOTE
        order = Order(
            order_number=order_number,
            customer=draft.customer.strip(),
            customer_email=draft.customer_email or None,
            customer_phone=draft.customer_phone or None,
            project_name=draft.project_name,
            status=status,
            created_at=now,
            updated_at=now,
            due_date=draft.due_date,
            rush_order=draft.rush_order,
            notes=draft.notes,
            lead_info=lead_info,
        )
        append_history(order, now=now, action=HISTORY_CREATED, new_value=status.value, actor=self.settings.default_actor)
        return order

    def _number_taken(self, order_number: str) -> bool:
        return any(order.order_number == order_number for order in self._orders.values())

    def _next_order_number(self, prefix: str, year: int) -> str:
        sequence = self._sequences.get((prefix, year), 0)
        while True:
            sequence += 1
            candidate = f"{prefix}-{year}-{sequence:0{self.settings.sequence_width}d}"
            if not self._number_taken(candidate):
                return candidate

    def _ensure_unique(self, order: Order) -> None:
        if order.id in self._orders:
            raise DuplicateError("id", order.id)
        if self._number_taken(order.order_number):
            raise DuplicateError("orderNumber", order.order_number)

    def _insert(self, order: Order) -> None:
        self._orders[order.id] = order
        match = self._number_pattern.match(order.order_number)
        if match:
            key = (match.group(1), int(match.group(2)))
            self._sequences[key] = max(self._sequences.get(key, 0), int(match.group(3)))


def _set_item_flag(item: LineItem, flag: str, value: bool, now: datetime) -> None:
    if getattr(item, flag) == value:
        return
    setattr(item, flag, value)
    setattr(item, f"{flag}_at", now if value else None)
