from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pallet_workflow import (
    AdvanceOptions,
    LeadInfo,
    LineItem,
    Order,
    OrderDraft,
    OrderStatus,
    OrderStore,
    ProductionMethod,
    build_line_item,
)
from pallet_workflow.models import CreationMode


class FixedClock:
    """Deterministic clock; each call returns the current instant, ``tick`` moves it on."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 3, 14, 9, 30, tzinfo=UTC))


@pytest.fixture
def store(clock: FixedClock) -> OrderStore:
    return OrderStore(clock=clock)


def make_item(
    *,
    decoration_type: ProductionMethod = ProductionMethod.SCREEN_PRINT,
    size: str = "L",
    qty: int = 12,
    color: str = "Black",
) -> LineItem:
    return build_line_item(
        item_number="PC54",
        name="Core Cotton Tee",
        color=color,
        size=size,
        qty=qty,
        decoration_type=decoration_type,
        cost=4.50,
        screen_print_colors=2 if decoration_type is ProductionMethod.SCREEN_PRINT else None,
    )


def create_quote(store: OrderStore, customer: str = "Riverside Rowing Club", **fields: object) -> Order:
    draft = OrderDraft(
        mode=CreationMode.QUOTE,
        customer=customer,
        customer_email="coach@riverside.example",
        due_date="2025-04-30",
        **fields,
    )
    return store.create(draft)


def create_lead(store: OrderStore, *, event_date: str | None = "2025-05-17") -> Order:
    draft = OrderDraft(
        mode=CreationMode.LEAD,
        customer="Maple Street Bakery",
        customer_email="owner@maplestreet.example",
        customer_phone="555-0142",
        lead_info=LeadInfo(
            contacted_at=datetime(2025, 3, 1, tzinfo=UTC),
            estimated_quantity=48,
            event_date=event_date,
        ),
    )
    return store.create(draft)


def drive_to(store: OrderStore, order_id: str, target: OrderStatus) -> Order:
    """Satisfy each gate in turn and advance until ``order_id`` reaches ``target``."""
    order = store.get(order_id)
    while order.status is not target:
        status = order.status
        if status is OrderStatus.QUOTE and not order.line_items:
            store.add_line_items(order_id, [make_item()])
        elif status is OrderStatus.ART_CONFIRMATION:
            store.record_final_approval(order_id, "Pat Rivera", "email")
        elif status is OrderStatus.INVENTORY_ORDER:
            store.mark_all_line_items(order_id, "ordered")
        elif status is OrderStatus.PRODUCTION_PREP:
            store.update_checklist(
                order_id, "prep_status", gang_sheet_created=True, artwork_digitized=True, screens_burned=True
            )
        elif status is OrderStatus.INVENTORY_RECEIVED:
            store.mark_all_line_items(order_id, "received")
        elif status is OrderStatus.PRODUCTION:
            store.mark_all_line_items(order_id, "decorated")
            store.mark_all_line_items(order_id, "packed")
        elif status is OrderStatus.FULFILLMENT:
            store.update_checklist(order_id, "fulfillment", shipping_label_printed=True, tracking_number="1Z999")
        elif status is OrderStatus.INVOICE:
            store.update_checklist(order_id, "invoice_status", invoice_created=True, invoice_sent=True)
        elif status is OrderStatus.CLOSEOUT:
            store.update_checklist(
                order_id, "closeout_checklist", files_saved=True, canva_archived=True, summary_uploaded=True
            )
        order = store.advance(order_id, AdvanceOptions())
    return order
