import copy

from conftest import create_lead, create_quote, drive_to, make_item

from pallet_workflow import OrderStatus, OrderStore, format_report, validate_order, validate_orders
from pallet_workflow.validation import validate_art_placement, validate_line_item


def _item_record() -> dict:
    return make_item().to_record()


def test_store_orders_validate_cleanly(store: OrderStore) -> None:
    order = create_quote(store)
    drive_to(store, order.id, OrderStatus.CLOSED)
    result = validate_order(store.get(order.id))
    assert result.valid, result.report.errors
    assert result.order_number == "TBD-2025-0001"


def test_model_and_record_give_same_result(store: OrderStore) -> None:
    order = create_quote(store)
    assert validate_order(order).report == validate_order(order.to_record()).report


def test_line_item_structural_errors() -> None:
    record = _item_record()
    record.update(qty=0, cost=-1, decorationType="Sublimation", ordered="yes", name="")
    errors = validate_line_item(record, 3).errors
    assert "LineItem[3]: qty must be > 0, got 0" in errors
    assert "LineItem[3]: cost must be >= 0, got -1" in errors
    assert "LineItem[3]: Invalid decorationType 'Sublimation'" in errors
    assert "LineItem[3]: ordered must be boolean" in errors
    assert "LineItem[3]: Missing name" in errors


def test_line_item_business_rules() -> None:
    record = _item_record()
    record.update(packed=True, packedAt="2025-03-14T09:30:00Z", received=True, size="2XL")
    errors = validate_line_item(record).errors
    assert "LineItem[0]: packed without being decorated" in errors
    assert "LineItem[0]: received is set but receivedAt is missing" in errors
    assert "LineItem[0]: isPlusSize does not match size '2XL'" in errors


def test_lead_status_requires_lead_info(store: OrderStore) -> None:
    record = create_lead(store).to_record()
    record["leadInfo"] = None
    assert "Lead status order missing leadInfo" in validate_order(record).report.errors


def test_closed_and_archived_need_timestamps(store: OrderStore) -> None:
    record = create_quote(store).to_record()
    record.update(status="Closed", isArchived=True)
    errors = validate_order(record).report.errors
    assert "Closed order missing closedAt" in errors
    assert "isArchived is set but archivedAt is missing" in errors


def test_invoice_flags_need_timestamps(store: OrderStore) -> None:
    record = create_quote(store).to_record()
    record["invoiceStatus"].update(invoiceSent=True, paymentReceived=True)
    errors = validate_order(record).report.errors
    assert "InvoiceStatus: invoiceSent is set but invoiceSentAt is missing" in errors
    assert "InvoiceStatus: paymentReceived is set but paymentReceivedAt is missing" in errors


def test_proof_versions_unique_per_placement() -> None:
    proof = {"id": "p1", "version": 1, "proofName": "Front v1", "status": "Draft", "files": [], "markupFiles": []}
    placement = {"id": "pl1", "location": "Front", "colorCount": 1, "proofs": [proof, dict(proof, id="p2"), dict(proof, id="p3", version=0)]}
    errors = validate_art_placement(placement, 0).errors
    assert "Placement[0]: duplicate proof versions [1]" in errors
    assert "Placement[pl1].Proof[2]: version must be >= 1, got 0" in errors


def test_unhashable_values_are_reported_not_raised() -> None:
    record = _item_record()
    record.update(decorationType=["DTF"], dtfSize={"size": "Large"})
    errors = validate_line_item(record, 0).errors
    assert "LineItem[0]: Invalid decorationType ['DTF']" in errors
    assert "LineItem[0]: Invalid dtfSize {'size': 'Large'}" in errors

    proof = {"id": "p1", "version": [1], "proofName": "Front v1", "status": "Draft", "files": [], "markupFiles": []}
    placement = {"id": "pl1", "location": "Front", "colorCount": 1, "proofs": [proof, dict(proof, id="p2")]}
    errors = validate_art_placement(placement, 0).errors
    assert "Placement[pl1].Proof[0]: version must be a number" in errors
    assert not any("duplicate proof versions" in error for error in errors)


def test_malformed_placement_proofs_in_collection(store: OrderStore) -> None:
    record = create_quote(store).to_record()
    record["artConfirmation"]["placements"] = [{"id": "p", "location": "Front", "proofs": 5}]
    report = validate_orders([record])
    assert not report.valid
    assert "Placement[0]: proofs must be an array" in report.order_results[0].report.errors


def test_warnings_are_not_errors(store: OrderStore) -> None:
    record = create_quote(store).to_record()
    record.update(dueDate="", customerEmail=None, lineItems=[])
    report = validate_order(record).report
    assert report.valid
    assert report.warnings == ["No due date set", "No line items for non-Lead order", "No customer email"]


def test_lead_needs_no_due_date_or_items(store: OrderStore) -> None:
    report = validate_order(create_lead(store)).report
    assert report.valid
    assert report.warnings == []


def test_collection_reports_duplicates(store: OrderStore) -> None:
    first = create_quote(store).to_record()
    clone = copy.deepcopy(first)
    other = create_quote(store, customer="Hilltop Hardware").to_record()
    other["orderNumber"] = first["orderNumber"]

    report = validate_orders([first, clone, other])
    assert not report.valid
    assert f"Duplicate order IDs found: {first['id']}" in report.errors
    assert f"Duplicate order numbers found: {first['orderNumber']}" in report.errors
    assert all(result.valid for result in report.order_results)


def test_non_object_records_are_errors() -> None:
    report = validate_orders(["not an order"])
    assert not report.valid
    assert report.order_results[0].report.errors == ["order must be an object"]


def test_format_report(store: OrderStore) -> None:
    good = create_quote(store).to_record()
    bad = create_quote(store, customer="Hilltop Hardware").to_record()
    bad["lineItems"] = [dict(_item_record(), qty=-2)]
    text = format_report(validate_orders([good, bad]))

    assert "Overall Status: INVALID" in text
    assert "Total Orders Checked: 2" in text
    assert "Valid Orders: 1" in text
    assert f"[{bad['orderNumber']}] LineItem[0]: qty must be > 0, got -2" in text
