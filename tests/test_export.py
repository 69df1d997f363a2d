import json
from pathlib import Path

import pytest

from conftest import FixedClock, create_lead, create_quote, drive_to, make_item

from pallet_workflow import (
    OrderStatus,
    OrderStore,
    OrderValidationError,
    SchemaVersionError,
    export_database,
    import_database,
    read_export,
    write_export,
)
from pallet_workflow.canonical import fingerprint, to_canonical_json


@pytest.fixture
def populated(store: OrderStore) -> OrderStore:
    quote = create_quote(store)
    store.add_line_items(quote.id, [make_item(), make_item(color="White", size="2XL")])
    drive_to(store, quote.id, OrderStatus.PRODUCTION)
    create_quote(store, customer="Hilltop Hardware")
    create_lead(store)
    return store


def test_canonical_json_is_key_order_independent() -> None:
    left = {"b": 2, "a": 1, "nested": {"z": 9, "y": [3, 2, 1]}}
    right = {"nested": {"y": [3, 2, 1], "z": 9}, "a": 1, "b": 2}
    assert to_canonical_json(left) == to_canonical_json(right)
    assert fingerprint(left) == fingerprint(right)


def test_export_metadata(populated: OrderStore, clock: FixedClock) -> None:
    payload = export_database(populated, exported_at=clock.now)
    metadata = payload["metadata"]

    assert metadata["schemaVersion"] == "2.0.0"
    assert metadata["exportedAt"] == clock.now.isoformat()
    assert metadata["totalOrders"] == 3
    assert metadata["totalLineItems"] == 2
    assert metadata["totalCustomers"] == 3
    assert metadata["fingerprint"] == fingerprint(payload["orders"])
    assert payload["orders"][0]["orderNumber"] == "TBD-2025-0001"
    assert "lineItems" in payload["schema"]["properties"]


def test_import_restores_equal_store(populated: OrderStore, clock: FixedClock) -> None:
    payload = json.loads(json.dumps(export_database(populated)))
    restored = import_database(payload, clock=clock)

    assert len(restored) == len(populated)
    for order in populated.list_orders(include_archived=True):
        assert restored.get(order.id) == order
    assert create_quote(restored, customer="New Customer").order_number == "TBD-2025-0003"


def test_import_rejects_other_schema_versions(populated: OrderStore) -> None:
    payload = export_database(populated)
    payload["metadata"]["schemaVersion"] = "1.0.0"
    with pytest.raises(SchemaVersionError):
        import_database(payload)
    with pytest.raises(SchemaVersionError):
        import_database({"orders": []})


def test_import_rejects_invalid_records(populated: OrderStore) -> None:
    payload = export_database(populated)
    payload["orders"][0]["lineItems"][0]["qty"] = 0
    payload["metadata"]["fingerprint"] = fingerprint(payload["orders"])
    with pytest.raises(OrderValidationError) as excinfo:
        import_database(payload)
    assert any("qty must be > 0" in error for error in excinfo.value.report.errors)


def test_import_detects_tampering(populated: OrderStore) -> None:
    payload = export_database(populated)
    payload["orders"][1]["customer"] = "Somebody Else"
    with pytest.raises(OrderValidationError) as excinfo:
        import_database(payload)
    assert "Fingerprint mismatch" in excinfo.value.report.errors[0]


def test_write_and_read_export(populated: OrderStore, tmp_path: Path) -> None:
    path = tmp_path / "exports" / "pallet.json"
    written = write_export(populated, path)
    assert read_export(path) == json.loads(json.dumps(written))
    assert not list(path.parent.glob("*.tmp"))


def test_read_export_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_export(tmp_path / "missing.json")
    empty = tmp_path / "empty.json"
    empty.write_text("  ", encoding="utf-8")
    with pytest.raises(ValueError):
        read_export(empty)
    array = tmp_path / "array.json"
    array.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_export(array)
