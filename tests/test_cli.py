import json
import subprocess
import sys
from pathlib import Path

import pytest

from conftest import create_quote, make_item

from pallet_workflow import OrderStore, write_export
from pallet_workflow.__main__ import main


def test_stages_lists_every_stage(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["stages"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 12
    assert out[0].split()[:2] == ["0", "Lead"]
    assert "Closed" in out[-1]


def test_price_prints_breakdown(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["price", "--cost", "10", "--method", "DTF", "--size", "2XL", "--dtf-size", "Large"]) == 0
    out = capsys.readouterr().out
    assert "Large Transfer: 8.00" in out
    assert "2XL+ Surcharge: 2.00" in out
    assert "Unit price: 30.00" in out


def test_price_rejects_negative_cost() -> None:
    assert main(["price", "--cost", "-3"]) == 1


def test_validate_clean_export(store: OrderStore, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    order = create_quote(store)
    store.add_line_items(order.id, [make_item()])
    path = tmp_path / "export.json"
    write_export(store, path)

    assert main(["validate", str(path)]) == 0
    assert "Overall Status: VALID" in capsys.readouterr().out


def test_validate_reports_errors(store: OrderStore, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    create_quote(store)
    create_quote(store, customer="Hilltop Hardware")
    path = tmp_path / "export.json"
    payload = write_export(store, path)
    payload["orders"][1]["orderNumber"] = payload["orders"][0]["orderNumber"]
    payload["metadata"]["schemaVersion"] = "1.0.0"
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert main(["validate", str(path)]) == 1
    out = capsys.readouterr().out
    assert "Overall Status: INVALID" in out
    assert "Duplicate order numbers found: TBD-2025-0001" in out
    assert "Unsupported schemaVersion '1.0.0'" in out


def test_validate_missing_file(tmp_path: Path) -> None:
    assert main(["validate", str(tmp_path / "nope.json")]) == 1


def test_module_entry_point_runs() -> None:
    result = subprocess.run(
        [sys.executable, "-m", "pallet_workflow", "stages"],
        capture_output=True,
        text=True,
        check=False,
    )
    assert result.returncode == 0
    assert "Art Confirmation" in result.stdout
