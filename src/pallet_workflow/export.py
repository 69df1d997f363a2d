"""Whole-database export and import.

An export is one JSON document::

    {"metadata": {...}, "orders": [<order record>, ...], "schema": {...}}

``metadata.fingerprint`` is the SHA-256 of the RFC 8785 canonical form of
``orders`` so a tampered or truncated file is caught on import.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from datetime import datetime
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .canonical import fingerprint
from .errors import OrderValidationError, SchemaVersionError
from .models import Order
from .settings import WorkflowSettings
from .store import Clock, OrderStore, utc_now
from .validation import ValidationReport, validate_orders

logger = logging.getLogger(__name__)


def _app_version() -> str:
    try:
        return version("pallet-workflow")
    except PackageNotFoundError:
        return "0.0.0"


def export_database(store: OrderStore, *, exported_at: datetime | None = None) -> dict[str, Any]:
    orders = store.list_orders(include_archived=True)
    records = [order.to_record() for order in orders]
    customers = {order.customer.strip().casefold() for order in orders if order.customer.strip()}
    metadata = {
        "version": _app_version(),
        "schemaVersion": store.settings.schema_version,
        "exportedAt": (exported_at or utc_now()).isoformat(),
        "totalOrders": len(records),
        "totalLineItems": sum(len(order.line_items) for order in orders),
        "totalCustomers": len(customers),
        "fingerprint": fingerprint(records),
    }
    logger.info("Exported %d orders (%s)", len(records), metadata["fingerprint"][:12])
    return {
        "metadata": metadata,
        "orders": records,
        "schema": Order.model_json_schema(by_alias=True),
    }


def import_database(
    payload: Mapping[str, Any],
    *,
    settings: WorkflowSettings | None = None,
    clock: Clock | None = None,
) -> OrderStore:
    """Build an ``OrderStore`` from an export document.

    Raises:
        SchemaVersionError: If ``metadata.schemaVersion`` is missing or differs
            from the configured schema version.
        OrderValidationError: If any order record fails validation, ids or
            order numbers repeat, or the fingerprint does not match.
    """
    settings = settings or WorkflowSettings()
    metadata = payload.get("metadata")
    found = metadata.get("schemaVersion") if isinstance(metadata, Mapping) else None
    if found != settings.schema_version:
        raise SchemaVersionError(settings.schema_version, found)

    records = payload.get("orders")
    if not isinstance(records, list):
        raise OrderValidationError(ValidationReport(errors=["orders must be an array"]), context="import")

    collection = validate_orders(records)
    errors = list(collection.errors)
    expected_fingerprint = metadata.get("fingerprint")
    if expected_fingerprint is not None and expected_fingerprint != fingerprint(records):
        errors.append("Fingerprint mismatch: orders were modified after export")
    if errors:
        raise OrderValidationError(ValidationReport(errors=errors, warnings=collection.warnings), context="import")

    try:
        orders = [Order.model_validate(record) for record in records]
    except ValidationError as exc:
        messages = [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()]
        raise OrderValidationError(ValidationReport(errors=messages), context="import") from exc

    if collection.warnings:
        logger.warning("Imported data has %d warning(s)", len(collection.warnings))
    logger.info("Imported %d orders", len(orders))
    return OrderStore(orders, settings=settings, clock=clock)


def write_export(store: OrderStore, path: Path) -> dict[str, Any]:
    """Export ``store`` to ``path`` atomically and return the written document."""
    payload = export_database(store)
    _atomic_write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
    return payload


def read_export(path: Path) -> dict[str, Any]:
    """Load an export document.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is empty or is not a JSON object.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Export file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        raise ValueError(f"Export file {path} is empty")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Export file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Export file {path} must contain a JSON object")
    return payload


def _atomic_write_text(path: Path, content: str) -> None:
    """Write to a temporary sibling file, then rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
