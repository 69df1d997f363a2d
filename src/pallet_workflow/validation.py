"""Structural and business-rule validators.

Validators take a model or its plain JSON record (camelCase keys, as found
in an export) and return a ``ValidationReport``. They never raise, so a whole
collection can be checked in one pass.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .models import (
    PLUS_SIZES,
    ArtFileSource,
    ArtFileType,
    ArtOverallStatus,
    ArtStatus,
    DtfSize,
    FulfillmentMethod,
    LeadSource,
    LeadTemperature,
    OrderStatus,
    ProductionMethod,
    ProofStatus,
    RevisionAction,
    StitchCountTier,
)

Record = Mapping[str, Any]

LINE_ITEM_FLAG_TIMESTAMPS = (
    ("ordered", "orderedAt"),
    ("received", "receivedAt"),
    ("decorated", "decoratedAt"),
    ("packed", "packedAt"),
)
INVOICE_FLAG_TIMESTAMPS = (
    ("invoiceSent", "invoiceSentAt"),
    ("paymentReceived", "paymentReceivedAt"),
)


@dataclass
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def extend(self, other: "ValidationReport") -> "ValidationReport":
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self


@dataclass
class OrderValidationResult:
    order_id: str
    order_number: str
    report: ValidationReport

    @property
    def valid(self) -> bool:
        return self.report.valid


@dataclass
class CollectionValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    order_results: list[OrderValidationResult] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def _as_record(value: BaseModel | Record) -> Record | None:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Mapping):
        return value
    return None


def _values(enum_cls: type[Enum]) -> frozenset[str]:
    return frozenset(member.value for member in enum_cls)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _check_enum(errors: list[str], prefix: str, key: str, value: Any, enum_cls: type[Enum], *, optional: bool = False) -> None:
    if value is None and optional:
        return
    if not isinstance(value, str) or value not in _values(enum_cls):
        errors.append(f"{prefix}Invalid {key} {value!r}")


def _check_required_str(errors: list[str], prefix: str, record: Record, *keys: str) -> None:
    for key in keys:
        value = record.get(key)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{prefix}Missing {key}")


def _check_bool(errors: list[str], prefix: str, record: Record, *keys: str, nullable: bool = False) -> None:
    for key in keys:
        value = record.get(key)
        if nullable and value is None:
            continue
        if not isinstance(value, bool):
            kind = "boolean or null" if nullable else "boolean"
            errors.append(f"{prefix}{key} must be {kind}")


def _check_number(
    errors: list[str],
    prefix: str,
    record: Record,
    key: str,
    *,
    minimum: float | None = 0,
    exclusive: bool = False,
    optional: bool = False,
    integer: bool = False,
) -> None:
    value = record.get(key)
    if value is None and optional:
        return
    if not _is_number(value) or (integer and not float(value).is_integer()):
        errors.append(f"{prefix}Missing {key}" if value is None else f"{prefix}{key} must be a number")
        return
    if minimum is not None and (value <= minimum if exclusive else value < minimum):
        bound = ">" if exclusive else ">="
        errors.append(f"{prefix}{key} must be {bound} {minimum}, got {value}")


def _check_list(errors: list[str], prefix: str, record: Record, key: str) -> list[Any]:
    value = record.get(key)
    if not isinstance(value, list):
        errors.append(f"{prefix}{key} must be an array")
        return []
    return value


def _not_an_object(label: str) -> ValidationReport:
    return ValidationReport(errors=[f"{label} must be an object"])


def validate_line_item(item: BaseModel | Record, index: int = 0) -> ValidationReport:
    record = _as_record(item)
    label = f"LineItem[{index}]"
    if record is None:
        return _not_an_object(label)
    prefix = f"{label}: "
    errors: list[str] = []

    _check_required_str(errors, prefix, record, "id", "itemNumber", "name", "color", "size")
    _check_number(errors, prefix, record, "qty", exclusive=True, integer=True)
    _check_enum(errors, prefix, "decorationType", record.get("decorationType"), ProductionMethod)
    _check_number(errors, prefix, record, "decorationPlacements", exclusive=True, integer=True)
    _check_number(errors, prefix, record, "cost")
    _check_number(errors, prefix, record, "price")
    _check_number(errors, prefix, record, "screenPrintColors", optional=True, integer=True)
    _check_enum(errors, prefix, "stitchCountTier", record.get("stitchCountTier"), StitchCountTier, optional=True)
    _check_enum(errors, prefix, "dtfSize", record.get("dtfSize"), DtfSize, optional=True)
    _check_bool(errors, prefix, record, "ordered", "received", "decorated", "packed")

    plus = record.get("isPlusSize")
    if plus is not None:
        if not isinstance(plus, bool):
            errors.append(f"{prefix}isPlusSize must be boolean")
        elif isinstance(record.get("size"), str) and plus != (record["size"].strip().upper() in PLUS_SIZES):
            errors.append(f"{prefix}isPlusSize does not match size {record['size']!r}")

    if record.get("packed") is True and record.get("decorated") is not True:
        errors.append(f"{prefix}packed without being decorated")
    for flag, stamp in LINE_ITEM_FLAG_TIMESTAMPS:
        if record.get(flag) is True and not _present(record.get(stamp)):
            errors.append(f"{prefix}{flag} is set but {stamp} is missing")

    return ValidationReport(errors=errors)


def validate_lead_info(lead_info: BaseModel | Record | None, *, is_lead_status: bool = False) -> ValidationReport:
    if lead_info is None:
        if is_lead_status:
            return ValidationReport(errors=["Lead status order missing leadInfo"])
        return ValidationReport()
    record = _as_record(lead_info)
    if record is None:
        return _not_an_object("leadInfo")
    prefix = "LeadInfo: "
    errors: list[str] = []
    _check_enum(errors, prefix, "source", record.get("source"), LeadSource)
    _check_enum(errors, prefix, "temperature", record.get("temperature"), LeadTemperature)
    _check_number(errors, prefix, record, "estimatedQuantity", integer=True)
    _check_number(errors, prefix, record, "estimatedValue")
    _check_enum(errors, prefix, "decorationInterest", record.get("decorationInterest"), ProductionMethod, optional=True)
    if not _present(record.get("contactedAt")):
        errors.append(f"{prefix}Missing contactedAt")
    competitor = record.get("competitorQuoted")
    if competitor is not None and not isinstance(competitor, bool):
        errors.append(f"{prefix}competitorQuoted must be boolean")
    return ValidationReport(errors=errors)


def validate_prep_status(prep_status: BaseModel | Record) -> ValidationReport:
    record = _as_record(prep_status)
    if record is None:
        return _not_an_object("prepStatus")
    errors: list[str] = []
    _check_bool(errors, "PrepStatus: ", record, "gangSheetCreated", "artworkDigitized", "screensBurned", nullable=True)
    return ValidationReport(errors=errors)


def validate_fulfillment_status(fulfillment: BaseModel | Record) -> ValidationReport:
    record = _as_record(fulfillment)
    if record is None:
        return _not_an_object("fulfillment")
    prefix = "FulfillmentStatus: "
    errors: list[str] = []
    _check_enum(errors, prefix, "method", record.get("method"), FulfillmentMethod, optional=True)
    _check_bool(errors, prefix, record, "shippingLabelPrinted", "customerPickedUp")
    return ValidationReport(errors=errors)


def validate_invoice_status(invoice_status: BaseModel | Record) -> ValidationReport:
    record = _as_record(invoice_status)
    if record is None:
        return _not_an_object("invoiceStatus")
    prefix = "InvoiceStatus: "
    errors: list[str] = []
    _check_bool(errors, prefix, record, "invoiceCreated", "invoiceSent", "paymentReceived")
    _check_number(errors, prefix, record, "invoiceAmount", optional=True)
    for flag, stamp in INVOICE_FLAG_TIMESTAMPS:
        if record.get(flag) is True and not _present(record.get(stamp)):
            errors.append(f"{prefix}{flag} is set but {stamp} is missing")
    return ValidationReport(errors=errors)


def validate_closeout_checklist(checklist: BaseModel | Record) -> ValidationReport:
    record = _as_record(checklist)
    if record is None:
        return _not_an_object("closeoutChecklist")
    errors: list[str] = []
    _check_bool(errors, "CloseoutChecklist: ", record, "filesSaved", "canvaArchived", "summaryUploaded")
    return ValidationReport(errors=errors)


def validate_art_file(art_file: BaseModel | Record, context: str) -> ValidationReport:
    record = _as_record(art_file)
    if record is None:
        return _not_an_object(context)
    prefix = f"{context}: "
    errors: list[str] = []
    _check_required_str(errors, prefix, record, "id", "fileName", "fileUrl")
    _check_enum(errors, prefix, "fileType", record.get("fileType"), ArtFileType)
    _check_enum(errors, prefix, "uploadedBy", record.get("uploadedBy"), ArtFileSource)
    _check_bool(errors, prefix, record, "isMarkup")
    return ValidationReport(errors=errors)


def validate_art_proof(proof: BaseModel | Record, placement_id: str, index: int) -> ValidationReport:
    label = f"Placement[{placement_id}].Proof[{index}]"
    record = _as_record(proof)
    if record is None:
        return _not_an_object(label)
    prefix = f"{label}: "
    report = ValidationReport()
    _check_required_str(report.errors, prefix, record, "id", "proofName")
    _check_number(report.errors, prefix, record, "version", minimum=1, integer=True)
    _check_enum(report.errors, prefix, "status", record.get("status"), ProofStatus)
    for key in ("files", "markupFiles"):
        for i, art_file in enumerate(_check_list(report.errors, prefix, record, key)):
            report.extend(validate_art_file(art_file, f"{label}.{key}[{i}]"))
    if record.get("status") == ProofStatus.SENT.value and not _present(record.get("sentToCustomerAt")):
        report.errors.append(f"{prefix}status is Sent but sentToCustomerAt is missing")
    return report


def validate_art_placement(placement: BaseModel | Record, index: int) -> ValidationReport:
    label = f"Placement[{index}]"
    record = _as_record(placement)
    if record is None:
        return _not_an_object(label)
    prefix = f"{label}: "
    report = ValidationReport()
    _check_required_str(report.errors, prefix, record, "id", "location")
    _check_number(report.errors, prefix, record, "colorCount", optional=True, integer=True)
    proofs = _check_list(report.errors, prefix, record, "proofs")
    placement_id = record.get("id") or str(index)
    for i, proof in enumerate(proofs):
        report.extend(validate_art_proof(proof, placement_id, i))
    versions = [p.get("version") for p in proofs if isinstance(p, Mapping) and _is_number(p.get("version"))]
    duplicated = sorted(v for v, count in Counter(versions).items() if count > 1)
    if duplicated:
        report.errors.append(f"{prefix}duplicate proof versions {duplicated}")
    return report


def validate_art_confirmation(art_confirmation: BaseModel | Record) -> ValidationReport:
    record = _as_record(art_confirmation)
    if record is None:
        return _not_an_object("artConfirmation")
    prefix = "artConfirmation: "
    report = ValidationReport()
    _check_enum(report.errors, prefix, "overallStatus", record.get("overallStatus"), ArtOverallStatus)

    placements = _check_list(report.errors, prefix, record, "placements")
    for i, placement in enumerate(placements):
        report.extend(validate_art_placement(placement, i))
    for i, art_file in enumerate(_check_list(report.errors, prefix, record, "clientFiles")):
        report.extend(validate_art_file(art_file, f"clientFiles[{i}]"))
    for i, revision in enumerate(_check_list(report.errors, prefix, record, "revisionHistory")):
        if not isinstance(revision, Mapping):
            report.errors.append(f"revisionHistory[{i}] must be an object")
            continue
        _check_enum(report.errors, f"revisionHistory[{i}]: ", "action", revision.get("action"), RevisionAction)
        _check_required_str(report.errors, f"revisionHistory[{i}]: ", revision, "description", "performedBy")

    all_approved = bool(placements) and all(
        isinstance(p, Mapping)
        and isinstance(p.get("proofs"), list)
        and any(isinstance(proof, Mapping) and proof.get("status") == ProofStatus.APPROVED.value for proof in p["proofs"])
        for p in placements
    )
    if all_approved and record.get("overallStatus") != ArtOverallStatus.APPROVED.value:
        report.warnings.append(f"{prefix}every placement has an approved proof but overallStatus is {record.get('overallStatus')}")
    if record.get("overallStatus") == ArtOverallStatus.APPROVED.value and not _present(record.get("completedAt")):
        report.errors.append(f"{prefix}overallStatus is Approved but completedAt is missing")
    return report


def validate_order(order: BaseModel | Record) -> OrderValidationResult:
    record = _as_record(order)
    if record is None:
        return OrderValidationResult("", "", _not_an_object("order"))

    report = ValidationReport()
    errors = report.errors
    _check_required_str(errors, "", record, "id", "orderNumber", "customer")
    _check_enum(errors, "", "status", record.get("status"), OrderStatus)
    _check_enum(errors, "", "artStatus", record.get("artStatus"), ArtStatus)
    if not _present(record.get("createdAt")):
        errors.append("Missing createdAt")
    _check_bool(errors, "", record, "rushOrder", "isArchived")
    _check_number(errors, "", record, "version", minimum=1, integer=True)

    status = record.get("status")
    line_items = _check_list(errors, "", record, "lineItems")
    for i, item in enumerate(line_items):
        report.extend(validate_line_item(item, i))

    report.extend(validate_lead_info(record.get("leadInfo"), is_lead_status=status == OrderStatus.LEAD.value))

    sections = (
        ("prepStatus", validate_prep_status),
        ("fulfillment", validate_fulfillment_status),
        ("invoiceStatus", validate_invoice_status),
        ("closeoutChecklist", validate_closeout_checklist),
        ("artConfirmation", validate_art_confirmation),
    )
    for key, validator in sections:
        if record.get(key) is None:
            errors.append(f"Missing {key}")
        else:
            report.extend(validator(record[key]))

    for i, entry in enumerate(_check_list(errors, "", record, "history")):
        if not isinstance(entry, Mapping) or not _present(entry.get("timestamp")) or not _present(entry.get("action")):
            errors.append(f"history[{i}] must have timestamp and action")

    if record.get("isArchived") is True and not _present(record.get("archivedAt")):
        errors.append("isArchived is set but archivedAt is missing")
    if status == OrderStatus.CLOSED.value and not _present(record.get("closedAt")):
        errors.append("Closed order missing closedAt")
    _check_enum(errors, "", "reopenedFrom", record.get("reopenedFrom"), OrderStatus, optional=True)

    if status != OrderStatus.LEAD.value:
        if not _present(record.get("dueDate")):
            report.warnings.append("No due date set")
        if not line_items:
            report.warnings.append("No line items for non-Lead order")
    if not _present(record.get("customerEmail")):
        report.warnings.append("No customer email")

    return OrderValidationResult(
        order_id=str(record.get("id") or ""),
        order_number=str(record.get("orderNumber") or ""),
        report=report,
    )


def _duplicates(values: Iterable[Any]) -> list[str]:
    return sorted(str(value) for value, count in Counter(values).items() if count > 1 and value)


def validate_orders(orders: Iterable[BaseModel | Record]) -> CollectionValidationReport:
    """Validate every order and check ids / order numbers are unique across the set."""
    results = [validate_order(order) for order in orders]
    collection = CollectionValidationReport(order_results=results)

    duplicate_ids = _duplicates(result.order_id for result in results)
    if duplicate_ids:
        collection.errors.append(f"Duplicate order IDs found: {', '.join(duplicate_ids)}")
    duplicate_numbers = _duplicates(result.order_number for result in results)
    if duplicate_numbers:
        collection.errors.append(f"Duplicate order numbers found: {', '.join(duplicate_numbers)}")

    for result in results:
        label = result.order_number or result.order_id or "?"
        collection.errors.extend(f"[{label}] {error}" for error in result.report.errors)
        collection.warnings.extend(f"[{label}] {warning}" for warning in result.report.warnings)
    return collection


def format_report(collection: CollectionValidationReport) -> str:
    results = collection.order_results
    lines = [
        "PALLET DATA VALIDATION REPORT",
        f"Overall Status: {'VALID' if collection.valid else 'INVALID'}",
        f"Total Orders Checked: {len(results)}",
        f"Valid Orders: {sum(1 for r in results if r.valid)}",
        f"Invalid Orders: {sum(1 for r in results if not r.valid)}",
    ]
    if collection.errors:
        lines.append("")
        lines.append("ERRORS")
        lines.extend(f"- {error}" for error in collection.errors)
    if collection.warnings:
        lines.append("")
        lines.append("WARNINGS")
        lines.extend(f"- {warning}" for warning in collection.warnings)
    return "\n".join(lines) + "\n"
