from importlib.metadata import PackageNotFoundError, version

from .errors import (
    ConflictError,
    DuplicateError,
    InvalidTransitionError,
    NotFoundError,
    OrderValidationError,
    PalletWorkflowError,
    SchemaVersionError,
)
from .export import export_database, import_database, read_export, write_export
from .line_items import SkuConfig, SkuPreview, build_line_item, line_items_from_sku, preview_line_items
from .models import (
    ArtConfirmation,
    ArtFile,
    ArtFileSource,
    ArtFileType,
    ArtOverallStatus,
    ArtPlacement,
    ArtProof,
    ArtRevision,
    ArtStatus,
    CloseoutChecklist,
    CreationMode,
    DtfSize,
    FulfillmentMethod,
    FulfillmentStatus,
    InvoiceStatus,
    LeadInfo,
    LeadSource,
    LeadTemperature,
    LineItem,
    Order,
    OrderDraft,
    OrderStatus,
    PrepStatus,
    ProductionMethod,
    ProofStatus,
    RevisionAction,
    StatusChangeLog,
    StitchCountTier,
)
from .pricing import PriceBreakdown, PriceFee, calculate_price, price_breakdown
from .settings import WorkflowSettings
from .store import DeadOpportunityResult, OrderStore
from .validation import (
    CollectionValidationReport,
    OrderValidationResult,
    ValidationReport,
    format_report,
    validate_order,
    validate_orders,
)
from .workflow import (
    ALLOWED_TRANSITIONS,
    ORDER_STAGES,
    REOPEN_TARGETS,
    STAGE_NUMBER,
    AdvanceOptions,
    TransitionCheck,
    check_transition,
    required_prep_tasks,
)


def get_version() -> str:
    try:
        return version("pallet-workflow")
    except PackageNotFoundError:
        return "0.0.0"


__all__ = [
    "ALLOWED_TRANSITIONS",
    "AdvanceOptions",
    "ArtConfirmation",
    "ArtFile",
    "ArtFileSource",
    "ArtFileType",
    "ArtOverallStatus",
    "ArtPlacement",
    "ArtProof",
    "ArtRevision",
    "ArtStatus",
    "CloseoutChecklist",
    "CollectionValidationReport",
    "ConflictError",
    "CreationMode",
    "DeadOpportunityResult",
    "DtfSize",
    "DuplicateError",
    "FulfillmentMethod",
    "FulfillmentStatus",
    "InvalidTransitionError",
    "InvoiceStatus",
    "LeadInfo",
    "LeadSource",
    "LeadTemperature",
    "LineItem",
    "NotFoundError",
    "ORDER_STAGES",
    "Order",
    "OrderDraft",
    "OrderStatus",
    "OrderStore",
    "OrderValidationError",
    "OrderValidationResult",
    "PalletWorkflowError",
    "PrepStatus",
    "PriceBreakdown",
    "PriceFee",
    "ProductionMethod",
    "ProofStatus",
    "REOPEN_TARGETS",
    "RevisionAction",
    "STAGE_NUMBER",
    "SchemaVersionError",
    "SkuConfig",
    "SkuPreview",
    "StatusChangeLog",
    "StitchCountTier",
    "TransitionCheck",
    "ValidationReport",
    "WorkflowSettings",
    "build_line_item",
    "calculate_price",
    "check_transition",
    "export_database",
    "format_report",
    "get_version",
    "import_database",
    "line_items_from_sku",
    "preview_line_items",
    "price_breakdown",
    "read_export",
    "required_prep_tasks",
    "validate_order",
    "validate_orders",
    "write_export",
]
