from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return str(uuid.uuid4())


class OrderStatus(str, Enum):
    LEAD = "Lead"
    QUOTE = "Quote"
    APPROVAL = "Approval"
    ART_CONFIRMATION = "Art Confirmation"
    INVENTORY_ORDER = "Inventory Order"
    PRODUCTION_PREP = "Production Prep"
    INVENTORY_RECEIVED = "Inventory Received"
    PRODUCTION = "Production"
    FULFILLMENT = "Fulfillment"
    INVOICE = "Invoice"
    CLOSEOUT = "Closeout"
    CLOSED = "Closed"


class ArtStatus(str, Enum):
    """Coarse art flag on the order; mirrors ``ArtOverallStatus`` plus ``Pending``."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    SENT_TO_CUSTOMER = "Sent to Customer"
    REVISION_REQUESTED = "Revision Requested"
    APPROVED = "Approved"
    PENDING = "Pending"


class ArtOverallStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    SENT_TO_CUSTOMER = "Sent to Customer"
    REVISION_REQUESTED = "Revision Requested"
    APPROVED = "Approved"


class ProofStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    APPROVED = "Approved"
    REVISION_NEEDED = "Revision Needed"


class ProductionMethod(str, Enum):
    SCREEN_PRINT = "ScreenPrint"
    EMBROIDERY = "Embroidery"
    DTF = "DTF"
    OTHER = "Other"


class StitchCountTier(str, Enum):
    UNDER_8K = "<8k"
    FROM_8K_TO_12K = "8k-12k"
    OVER_12K = "12k+"


class DtfSize(str, Enum):
    STANDARD = "Standard"
    LARGE = "Large"


class LeadSource(str, Enum):
    WEBSITE = "Website"
    REFERRAL = "Referral"
    SOCIAL_MEDIA = "Social Media"
    COLD_CALL = "Cold Call"
    TRADE_SHOW = "Trade Show"
    EMAIL_CAMPAIGN = "Email Campaign"
    OTHER = "Other"


class LeadTemperature(str, Enum):
    HOT = "Hot"
    WARM = "Warm"
    COLD = "Cold"


class FulfillmentMethod(str, Enum):
    SHIPPED = "Shipped"
    PICKED_UP = "PickedUp"


class ArtFileType(str, Enum):
    ORIGINAL = "original"
    PROOF = "proof"
    MARKUP = "markup"
    REFERENCE = "reference"
    FINAL = "final"


class ArtFileSource(str, Enum):
    CLIENT = "client"
    DESIGNER = "designer"
    SYSTEM = "system"


class RevisionAction(str, Enum):
    PLACEMENT_ADDED = "placement_added"
    PLACEMENT_REMOVED = "placement_removed"
    PROOF_CREATED = "proof_created"
    PROOF_SENT = "proof_sent"
    FEEDBACK_RECEIVED = "feedback_received"
    MARKUP_UPLOADED = "markup_uploaded"
    FILE_UPLOADED = "file_uploaded"
    APPROVED = "approved"
    FINAL_APPROVAL = "final_approval"


class CreationMode(str, Enum):
    LEAD = "lead"
    QUOTE = "quote"


PLUS_SIZES = frozenset({"2XL", "3XL", "4XL"})


class WorkflowModel(BaseModel):
    """Base for all persisted records: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class LeadInfo(WorkflowModel):
    source: LeadSource = LeadSource.WEBSITE
    temperature: LeadTemperature = LeadTemperature.WARM
    estimated_quantity: int = Field(default=0, ge=0)
    estimated_value: float = Field(default=0.0, ge=0)
    product_interest: str = ""
    decoration_interest: ProductionMethod | None = None
    event_date: str | None = None
    follow_up_date: str | None = None
    contacted_at: datetime
    last_contact_at: datetime | None = None
    contact_notes: str | None = None
    competitor_quoted: bool | None = None
    decision_maker: str | None = None
    budget: str | None = None


class LineItem(WorkflowModel):
    id: str = Field(default_factory=new_id)
    item_number: str
    name: str
    color: str
    size: str
    qty: int = Field(gt=0)

    decoration_type: ProductionMethod
    decoration_placements: int = Field(default=1, gt=0)
    decoration_description: str | None = None
    screen_print_colors: int | None = Field(default=None, ge=0)
    stitch_count_tier: StitchCountTier | None = None
    dtf_size: DtfSize | None = None
    is_plus_size: bool = False

    cost: float = Field(ge=0)
    price: float = Field(ge=0)

    ordered: bool = False
    ordered_at: datetime | None = None
    received: bool = False
    received_at: datetime | None = None
    decorated: bool = False
    decorated_at: datetime | None = None
    packed: bool = False
    packed_at: datetime | None = None


class PrepStatus(WorkflowModel):
    gang_sheet_created: bool | None = None
    artwork_digitized: bool | None = None
    screens_burned: bool | None = None


class FulfillmentStatus(WorkflowModel):
    method: FulfillmentMethod | None = None
    shipping_label_printed: bool = False
    customer_picked_up: bool = False
    tracking_number: str | None = None
    fulfilled_at: datetime | None = None


class InvoiceStatus(WorkflowModel):
    invoice_number: str | None = None
    invoice_amount: float | None = Field(default=None, ge=0)
    invoice_created: bool = False
    invoice_sent: bool = False
    invoice_sent_at: datetime | None = None
    payment_received: bool = False
    payment_received_at: datetime | None = None
    payment_method: str | None = None


class CloseoutChecklist(WorkflowModel):
    files_saved: bool = False
    canva_archived: bool = False
    summary_uploaded: bool = False


class ArtFile(WorkflowModel):
    id: str = Field(default_factory=new_id)
    file_name: str
    file_type: ArtFileType
    file_url: str
    uploaded_at: datetime
    uploaded_by: ArtFileSource
    is_markup: bool = False
    notes: str | None = None


class ArtProof(WorkflowModel):
    id: str = Field(default_factory=new_id)
    version: int = Field(ge=1)
    proof_name: str
    status: ProofStatus = ProofStatus.DRAFT
    proof_url: str | None = None
    proof_notes: str | None = None
    customer_feedback: str | None = None
    files: list[ArtFile] = Field(default_factory=list)
    markup_files: list[ArtFile] = Field(default_factory=list)
    created_at: datetime
    sent_to_customer_at: datetime | None = None
    feedback_received_at: datetime | None = None


class ArtPlacement(WorkflowModel):
    id: str = Field(default_factory=new_id)
    location: str
    width: str | None = None
    height: str | None = None
    color_count: int = Field(default=1, ge=0)
    description: str | None = None
    proofs: list[ArtProof] = Field(default_factory=list)

    def has_approved_proof(self) -> bool:
        return any(proof.status == ProofStatus.APPROVED for proof in self.proofs)


class ArtRevision(WorkflowModel):
    id: str = Field(default_factory=new_id)
    timestamp: datetime
    action: RevisionAction
    description: str
    performed_by: str
    related_placement_id: str | None = None
    related_proof_id: str | None = None
    related_file_id: str | None = None


class ArtConfirmation(WorkflowModel):
    overall_status: ArtOverallStatus = ArtOverallStatus.NOT_STARTED
    placements: list[ArtPlacement] = Field(default_factory=list)
    client_files: list[ArtFile] = Field(default_factory=list)
    revision_history: list[ArtRevision] = Field(default_factory=list)
    notes: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_contacted_at: datetime | None = None
    customer_contact_method: str | None = None
    customer_approval_name: str | None = None
    customer_approval_date: datetime | None = None
    customer_approval_method: str | None = None

    def all_placements_approved(self) -> bool:
        return bool(self.placements) and all(p.has_approved_proof() for p in self.placements)


class StatusChangeLog(WorkflowModel):
    timestamp: datetime
    action: str
    previous_value: Any = None
    new_value: Any = None
    user_id: str | None = None
    notes: str | None = None


class Order(WorkflowModel):
    id: str = Field(default_factory=new_id)
    order_number: str

    customer: str
    customer_email: str | None = None
    customer_phone: str | None = None
    project_name: str = ""

    status: OrderStatus
    art_status: ArtStatus = ArtStatus.NOT_STARTED

    created_at: datetime
    updated_at: datetime | None = None
    due_date: str = ""
    rush_order: bool = False
    notes: str | None = None

    line_items: list[LineItem] = Field(default_factory=list)
    lead_info: LeadInfo | None = None

    prep_status: PrepStatus = Field(default_factory=PrepStatus)
    fulfillment: FulfillmentStatus = Field(default_factory=FulfillmentStatus)
    invoice_status: InvoiceStatus = Field(default_factory=InvoiceStatus)
    closeout_checklist: CloseoutChecklist = Field(default_factory=CloseoutChecklist)
    art_confirmation: ArtConfirmation = Field(default_factory=ArtConfirmation)

    history: list[StatusChangeLog] = Field(default_factory=list)

    version: int = Field(default=1, ge=1)
    is_archived: bool = False
    archived_at: datetime | None = None
    permanently_archived: bool = False
    closed_at: datetime | None = None
    closed_reason: str | None = None
    reopened_from: OrderStatus | None = None

    def line_item(self, item_id: str) -> LineItem | None:
        return next((item for item in self.line_items if item.id == item_id), None)

    def placement(self, placement_id: str) -> ArtPlacement | None:
        return next((p for p in self.art_confirmation.placements if p.id == placement_id), None)

    @property
    def total_price(self) -> float:
        return round(sum(item.price * item.qty for item in self.line_items), 2)

    @property
    def total_cost(self) -> float:
        return round(sum(item.cost * item.qty for item in self.line_items), 2)


class OrderDraft(WorkflowModel):
    """Caller input for ``OrderStore.create``."""

    mode: CreationMode = CreationMode.QUOTE
    customer: str
    customer_email: str | None = None
    customer_phone: str | None = None
    project_name: str = ""
    due_date: str = ""
    rush_order: bool = False
    notes: str | None = None
    order_number: str | None = None
    lead_info: LeadInfo | None = None
