"""Pydantic request/response schemas for the Rentals API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class QuantitiesSchema(BaseModel):
    total_quantity: int
    available_quantity: int
    reserved_quantity: int
    free_for_reservation: int


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
class AddItemRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    total_quantity: int = Field(ge=1)
    category: str = "uncategorized"
    item_id: str | None = None
    description: str | None = None
    daily_rate: float = Field(ge=0, default=0.0)
    image_url: str | None = None


class UpdateItemRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    category: str | None = None
    description: str | None = None
    daily_rate: float | None = Field(default=None, ge=0)
    image_url: str | None = None


class QuantityRequest(BaseModel):
    quantity: int = Field(ge=1)
    operation_id: str | None = None


class OperationRequest(BaseModel):
    operation_id: str | None = None


class AdjustTotalRequest(BaseModel):
    new_total: int = Field(ge=1)
    operation_id: str | None = None


class ItemIdResponse(BaseModel):
    item_id: str


class InventoryItemResponse(BaseModel):
    item_id: str
    name: str
    category: str | None = None
    description: str | None = None
    daily_rate: float = 0.0
    image_url: str | None = None
    predefined: bool = False
    total_quantity: int
    available_quantity: int
    reserved_quantity: int
    free_for_reservation: int
    updated_at: datetime | None = None


class InventoryListResponse(BaseModel):
    items: list[InventoryItemResponse]


class AvailabilityResponse(BaseModel):
    item_id: str
    quantity: int
    available: bool


class InventoryLevelResponse(BaseModel):
    item_id: str
    name: str | None = None
    category: str | None = None
    total_quantity: int
    available_quantity: int
    reserved_quantity: int
    free_for_reservation: int


class LedgerResultResponse(BaseModel):
    item_id: str
    operation: str
    operation_id: str | None = None
    duplicate: bool = False
    quantities: QuantitiesSchema | None = None


class BootstrapResponse(BaseModel):
    created: list[str]


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------
class BookingLineSchema(BaseModel):
    item_id: str
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0, default=0.0)
    item_name: str | None = None


class PackageLineSchema(BaseModel):
    item_id: str
    quantity: int = Field(ge=1)


class PackageSchema(BaseModel):
    package_id: str
    name: str
    price: float = Field(ge=0, default=0.0)
    items: list[PackageLineSchema] = Field(default_factory=list)


class CreateBookingRequest(BaseModel):
    user_id: str
    start_date: date
    end_date: date
    items: list[BookingLineSchema] = Field(default_factory=list)
    package: PackageSchema | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    venue: str | None = None


class BookingIdResponse(BaseModel):
    booking_id: str


class ChangeStatusRequest(BaseModel):
    status: str


class ItemFailureSchema(BaseModel):
    item_id: str
    step: str
    error: str | None = None
    message: str | None = None


class StatusChangeResponse(BaseModel):
    booking_id: str
    target_status: str
    status_persisted: bool
    succeeded: list[str]
    failed: list[ItemFailureSchema]


class RecordPaymentRequest(BaseModel):
    amount: float = Field(gt=0)
    recorded_by: str | None = None
    method: str = "manual"
    reference: str | None = None


class CompletePaymentRequest(BaseModel):
    recorded_by: str | None = None


class RefundRequest(BaseModel):
    amount: float = Field(gt=0)
    recorded_by: str | None = None
    reason: str | None = None


class PayPalCaptureRequest(BaseModel):
    order_id: str
    transaction_id: str
    amount: float = Field(gt=0)
    payer_email: str | None = None


class PayPalCaptureResponse(BaseModel):
    recorded: bool


class PaymentProofRequest(BaseModel):
    filename: str
    content: str  # base64


class BookingResponse(BaseModel):
    booking_id: str
    user_id: str
    status: str
    start_date: date
    end_date: date
    customer_name: str | None = None
    customer_email: str | None = None
    venue: str | None = None
    items: list[dict]
    package: dict | None = None
    total_amount: float
    amount_paid: float
    outstanding_balance: float
    payment_status: str
    payment_history: list[dict]
    payment_proof: dict | None = None


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]


# ---------------------------------------------------------------------------
# Damage reports
# ---------------------------------------------------------------------------
class ReportDamageRequest(BaseModel):
    item_ref: str
    severity: str
    description: str | None = None
    booking_id: str | None = None
    estimated_repair_cost: float = Field(ge=0, default=0.0)
    estimated_repair_time: str | None = None
    penalty_fee: float = Field(ge=0, default=0.0)
    customer_name: str | None = None
    customer_email: str | None = None
    reported_by: str | None = None
    notify_customer: bool = True


class DamageReportIdResponse(BaseModel):
    report_id: str


class CompleteRepairRequest(BaseModel):
    repair_cost: float | None = Field(default=None, ge=0)


class DamageReportResponse(BaseModel):
    report_id: str
    item_id: str
    item_name: str
    booking_id: str | None = None
    severity: str
    status: str
    description: str | None = None
    estimated_repair_cost: float | None = None
    estimated_repair_time: str | None = None
    repair_cost: float | None = None
    penalty_fee: float | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    notification_status: str | None = None
    notification_error: str | None = None
    reported_at: datetime | None = None
    repaired_at: datetime | None = None
    written_off_at: datetime | None = None


class DamageReportListResponse(BaseModel):
    reports: list[DamageReportResponse]


class DeleteReportResponse(BaseModel):
    report_id: str
    restored: bool


class DamageSummaryResponse(BaseModel):
    total_reports: int
    by_status: dict[str, int]
    open_estimated_cost: float
    total_repair_cost: float
    total_penalty_fees: float


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------
class CreateCollectionRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    price: float = Field(ge=0, default=0.0)
    assigned_users: list[str] = Field(default_factory=list)
    created_by: str | None = None


class CollectionIdResponse(BaseModel):
    collection_id: str


class CollectionPriceRequest(BaseModel):
    price: float = Field(ge=0)


class AssignUsersRequest(BaseModel):
    assigned_users: list[str]


class UnlockCollectionRequest(BaseModel):
    user_email: str
    reference: str | None = None


class UnlockCollectionResponse(BaseModel):
    unlocked: bool


class CollectionFileRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    filename: str
    content: str  # base64
    uploader: str | None = None


class CollectionResponse(BaseModel):
    collection_id: str
    name: str
    description: str | None = None
    price: float
    is_premium: bool
    assigned_users: list[str]
    unlocked_by: list[dict]
    files: list[dict]
    file_count: int
    created_by: str | None = None
    created_at: datetime | None = None


class CollectionListResponse(BaseModel):
    collections: list[CollectionResponse]


class UserCollectionSchema(BaseModel):
    collection_id: str
    name: str
    description: str | None = None
    price: float
    is_premium: bool
    has_access: bool
    file_count: int


class UserCollectionListResponse(BaseModel):
    collections: list[UserCollectionSchema]


class CollectionFilesResponse(BaseModel):
    collection_id: str
    files: list[dict]


class DeleteCollectionResponse(BaseModel):
    collection_id: str
    deleted: bool


# ---------------------------------------------------------------------------
# ID verification
# ---------------------------------------------------------------------------
class SubmitVerificationRequest(BaseModel):
    user_email: str
    user_name: str | None = None
    first_name: str
    middle_name: str | None = None
    last_name: str
    suffix: str | None = None
    id_type: str
    id_number: str
    date_of_birth: date | None = None
    address: str | None = None
    phone_number: str | None = None
    id_front: str | None = None  # base64
    id_front_filename: str | None = None
    id_back: str | None = None
    id_back_filename: str | None = None
    selfie: str | None = None
    selfie_filename: str | None = None


class ApproveVerificationRequest(BaseModel):
    reviewed_by: str | None = None
    notes: str | None = None


class RejectVerificationRequest(BaseModel):
    reasons: list[str] = Field(min_length=1)
    reviewed_by: str | None = None


class VerificationResponse(BaseModel):
    verification_id: str
    user_email: str
    user_name: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    suffix: str | None = None
    id_type: str | None = None
    id_number: str | None = None
    date_of_birth: date | None = None
    address: str | None = None
    phone_number: str | None = None
    id_front: dict | None = None
    id_back: dict | None = None
    selfie: dict | None = None
    status: str
    admin_notes: str | None = None
    reviewed_by: str | None = None
    resubmission_count: int
    previous_status: str | None = None
    submitted_at: datetime | None = None
    verified_at: datetime | None = None


class VerificationListResponse(BaseModel):
    verifications: list[VerificationResponse]
