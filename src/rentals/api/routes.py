"""FastAPI routes for the Rentals domain — inventory, bookings, damage reports, collections, ID checks."""

import json

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from rentals.api.schemas import (
    AddItemRequest,
    AdjustTotalRequest,
    ApproveVerificationRequest,
    AssignUsersRequest,
    AvailabilityResponse,
    BookingIdResponse,
    BookingListResponse,
    BookingResponse,
    BootstrapResponse,
    ChangeStatusRequest,
    CollectionFileRequest,
    CollectionFilesResponse,
    CollectionIdResponse,
    CollectionListResponse,
    CollectionPriceRequest,
    CollectionResponse,
    CompletePaymentRequest,
    CompleteRepairRequest,
    CreateBookingRequest,
    CreateCollectionRequest,
    DamageReportIdResponse,
    DamageReportListResponse,
    DamageReportResponse,
    DamageSummaryResponse,
    DeleteCollectionResponse,
    DeleteReportResponse,
    InventoryItemResponse,
    InventoryLevelResponse,
    InventoryListResponse,
    ItemFailureSchema,
    ItemIdResponse,
    LedgerResultResponse,
    OperationRequest,
    PaymentProofRequest,
    PayPalCaptureRequest,
    PayPalCaptureResponse,
    QuantitiesSchema,
    QuantityRequest,
    RecordPaymentRequest,
    RefundRequest,
    RejectVerificationRequest,
    ReportDamageRequest,
    StatusChangeResponse,
    StatusResponse,
    SubmitVerificationRequest,
    UnlockCollectionRequest,
    UnlockCollectionResponse,
    UpdateItemRequest,
    UserCollectionListResponse,
    UserCollectionSchema,
    VerificationListResponse,
    VerificationResponse,
)
from rentals.booking.billing import (
    AttachPaymentProof,
    CapturePayPalPayment,
    CompletePayment,
    RecordPayment,
    RefundPayment,
)
from rentals.booking.creation import CreateBooking
from rentals.booking.transitions import ChangeBookingStatus
from rentals.damage.repair import (
    CompleteRepair,
    DeleteDamageReport,
    RevertRepair,
    StartRepair,
    WriteOffDamagedItem,
)
from rentals.damage.reporting import ReportDamage
from rentals.errors import LedgerOperationFailed
from rentals.gallery.curation import (
    AddCollectionFile,
    AssignCollectionUsers,
    CreateCollection,
    DeleteCollection,
    RemoveCollectionFile,
    UnlockCollection,
    UpdateCollectionPrice,
)
from rentals.inventory.management import AddItem, BootstrapCatalog, RemoveItem, UpdateItemDetails
from rentals.inventory.operations import (
    AdjustTotalQuantity,
    MarkItemDamaged,
    ReleaseItem,
    ReserveItem,
    RestoreItem,
    ReturnItems,
    WriteOffItem,
)
from rentals.projections.inventory_level import current_level
from rentals.services import (
    get_booking_lifecycle,
    get_collection_library,
    get_damage_workflow,
    get_identity_verifications,
    get_ledger,
)
from rentals.verification.review import ApproveVerification, RejectVerification, SubmitVerification


def _item_response(item) -> InventoryItemResponse:
    return InventoryItemResponse(
        item_id=str(item.id),
        name=item.name,
        category=item.category,
        description=item.description,
        daily_rate=item.daily_rate or 0.0,
        image_url=item.image_url,
        predefined=bool(item.predefined),
        total_quantity=item.total_quantity,
        available_quantity=item.available_quantity,
        reserved_quantity=item.reserved_quantity,
        free_for_reservation=item.free_for_reservation(),
        updated_at=item.updated_at,
    )


def _ledger_response(result) -> LedgerResultResponse:
    if not result.success:
        raise LedgerOperationFailed(result)
    quantities = None
    if result.snapshot is not None:
        quantities = QuantitiesSchema(
            total_quantity=result.snapshot.total_quantity,
            available_quantity=result.snapshot.available_quantity,
            reserved_quantity=result.snapshot.reserved_quantity,
            free_for_reservation=result.snapshot.free_for_reservation,
        )
    return LedgerResultResponse(
        item_id=result.item_id,
        operation=result.operation,
        operation_id=result.operation_id,
        duplicate=result.duplicate,
        quantities=quantities,
    )


def _booking_response(booking) -> BookingResponse:
    return BookingResponse(
        booking_id=str(booking.id),
        user_id=str(booking.user_id),
        status=booking.status,
        start_date=booking.start_date,
        end_date=booking.end_date,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        venue=booking.venue,
        items=booking.line_items(),
        package=booking.package_details(),
        total_amount=booking.total_amount,
        amount_paid=booking.amount_paid,
        outstanding_balance=booking.outstanding_balance(),
        payment_status=booking.payment_status,
        payment_history=booking.history(),
        payment_proof=booking.proof(),
    )


def _report_response(report) -> DamageReportResponse:
    return DamageReportResponse(
        report_id=str(report.id),
        item_id=str(report.item_id),
        item_name=report.item_name,
        booking_id=str(report.booking_id) if report.booking_id else None,
        severity=report.severity,
        status=report.status,
        description=report.description,
        estimated_repair_cost=report.estimated_repair_cost,
        estimated_repair_time=report.estimated_repair_time,
        repair_cost=report.repair_cost,
        penalty_fee=report.penalty_fee,
        customer_name=report.customer_name,
        customer_email=report.customer_email,
        notification_status=report.notification_status,
        notification_error=report.notification_error,
        reported_at=report.reported_at,
        repaired_at=report.repaired_at,
        written_off_at=report.written_off_at,
    )


def _collection_response(collection) -> CollectionResponse:
    return CollectionResponse(
        collection_id=str(collection.id),
        name=collection.name,
        description=collection.description,
        price=collection.price,
        is_premium=collection.is_premium(),
        assigned_users=collection.users(),
        unlocked_by=collection.unlocks(),
        files=collection.file_list(),
        file_count=collection.file_count(),
        created_by=collection.created_by,
        created_at=collection.created_at,
    )


def _verification_response(verification) -> VerificationResponse:
    return VerificationResponse(
        verification_id=str(verification.id),
        user_email=verification.user_email,
        user_name=verification.user_name,
        first_name=verification.first_name,
        middle_name=verification.middle_name,
        last_name=verification.last_name,
        suffix=verification.suffix,
        id_type=verification.id_type,
        id_number=verification.id_number,
        date_of_birth=verification.date_of_birth,
        address=verification.address,
        phone_number=verification.phone_number,
        id_front=verification.image("id_front"),
        id_back=verification.image("id_back"),
        selfie=verification.image("selfie"),
        status=verification.status,
        admin_notes=verification.admin_notes,
        reviewed_by=verification.reviewed_by,
        resubmission_count=verification.resubmission_count or 0,
        previous_status=verification.previous_status,
        submitted_at=verification.submitted_at,
        verified_at=verification.verified_at,
    )


# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.get("", response_model=InventoryListResponse)
async def list_items(available_only: bool = False) -> InventoryListResponse:
    items = get_ledger().list_items(available_only=available_only)
    return InventoryListResponse(items=[_item_response(item) for item in items])


@inventory_router.post("", status_code=201, response_model=ItemIdResponse)
async def add_item(body: AddItemRequest) -> ItemIdResponse:
    command = AddItem(
        name=body.name,
        total_quantity=body.total_quantity,
        category=body.category,
        item_id=body.item_id,
        description=body.description,
        daily_rate=body.daily_rate,
        image_url=body.image_url,
    )
    item_id = current_domain.process(command, asynchronous=False)
    return ItemIdResponse(item_id=item_id)


@inventory_router.post("/bootstrap", response_model=BootstrapResponse)
async def bootstrap_catalog() -> BootstrapResponse:
    created = current_domain.process(BootstrapCatalog(requested_by="api"), asynchronous=False)
    return BootstrapResponse(created=created)


@inventory_router.get("/{item_ref}", response_model=InventoryItemResponse)
async def get_item(item_ref: str) -> InventoryItemResponse:
    return _item_response(get_ledger().get_item(item_ref))


@inventory_router.get("/{item_ref}/availability", response_model=AvailabilityResponse)
async def check_availability(item_ref: str, quantity: int = 1) -> AvailabilityResponse:
    item = get_ledger().get_item(item_ref)
    return AvailabilityResponse(
        item_id=str(item.id),
        quantity=quantity,
        available=get_ledger().is_available(str(item.id), quantity),
    )


@inventory_router.get("/{item_id}/level", response_model=InventoryLevelResponse)
async def get_level(item_id: str) -> InventoryLevelResponse:
    level = current_level(item_id)
    return InventoryLevelResponse(
        item_id=str(level.item_id),
        name=level.name,
        category=level.category,
        total_quantity=level.total_quantity,
        available_quantity=level.available_quantity,
        reserved_quantity=level.reserved_quantity,
        free_for_reservation=level.free_for_reservation,
    )


@inventory_router.put("/{item_ref}", response_model=LedgerResultResponse)
async def update_item(item_ref: str, body: UpdateItemRequest) -> LedgerResultResponse:
    command = UpdateItemDetails(item_ref=item_ref, **body.model_dump(exclude_none=True))
    return _ledger_response(current_domain.process(command, asynchronous=False))


@inventory_router.delete("/{item_ref}", response_model=StatusResponse)
async def remove_item(item_ref: str) -> StatusResponse:
    current_domain.process(RemoveItem(item_ref=item_ref), asynchronous=False)
    return StatusResponse()


@inventory_router.post("/{item_ref}/reserve", response_model=LedgerResultResponse)
async def reserve_item(item_ref: str, body: QuantityRequest) -> LedgerResultResponse:
    command = ReserveItem(item_ref=item_ref, quantity=body.quantity, operation_id=body.operation_id)
    return _ledger_response(current_domain.process(command, asynchronous=False))


@inventory_router.post("/{item_ref}/release", response_model=LedgerResultResponse)
async def release_item(item_ref: str, body: QuantityRequest) -> LedgerResultResponse:
    command = ReleaseItem(item_ref=item_ref, quantity=body.quantity, operation_id=body.operation_id)
    return _ledger_response(current_domain.process(command, asynchronous=False))


@inventory_router.post("/{item_ref}/return", response_model=LedgerResultResponse)
async def return_items(item_ref: str, body: QuantityRequest) -> LedgerResultResponse:
    command = ReturnItems(item_ref=item_ref, quantity=body.quantity, operation_id=body.operation_id)
    return _ledger_response(current_domain.process(command, asynchronous=False))


@inventory_router.post("/{item_ref}/damage", response_model=LedgerResultResponse)
async def mark_damaged(item_ref: str, body: OperationRequest) -> LedgerResultResponse:
    command = MarkItemDamaged(item_ref=item_ref, operation_id=body.operation_id)
    return _ledger_response(current_domain.process(command, asynchronous=False))


@inventory_router.post("/{item_ref}/restore", response_model=LedgerResultResponse)
async def restore_item(item_ref: str, body: OperationRequest) -> LedgerResultResponse:
    command = RestoreItem(item_ref=item_ref, operation_id=body.operation_id)
    return _ledger_response(current_domain.process(command, asynchronous=False))


@inventory_router.post("/{item_ref}/write-off", response_model=LedgerResultResponse)
async def write_off_item(item_ref: str, body: OperationRequest) -> LedgerResultResponse:
    command = WriteOffItem(item_ref=item_ref, operation_id=body.operation_id)
    return _ledger_response(current_domain.process(command, asynchronous=False))


@inventory_router.put("/{item_ref}/total", response_model=LedgerResultResponse)
async def adjust_total(item_ref: str, body: AdjustTotalRequest) -> LedgerResultResponse:
    command = AdjustTotalQuantity(item_ref=item_ref, new_total=body.new_total, operation_id=body.operation_id)
    return _ledger_response(current_domain.process(command, asynchronous=False))


# ---------------------------------------------------------------------------
# Booking Router
# ---------------------------------------------------------------------------
booking_router = APIRouter(prefix="/bookings", tags=["bookings"])


@booking_router.post("", status_code=201, response_model=BookingIdResponse)
async def create_booking(body: CreateBookingRequest) -> BookingIdResponse:
    command = CreateBooking(
        user_id=body.user_id,
        start_date=body.start_date,
        end_date=body.end_date,
        items=json.dumps([line.model_dump() for line in body.items]),
        package=json.dumps(body.package.model_dump()) if body.package else None,
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        venue=body.venue,
    )
    booking_id = current_domain.process(command, asynchronous=False)
    return BookingIdResponse(booking_id=booking_id)


@booking_router.get("", response_model=BookingListResponse)
async def list_bookings(user_id: str | None = None, status: str | None = None) -> BookingListResponse:
    bookings = get_booking_lifecycle().list_bookings(user_id=user_id, status=status)
    return BookingListResponse(bookings=[_booking_response(b) for b in bookings])


@booking_router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str) -> BookingResponse:
    return _booking_response(get_booking_lifecycle().get(booking_id))


@booking_router.put("/{booking_id}/status", response_model=StatusChangeResponse)
async def change_status(booking_id: str, body: ChangeStatusRequest):
    outcome = current_domain.process(
        ChangeBookingStatus(booking_id=booking_id, status=body.status),
        asynchronous=False,
    )
    response = StatusChangeResponse(
        booking_id=outcome.booking_id,
        target_status=outcome.target_status,
        status_persisted=outcome.status_persisted,
        succeeded=outcome.succeeded,
        failed=[
            ItemFailureSchema(
                item_id=failure.item_id,
                step=failure.step,
                error=failure.result.error.value if failure.result.error else None,
                message=failure.result.message,
            )
            for failure in outcome.failed
        ],
    )
    if not outcome.complete:
        # Partial batch: status unchanged, safe to resend
        return JSONResponse(status_code=409, content=response.model_dump())
    return response


@booking_router.post("/{booking_id}/payments", response_model=BookingResponse)
async def record_payment(booking_id: str, body: RecordPaymentRequest) -> BookingResponse:
    command = RecordPayment(
        booking_id=booking_id,
        amount=body.amount,
        recorded_by=body.recorded_by,
        method=body.method,
        reference=body.reference,
    )
    return _booking_response(current_domain.process(command, asynchronous=False))


@booking_router.post("/{booking_id}/payments/complete", response_model=BookingResponse)
async def complete_payment(booking_id: str, body: CompletePaymentRequest) -> BookingResponse:
    command = CompletePayment(booking_id=booking_id, recorded_by=body.recorded_by)
    return _booking_response(current_domain.process(command, asynchronous=False))


@booking_router.post("/{booking_id}/refunds", response_model=BookingResponse)
async def refund_payment(booking_id: str, body: RefundRequest) -> BookingResponse:
    command = RefundPayment(
        booking_id=booking_id,
        amount=body.amount,
        recorded_by=body.recorded_by,
        reason=body.reason,
    )
    return _booking_response(current_domain.process(command, asynchronous=False))


@booking_router.post("/{booking_id}/paypal/capture", response_model=PayPalCaptureResponse)
async def capture_paypal(booking_id: str, body: PayPalCaptureRequest) -> PayPalCaptureResponse:
    command = CapturePayPalPayment(
        booking_id=booking_id,
        order_id=body.order_id,
        transaction_id=body.transaction_id,
        amount=body.amount,
        payer_email=body.payer_email,
    )
    return PayPalCaptureResponse(recorded=current_domain.process(command, asynchronous=False))


@booking_router.post("/{booking_id}/payment-proof", response_model=BookingResponse)
async def attach_payment_proof(booking_id: str, body: PaymentProofRequest) -> BookingResponse:
    command = AttachPaymentProof(booking_id=booking_id, filename=body.filename, content=body.content)
    return _booking_response(current_domain.process(command, asynchronous=False))


# ---------------------------------------------------------------------------
# Damage Report Router
# ---------------------------------------------------------------------------
damage_router = APIRouter(prefix="/damage-reports", tags=["damage-reports"])


@damage_router.post("", status_code=201, response_model=DamageReportIdResponse)
async def report_damage(body: ReportDamageRequest) -> DamageReportIdResponse:
    report_id = current_domain.process(ReportDamage(**body.model_dump()), asynchronous=False)
    return DamageReportIdResponse(report_id=report_id)


@damage_router.get("", response_model=DamageReportListResponse)
async def list_reports(status: str | None = None, item_id: str | None = None) -> DamageReportListResponse:
    reports = get_damage_workflow().list_reports(status=status, item_id=item_id)
    return DamageReportListResponse(reports=[_report_response(r) for r in reports])


@damage_router.get("/summary", response_model=DamageSummaryResponse)
async def damage_summary() -> DamageSummaryResponse:
    summary = get_damage_workflow().summary()
    return DamageSummaryResponse(
        total_reports=summary.total_reports,
        by_status=summary.by_status,
        open_estimated_cost=summary.open_estimated_cost,
        total_repair_cost=summary.total_repair_cost,
        total_penalty_fees=summary.total_penalty_fees,
    )


@damage_router.get("/{report_id}", response_model=DamageReportResponse)
async def get_report(report_id: str) -> DamageReportResponse:
    return _report_response(get_damage_workflow().get(report_id))


@damage_router.put("/{report_id}/start-repair", response_model=DamageReportResponse)
async def start_repair(report_id: str) -> DamageReportResponse:
    report = current_domain.process(StartRepair(report_id=report_id), asynchronous=False)
    return _report_response(report)


@damage_router.put("/{report_id}/revert-repair", response_model=DamageReportResponse)
async def revert_repair(report_id: str) -> DamageReportResponse:
    report = current_domain.process(RevertRepair(report_id=report_id), asynchronous=False)
    return _report_response(report)


@damage_router.put("/{report_id}/complete-repair", response_model=DamageReportResponse)
async def complete_repair(report_id: str, body: CompleteRepairRequest) -> DamageReportResponse:
    command = CompleteRepair(report_id=report_id, repair_cost=body.repair_cost)
    return _report_response(current_domain.process(command, asynchronous=False))


@damage_router.put("/{report_id}/write-off", response_model=DamageReportResponse)
async def write_off(report_id: str) -> DamageReportResponse:
    report = current_domain.process(WriteOffDamagedItem(report_id=report_id), asynchronous=False)
    return _report_response(report)


@damage_router.delete("/{report_id}", response_model=DeleteReportResponse)
async def delete_report(report_id: str) -> DeleteReportResponse:
    restored = current_domain.process(DeleteDamageReport(report_id=report_id), asynchronous=False)
    return DeleteReportResponse(report_id=report_id, restored=restored)


# ---------------------------------------------------------------------------
# Collection Router
# ---------------------------------------------------------------------------
collection_router = APIRouter(prefix="/collections", tags=["collections"])


@collection_router.post("", status_code=201, response_model=CollectionIdResponse)
async def create_collection(body: CreateCollectionRequest) -> CollectionIdResponse:
    command = CreateCollection(
        name=body.name,
        description=body.description,
        price=body.price,
        assigned_users=json.dumps(body.assigned_users),
        created_by=body.created_by,
    )
    return CollectionIdResponse(collection_id=current_domain.process(command, asynchronous=False))


@collection_router.get("", response_model=CollectionListResponse)
async def list_collections() -> CollectionListResponse:
    collections = get_collection_library().list_collections()
    return CollectionListResponse(collections=[_collection_response(c) for c in collections])


@collection_router.get("/shared", response_model=UserCollectionListResponse)
async def shared_collections(user_email: str) -> UserCollectionListResponse:
    collections = get_collection_library().collections_for_user(user_email)
    return UserCollectionListResponse(
        collections=[
            UserCollectionSchema(
                collection_id=str(c.id),
                name=c.name,
                description=c.description,
                price=c.price,
                is_premium=c.is_premium(),
                has_access=c.has_access(user_email),
                file_count=c.file_count(),
            )
            for c in collections
        ]
    )


@collection_router.get("/{collection_id}", response_model=CollectionResponse)
async def get_collection(collection_id: str) -> CollectionResponse:
    return _collection_response(get_collection_library().get(collection_id))


@collection_router.get("/{collection_id}/files", response_model=CollectionFilesResponse)
async def collection_files(collection_id: str, user_email: str) -> CollectionFilesResponse:
    files = get_collection_library().files_for_user(collection_id, user_email)
    return CollectionFilesResponse(collection_id=collection_id, files=files)


@collection_router.put("/{collection_id}/price", response_model=CollectionResponse)
async def update_collection_price(collection_id: str, body: CollectionPriceRequest) -> CollectionResponse:
    command = UpdateCollectionPrice(collection_id=collection_id, price=body.price)
    return _collection_response(current_domain.process(command, asynchronous=False))


@collection_router.put("/{collection_id}/users", response_model=CollectionResponse)
async def assign_collection_users(collection_id: str, body: AssignUsersRequest) -> CollectionResponse:
    command = AssignCollectionUsers(collection_id=collection_id, assigned_users=json.dumps(body.assigned_users))
    return _collection_response(current_domain.process(command, asynchronous=False))


@collection_router.post("/{collection_id}/unlock", response_model=UnlockCollectionResponse)
async def unlock_collection(collection_id: str, body: UnlockCollectionRequest) -> UnlockCollectionResponse:
    command = UnlockCollection(collection_id=collection_id, user_email=body.user_email, reference=body.reference)
    return UnlockCollectionResponse(unlocked=current_domain.process(command, asynchronous=False))


@collection_router.post("/{collection_id}/files", status_code=201, response_model=CollectionResponse)
async def add_collection_file(collection_id: str, body: CollectionFileRequest) -> CollectionResponse:
    command = AddCollectionFile(collection_id=collection_id, **body.model_dump())
    return _collection_response(current_domain.process(command, asynchronous=False))


@collection_router.delete("/{collection_id}/files/{file_id}", response_model=CollectionResponse)
async def remove_collection_file(collection_id: str, file_id: str) -> CollectionResponse:
    command = RemoveCollectionFile(collection_id=collection_id, file_id=file_id)
    return _collection_response(current_domain.process(command, asynchronous=False))


@collection_router.delete("/{collection_id}", response_model=DeleteCollectionResponse)
async def delete_collection(collection_id: str) -> DeleteCollectionResponse:
    deleted = current_domain.process(DeleteCollection(collection_id=collection_id), asynchronous=False)
    return DeleteCollectionResponse(collection_id=collection_id, deleted=deleted)


# ---------------------------------------------------------------------------
# ID Verification Router
# ---------------------------------------------------------------------------
verification_router = APIRouter(prefix="/verifications", tags=["verifications"])


@verification_router.post("", status_code=201, response_model=VerificationResponse)
async def submit_verification(body: SubmitVerificationRequest) -> VerificationResponse:
    verification = current_domain.process(SubmitVerification(**body.model_dump()), asynchronous=False)
    return _verification_response(verification)


@verification_router.get("", response_model=VerificationListResponse)
async def list_verifications(status: str | None = None) -> VerificationListResponse:
    verifications = get_identity_verifications().list_verifications(status=status)
    return VerificationListResponse(verifications=[_verification_response(v) for v in verifications])


@verification_router.get("/user", response_model=VerificationResponse)
async def user_verification(user_email: str):
    verification = get_identity_verifications().for_user(user_email)
    if verification is None:
        return JSONResponse(status_code=404, content={"error": f"No verification submitted by {user_email}"})
    return _verification_response(verification)


@verification_router.get("/{verification_id}", response_model=VerificationResponse)
async def get_verification(verification_id: str) -> VerificationResponse:
    return _verification_response(get_identity_verifications().get(verification_id))


@verification_router.put("/{verification_id}/approve", response_model=VerificationResponse)
async def approve_verification(verification_id: str, body: ApproveVerificationRequest) -> VerificationResponse:
    command = ApproveVerification(verification_id=verification_id, reviewed_by=body.reviewed_by, notes=body.notes)
    return _verification_response(current_domain.process(command, asynchronous=False))


@verification_router.put("/{verification_id}/reject", response_model=VerificationResponse)
async def reject_verification(verification_id: str, body: RejectVerificationRequest) -> VerificationResponse:
    command = RejectVerification(
        verification_id=verification_id,
        reasons=",".join(body.reasons),
        reviewed_by=body.reviewed_by,
    )
    return _verification_response(current_domain.process(command, asynchronous=False))
