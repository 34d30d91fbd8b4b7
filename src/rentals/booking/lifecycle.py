"""BookingLifecycle — turns booking creation and status changes into ledger calls.

Status → ledger effect (per booked item):
    create            reserve            (all or nothing, rolled back on failure)
    pending → active  none
    * → cancelled     release
    active → completed release, then return

Operation ids are derived from the booking id, the step and the item
(``<booking>:release:<item>``), so re-running a transition after a partial
failure only applies the items that did not go through the first time.
The new status is saved only once every item succeeded.
"""

from dataclasses import dataclass, field

import structlog

from rentals.booking.booking import Booking, BookingStatus
from rentals.errors import BookingNotFound, Indeterminate, LedgerOperationFailed
from rentals.inventory.ledger import InventoryLedger, LedgerError, LedgerResult
from rentals.store.port import DocumentStore
from rentals.store.repository import DocumentRepository

logger = structlog.get_logger(__name__)

BOOKINGS_COLLECTION = "bookings"

_STEPS = {
    BookingStatus.ACTIVE: (),
    BookingStatus.CANCELLED: ("release",),
    BookingStatus.COMPLETED: ("release", "return"),
}


def operation_id(booking_id, step, item_id):
    return f"{booking_id}:{step}:{item_id}"


@dataclass(frozen=True)
class ItemFailure:
    item_id: str
    step: str
    result: LedgerResult


@dataclass
class BatchOutcome:
    """Per-item result of a multi-item transition."""

    booking_id: str
    target_status: str
    succeeded: list[str] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)
    status_persisted: bool = False

    @property
    def complete(self) -> bool:
        return not self.failed and self.status_persisted


class BookingLifecycle:
    def __init__(self, store: DocumentStore, ledger: InventoryLedger):
        self.ledger = ledger
        self.bookings = DocumentRepository(
            store,
            BOOKINGS_COLLECTION,
            Booking,
            BookingNotFound,
            max_attempts=ledger.max_attempts,
            publisher=ledger.publisher,
        )

    def get(self, booking_id) -> Booking:
        return self.bookings.get(booking_id)

    def list_bookings(self, user_id=None, status=None) -> list[Booking]:
        filters = {}
        if user_id:
            filters["user_id"] = user_id
        if status:
            filters["status"] = status
        bookings = self.bookings.list(**filters)
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def create_booking(self, user_id, start_date, end_date, items=None, package=None, **details) -> Booking:
        """Reserve every item, then save the booking.

        Any failed reservation releases the ones already made and raises
        LedgerOperationFailed; nothing is saved.
        """
        booking = Booking.create(
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            items=items,
            package=package,
            **details,
        )
        booking_id = str(booking.id)
        lines = booking.reservation_lines()

        reserved = []
        for item_id, quantity in lines.items():
            reserve_id = operation_id(booking_id, "reserve", item_id)
            result = self.ledger.reserve(item_id, quantity, reserve_id)
            if not result.success:
                if result.error == LedgerError.INDETERMINATE and self._landed(booking_id, item_id, reserve_id):
                    reserved.append((item_id, quantity))
                logger.warning(
                    "booking_reservation_failed",
                    booking_id=booking_id,
                    item_id=item_id,
                    error=result.error.value,
                )
                self._rollback(booking_id, reserved)
                raise LedgerOperationFailed(result)
            reserved.append((item_id, quantity))

        try:
            self.bookings.add(booking)
        except Indeterminate:
            if self._saved(booking_id):
                self.bookings.publish(booking)
                logger.info("booking_created", booking_id=booking_id, items=lines)
                return booking
            self._rollback(booking_id, reserved)
            raise
        except Exception:
            self._rollback(booking_id, reserved)
            raise

        logger.info("booking_created", booking_id=booking_id, items=lines)
        return booking

    def _saved(self, booking_id):
        """Re-query after an ambiguous write. Raises Indeterminate if still unreachable."""
        try:
            self.bookings.get(booking_id)
            return True
        except BookingNotFound:
            return False

    def _landed(self, booking_id, item_id, reserve_id):
        """Whether a reservation that timed out was written after all."""
        try:
            return self.ledger.operation_applied(item_id, reserve_id)
        except Indeterminate as exc:
            logger.error(
                "booking_reservation_unresolved",
                booking_id=booking_id,
                item_id=item_id,
                operation_id=reserve_id,
                reason=exc.message,
            )
            return False

    def _rollback(self, booking_id, reserved):
        for item_id, quantity in reserved:
            result = self.ledger.release(item_id, quantity, operation_id(booking_id, "rollback", item_id))
            if not result.success:
                logger.error(
                    "booking_rollback_incomplete",
                    booking_id=booking_id,
                    item_id=item_id,
                    quantity=quantity,
                    error=result.error.value,
                    reason=result.message,
                )

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def change_status(self, booking_id, target_status: BookingStatus) -> BatchOutcome:
        booking = self.bookings.get(booking_id)
        outcome = BatchOutcome(booking_id=str(booking.id), target_status=target_status.value)

        if booking.status == target_status.value:
            # Earlier attempt already went through
            outcome.status_persisted = True
            return outcome

        booking.assert_can_transition(target_status)

        for item_id, quantity in booking.reservation_lines().items():
            failure = self._apply_steps(outcome.booking_id, item_id, quantity, _STEPS[target_status])
            if failure is None:
                outcome.succeeded.append(item_id)
            else:
                outcome.failed.append(failure)

        if outcome.failed:
            logger.warning(
                "booking_transition_incomplete",
                booking_id=outcome.booking_id,
                target_status=target_status.value,
                succeeded=outcome.succeeded,
                failed=[f.item_id for f in outcome.failed],
            )
            return outcome

        self.bookings.update(booking_id, lambda b: b.transition_to(target_status))
        outcome.status_persisted = True
        logger.info(
            "booking_status_changed",
            booking_id=outcome.booking_id,
            previous_status=booking.status,
            new_status=target_status.value,
        )
        return outcome

    def _apply_steps(self, booking_id, item_id, quantity, steps):
        for step in steps:
            op_id = operation_id(booking_id, step, item_id)
            if step == "release":
                result = self.ledger.release(item_id, quantity, op_id)
            else:
                result = self.ledger.return_items(item_id, quantity, op_id)
            if not result.success:
                return ItemFailure(item_id=item_id, step=step, result=result)
        return None
