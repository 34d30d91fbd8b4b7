"""BookingPayments — money and payment proof on a booking.

Every change is a compare-and-swap update of the booking document and
appends one signed entry to the payment history. Payment proofs are
uploaded to the media store first; if the booking cannot be updated the
fresh upload is deleted again, unless a re-read shows the update landed.
"""

import structlog

from rentals.booking.booking import Booking
from rentals.booking.lifecycle import BOOKINGS_COLLECTION
from rentals.errors import BookingNotFound, Indeterminate
from rentals.media.port import MediaError, MediaStore
from rentals.publisher import EventPublisher
from rentals.store.port import DocumentStore
from rentals.store.repository import DocumentRepository

logger = structlog.get_logger(__name__)

PAYMENT_PROOF_FOLDER = "payment-proofs"


class BookingPayments:
    def __init__(self, store: DocumentStore, media: MediaStore, publisher: EventPublisher | None = None):
        self.media = media
        self.bookings = DocumentRepository(store, BOOKINGS_COLLECTION, Booking, BookingNotFound, publisher=publisher)

    def record_payment(self, booking_id, amount, recorded_by=None, method="manual", reference=None) -> Booking:
        booking, applied = self.bookings.update(
            booking_id,
            lambda b: b.record_payment(amount, recorded_by=recorded_by, method=method, reference=reference),
        )
        logger.info(
            "payment_recorded",
            booking_id=str(booking_id),
            amount=applied,
            amount_paid=booking.amount_paid,
            payment_status=booking.payment_status,
        )
        return booking

    def complete_payment(self, booking_id, recorded_by=None) -> Booking:
        booking, applied = self.bookings.update(booking_id, lambda b: b.complete_payment(recorded_by=recorded_by))
        logger.info("payment_completed", booking_id=str(booking_id), amount=applied)
        return booking

    def refund(self, booking_id, amount, recorded_by=None, reason=None) -> Booking:
        booking, applied = self.bookings.update(
            booking_id,
            lambda b: b.refund(amount, recorded_by=recorded_by, reason=reason),
        )
        logger.info("payment_refunded", booking_id=str(booking_id), amount=applied, reason=reason)
        return booking

    def record_paypal_capture(self, booking_id, order_id, transaction_id, amount, payer_email=None) -> bool:
        """Record a captured PayPal payment once per transaction id.

        Returns False when the transaction was already recorded.
        """

        def apply(booking):
            if booking.has_payment_reference(transaction_id):
                return False
            booking.record_payment(amount, recorded_by=payer_email, method="paypal", reference=transaction_id)
            return True

        _, recorded = self.bookings.update(booking_id, apply)
        logger.info(
            "paypal_capture_processed",
            booking_id=str(booking_id),
            order_id=order_id,
            transaction_id=transaction_id,
            duplicate=not recorded,
        )
        return recorded

    def attach_payment_proof(self, booking_id, content: bytes, filename: str) -> Booking:
        # Fail fast on unknown bookings before uploading anything
        previous = self.bookings.get(booking_id).proof()

        asset = self.media.upload(content, filename, f"{PAYMENT_PROOF_FOLDER}/{booking_id}")
        try:
            booking, replaced = self.bookings.update(booking_id, lambda b: b.attach_payment_proof(asset))
        except Indeterminate:
            booking = self._proof_landed(booking_id, asset)
            if booking is None:
                raise
            replaced = previous["public_id"] if previous else None
        except Exception:
            self._discard(asset.public_id, booking_id)
            raise

        if replaced and replaced != asset.public_id:
            self._discard(replaced, booking_id)

        logger.info("payment_proof_attached", booking_id=str(booking_id), public_id=asset.public_id)
        return booking

    def _proof_landed(self, booking_id, asset):
        """Re-read after an ambiguous write; the upload is kept unless the booking surely lacks it."""
        try:
            booking = self.bookings.get(booking_id)
        except Indeterminate:
            logger.warning(
                "payment_proof_unresolved",
                booking_id=str(booking_id),
                public_id=asset.public_id,
            )
            return None

        proof = booking.proof()
        if proof and proof["public_id"] == asset.public_id:
            return booking
        self._discard(asset.public_id, booking_id)
        return None

    def _discard(self, public_id, booking_id):
        try:
            self.media.delete(public_id)
        except MediaError as exc:
            logger.warning(
                "payment_proof_cleanup_failed",
                booking_id=str(booking_id),
                public_id=public_id,
                error=str(exc),
            )
