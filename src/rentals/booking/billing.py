"""Payment commands — manual payments, refunds, PayPal captures, payment proof."""

import base64
import binascii

from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.mixins import handle

from rentals.booking.booking import Booking
from rentals.domain import rentals
from rentals.services import get_booking_payments


@rentals.command(part_of="Booking")
class RecordPayment:
    booking_id = Identifier(required=True)
    amount = Float(required=True)
    recorded_by = String(max_length=254)
    method = String(max_length=50, default="manual")
    reference = String(max_length=255)


@rentals.command(part_of="Booking")
class CompletePayment:
    booking_id = Identifier(required=True)
    recorded_by = String(max_length=254)


@rentals.command(part_of="Booking")
class RefundPayment:
    booking_id = Identifier(required=True)
    amount = Float(required=True)
    recorded_by = String(max_length=254)
    reason = String(max_length=500)


@rentals.command(part_of="Booking")
class CapturePayPalPayment:
    booking_id = Identifier(required=True)
    order_id = String(required=True, max_length=100)
    transaction_id = String(required=True, max_length=100)
    amount = Float(required=True)
    payer_email = String(max_length=254)


@rentals.command(part_of="Booking")
class AttachPaymentProof:
    booking_id = Identifier(required=True)
    filename = String(required=True, max_length=255)
    content = Text(required=True)  # base64


@rentals.command_handler(part_of=Booking)
class BookingBillingHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        return get_booking_payments().record_payment(
            command.booking_id,
            command.amount,
            recorded_by=command.recorded_by,
            method=command.method,
            reference=command.reference,
        )

    @handle(CompletePayment)
    def complete_payment(self, command):
        return get_booking_payments().complete_payment(command.booking_id, recorded_by=command.recorded_by)

    @handle(RefundPayment)
    def refund_payment(self, command):
        return get_booking_payments().refund(
            command.booking_id,
            command.amount,
            recorded_by=command.recorded_by,
            reason=command.reason,
        )

    @handle(CapturePayPalPayment)
    def capture_paypal_payment(self, command):
        return get_booking_payments().record_paypal_capture(
            command.booking_id,
            order_id=command.order_id,
            transaction_id=command.transaction_id,
            amount=command.amount,
            payer_email=command.payer_email,
        )

    @handle(AttachPaymentProof)
    def attach_payment_proof(self, command):
        try:
            content = base64.b64decode(command.content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError({"content": ["Payment proof must be base64 encoded"]}) from exc
        return get_booking_payments().attach_payment_proof(command.booking_id, content, command.filename)
