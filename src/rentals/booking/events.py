"""Domain events for the Booking aggregate."""

from protean.fields import Date, DateTime, Float, Identifier, Integer, String, Text

from rentals.domain import rentals


@rentals.event(part_of="Booking")
class BookingCreated:
    """A booking was placed and all of its items were reserved."""

    __version__ = 1

    booking_id = Identifier(required=True)
    user_id = Identifier(required=True)
    start_date = Date(required=True)
    end_date = Date(required=True)
    items = Text(required=True)  # JSON: {item_id: quantity}
    total_amount = Float(required=True)
    created_at = DateTime(required=True)


@rentals.event(part_of="Booking")
class BookingStatusChanged:
    __version__ = 1

    booking_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@rentals.event(part_of="Booking")
class PaymentRecorded:
    """Money was received for a booking (manual entry or PayPal capture)."""

    __version__ = 1

    booking_id = Identifier(required=True)
    amount = Float(required=True)
    method = String(required=True)
    reference = String()
    amount_paid = Float(required=True)
    payment_status = String(required=True)
    recorded_by = String()
    recorded_at = DateTime(required=True)


@rentals.event(part_of="Booking")
class PaymentRefunded:
    __version__ = 1

    booking_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String()
    amount_paid = Float(required=True)
    payment_status = String(required=True)
    recorded_by = String()
    refunded_at = DateTime(required=True)


@rentals.event(part_of="Booking")
class PaymentProofAttached:
    __version__ = 1

    booking_id = Identifier(required=True)
    public_id = String(required=True)
    url = String(required=True)
    size_bytes = Integer()
    attached_at = DateTime(required=True)
