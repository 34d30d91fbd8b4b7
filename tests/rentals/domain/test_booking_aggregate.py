"""Tests for the Booking aggregate: totals, state machine and payments."""

from datetime import date

import pytest
from protean.exceptions import ValidationError
from rentals.booking.booking import Booking, BookingStatus, PaymentStatus
from rentals.booking.events import (
    BookingCreated,
    BookingStatusChanged,
    PaymentProofAttached,
    PaymentRecorded,
    PaymentRefunded,
)
from rentals.errors import InvalidTransition
from rentals.media.port import MediaAsset


def _make_booking(**overrides):
    defaults = {
        "user_id": "user-001",
        "start_date": date(2026, 3, 10),
        "end_date": date(2026, 3, 12),
        "items": [
            {"item_id": "sachtler-tripod", "item_name": "Sachtler Tripod", "quantity": 2, "unit_price": 3500.0},
        ],
        "customer_name": "Ana Reyes",
        "customer_email": "ana@example.com",
        "venue": "Rizal Park",
    }
    defaults.update(overrides)
    return Booking.create(**defaults)


class TestCreateBooking:
    def test_new_booking_is_pending_and_unpaid(self):
        booking = _make_booking()
        assert booking.status == BookingStatus.PENDING.value
        assert booking.amount_paid == 0.0
        assert booking.payment_status == PaymentStatus.NO_PAYMENT_RECORDED.value

    def test_total_is_rate_times_quantity_times_inclusive_days(self):
        booking = _make_booking()
        # 10th to 12th is three rental days
        assert booking.total_amount == 3500.0 * 2 * 3

    def test_same_day_rental_counts_one_day(self):
        booking = _make_booking(end_date=date(2026, 3, 10))
        assert booking.total_amount == 7000.0

    def test_package_price_is_charged_per_day(self):
        booking = _make_booking(
            items=[],
            package={
                "package_id": "pkg-basic",
                "name": "Basic Stream",
                "price": 10000.0,
                "items": [{"item_id": "pmw-200", "quantity": 1}],
            },
        )
        assert booking.total_amount == 30000.0

    def test_booking_needs_items_or_package(self):
        with pytest.raises(ValidationError) as exc_info:
            _make_booking(items=[])
        assert "items" in exc_info.value.messages

    def test_line_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            _make_booking(items=[{"item_id": "pmw-200", "quantity": 0, "unit_price": 1.0}])

    def test_end_before_start_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _make_booking(end_date=date(2026, 3, 9))
        assert "end_date" in exc_info.value.messages

    def test_reservation_lines_combine_items_and_package(self):
        booking = _make_booking(
            package={
                "package_id": "pkg-basic",
                "name": "Basic Stream",
                "price": 0,
                "items": [
                    {"item_id": "sachtler-tripod", "quantity": 1},
                    {"item_id": "pmw-200", "quantity": 2},
                ],
            },
        )
        assert booking.reservation_lines() == {"sachtler-tripod": 3, "pmw-200": 2}

    def test_create_raises_booking_created(self):
        booking = _make_booking()
        events = [e for e in booking._events if isinstance(e, BookingCreated)]
        assert len(events) == 1
        assert events[0].total_amount == booking.total_amount

    def test_document_round_trip(self):
        booking = _make_booking()
        restored = Booking.from_document(str(booking.id), booking.to_document())
        assert restored.start_date == booking.start_date
        assert restored.line_items() == booking.line_items()
        assert restored.total_amount == booking.total_amount


class TestStatusTransitions:
    @pytest.mark.parametrize(
        "path",
        [
            [BookingStatus.ACTIVE],
            [BookingStatus.CANCELLED],
            [BookingStatus.ACTIVE, BookingStatus.COMPLETED],
            [BookingStatus.ACTIVE, BookingStatus.CANCELLED],
        ],
    )
    def test_allowed_paths(self, path):
        booking = _make_booking()
        for status in path:
            booking.transition_to(status)
        assert booking.status == path[-1].value

    def test_pending_cannot_complete(self):
        booking = _make_booking()
        with pytest.raises(InvalidTransition):
            booking.transition_to(BookingStatus.COMPLETED)

    def test_terminal_states_are_final(self):
        booking = _make_booking()
        booking.transition_to(BookingStatus.CANCELLED)
        with pytest.raises(InvalidTransition):
            booking.transition_to(BookingStatus.ACTIVE)

    def test_transition_raises_event(self):
        booking = _make_booking()
        booking.transition_to(BookingStatus.ACTIVE)
        event = booking._events[-1]
        assert isinstance(event, BookingStatusChanged)
        assert event.previous_status == "pending"
        assert event.new_status == "active"


class TestPayments:
    def test_partial_payment(self):
        booking = _make_booking()
        applied = booking.record_payment(5000.0, recorded_by="staff@rp.test")
        assert applied == 5000.0
        assert booking.amount_paid == 5000.0
        assert booking.payment_status == PaymentStatus.PAYMENT_PARTIALLY_COMPLETED.value
        assert isinstance(booking._events[-1], PaymentRecorded)

    def test_overpayment_is_clamped_to_balance(self):
        booking = _make_booking()
        applied = booking.record_payment(booking.total_amount + 1000)
        assert applied == booking.total_amount
        assert booking.payment_status == PaymentStatus.PAYMENT_COMPLETED.value
        assert booking.history()[-1]["amount"] == booking.total_amount

    def test_fully_paid_booking_rejects_more_payments(self):
        booking = _make_booking()
        booking.complete_payment()
        with pytest.raises(ValidationError):
            booking.record_payment(1.0)

    def test_payment_must_be_positive(self):
        booking = _make_booking()
        with pytest.raises(ValidationError):
            booking.record_payment(0)

    def test_refund_records_negative_entry(self):
        booking = _make_booking()
        booking.record_payment(6000.0)
        booking.refund(2000.0, reason="Returned early")
        assert booking.amount_paid == 4000.0
        assert booking.history()[-1]["amount"] == -2000.0
        assert isinstance(booking._events[-1], PaymentRefunded)

    def test_history_sums_to_amount_paid(self):
        booking = _make_booking()
        booking.record_payment(6000.0)
        booking.refund(10000.0)
        booking.record_payment(1500.0)
        assert sum(entry["amount"] for entry in booking.history()) == booking.amount_paid

    def test_refund_without_payment_is_rejected(self):
        booking = _make_booking()
        with pytest.raises(ValidationError):
            booking.refund(100.0)

    def test_payment_reference_lookup(self):
        booking = _make_booking()
        booking.record_payment(100.0, method="paypal", reference="TXN-1")
        assert booking.has_payment_reference("TXN-1")
        assert not booking.has_payment_reference("TXN-2")


class TestPaymentProof:
    def test_attach_returns_previous_public_id(self):
        booking = _make_booking()
        first = MediaAsset(public_id="payment-proofs/b/1", url="https://x/1.png", format="png", bytes=10)
        second = MediaAsset(public_id="payment-proofs/b/2", url="https://x/2.png", format="png", bytes=12)

        assert booking.attach_payment_proof(first) is None
        assert booking.attach_payment_proof(second) == "payment-proofs/b/1"
        assert booking.proof()["public_id"] == "payment-proofs/b/2"
        assert isinstance(booking._events[-1], PaymentProofAttached)
