"""Booking aggregate — a customer's rental of items and/or a package over a date range.

State Machine:
    PENDING → ACTIVE | CANCELLED
    ACTIVE → COMPLETED | CANCELLED
    COMPLETED, CANCELLED → (terminal)

Quantities are not tracked here: the BookingLifecycle turns each status
change into ledger calls. The aggregate owns the status, the money
(total, amount paid, signed payment history) and the payment proof.
"""

import json
from collections import OrderedDict
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Float, Identifier, String, Text

from rentals.booking.events import (
    BookingCreated,
    BookingStatusChanged,
    PaymentProofAttached,
    PaymentRecorded,
    PaymentRefunded,
)
from rentals.domain import rentals
from rentals.errors import InvalidTransition
from rentals.utils.documents import dump_datetime, load_date, load_datetime


class BookingStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    NO_PAYMENT_RECORDED = "no_payment_recorded"
    PAYMENT_PARTIALLY_COMPLETED = "payment_partially_completed"
    PAYMENT_COMPLETED = "payment_completed"


class PaymentEntryType(Enum):
    PAYMENT = "payment"
    REFUND = "refund"


_VALID_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.ACTIVE, BookingStatus.CANCELLED},
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),  # Terminal state
    BookingStatus.CANCELLED: set(),  # Terminal state
}


def rental_days(start_date, end_date):
    """Inclusive day count: a same-day rental is one day."""
    return (end_date - start_date).days + 1


@rentals.aggregate
class Booking:
    user_id = Identifier(required=True)
    customer_name = String(max_length=200)
    customer_email = String(max_length=254)
    venue = String(max_length=300)

    status = String(choices=BookingStatus, default=BookingStatus.PENDING.value)
    start_date = Date(required=True)
    end_date = Date(required=True)

    items = Text()  # JSON: [{item_id, item_name, quantity, unit_price}]
    package = Text()  # JSON: {package_id, name, price, items: [{item_id, quantity}]}

    total_amount = Float(default=0.0)
    amount_paid = Float(default=0.0)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.NO_PAYMENT_RECORDED.value)
    payment_history = Text()  # JSON: [{amount, type, status, method, reference, recorded_by, date}]
    payment_proof = Text()  # JSON: {public_id, url, format, bytes, uploaded_at}

    created_at = DateTime()
    updated_at = DateTime()
    status_changed_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def end_date_not_before_start(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": ["End date cannot be before start date"]})

    @invariant.post
    def amount_paid_within_total(self):
        if self.amount_paid < 0 or self.amount_paid > self.total_amount:
            raise ValidationError({"amount_paid": ["Amount paid must be between 0 and the booking total"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        user_id,
        start_date,
        end_date,
        items=None,
        package=None,
        customer_name=None,
        customer_email=None,
        venue=None,
    ):
        """Place a booking. Items and package lines must each ask for at least one unit."""
        items = [cls._normalize_line(line) for line in (items or [])]
        if package:
            package = dict(package)
            package["items"] = [cls._normalize_line(line) for line in package.get("items", [])]

        if not items and not (package and package["items"]):
            raise ValidationError({"items": ["A booking needs at least one item or a package"]})
        if end_date < start_date:
            raise ValidationError({"end_date": ["End date cannot be before start date"]})

        days = rental_days(start_date, end_date)
        total = sum(line["unit_price"] * line["quantity"] * days for line in items)
        if package:
            total += float(package.get("price") or 0.0) * days

        now = datetime.now(UTC)
        booking = cls(
            id=str(uuid4()),
            user_id=user_id,
            customer_name=customer_name,
            customer_email=customer_email,
            venue=venue,
            status=BookingStatus.PENDING.value,
            start_date=start_date,
            end_date=end_date,
            items=json.dumps(items),
            package=json.dumps(package) if package else None,
            total_amount=round(total, 2),
            amount_paid=0.0,
            payment_status=PaymentStatus.NO_PAYMENT_RECORDED.value,
            payment_history=json.dumps([]),
            created_at=now,
            updated_at=now,
        )
        booking.raise_(
            BookingCreated(
                booking_id=str(booking.id),
                user_id=str(user_id),
                start_date=start_date,
                end_date=end_date,
                items=json.dumps(booking.reservation_lines()),
                total_amount=booking.total_amount,
                created_at=now,
            )
        )
        return booking

    @staticmethod
    def _normalize_line(line):
        quantity = int(line.get("quantity") or 0)
        if quantity < 1:
            raise ValidationError({"items": [f"Quantity for {line.get('item_id')} must be at least 1"]})
        return {
            "item_id": str(line["item_id"]),
            "item_name": line.get("item_name"),
            "quantity": quantity,
            "unit_price": float(line.get("unit_price") or 0.0),
        }

    @classmethod
    def from_document(cls, doc_id, data):
        return cls(
            id=doc_id,
            user_id=data["user_id"],
            customer_name=data.get("customer_name"),
            customer_email=data.get("customer_email"),
            venue=data.get("venue"),
            status=data["status"],
            start_date=load_date(data["start_date"]),
            end_date=load_date(data["end_date"]),
            items=json.dumps(data.get("items") or []),
            package=json.dumps(data["package"]) if data.get("package") else None,
            total_amount=data.get("total_amount", 0.0),
            amount_paid=data.get("amount_paid", 0.0),
            payment_status=data.get("payment_status", PaymentStatus.NO_PAYMENT_RECORDED.value),
            payment_history=json.dumps(data.get("payment_history") or []),
            payment_proof=json.dumps(data["payment_proof"]) if data.get("payment_proof") else None,
            created_at=load_datetime(data.get("created_at")),
            updated_at=load_datetime(data.get("updated_at")),
            status_changed_at=load_datetime(data.get("status_changed_at")),
        )

    def to_document(self):
        return {
            "user_id": str(self.user_id),
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "venue": self.venue,
            "status": self.status,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "items": self.line_items(),
            "package": self.package_details(),
            "total_amount": self.total_amount,
            "amount_paid": self.amount_paid,
            "payment_status": self.payment_status,
            "payment_history": self.history(),
            "payment_proof": self.proof(),
            "created_at": dump_datetime(self.created_at),
            "updated_at": dump_datetime(self.updated_at),
            "status_changed_at": dump_datetime(self.status_changed_at),
        }

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_items(self):
        return json.loads(self.items) if self.items else []

    def package_details(self):
        return json.loads(self.package) if self.package else None

    def history(self):
        return json.loads(self.payment_history) if self.payment_history else []

    def proof(self):
        return json.loads(self.payment_proof) if self.payment_proof else None

    def rental_days(self):
        return rental_days(self.start_date, self.end_date)

    def outstanding_balance(self):
        return round(self.total_amount - self.amount_paid, 2)

    def reservation_lines(self):
        """Units to hold per item, direct and package lines combined."""
        lines = OrderedDict()
        package = self.package_details()
        for line in self.line_items() + (package["items"] if package else []):
            lines[line["item_id"]] = lines.get(line["item_id"], 0) + line["quantity"]
        return dict(lines)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = BookingStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def transition_to(self, target_status):
        self.assert_can_transition(target_status)

        previous = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target_status.value
            self.status_changed_at = now
            self.updated_at = now

        self.raise_(
            BookingStatusChanged(
                booking_id=str(self.id),
                previous_status=previous,
                new_status=target_status.value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------
    def _derive_payment_status(self, amount_paid):
        if amount_paid <= 0:
            return PaymentStatus.NO_PAYMENT_RECORDED.value
        if amount_paid >= self.total_amount:
            return PaymentStatus.PAYMENT_COMPLETED.value
        return PaymentStatus.PAYMENT_PARTIALLY_COMPLETED.value

    def _append_entry(self, entry):
        history = self.history()
        history.append(entry)
        self.payment_history = json.dumps(history)

    def record_payment(self, amount, recorded_by=None, method="manual", reference=None):
        """Add a payment. Anything above the outstanding balance is not counted."""
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Payment amount must be positive"]})
        if self.outstanding_balance() <= 0:
            raise ValidationError({"amount": ["Booking is already fully paid"]})

        applied = round(min(amount, self.outstanding_balance()), 2)
        new_paid = round(self.amount_paid + applied, 2)
        new_status = self._derive_payment_status(new_paid)
        now = datetime.now(UTC)

        with atomic_change(self):
            self.amount_paid = new_paid
            self.payment_status = new_status
            self._append_entry(
                {
                    "amount": applied,
                    "type": PaymentEntryType.PAYMENT.value,
                    "status": new_status,
                    "method": method,
                    "reference": reference,
                    "recorded_by": recorded_by,
                    "date": now.isoformat(),
                }
            )
            self.updated_at = now

        self.raise_(
            PaymentRecorded(
                booking_id=str(self.id),
                amount=applied,
                method=method,
                reference=reference,
                amount_paid=new_paid,
                payment_status=new_status,
                recorded_by=recorded_by,
                recorded_at=now,
            )
        )
        return applied

    def complete_payment(self, recorded_by=None, method="manual", reference=None):
        """Pay whatever is still outstanding. A settled booking gets no entry."""
        if self.outstanding_balance() <= 0:
            return 0.0
        return self.record_payment(self.outstanding_balance(), recorded_by, method, reference)

    def has_payment_reference(self, reference):
        return any(entry.get("reference") == reference for entry in self.history())

    def refund(self, amount, recorded_by=None, reason=None):
        """Give money back. Refunds never take amount paid below zero."""
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be positive"]})
        if self.amount_paid <= 0:
            raise ValidationError({"amount": ["Nothing has been paid on this booking"]})

        applied = round(min(amount, self.amount_paid), 2)
        new_paid = round(self.amount_paid - applied, 2)
        new_status = self._derive_payment_status(new_paid)
        now = datetime.now(UTC)

        with atomic_change(self):
            self.amount_paid = new_paid
            self.payment_status = new_status
            self._append_entry(
                {
                    "amount": -applied,
                    "type": PaymentEntryType.REFUND.value,
                    "status": new_status,
                    "method": "refund",
                    "reference": reason,
                    "recorded_by": recorded_by,
                    "date": now.isoformat(),
                }
            )
            self.updated_at = now

        self.raise_(
            PaymentRefunded(
                booking_id=str(self.id),
                amount=applied,
                reason=reason,
                amount_paid=new_paid,
                payment_status=new_status,
                recorded_by=recorded_by,
                refunded_at=now,
            )
        )
        return applied

    def attach_payment_proof(self, asset):
        """Store the uploaded proof; returns the public id of the proof it replaces."""
        previous = self.proof()
        now = datetime.now(UTC)
        with atomic_change(self):
            self.payment_proof = json.dumps(
                {
                    "public_id": asset.public_id,
                    "url": asset.url,
                    "format": asset.format,
                    "bytes": asset.bytes,
                    "uploaded_at": now.isoformat(),
                }
            )
            self.updated_at = now

        self.raise_(
            PaymentProofAttached(
                booking_id=str(self.id),
                public_id=asset.public_id,
                url=asset.url,
                size_bytes=asset.bytes,
                attached_at=now,
            )
        )
        return previous["public_id"] if previous else None
