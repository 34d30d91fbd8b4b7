"""DamageReport aggregate — one damaged unit and its way back into (or out of) service.

State Machine:
    DAMAGED → UNDER_REPAIR | WRITTEN_OFF
    UNDER_REPAIR → REPAIRED | DAMAGED
    REPAIRED, WRITTEN_OFF → (terminal)

A report exists only after the ledger took the unit out of service; the
DamageRepairWorkflow makes the matching ledger call for every change.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from rentals.damage.events import (
    CustomerNotified,
    DamageReportDeleted,
    DamageReported,
    DamageStatusChanged,
)
from rentals.domain import rentals
from rentals.errors import InvalidTransition
from rentals.utils.documents import dump_datetime, load_datetime


class DamageSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DamageStatus(Enum):
    DAMAGED = "damaged"
    UNDER_REPAIR = "under-repair"
    REPAIRED = "repaired"
    WRITTEN_OFF = "written-off"


class NotificationStatus(Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


_VALID_TRANSITIONS = {
    DamageStatus.DAMAGED: {DamageStatus.UNDER_REPAIR, DamageStatus.WRITTEN_OFF},
    DamageStatus.UNDER_REPAIR: {DamageStatus.REPAIRED, DamageStatus.DAMAGED},
    DamageStatus.REPAIRED: set(),  # Terminal state
    DamageStatus.WRITTEN_OFF: set(),  # Terminal state
}

_DOCUMENT_FIELDS = (
    "item_id",
    "item_name",
    "booking_id",
    "severity",
    "status",
    "description",
    "estimated_repair_cost",
    "estimated_repair_time",
    "repair_cost",
    "penalty_fee",
    "customer_name",
    "customer_email",
    "reported_by",
    "notification_status",
    "notification_error",
)
_DOCUMENT_TIMESTAMPS = ("reported_at", "repair_started_at", "repaired_at", "written_off_at", "updated_at")

# Placeholder for "stamp with the transition time"
_NOW = object()


@rentals.aggregate
class DamageReport:
    item_id = Identifier(required=True)
    item_name = String(required=True, max_length=200)
    booking_id = Identifier()

    severity = String(choices=DamageSeverity, required=True)
    status = String(choices=DamageStatus, default=DamageStatus.DAMAGED.value)
    description = Text()

    estimated_repair_cost = Float(default=0.0)
    estimated_repair_time = String(max_length=100)
    repair_cost = Float()
    penalty_fee = Float(default=0.0)

    customer_name = String(max_length=200)
    customer_email = String(max_length=254)
    reported_by = String(max_length=254)

    notification_status = String(choices=NotificationStatus)
    notification_error = Text()

    reported_at = DateTime()
    repair_started_at = DateTime()
    repaired_at = DateTime()
    written_off_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def costs_cannot_be_negative(self):
        for field in ("estimated_repair_cost", "repair_cost", "penalty_fee"):
            value = getattr(self, field)
            if value is not None and value < 0:
                raise ValidationError({field: ["Amount cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory / persistence
    # -------------------------------------------------------------------
    @classmethod
    def report(
        cls,
        item_id,
        item_name,
        severity,
        description=None,
        booking_id=None,
        estimated_repair_cost=0.0,
        estimated_repair_time=None,
        penalty_fee=0.0,
        customer_name=None,
        customer_email=None,
        reported_by=None,
    ):
        now = datetime.now(UTC)
        report = cls(
            id=str(uuid4()),
            item_id=item_id,
            item_name=item_name,
            booking_id=booking_id,
            severity=severity,
            status=DamageStatus.DAMAGED.value,
            description=description,
            estimated_repair_cost=estimated_repair_cost or 0.0,
            estimated_repair_time=estimated_repair_time,
            penalty_fee=penalty_fee or 0.0,
            customer_name=customer_name,
            customer_email=customer_email,
            reported_by=reported_by,
            reported_at=now,
            updated_at=now,
        )
        report.raise_(
            DamageReported(
                report_id=str(report.id),
                item_id=str(item_id),
                item_name=item_name,
                booking_id=str(booking_id) if booking_id else None,
                severity=severity,
                description=description,
                estimated_repair_cost=report.estimated_repair_cost,
                penalty_fee=report.penalty_fee,
                reported_at=now,
            )
        )
        return report

    @classmethod
    def from_document(cls, doc_id, data):
        values = {field: data.get(field) for field in _DOCUMENT_FIELDS}
        values.update({field: load_datetime(data.get(field)) for field in _DOCUMENT_TIMESTAMPS})
        return cls(id=doc_id, **values)

    def to_document(self):
        document = {field: getattr(self, field) for field in _DOCUMENT_FIELDS}
        document["item_id"] = str(self.item_id)
        document["booking_id"] = str(self.booking_id) if self.booking_id else None
        document.update({field: dump_datetime(getattr(self, field)) for field in _DOCUMENT_TIMESTAMPS})
        return document

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = DamageStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _transition(self, target_status, **changes):
        self.assert_can_transition(target_status)

        previous = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target_status.value
            for field, value in changes.items():
                setattr(self, field, now if value is _NOW else value)
            self.updated_at = now

        self.raise_(
            DamageStatusChanged(
                report_id=str(self.id),
                item_id=str(self.item_id),
                previous_status=previous,
                new_status=target_status.value,
                repair_cost=self.repair_cost,
                changed_at=now,
            )
        )

    def start_repair(self):
        self._transition(DamageStatus.UNDER_REPAIR, repair_started_at=_NOW)

    def revert_repair(self):
        """Send an item under repair back to plain damaged (repair abandoned)."""
        self._transition(DamageStatus.DAMAGED, repair_started_at=None)

    def complete_repair(self, repair_cost=None):
        """Finish the repair. Without an actual cost the estimate is kept as the cost."""
        cost = repair_cost if repair_cost is not None else self.estimated_repair_cost
        self._transition(DamageStatus.REPAIRED, repaired_at=_NOW, repair_cost=cost)

    def write_off(self):
        self._transition(DamageStatus.WRITTEN_OFF, written_off_at=_NOW)

    def withdraw(self, restored):
        """Announce deletion of the report."""
        self.raise_(
            DamageReportDeleted(
                report_id=str(self.id),
                item_id=str(self.item_id),
                status=self.status,
                restored=str(restored),
                deleted_at=datetime.now(UTC),
            )
        )

    def record_notification(self, status, error=None):
        now = datetime.now(UTC)
        with atomic_change(self):
            self.notification_status = status
            self.notification_error = error
            self.updated_at = now

        self.raise_(
            CustomerNotified(
                report_id=str(self.id),
                status=status,
                error=error,
                notified_at=now,
            )
        )

