"""InventoryItem aggregate — one rentable equipment type and its unit counts.

Quantity Model:
    total_quantity:     units the business owns and can rent (>= 1)
    available_quantity: units physically in service (damaged units excluded)
    reserved_quantity:  units held by pending or active bookings
    free_for_reservation = available - reserved

    0 <= reserved <= available <= total, always.

The aggregate only enforces the rules of a single change. Persistence,
retries and operation-id deduplication across writers belong to the
InventoryLedger, which is the only caller of the quantity methods.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from rentals.domain import rentals
from rentals.errors import InsufficientStock
from rentals.inventory.events import (
    ItemAdded,
    ItemDetailsUpdated,
    ItemMarkedDamaged,
    ItemRemoved,
    ItemReserved,
    ItemRestored,
    ItemsReturned,
    ItemWrittenOff,
    ReservationReleased,
    TotalQuantityAdjusted,
)
from rentals.utils.documents import dump_datetime, load_datetime

# Oldest operation ids are dropped beyond this; replays older than that apply again
MAX_APPLIED_OPERATIONS = 500

# Sentinel for distinguishing "not provided" from None in partial updates
_UNSET = object()


class ItemCategory(Enum):
    TRIPOD = "tripod"
    CAMERA = "camera"
    COMSET = "comset"
    SWITCHER = "switcher"
    AUDIO_MIXER = "audio-mixer"
    MONITOR = "monitor"
    VIDEO_TRANSMITTER = "video-transmitter"
    CAMERA_DOLLY = "camera-dolly"
    UNCATEGORIZED = "uncategorized"


class LedgerOperation(Enum):
    RESERVE = "reserve"
    RELEASE = "release"
    MARK_DAMAGED = "mark_damaged"
    RESTORE = "restore"
    WRITE_OFF = "write_off"
    RETURN = "return"
    ADJUST_TOTAL = "adjust_total"


@rentals.aggregate
class InventoryItem:
    """A rentable equipment type (e.g. "Sachtler Tripod") and its unit counts."""

    name = String(required=True, max_length=200)
    category = String(choices=ItemCategory, default=ItemCategory.UNCATEGORIZED.value)
    description = Text()
    daily_rate = Float(default=0.0)
    image_url = String(max_length=500)
    predefined = Boolean(default=False)

    total_quantity = Integer(default=1)
    available_quantity = Integer(default=1)
    reserved_quantity = Integer(default=0)

    # JSON: {operation_id: {operation, total, available, reserved}}
    applied_operations = Text()

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def total_must_be_at_least_one(self):
        if self.total_quantity is not None and self.total_quantity < 1:
            raise ValidationError({"total_quantity": ["Total quantity must be at least 1"]})

    @invariant.post
    def available_within_total(self):
        if self.available_quantity < 0 or self.available_quantity > self.total_quantity:
            raise ValidationError(
                {
                    "available_quantity": [
                        f"Available quantity {self.available_quantity} must be between 0 "
                        f"and total quantity {self.total_quantity}"
                    ]
                }
            )

    @invariant.post
    def reserved_within_available(self):
        if self.reserved_quantity < 0 or self.reserved_quantity > self.available_quantity:
            raise ValidationError(
                {
                    "reserved_quantity": [
                        f"Reserved quantity {self.reserved_quantity} must be between 0 "
                        f"and available quantity {self.available_quantity}"
                    ]
                }
            )

    # -------------------------------------------------------------------
    # Factory / persistence
    # -------------------------------------------------------------------
    @classmethod
    def add(
        cls,
        item_id,
        name,
        total_quantity,
        category=ItemCategory.UNCATEGORIZED.value,
        description=None,
        daily_rate=0.0,
        image_url=None,
        predefined=False,
    ):
        """Register a new item. All units start in service and unreserved."""
        now = datetime.now(UTC)
        item = cls(
            id=item_id,
            name=name,
            category=category,
            description=description,
            daily_rate=daily_rate,
            image_url=image_url,
            predefined=predefined,
            total_quantity=total_quantity,
            available_quantity=total_quantity,
            reserved_quantity=0,
            applied_operations=json.dumps({}),
            created_at=now,
            updated_at=now,
        )
        item.raise_(
            ItemAdded(
                item_id=str(item.id),
                name=name,
                category=item.category,
                daily_rate=daily_rate,
                predefined=str(predefined),
                total_quantity=total_quantity,
                available_quantity=total_quantity,
                reserved_quantity=0,
                added_at=now,
            )
        )
        return item

    @classmethod
    def from_document(cls, doc_id, data):
        return cls(
            id=doc_id,
            name=data["name"],
            category=data.get("category") or ItemCategory.UNCATEGORIZED.value,
            description=data.get("description"),
            daily_rate=data.get("daily_rate") or 0.0,
            image_url=data.get("image_url"),
            predefined=bool(data.get("predefined", False)),
            total_quantity=data["total_quantity"],
            available_quantity=data["available_quantity"],
            reserved_quantity=data.get("reserved_quantity", 0),
            applied_operations=json.dumps(data.get("applied_operations") or {}),
            created_at=load_datetime(data.get("created_at")),
            updated_at=load_datetime(data.get("updated_at")),
        )

    def to_document(self):
        return {
            "name": self.name,
            "name_lower": self.name.lower(),
            "category": self.category,
            "description": self.description,
            "daily_rate": self.daily_rate,
            "image_url": self.image_url,
            "predefined": self.predefined,
            "total_quantity": self.total_quantity,
            "available_quantity": self.available_quantity,
            "reserved_quantity": self.reserved_quantity,
            "applied_operations": self._operations(),
            "created_at": dump_datetime(self.created_at),
            "updated_at": dump_datetime(self.updated_at),
        }

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def free_for_reservation(self):
        return max(0, self.available_quantity - self.reserved_quantity)

    def quantities(self):
        return {
            "total_quantity": self.total_quantity,
            "available_quantity": self.available_quantity,
            "reserved_quantity": self.reserved_quantity,
        }

    def _operations(self):
        return json.loads(self.applied_operations) if self.applied_operations else {}

    def applied_operation(self, operation_id):
        """Return the recorded outcome of ``operation_id``, or None."""
        if not operation_id:
            return None
        return self._operations().get(operation_id)

    def _record(self, operation_id, operation: LedgerOperation):
        if not operation_id:
            return
        operations = self._operations()
        operations[operation_id] = {
            "operation": operation.value,
            "total_quantity": self.total_quantity,
            "available_quantity": self.available_quantity,
            "reserved_quantity": self.reserved_quantity,
        }
        while len(operations) > MAX_APPLIED_OPERATIONS:
            operations.pop(next(iter(operations)))
        self.applied_operations = json.dumps(operations)

    @staticmethod
    def _require_positive(quantity):
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

    # -------------------------------------------------------------------
    # Catalog management
    # -------------------------------------------------------------------
    def update_details(self, name=_UNSET, category=_UNSET, description=_UNSET, daily_rate=_UNSET, image_url=_UNSET):
        """Edit descriptive fields. Quantities are not touched here."""
        now = datetime.now(UTC)
        with atomic_change(self):
            if name is not _UNSET:
                self.name = name
            if category is not _UNSET:
                self.category = category
            if description is not _UNSET:
                self.description = description
            if daily_rate is not _UNSET:
                self.daily_rate = daily_rate
            if image_url is not _UNSET:
                self.image_url = image_url
            self.updated_at = now

        self.raise_(
            ItemDetailsUpdated(
                item_id=str(self.id),
                name=self.name,
                category=self.category,
                description=self.description,
                daily_rate=self.daily_rate,
                updated_at=now,
            )
        )

    def remove(self):
        """Validate and announce deletion of a user-added item."""
        if self.predefined:
            raise ValidationError({"item": [f"{self.name} is part of the predefined catalog and cannot be deleted"]})
        if self.reserved_quantity > 0:
            raise ValidationError(
                {"item": [f"{self.name} has {self.reserved_quantity} reserved unit(s) and cannot be deleted"]}
            )

        self.raise_(
            ItemRemoved(
                item_id=str(self.id),
                name=self.name,
                removed_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Quantity changes
    # -------------------------------------------------------------------
    def reserve(self, quantity, operation_id=None):
        """Hold units for a booking."""
        self._require_positive(quantity)
        if quantity > self.free_for_reservation():
            raise InsufficientStock(
                {
                    "quantity": [
                        f"Insufficient stock for {self.name}: {self.free_for_reservation()} free, {quantity} requested"
                    ]
                }
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            self.reserved_quantity = self.reserved_quantity + quantity
            self.updated_at = now
            self._record(operation_id, LedgerOperation.RESERVE)

        self.raise_(
            ItemReserved(
                item_id=str(self.id),
                operation_id=operation_id,
                quantity=quantity,
                reserved_at=now,
                **self.quantities(),
            )
        )

    def release(self, quantity, operation_id=None):
        """Hand reserved units back. Releasing more than is reserved clamps at zero."""
        self._require_positive(quantity)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.reserved_quantity = max(0, self.reserved_quantity - quantity)
            self.updated_at = now
            self._record(operation_id, LedgerOperation.RELEASE)

        self.raise_(
            ReservationReleased(
                item_id=str(self.id),
                operation_id=operation_id,
                quantity=quantity,
                released_at=now,
                **self.quantities(),
            )
        )

    def mark_damaged(self, operation_id=None):
        """Take one free unit out of service.

        Total never drops below 1: damaging the last owned unit leaves
        total at 1 with nothing available until it is restored.
        """
        if self.free_for_reservation() < 1:
            raise InsufficientStock(
                {
                    "quantity": [
                        f"No free unit of {self.name} to mark as damaged: all units are reserved or out of service"
                    ]
                }
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            self.total_quantity = max(1, self.total_quantity - 1)
            self.available_quantity = max(0, self.available_quantity - 1)
            self.updated_at = now
            self._record(operation_id, LedgerOperation.MARK_DAMAGED)

        self.raise_(
            ItemMarkedDamaged(
                item_id=str(self.id),
                operation_id=operation_id,
                damaged_at=now,
                **self.quantities(),
            )
        )

    def restore(self, operation_id=None):
        """Bring one damaged unit back into service.

        A unit damaged while total was floored at 1 only left ``available``,
        so it returns there; otherwise both total and available grow.
        """
        now = datetime.now(UTC)
        with atomic_change(self):
            if self.available_quantity < self.total_quantity:
                self.available_quantity = self.available_quantity + 1
            else:
                self.total_quantity = self.total_quantity + 1
                self.available_quantity = self.available_quantity + 1
            self.updated_at = now
            self._record(operation_id, LedgerOperation.RESTORE)

        self.raise_(
            ItemRestored(
                item_id=str(self.id),
                operation_id=operation_id,
                restored_at=now,
                **self.quantities(),
            )
        )

    def write_off(self, operation_id=None):
        """Record that a damaged unit will never come back."""
        now = datetime.now(UTC)
        with atomic_change(self):
            self.updated_at = now
            self._record(operation_id, LedgerOperation.WRITE_OFF)

        self.raise_(
            ItemWrittenOff(
                item_id=str(self.id),
                operation_id=operation_id,
                written_off_at=now,
                **self.quantities(),
            )
        )

    def return_items(self, quantity, operation_id=None):
        """Units came back from a rental; available is capped at total."""
        self._require_positive(quantity)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.available_quantity = min(self.total_quantity, self.available_quantity + quantity)
            self.updated_at = now
            self._record(operation_id, LedgerOperation.RETURN)

        self.raise_(
            ItemsReturned(
                item_id=str(self.id),
                operation_id=operation_id,
                quantity=quantity,
                returned_at=now,
                **self.quantities(),
            )
        )

    def adjust_total(self, new_total, operation_id=None):
        """Change the owned unit count; available moves by the same amount."""
        if new_total is None or new_total < 1:
            raise ValidationError({"total_quantity": ["Total quantity must be at least 1"]})

        delta = new_total - self.total_quantity
        new_available = self.available_quantity + delta
        if new_available < self.reserved_quantity:
            raise ValidationError(
                {
                    "total_quantity": [
                        f"Cannot reduce {self.name} to {new_total}: {self.reserved_quantity} unit(s) are reserved"
                    ]
                }
            )

        previous_total = self.total_quantity
        now = datetime.now(UTC)
        with atomic_change(self):
            self.total_quantity = new_total
            self.available_quantity = new_available
            self.updated_at = now
            self._record(operation_id, LedgerOperation.ADJUST_TOTAL)

        self.raise_(
            TotalQuantityAdjusted(
                item_id=str(self.id),
                operation_id=operation_id,
                previous_total=previous_total,
                adjusted_at=now,
                **self.quantities(),
            )
        )
