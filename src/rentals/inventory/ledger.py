"""InventoryLedger — the single writer of inventory item documents.

Every change follows the same cycle against the document store:

    read item (by id, else by case-insensitive name)
      -> skip if the operation id was already applied (duplicate)
      -> apply the change on the InventoryItem aggregate (rules checked there)
      -> put the document back with the version it was read at
      -> on a version conflict, start over (bounded by max_attempts)

A store timeout during the write is reported as INDETERMINATE and never
retried here: the write may have landed. Callers retry with the same
operation id, which the item's applied-operations record makes safe.

Quantity operations return a LedgerResult and never raise for expected
conditions. Committed changes are pushed to subscribers as domain events.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

import structlog
from protean.exceptions import ValidationError

from rentals.errors import Indeterminate, InsufficientStock, ItemNotFound, LedgerOperationFailed
from rentals.inventory.catalog import PREDEFINED_CATALOG
from rentals.inventory.item import InventoryItem, ItemCategory, LedgerOperation
from rentals.publisher import EventPublisher
from rentals.store.port import DocumentStore, StoreTimeout, StoreUnavailable

logger = structlog.get_logger(__name__)

ITEMS_COLLECTION = "inventory_items"


class LedgerError(Enum):
    ITEM_NOT_FOUND = "ItemNotFound"
    INSUFFICIENT_STOCK = "InsufficientStock"
    INVALID_REQUEST = "InvalidRequest"
    CONCURRENT_UPDATE_CONFLICT = "ConcurrentUpdateConflict"
    INDETERMINATE = "Indeterminate"


@dataclass(frozen=True)
class QuantitySnapshot:
    total_quantity: int
    available_quantity: int
    reserved_quantity: int

    @property
    def free_for_reservation(self) -> int:
        return max(0, self.available_quantity - self.reserved_quantity)

    @classmethod
    def of(cls, values: dict) -> "QuantitySnapshot":
        return cls(
            total_quantity=values["total_quantity"],
            available_quantity=values["available_quantity"],
            reserved_quantity=values["reserved_quantity"],
        )


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of one ledger call.

    ``duplicate`` marks a repeated operation id: nothing changed and
    ``snapshot`` is what the first application produced.
    """

    success: bool
    operation: str
    item_id: str | None = None
    operation_id: str | None = None
    snapshot: QuantitySnapshot | None = None
    duplicate: bool = False
    error: LedgerError | None = None
    message: str | None = None


def _first_message(exc: ValidationError) -> str:
    for messages in exc.messages.values():
        if messages:
            return messages[0] if isinstance(messages, list) else str(messages)
    return str(exc)


class InventoryLedger:
    """Owns every write to inventory items."""

    def __init__(self, store: DocumentStore, max_attempts: int | None = None, publisher: EventPublisher | None = None):
        self.store = store
        if max_attempts is None:
            max_attempts = int(os.environ.get("LEDGER_MAX_ATTEMPTS", "3"))
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.publisher = publisher or EventPublisher()

    # -------------------------------------------------------------------
    # Subscribe / notify
    # -------------------------------------------------------------------
    def subscribe(self, listener: Callable) -> Callable[[], None]:
        """Register ``listener(event)`` for committed changes.

        Returns a callable that removes the listener again.
        """
        return self.publisher.subscribe(listener)

    # -------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------
    def _resolve(self, item_ref: str):
        """Find the item document by exact id, then by name (case-insensitive)."""
        doc = self.store.get(ITEMS_COLLECTION, str(item_ref))
        if doc is not None:
            return doc
        matches = self.store.query(ITEMS_COLLECTION, {"name_lower": str(item_ref).strip().lower()})
        if not matches:
            return None
        return sorted(matches, key=lambda d: d.id)[0]

    def get_item(self, item_ref: str) -> InventoryItem:
        doc = self._resolve(item_ref)
        if doc is None:
            raise ItemNotFound(f"Inventory item `{item_ref}` not found")
        return InventoryItem.from_document(doc.id, doc.data)

    def list_items(self, available_only: bool = False) -> list[InventoryItem]:
        items = [InventoryItem.from_document(doc.id, doc.data) for doc in self.store.query(ITEMS_COLLECTION)]
        if available_only:
            items = [item for item in items if item.free_for_reservation() > 0]
        return sorted(items, key=lambda item: item.name.lower())

    def is_available(self, item_ref: str, quantity: int = 1) -> bool:
        doc = self._resolve(item_ref)
        if doc is None:
            return False
        return InventoryItem.from_document(doc.id, doc.data).free_for_reservation() >= quantity

    def operation_applied(self, item_ref: str, operation_id: str) -> bool:
        """Whether ``operation_id`` landed on the item.

        Settles an INDETERMINATE result: the item document records every
        applied operation id in the same write as the change. Raises
        Indeterminate while the store is still unreachable.
        """
        try:
            doc = self._resolve(item_ref)
        except (StoreTimeout, StoreUnavailable) as exc:
            raise Indeterminate(f"Could not re-read `{item_ref}`: {exc}") from exc
        if doc is None:
            return False
        return InventoryItem.from_document(doc.id, doc.data).applied_operation(operation_id) is not None

    # -------------------------------------------------------------------
    # Quantity operations
    # -------------------------------------------------------------------
    def reserve(self, item_ref: str, quantity: int, operation_id: str | None = None) -> LedgerResult:
        return self._apply(
            LedgerOperation.RESERVE,
            item_ref,
            operation_id,
            lambda item: item.reserve(quantity, operation_id),
        )

    def release(self, item_ref: str, quantity: int, operation_id: str | None = None) -> LedgerResult:
        return self._apply(
            LedgerOperation.RELEASE,
            item_ref,
            operation_id,
            lambda item: item.release(quantity, operation_id),
        )

    def mark_damaged(self, item_ref: str, operation_id: str | None = None) -> LedgerResult:
        return self._apply(
            LedgerOperation.MARK_DAMAGED,
            item_ref,
            operation_id,
            lambda item: item.mark_damaged(operation_id),
        )

    def mark_repaired_or_restored(self, item_ref: str, operation_id: str | None = None) -> LedgerResult:
        return self._apply(
            LedgerOperation.RESTORE,
            item_ref,
            operation_id,
            lambda item: item.restore(operation_id),
        )

    def write_off(self, item_ref: str, operation_id: str | None = None) -> LedgerResult:
        return self._apply(
            LedgerOperation.WRITE_OFF,
            item_ref,
            operation_id,
            lambda item: item.write_off(operation_id),
        )

    def return_items(self, item_ref: str, quantity: int, operation_id: str | None = None) -> LedgerResult:
        return self._apply(
            LedgerOperation.RETURN,
            item_ref,
            operation_id,
            lambda item: item.return_items(quantity, operation_id),
        )

    def adjust_total_quantity(self, item_ref: str, new_total: int, operation_id: str | None = None) -> LedgerResult:
        return self._apply(
            LedgerOperation.ADJUST_TOTAL,
            item_ref,
            operation_id,
            lambda item: item.adjust_total(new_total, operation_id),
        )

    # -------------------------------------------------------------------
    # Catalog management
    # -------------------------------------------------------------------
    def add_item(
        self,
        name: str,
        total_quantity: int,
        category: str = ItemCategory.UNCATEGORIZED.value,
        item_id: str | None = None,
        description: str | None = None,
        daily_rate: float = 0.0,
        image_url: str | None = None,
        predefined: bool = False,
    ) -> InventoryItem:
        item = InventoryItem.add(
            item_id=item_id or f"item-{uuid4().hex[:12]}",
            name=name,
            total_quantity=total_quantity,
            category=category,
            description=description,
            daily_rate=daily_rate,
            image_url=image_url,
            predefined=predefined,
        )
        if not self._insert(item):
            raise ValidationError({"item_id": [f"Inventory item `{item.id}` already exists"]})
        return item

    def bootstrap_catalog(self) -> list[str]:
        """Create predefined items that are not stored yet. Returns the created ids."""
        created = []
        for entry in PREDEFINED_CATALOG:
            if self.store.get(ITEMS_COLLECTION, entry.id) is not None:
                continue
            item = InventoryItem.add(
                item_id=entry.id,
                name=entry.name,
                total_quantity=entry.total_quantity,
                category=entry.category,
                daily_rate=entry.daily_rate,
                predefined=True,
            )
            if self._insert(item):
                created.append(entry.id)

        logger.info("catalog_bootstrapped", created=len(created))
        return created

    def update_item_details(self, item_ref: str, **changes) -> LedgerResult:
        result = self._apply(
            "update_details",
            item_ref,
            None,
            lambda item: item.update_details(**changes),
        )
        if not result.success:
            raise LedgerOperationFailed(result)
        return result

    def remove_item(self, item_ref: str) -> LedgerResult:
        result = self._apply("remove", item_ref, None, lambda item: item.remove(), remove=True)
        if not result.success:
            raise LedgerOperationFailed(result)
        return result

    def _insert(self, item: InventoryItem) -> bool:
        try:
            put = self.store.put(ITEMS_COLLECTION, str(item.id), item.to_document(), 0)
        except (StoreTimeout, StoreUnavailable) as exc:
            raise LedgerOperationFailed(
                LedgerResult(
                    success=False,
                    operation="add",
                    item_id=str(item.id),
                    error=LedgerError.INDETERMINATE,
                    message=str(exc),
                )
            ) from exc

        if put.applied:
            logger.info("inventory_item_added", item_id=str(item.id), name=item.name)
            self.publisher.publish(list(item._events))
        return put.applied

    # -------------------------------------------------------------------
    # Read -> change -> compare-and-swap
    # -------------------------------------------------------------------
    def _apply(self, operation, item_ref, operation_id, change, remove=False) -> LedgerResult:
        operation_name = operation.value if isinstance(operation, LedgerOperation) else operation

        def failure(error, message, item_id=None):
            logger.warning(
                "ledger_operation_failed",
                operation=operation_name,
                item_ref=str(item_ref),
                operation_id=operation_id,
                error=error.value,
                reason=message,
            )
            return LedgerResult(
                success=False,
                operation=operation_name,
                item_id=item_id,
                operation_id=operation_id,
                error=error,
                message=message,
            )

        last_failure = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                doc = self._resolve(item_ref)
            except (StoreTimeout, StoreUnavailable) as exc:
                last_failure = str(exc)
                continue

            if doc is None:
                return failure(LedgerError.ITEM_NOT_FOUND, f"Inventory item `{item_ref}` not found")

            item = InventoryItem.from_document(doc.id, doc.data)
            recorded = item.applied_operation(operation_id)
            if recorded is not None:
                logger.info(
                    "ledger_operation_duplicate",
                    operation=operation_name,
                    item_id=doc.id,
                    operation_id=operation_id,
                )
                return LedgerResult(
                    success=True,
                    operation=operation_name,
                    item_id=doc.id,
                    operation_id=operation_id,
                    snapshot=QuantitySnapshot.of(recorded),
                    duplicate=True,
                )

            try:
                change(item)
            except InsufficientStock as exc:
                return failure(LedgerError.INSUFFICIENT_STOCK, _first_message(exc), doc.id)
            except ValidationError as exc:
                return failure(LedgerError.INVALID_REQUEST, _first_message(exc), doc.id)

            try:
                if remove:
                    written = self.store.delete(ITEMS_COLLECTION, doc.id, expected_version=doc.version)
                else:
                    written = self.store.put(ITEMS_COLLECTION, doc.id, item.to_document(), doc.version)
            except StoreTimeout as exc:
                return failure(
                    LedgerError.INDETERMINATE,
                    f"Store timed out while writing `{doc.id}`; re-query before retrying ({exc})",
                    doc.id,
                )
            except StoreUnavailable as exc:
                last_failure = str(exc)
                continue

            if written.applied:
                logger.info(
                    "ledger_operation_applied",
                    operation=operation_name,
                    item_id=doc.id,
                    operation_id=operation_id,
                    attempt=attempt,
                    **item.quantities(),
                )
                self.publisher.publish(list(item._events))
                return LedgerResult(
                    success=True,
                    operation=operation_name,
                    item_id=doc.id,
                    operation_id=operation_id,
                    snapshot=QuantitySnapshot.of(item.quantities()),
                )

            last_failure = None
            logger.info(
                "ledger_version_conflict",
                operation=operation_name,
                item_id=doc.id,
                attempt=attempt,
                expected_version=doc.version,
                current_version=written.current_version,
            )

        if last_failure is not None:
            return failure(LedgerError.INDETERMINATE, f"Store unavailable: {last_failure}")
        return failure(
            LedgerError.CONCURRENT_UPDATE_CONFLICT,
            f"Inventory item `{item_ref}` kept changing; gave up after {self.max_attempts} attempts",
        )
