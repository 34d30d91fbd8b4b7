"""InventoryLevel — read-optimized quantity view per item.

A cache of the item documents, never a second writable copy: rows are
refreshed from the quantities carried by ledger events and re-loaded from
the document store whenever a row is missing.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from rentals.domain import rentals
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

_QUANTITY_EVENTS = (
    ItemReserved,
    ReservationReleased,
    ItemMarkedDamaged,
    ItemRestored,
    ItemWrittenOff,
    ItemsReturned,
    TotalQuantityAdjusted,
)


@rentals.projection
class InventoryLevel:
    item_id = Identifier(identifier=True, required=True)
    name = String(max_length=200)
    category = String(max_length=50)
    total_quantity = Integer(default=0)
    available_quantity = Integer(default=0)
    reserved_quantity = Integer(default=0)
    free_for_reservation = Integer(default=0)
    updated_at = DateTime()


def _level_from_item(item):
    return InventoryLevel(
        item_id=str(item.id),
        name=item.name,
        category=item.category,
        total_quantity=item.total_quantity,
        available_quantity=item.available_quantity,
        reserved_quantity=item.reserved_quantity,
        free_for_reservation=item.free_for_reservation(),
        updated_at=item.updated_at,
    )


class InventoryLevelProjector:
    """Ledger subscriber keeping InventoryLevel rows current."""

    def __init__(self, ledger):
        self.ledger = ledger

    def __call__(self, event):
        if isinstance(event, ItemAdded):
            self.on_item_added(event)
        elif isinstance(event, ItemDetailsUpdated):
            self.on_details_updated(event)
        elif isinstance(event, ItemRemoved):
            self.on_item_removed(event)
        elif isinstance(event, _QUANTITY_EVENTS):
            self.on_quantities_changed(event)

    def _get_or_load(self, item_id):
        repo = current_domain.repository_for(InventoryLevel)
        try:
            return repo.get(item_id)
        except ObjectNotFoundError:
            return _level_from_item(self.ledger.get_item(item_id))

    def on_item_added(self, event):
        current_domain.repository_for(InventoryLevel).add(
            InventoryLevel(
                item_id=event.item_id,
                name=event.name,
                category=event.category,
                total_quantity=event.total_quantity,
                available_quantity=event.available_quantity,
                reserved_quantity=event.reserved_quantity,
                free_for_reservation=event.available_quantity - event.reserved_quantity,
                updated_at=event.added_at,
            )
        )

    def on_details_updated(self, event):
        level = self._get_or_load(event.item_id)
        level.name = event.name
        level.category = event.category
        level.updated_at = event.updated_at
        current_domain.repository_for(InventoryLevel).add(level)

    def on_item_removed(self, event):
        repo = current_domain.repository_for(InventoryLevel)
        try:
            level = repo.get(event.item_id)
        except ObjectNotFoundError:
            return  # Never cached
        repo._dao.delete(level)

    def on_quantities_changed(self, event):
        level = self._get_or_load(event.item_id)
        level.total_quantity = event.total_quantity
        level.available_quantity = event.available_quantity
        level.reserved_quantity = event.reserved_quantity
        level.free_for_reservation = max(0, event.available_quantity - event.reserved_quantity)
        current_domain.repository_for(InventoryLevel).add(level)


def current_level(item_id) -> InventoryLevel:
    """Read-through lookup: a missing row is loaded from the store and cached."""
    from rentals.services import get_ledger

    repo = current_domain.repository_for(InventoryLevel)
    try:
        return repo.get(item_id)
    except ObjectNotFoundError:
        level = _level_from_item(get_ledger().get_item(item_id))
        repo.add(level)
        return level
