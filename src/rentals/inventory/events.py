"""Domain events for the InventoryItem aggregate.

Every quantity event carries the quantities after the change so listeners
(the InventoryLevel read model, audit logs) never have to re-read the item.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from rentals.domain import rentals


@rentals.event(part_of="InventoryItem")
class ItemAdded:
    """A new item entered the catalog."""

    __version__ = 1

    item_id = Identifier(required=True)
    name = String(required=True)
    category = String(required=True)
    daily_rate = Float()
    predefined = String(required=True)  # "True"/"False"
    total_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    added_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class ItemDetailsUpdated:
    """Descriptive fields of an item were edited by an admin."""

    __version__ = 1

    item_id = Identifier(required=True)
    name = String(required=True)
    category = String(required=True)
    description = Text()
    daily_rate = Float()
    updated_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class ItemRemoved:
    """A user-added item was deleted from the catalog."""

    __version__ = 1

    item_id = Identifier(required=True)
    name = String(required=True)
    removed_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class ItemReserved:
    """Units were reserved for a booking."""

    __version__ = 1

    item_id = Identifier(required=True)
    operation_id = String()
    quantity = Integer(required=True)
    total_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    reserved_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class ReservationReleased:
    """Reserved units were handed back (cancellation, completion, rollback)."""

    __version__ = 1

    item_id = Identifier(required=True)
    operation_id = String()
    quantity = Integer(required=True)
    total_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    released_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class ItemMarkedDamaged:
    """One unit was taken out of service because it is damaged."""

    __version__ = 1

    item_id = Identifier(required=True)
    operation_id = String()
    total_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    damaged_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class ItemRestored:
    """A damaged unit came back into service (repaired or report withdrawn)."""

    __version__ = 1

    item_id = Identifier(required=True)
    operation_id = String()
    total_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    restored_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class ItemWrittenOff:
    """A damaged unit was declared unrepairable. Quantities are unchanged."""

    __version__ = 1

    item_id = Identifier(required=True)
    operation_id = String()
    total_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    written_off_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class ItemsReturned:
    """Units came back from a completed rental."""

    __version__ = 1

    item_id = Identifier(required=True)
    operation_id = String()
    quantity = Integer(required=True)
    total_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    returned_at = DateTime(required=True)


@rentals.event(part_of="InventoryItem")
class TotalQuantityAdjusted:
    """An admin changed how many units the business owns."""

    __version__ = 1

    item_id = Identifier(required=True)
    operation_id = String()
    previous_total = Integer(required=True)
    total_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    adjusted_at = DateTime(required=True)
