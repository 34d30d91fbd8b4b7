"""Catalog management — add, edit and delete items, bootstrap the predefined catalog.

Predefined items can be edited but never deleted. User-added items can be
deleted only while nothing of them is reserved.
"""

from protean.fields import Float, Integer, String, Text
from protean.utils.mixins import handle

from rentals.domain import rentals
from rentals.inventory.item import InventoryItem, ItemCategory
from rentals.services import get_ledger


@rentals.command(part_of="InventoryItem")
class AddItem:
    name = String(required=True, max_length=200)
    total_quantity = Integer(required=True, min_value=1)
    category = String(max_length=50, default=ItemCategory.UNCATEGORIZED.value)
    item_id = String(max_length=200)
    description = Text()
    daily_rate = Float(default=0.0)
    image_url = String(max_length=500)


@rentals.command(part_of="InventoryItem")
class UpdateItemDetails:
    item_ref = String(required=True, max_length=200)
    name = String(max_length=200)
    category = String(max_length=50)
    description = Text()
    daily_rate = Float()
    image_url = String(max_length=500)


@rentals.command(part_of="InventoryItem")
class RemoveItem:
    item_ref = String(required=True, max_length=200)


@rentals.command(part_of="InventoryItem")
class BootstrapCatalog:
    requested_by = String(max_length=100)


@rentals.command_handler(part_of=InventoryItem)
class CatalogManagementHandler:
    @handle(AddItem)
    def add_item(self, command):
        item = get_ledger().add_item(
            name=command.name,
            total_quantity=command.total_quantity,
            category=command.category,
            item_id=command.item_id,
            description=command.description,
            daily_rate=command.daily_rate,
            image_url=command.image_url,
        )
        return str(item.id)

    @handle(UpdateItemDetails)
    def update_item_details(self, command):
        changes = {
            field: getattr(command, field)
            for field in ("name", "category", "description", "daily_rate", "image_url")
            if getattr(command, field) is not None
        }
        return get_ledger().update_item_details(command.item_ref, **changes)

    @handle(RemoveItem)
    def remove_item(self, command):
        return get_ledger().remove_item(command.item_ref)

    @handle(BootstrapCatalog)
    def bootstrap_catalog(self, command):
        return get_ledger().bootstrap_catalog()
