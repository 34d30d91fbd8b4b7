"""Ledger commands — reserve, release, damage, restore, write off, return.

Handlers return the LedgerResult untouched; callers decide whether a
failure is fatal. Passing the same ``operation_id`` twice applies the
change once.
"""

from protean.fields import Integer, String
from protean.utils.mixins import handle

from rentals.domain import rentals
from rentals.inventory.item import InventoryItem
from rentals.services import get_ledger


@rentals.command(part_of="InventoryItem")
class ReserveItem:
    item_ref = String(required=True, max_length=200)  # id or name
    quantity = Integer(required=True, min_value=1)
    operation_id = String(max_length=255)


@rentals.command(part_of="InventoryItem")
class ReleaseItem:
    item_ref = String(required=True, max_length=200)
    quantity = Integer(required=True)
    operation_id = String(max_length=255)


@rentals.command(part_of="InventoryItem")
class ReturnItems:
    item_ref = String(required=True, max_length=200)
    quantity = Integer(required=True)
    operation_id = String(max_length=255)


@rentals.command(part_of="InventoryItem")
class MarkItemDamaged:
    item_ref = String(required=True, max_length=200)
    operation_id = String(max_length=255)


@rentals.command(part_of="InventoryItem")
class RestoreItem:
    item_ref = String(required=True, max_length=200)
    operation_id = String(max_length=255)


@rentals.command(part_of="InventoryItem")
class WriteOffItem:
    item_ref = String(required=True, max_length=200)
    operation_id = String(max_length=255)


@rentals.command(part_of="InventoryItem")
class AdjustTotalQuantity:
    item_ref = String(required=True, max_length=200)
    new_total = Integer(required=True)
    operation_id = String(max_length=255)


@rentals.command_handler(part_of=InventoryItem)
class InventoryLedgerHandler:
    @handle(ReserveItem)
    def reserve_item(self, command):
        return get_ledger().reserve(command.item_ref, command.quantity, command.operation_id)

    @handle(ReleaseItem)
    def release_item(self, command):
        return get_ledger().release(command.item_ref, command.quantity, command.operation_id)

    @handle(ReturnItems)
    def return_items(self, command):
        return get_ledger().return_items(command.item_ref, command.quantity, command.operation_id)

    @handle(MarkItemDamaged)
    def mark_item_damaged(self, command):
        return get_ledger().mark_damaged(command.item_ref, command.operation_id)

    @handle(RestoreItem)
    def restore_item(self, command):
        return get_ledger().mark_repaired_or_restored(command.item_ref, command.operation_id)

    @handle(WriteOffItem)
    def write_off_item(self, command):
        return get_ledger().write_off(command.item_ref, command.operation_id)

    @handle(AdjustTotalQuantity)
    def adjust_total_quantity(self, command):
        return get_ledger().adjust_total_quantity(command.item_ref, command.new_total, command.operation_id)
