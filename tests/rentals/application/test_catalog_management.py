"""Application tests for catalog management and ledger commands."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from rentals.errors import LedgerOperationFailed
from rentals.inventory.ledger import LedgerError
from rentals.inventory.management import AddItem, BootstrapCatalog, RemoveItem, UpdateItemDetails
from rentals.inventory.operations import (
    AdjustTotalQuantity,
    MarkItemDamaged,
    ReleaseItem,
    ReserveItem,
    RestoreItem,
    ReturnItems,
    WriteOffItem,
)


def _add(**overrides):
    defaults = {"name": "Blackmagic ATEM Mini", "total_quantity": 2, "category": "switcher", "item_id": "atem-mini"}
    defaults.update(overrides)
    return current_domain.process(AddItem(**defaults), asynchronous=False)


class TestCatalogCommands:
    def test_add_item(self, ledger):
        assert _add() == "atem-mini"
        item = ledger.get_item("atem-mini")
        assert item.category == "switcher"
        assert not item.predefined

    def test_add_rejects_zero_quantity(self):
        with pytest.raises(ValidationError):
            _add(total_quantity=0)

    def test_update_only_touches_given_fields(self, ledger):
        _add(daily_rate=4500.0)
        current_domain.process(UpdateItemDetails(item_ref="atem-mini", description="4 HDMI inputs"), asynchronous=False)
        item = ledger.get_item("atem-mini")
        assert item.description == "4 HDMI inputs"
        assert item.daily_rate == 4500.0

    def test_remove_reserved_item_fails(self, ledger):
        _add()
        ledger.reserve("atem-mini", 1)
        with pytest.raises(LedgerOperationFailed):
            current_domain.process(RemoveItem(item_ref="atem-mini"), asynchronous=False)

    def test_bootstrap(self, ledger):
        created = current_domain.process(BootstrapCatalog(requested_by="test"), asynchronous=False)
        assert "sachtler-tripod" in created
        assert ledger.get_item("sachtler-tripod").predefined


class TestLedgerCommands:
    def test_reserve_and_release(self, ledger):
        _add()
        result = current_domain.process(
            ReserveItem(item_ref="atem-mini", quantity=2, operation_id="op-1"), asynchronous=False
        )
        assert result.success
        result = current_domain.process(ReleaseItem(item_ref="atem-mini", quantity=1), asynchronous=False)
        assert result.snapshot.reserved_quantity == 1

    def test_failures_come_back_as_results(self, ledger):
        _add()
        result = current_domain.process(ReserveItem(item_ref="atem-mini", quantity=3), asynchronous=False)
        assert not result.success
        assert result.error == LedgerError.INSUFFICIENT_STOCK

    def test_damage_restore_write_off_return_adjust(self, ledger):
        _add()
        current_domain.process(MarkItemDamaged(item_ref="atem-mini"), asynchronous=False)
        current_domain.process(WriteOffItem(item_ref="atem-mini"), asynchronous=False)
        current_domain.process(RestoreItem(item_ref="atem-mini"), asynchronous=False)
        current_domain.process(ReturnItems(item_ref="atem-mini", quantity=1), asynchronous=False)
        result = current_domain.process(AdjustTotalQuantity(item_ref="atem-mini", new_total=4), asynchronous=False)
        assert result.snapshot.total_quantity == 4
        assert result.snapshot.available_quantity == 4
