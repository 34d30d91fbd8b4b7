"""Application tests for the InventoryLedger against the in-memory store."""

import pytest
from protean.exceptions import ValidationError
from rentals.errors import ItemNotFound, LedgerOperationFailed
from rentals.inventory.catalog import PREDEFINED_CATALOG
from rentals.inventory.events import ItemMarkedDamaged, ItemReserved
from rentals.inventory.ledger import ITEMS_COLLECTION, InventoryLedger, LedgerError


def _quantities(ledger, item_id):
    item = ledger.get_item(item_id)
    return {
        "total": item.total_quantity,
        "available": item.available_quantity,
        "reserved": item.reserved_quantity,
    }


@pytest.fixture()
def tripod(ledger):
    return ledger.add_item(name="Manfrotto Tripod", total_quantity=3, category="tripod", item_id="tripod-x")


class TestReserve:
    def test_reserve_all_then_one_more_is_rejected(self, ledger, tripod):
        result = ledger.reserve("tripod-x", 3)
        assert result.success
        assert result.snapshot.reserved_quantity == 3

        rejected = ledger.reserve("tripod-x", 1)
        assert not rejected.success
        assert rejected.error == LedgerError.INSUFFICIENT_STOCK
        assert _quantities(ledger, "tripod-x") == {"total": 3, "available": 3, "reserved": 3}

    def test_unknown_item_is_not_found(self, ledger):
        result = ledger.reserve("no-such-item", 1)
        assert not result.success
        assert result.error == LedgerError.ITEM_NOT_FOUND

    def test_non_positive_quantity_is_invalid(self, ledger, tripod):
        result = ledger.reserve("tripod-x", 0)
        assert result.error == LedgerError.INVALID_REQUEST
        assert _quantities(ledger, "tripod-x")["reserved"] == 0

    def test_items_can_be_addressed_by_name(self, ledger, tripod):
        result = ledger.reserve("manfrotto tripod", 1)
        assert result.success
        assert result.item_id == "tripod-x"


class TestDamageAndRestore:
    def test_damage_then_restore_is_conserved(self, ledger):
        ledger.add_item(name="Sony PMW-200", total_quantity=2, item_id="pmw-200")

        assert ledger.mark_damaged("pmw-200").success
        assert _quantities(ledger, "pmw-200") == {"total": 1, "available": 1, "reserved": 0}

        assert ledger.mark_repaired_or_restored("pmw-200").success
        assert _quantities(ledger, "pmw-200") == {"total": 2, "available": 2, "reserved": 0}

    def test_damage_fails_when_every_unit_is_reserved(self, ledger, tripod):
        ledger.reserve("tripod-x", 3)
        result = ledger.mark_damaged("tripod-x")
        assert result.error == LedgerError.INSUFFICIENT_STOCK

    def test_write_off_is_audit_only(self, ledger, tripod):
        ledger.mark_damaged("tripod-x")
        before = _quantities(ledger, "tripod-x")
        assert ledger.write_off("tripod-x").success
        assert _quantities(ledger, "tripod-x") == before


class TestReturnAndAdjust:
    def test_return_caps_available_at_total(self, ledger, tripod):
        assert ledger.return_items("tripod-x", 5).success
        assert _quantities(ledger, "tripod-x")["available"] == 3

    def test_adjust_total_below_reserved_is_invalid(self, ledger, tripod):
        ledger.reserve("tripod-x", 2)
        result = ledger.adjust_total_quantity("tripod-x", 1)
        assert result.error == LedgerError.INVALID_REQUEST

    def test_adjust_total_moves_available(self, ledger, tripod):
        assert ledger.adjust_total_quantity("tripod-x", 5).success
        assert _quantities(ledger, "tripod-x") == {"total": 5, "available": 5, "reserved": 0}


class TestIdempotentOperations:
    def test_same_operation_id_applies_once(self, ledger, tripod):
        first = ledger.reserve("tripod-x", 2, "bk-1:reserve:tripod-x")
        second = ledger.reserve("tripod-x", 2, "bk-1:reserve:tripod-x")

        assert first.success and not first.duplicate
        assert second.success and second.duplicate
        assert second.snapshot == first.snapshot
        assert _quantities(ledger, "tripod-x")["reserved"] == 2

    def test_restore_key_is_shared_between_repair_and_delete(self, ledger, tripod):
        ledger.mark_damaged("tripod-x", "rep-1:markDamaged")
        ledger.mark_repaired_or_restored("tripod-x", "rep-1:restore")
        ledger.mark_repaired_or_restored("tripod-x", "rep-1:restore")
        assert _quantities(ledger, "tripod-x") == {"total": 3, "available": 3, "reserved": 0}


class TestOptimisticConcurrency:
    def test_version_conflict_is_retried(self, ledger, store, tripod):
        store.inject_fault("put", kind="conflict", collection=ITEMS_COLLECTION, doc_id="tripod-x", times=2)
        result = ledger.reserve("tripod-x", 1)
        assert result.success
        assert _quantities(ledger, "tripod-x")["reserved"] == 1

    def test_conflicts_beyond_max_attempts_fail(self, store, tripod):
        ledger = InventoryLedger(store, max_attempts=2)
        store.inject_fault("put", kind="conflict", doc_id="tripod-x", times=2)
        result = ledger.reserve("tripod-x", 1)
        assert result.error == LedgerError.CONCURRENT_UPDATE_CONFLICT
        assert _quantities(ledger, "tripod-x")["reserved"] == 0

    def test_retry_rechecks_stock_after_conflict(self, ledger, store, tripod):
        ledger.reserve("tripod-x", 2)
        # A concurrent writer wins; the retry still sees only one free unit
        store.inject_fault("put", kind="conflict", doc_id="tripod-x")
        assert ledger.reserve("tripod-x", 1).success
        assert ledger.reserve("tripod-x", 1).error == LedgerError.INSUFFICIENT_STOCK


class TestStoreFailures:
    def test_write_timeout_is_indeterminate(self, ledger, store, tripod):
        store.inject_fault("put", kind="timeout", doc_id="tripod-x")
        result = ledger.reserve("tripod-x", 1, "op-t1")
        assert result.error == LedgerError.INDETERMINATE
        assert _quantities(ledger, "tripod-x")["reserved"] == 0

    def test_retry_after_applied_timeout_does_not_double_apply(self, ledger, store, tripod):
        store.inject_fault("put", kind="timeout", doc_id="tripod-x", applied=True)
        first = ledger.reserve("tripod-x", 1, "op-t2")
        assert first.error == LedgerError.INDETERMINATE

        retried = ledger.reserve("tripod-x", 1, "op-t2")
        assert retried.success and retried.duplicate
        assert _quantities(ledger, "tripod-x")["reserved"] == 1

    def test_unavailable_store_is_retried(self, ledger, store, tripod):
        store.inject_fault("put", kind="unavailable", doc_id="tripod-x")
        assert ledger.reserve("tripod-x", 1).success

    def test_store_down_for_every_attempt_is_indeterminate(self, ledger, store, tripod):
        store.inject_fault("get", kind="unavailable", times=ledger.max_attempts)
        result = ledger.reserve("tripod-x", 1)
        assert result.error == LedgerError.INDETERMINATE


class TestCatalog:
    def test_bootstrap_creates_predefined_items_once(self, ledger):
        created = ledger.bootstrap_catalog()
        assert len(created) == len(PREDEFINED_CATALOG)
        assert ledger.bootstrap_catalog() == []
        assert all(item.predefined for item in ledger.list_items())

    def test_add_item_generates_id(self, ledger):
        item = ledger.add_item(name="Rode Wireless Go", total_quantity=2)
        assert str(item.id).startswith("item-")

    def test_duplicate_item_id_is_rejected(self, ledger, tripod):
        with pytest.raises(ValidationError):
            ledger.add_item(name="Another", total_quantity=1, item_id="tripod-x")

    def test_update_details_leaves_quantities_alone(self, ledger, tripod):
        ledger.reserve("tripod-x", 1)
        ledger.update_item_details("tripod-x", name="Manfrotto 504X", daily_rate=1200.0)
        item = ledger.get_item("tripod-x")
        assert item.name == "Manfrotto 504X"
        assert item.daily_rate == 1200.0
        assert item.reserved_quantity == 1

    def test_remove_item(self, ledger, tripod):
        ledger.remove_item("tripod-x")
        with pytest.raises(ItemNotFound):
            ledger.get_item("tripod-x")

    def test_predefined_items_cannot_be_removed(self, ledger):
        ledger.bootstrap_catalog()
        with pytest.raises(LedgerOperationFailed) as exc_info:
            ledger.remove_item("sachtler-tripod")
        assert exc_info.value.result.error == LedgerError.INVALID_REQUEST

    def test_list_available_only(self, ledger, tripod):
        ledger.add_item(name="Booked Out", total_quantity=1, item_id="booked-out")
        ledger.reserve("booked-out", 1)
        names = [item.name for item in ledger.list_items(available_only=True)]
        assert names == ["Manfrotto Tripod"]

    def test_is_available(self, ledger, tripod):
        assert ledger.is_available("tripod-x", 3)
        assert not ledger.is_available("tripod-x", 4)
        assert not ledger.is_available("unknown", 1)


class TestListeners:
    def test_listeners_receive_committed_events(self, ledger, tripod):
        received = []
        unsubscribe = ledger.subscribe(received.append)
        ledger.reserve("tripod-x", 1)
        ledger.mark_damaged("tripod-x")
        unsubscribe()
        ledger.release("tripod-x", 1)

        assert [type(e) for e in received] == [ItemReserved, ItemMarkedDamaged]

    def test_rejected_operations_notify_nobody(self, ledger, tripod):
        received = []
        ledger.subscribe(received.append)
        ledger.reserve("tripod-x", 10)
        assert received == []

    def test_broken_listener_does_not_undo_the_write(self, ledger, tripod):
        def broken(event):
            raise RuntimeError("listener down")

        ledger.subscribe(broken)
        assert ledger.reserve("tripod-x", 1).success
        assert _quantities(ledger, "tripod-x")["reserved"] == 1

    def test_broken_listener_still_returns_the_result(self, ledger, tripod):
        def broken(event):
            raise RuntimeError("listener down")

        ledger.subscribe(broken)
        result = ledger.reserve("tripod-x", 1, "op-broken-1")
        assert result.success
        assert result.snapshot.reserved_quantity == 1
        assert ledger.reserve("tripod-x", 1, "op-broken-1").duplicate


class TestConservation:
    def test_reserve_damage_restore_release_returns_to_start(self, ledger):
        ledger.add_item(name="Godox SL-60", total_quantity=5, item_id="godox-sl60")

        assert ledger.reserve("godox-sl60", 2).success
        assert ledger.mark_damaged("godox-sl60").success
        assert _quantities(ledger, "godox-sl60") == {"total": 4, "available": 4, "reserved": 2}
        assert ledger.mark_repaired_or_restored("godox-sl60").success
        assert ledger.release("godox-sl60", 2).success

        assert _quantities(ledger, "godox-sl60") == {"total": 5, "available": 5, "reserved": 0}

    def test_quantities_stay_ordered_across_mixed_operations(self, ledger):
        ledger.add_item(name="Godox SL-60", total_quantity=3, item_id="godox-sl60")
        steps = [
            lambda: ledger.reserve("godox-sl60", 2),
            lambda: ledger.mark_damaged("godox-sl60"),
            lambda: ledger.mark_damaged("godox-sl60"),
            lambda: ledger.reserve("godox-sl60", 1),
            lambda: ledger.return_items("godox-sl60", 4),
            lambda: ledger.release("godox-sl60", 5),
            lambda: ledger.mark_damaged("godox-sl60"),
            lambda: ledger.mark_damaged("godox-sl60"),
            lambda: ledger.mark_damaged("godox-sl60"),
            lambda: ledger.mark_repaired_or_restored("godox-sl60"),
            lambda: ledger.adjust_total_quantity("godox-sl60", 6),
            lambda: ledger.reserve("godox-sl60", 7),
            lambda: ledger.write_off("godox-sl60"),
        ]

        for step in steps:
            step()
            q = _quantities(ledger, "godox-sl60")
            assert 0 <= q["reserved"] <= q["available"] <= q["total"]
            assert q["total"] >= 1


class TestConfiguration:
    def test_zero_attempts_is_rejected(self, store):
        with pytest.raises(ValueError):
            InventoryLedger(store, max_attempts=0)

    def test_attempts_default_from_environment(self, store, monkeypatch):
        monkeypatch.setenv("LEDGER_MAX_ATTEMPTS", "5")
        assert InventoryLedger(store).max_attempts == 5


class TestSettlingIndeterminateResults:
    def test_operation_applied_after_a_landed_timeout(self, ledger, store, tripod):
        store.inject_fault("put", kind="timeout", doc_id="tripod-x", applied=True)
        assert ledger.reserve("tripod-x", 1, "op-landed").error == LedgerError.INDETERMINATE
        assert ledger.operation_applied("tripod-x", "op-landed")

    def test_operation_not_applied_after_a_lost_timeout(self, ledger, store, tripod):
        store.inject_fault("put", kind="timeout", doc_id="tripod-x")
        ledger.reserve("tripod-x", 1, "op-lost")
        assert not ledger.operation_applied("tripod-x", "op-lost")
