"""Tests for the in-memory document store and the document repository."""

import pytest
from rentals.errors import BookingNotFound, ConcurrentUpdateConflict, Indeterminate
from rentals.store.memory_adapter import MemoryDocumentStore
from rentals.store.port import StoreTimeout, StoreUnavailable


@pytest.fixture()
def memory_store():
    return MemoryDocumentStore()


class TestMemoryDocumentStore:
    def test_insert_requires_expected_version_zero(self, memory_store):
        assert memory_store.put("things", "a", {"n": 1}, 0).applied
        result = memory_store.put("things", "a", {"n": 2}, 0)
        assert not result.applied
        assert result.current_version == 1

    def test_compare_and_swap_bumps_version(self, memory_store):
        memory_store.put("things", "a", {"n": 1}, 0)
        result = memory_store.put("things", "a", {"n": 2}, 1)
        assert result.applied and result.version == 2
        assert memory_store.get("things", "a").data == {"n": 2}

    def test_returned_documents_are_copies(self, memory_store):
        memory_store.put("things", "a", {"tags": ["x"]}, 0)
        memory_store.get("things", "a").data["tags"].append("y")
        assert memory_store.get("things", "a").data == {"tags": ["x"]}

    def test_query_filters_by_equality(self, memory_store):
        memory_store.put("things", "a", {"kind": "cam"}, 0)
        memory_store.put("things", "b", {"kind": "tripod"}, 0)
        assert [doc.id for doc in memory_store.query("things", {"kind": "cam"})] == ["a"]

    def test_guarded_delete(self, memory_store):
        memory_store.put("things", "a", {}, 0)
        assert not memory_store.delete("things", "a", expected_version=5).applied
        assert memory_store.delete("things", "a", expected_version=1).applied
        assert memory_store.get("things", "a") is None

    def test_injected_timeout_can_still_apply_the_write(self, memory_store):
        memory_store.inject_fault("put", kind="timeout", applied=True)
        with pytest.raises(StoreTimeout):
            memory_store.put("things", "a", {"n": 1}, 0)
        assert memory_store.get("things", "a").version == 1

    def test_injected_outage_applies_nothing(self, memory_store):
        memory_store.inject_fault("put", kind="unavailable")
        with pytest.raises(StoreUnavailable):
            memory_store.put("things", "a", {"n": 1}, 0)
        assert memory_store.get("things", "a") is None

    def test_faults_are_used_up(self, memory_store):
        memory_store.inject_fault("get", kind="unavailable", times=1)
        with pytest.raises(StoreUnavailable):
            memory_store.get("things", "a")
        assert memory_store.get("things", "a") is None

    def test_unknown_fault_kind(self, memory_store):
        with pytest.raises(ValueError):
            memory_store.inject_fault("put", kind="gremlins")


class TestDocumentRepository:
    @pytest.fixture()
    def bookings(self, memory_store):
        from rentals.booking.booking import Booking
        from rentals.store.repository import DocumentRepository

        return DocumentRepository(memory_store, "bookings", Booking, BookingNotFound, max_attempts=2)

    @pytest.fixture()
    def booking(self, bookings):
        from datetime import date

        from rentals.booking.booking import Booking

        booking = Booking.create(
            user_id="user-001",
            start_date=date(2026, 1, 1),
            end_date=date(2026, 1, 1),
            items=[{"item_id": "pmw-200", "quantity": 1, "unit_price": 100.0}],
        )
        return bookings.add(booking)

    def test_missing_document_raises_not_found(self, bookings):
        with pytest.raises(BookingNotFound):
            bookings.get("missing")

    def test_adding_twice_conflicts(self, bookings, booking):
        with pytest.raises(ConcurrentUpdateConflict):
            bookings.add(booking)

    def test_update_gives_up_after_max_attempts(self, bookings, memory_store, booking):
        memory_store.inject_fault("put", kind="conflict", times=2)
        with pytest.raises(ConcurrentUpdateConflict):
            bookings.update(booking.id, lambda b: b.record_payment(10.0))
        assert bookings.get(booking.id).amount_paid == 0.0

    def test_store_failures_surface_as_indeterminate(self, bookings, memory_store, booking):
        memory_store.inject_fault("get", kind="timeout")
        with pytest.raises(Indeterminate):
            bookings.get(booking.id)
