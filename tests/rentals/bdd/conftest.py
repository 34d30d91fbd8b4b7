"""Shared BDD fixtures and step definitions for the rentals domain."""

import pytest
from pytest_bdd import given, parsers, then
from rentals.inventory.ledger import ITEMS_COLLECTION, LedgerError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def ledger_events(ledger):
    """Events the ledger committed while the scenario ran."""
    received = []
    unsubscribe = ledger.subscribe(received.append)
    yield received
    unsubscribe()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an item "{item_id}" with {total:d} units'))
def _(ledger, item_id, total):
    ledger.add_item(name=item_id.replace("-", " ").title(), total_quantity=total, item_id=item_id)


@given(parsers.cfparse('{quantity:d} units of "{item_id}" were reserved'))
def _(ledger, item_id, quantity):
    assert ledger.reserve(item_id, quantity).success


@given(parsers.cfparse('the store times out writing "{item_id}"'))
def _(store, item_id):
    store.inject_fault("put", kind="timeout", collection=ITEMS_COLLECTION, doc_id=item_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{item_id}" has total {total:d}, available {available:d} and reserved {reserved:d}'))
def _(ledger, item_id, total, available, reserved):
    item = ledger.get_item(item_id)
    assert (item.total_quantity, item.available_quantity, item.reserved_quantity) == (total, available, reserved)


@then(parsers.cfparse("the ledger rejects it with {error}"))
def _(result, error):
    assert not result.success
    assert result.error == LedgerError(error)


@then(parsers.cfparse("an {event_type} event is published"))
def _(ledger_events, event_type):
    assert event_type in [type(event).__name__ for event in ledger_events]
