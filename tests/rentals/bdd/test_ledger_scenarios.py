"""BDD tests for the inventory ledger."""

from pytest_bdd import parsers, scenarios, then, when

scenarios("features/inventory_ledger.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('{quantity:d} units of "{item_id}" are reserved'), target_fixture="result")
def _(ledger, ledger_events, item_id, quantity):
    return ledger.reserve(item_id, quantity)


@when(parsers.cfparse('another unit of "{item_id}" is reserved'), target_fixture="result")
def _(ledger, item_id):
    return ledger.reserve(item_id, 1)


@when(parsers.cfparse('a unit of "{item_id}" is marked damaged'), target_fixture="result")
def _(ledger, item_id):
    return ledger.mark_damaged(item_id)


@when(parsers.cfparse('a unit of "{item_id}" is restored'), target_fixture="result")
def _(ledger, item_id):
    return ledger.mark_repaired_or_restored(item_id)


@when(
    parsers.cfparse('reservation "{operation_id}" for {quantity:d} units of "{item_id}" is sent twice'),
    target_fixture="result",
)
def _(ledger, operation_id, quantity, item_id):
    ledger.reserve(item_id, quantity, operation_id)
    return ledger.reserve(item_id, quantity, operation_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the second call is reported as a duplicate")
def _(result):
    assert result.success
    assert result.duplicate
