"""BDD tests for the damage and repair workflow."""

from pytest_bdd import given, parsers, scenarios, then, when
from rentals.damage.report import NotificationStatus

scenarios("features/damage_repair.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('damage to "{item_id}" is reported'), target_fixture="report_id")
def _(workflow, item_id):
    report = workflow.report_damage(
        item_ref=item_id,
        severity="medium",
        description="Pan handle cracked",
        estimated_repair_cost=2500.0,
        customer_name="Ana Reyes",
        customer_email="ana@example.com",
    )
    return report.id


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the repair is started")
def _(workflow, report_id):
    workflow.start_repair(report_id)


@when("the repair is completed")
def _(workflow, report_id):
    workflow.complete_repair(report_id, repair_cost=1800.0)


@when("the item is written off")
def _(workflow, report_id):
    workflow.write_off(report_id)


@when("the report is deleted")
def _(workflow, report_id):
    workflow.delete_report(report_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the report is {status}"))
def _(workflow, report_id, status):
    assert workflow.get(report_id).status == status


@then("the customer was notified")
def _(workflow, notifier, report_id):
    assert workflow.get(report_id).notification_status == NotificationStatus.SENT.value
    assert notifier.sent_emails[0]["to_email"] == "ana@example.com"
