"""Tests for the DamageReport aggregate state machine."""

import pytest
from protean.exceptions import ValidationError
from rentals.damage.events import CustomerNotified, DamageReportDeleted, DamageReported, DamageStatusChanged
from rentals.damage.report import DamageReport, DamageStatus
from rentals.errors import InvalidTransition


def _make_report(**overrides):
    defaults = {
        "item_id": "sachtler-tripod",
        "item_name": "Sachtler Tripod",
        "severity": "medium",
        "description": "Pan handle cracked",
        "estimated_repair_cost": 2500.0,
        "penalty_fee": 500.0,
    }
    defaults.update(overrides)
    return DamageReport.report(**defaults)


class TestReportDamage:
    def test_new_report_is_damaged(self):
        report = _make_report()
        assert report.status == DamageStatus.DAMAGED.value
        assert report.reported_at is not None

    def test_report_raises_damage_reported(self):
        report = _make_report()
        events = [e for e in report._events if isinstance(e, DamageReported)]
        assert len(events) == 1
        assert events[0].severity == "medium"

    def test_negative_costs_are_rejected(self):
        with pytest.raises(ValidationError):
            _make_report(penalty_fee=-1.0)

    def test_unknown_severity_is_rejected(self):
        with pytest.raises(ValidationError):
            _make_report(severity="catastrophic")

    def test_document_round_trip(self):
        report = _make_report(booking_id="bk-001")
        restored = DamageReport.from_document(str(report.id), report.to_document())
        assert restored.status == report.status
        assert restored.booking_id == "bk-001"
        assert restored.reported_at == report.reported_at


class TestRepairTransitions:
    def test_start_then_complete_repair(self):
        report = _make_report()
        report.start_repair()
        assert report.status == DamageStatus.UNDER_REPAIR.value
        assert report.repair_started_at is not None

        report.complete_repair(1800.0)
        assert report.status == DamageStatus.REPAIRED.value
        assert report.repair_cost == 1800.0
        assert report.repaired_at is not None

    def test_complete_without_cost_keeps_estimate(self):
        report = _make_report()
        report.start_repair()
        report.complete_repair()
        assert report.repair_cost == 2500.0

    def test_revert_repair_goes_back_to_damaged(self):
        report = _make_report()
        report.start_repair()
        report.revert_repair()
        assert report.status == DamageStatus.DAMAGED.value
        assert report.repair_started_at is None

    def test_write_off_from_damaged(self):
        report = _make_report()
        report.write_off()
        assert report.status == DamageStatus.WRITTEN_OFF.value
        assert report.written_off_at is not None

    def test_cannot_repair_without_starting(self):
        report = _make_report()
        with pytest.raises(InvalidTransition):
            report.complete_repair()

    def test_cannot_write_off_under_repair(self):
        report = _make_report()
        report.start_repair()
        with pytest.raises(InvalidTransition):
            report.write_off()

    def test_repaired_is_terminal(self):
        report = _make_report()
        report.start_repair()
        report.complete_repair()
        with pytest.raises(InvalidTransition):
            report.start_repair()

    def test_transition_raises_status_changed(self):
        report = _make_report()
        report.start_repair()
        event = report._events[-1]
        assert isinstance(event, DamageStatusChanged)
        assert event.previous_status == "damaged"
        assert event.new_status == "under-repair"


class TestWithdrawAndNotify:
    def test_withdraw_raises_deleted_event(self):
        report = _make_report()
        report.withdraw(restored=True)
        event = report._events[-1]
        assert isinstance(event, DamageReportDeleted)
        assert event.restored == "True"

    def test_record_notification(self):
        report = _make_report()
        report.record_notification("failed", "No customer email available")
        assert report.notification_status == "failed"
        assert report.notification_error == "No customer email available"
        assert isinstance(report._events[-1], CustomerNotified)
