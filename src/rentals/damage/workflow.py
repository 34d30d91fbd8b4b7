"""DamageRepairWorkflow — damage reports and their ledger effects as one saga.

    report      ledger.mark_damaged, then save the report
                (save failed, or the mark timed out but landed →
                ledger restore with the ``:compensate`` key)
    repair      ledger restore (``:restore`` key), then status = repaired
    write off   ledger write_off (audit only), then status = written-off
    delete      while damaged: ledger restore (``:restore`` key), then delete
                otherwise: delete the report only

Repair and delete-while-damaged share the ``:restore`` key, so a unit can
be put back into service at most once per report.

Customer notification after reporting is best-effort: its outcome is
stored on the report and never undoes anything.
"""

from dataclasses import dataclass, field

import structlog

from rentals.booking.booking import Booking
from rentals.booking.lifecycle import BOOKINGS_COLLECTION
from rentals.damage.report import DamageReport, DamageStatus, NotificationStatus
from rentals.errors import (
    BookingNotFound,
    ConcurrentUpdateConflict,
    DamageReportNotFound,
    Indeterminate,
    LedgerOperationFailed,
)
from rentals.inventory.ledger import InventoryLedger, LedgerError
from rentals.notification.damage_report import DamageReportTemplate
from rentals.notification.port import NotificationPort
from rentals.store.port import DocumentStore
from rentals.store.repository import DocumentRepository

logger = structlog.get_logger(__name__)

DAMAGE_REPORTS_COLLECTION = "damage_reports"


def operation_id(report_id, step):
    return f"{report_id}:{step}"


@dataclass
class DamageSummary:
    total_reports: int = 0
    by_status: dict = field(default_factory=lambda: {status.value: 0 for status in DamageStatus})
    open_estimated_cost: float = 0.0
    total_repair_cost: float = 0.0
    total_penalty_fees: float = 0.0


class DamageRepairWorkflow:
    def __init__(self, store: DocumentStore, ledger: InventoryLedger, notifier: NotificationPort):
        self.ledger = ledger
        self.notifier = notifier
        self.reports = DocumentRepository(
            store,
            DAMAGE_REPORTS_COLLECTION,
            DamageReport,
            DamageReportNotFound,
            max_attempts=ledger.max_attempts,
            publisher=ledger.publisher,
        )
        self.bookings = DocumentRepository(store, BOOKINGS_COLLECTION, Booking, BookingNotFound)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get(self, report_id) -> DamageReport:
        return self.reports.get(report_id)

    def list_reports(self, status=None, item_id=None) -> list[DamageReport]:
        filters = {}
        if status:
            filters["status"] = status
        if item_id:
            filters["item_id"] = item_id
        reports = self.reports.list(**filters)
        return sorted(reports, key=lambda r: r.reported_at, reverse=True)

    def summary(self) -> DamageSummary:
        summary = DamageSummary()
        for report in self.reports.list():
            summary.total_reports += 1
            summary.by_status[report.status] += 1
            summary.total_penalty_fees += report.penalty_fee or 0.0
            if report.status in (DamageStatus.DAMAGED.value, DamageStatus.UNDER_REPAIR.value):
                summary.open_estimated_cost += report.estimated_repair_cost or 0.0
            elif report.status == DamageStatus.REPAIRED.value:
                summary.total_repair_cost += report.repair_cost or 0.0
        return summary

    # -------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------
    def report_damage(
        self,
        item_ref,
        severity,
        description=None,
        booking_id=None,
        estimated_repair_cost=0.0,
        estimated_repair_time=None,
        penalty_fee=0.0,
        customer_name=None,
        customer_email=None,
        reported_by=None,
        notify_customer=True,
    ) -> DamageReport:
        item = self.ledger.get_item(item_ref)
        booking = self._booking(booking_id)
        if booking is not None:
            customer_name = customer_name or booking.customer_name
            customer_email = customer_email or booking.customer_email

        report = DamageReport.report(
            item_id=str(item.id),
            item_name=item.name,
            severity=severity,
            description=description,
            booking_id=booking_id,
            estimated_repair_cost=estimated_repair_cost,
            estimated_repair_time=estimated_repair_time,
            penalty_fee=penalty_fee,
            customer_name=customer_name,
            customer_email=customer_email,
            reported_by=reported_by,
        )
        report_id = str(report.id)

        damage_id = operation_id(report_id, "markDamaged")
        result = self.ledger.mark_damaged(report.item_id, damage_id)
        if not result.success:
            if result.error == LedgerError.INDETERMINATE and self._damage_landed(report, damage_id):
                # No report will exist to restore the unit later
                self._compensate(report)
            raise LedgerOperationFailed(result)

        try:
            self.reports.add(report)
        except Indeterminate:
            if not self._saved(report_id):
                self._compensate(report)
                raise
            self.reports.publish(report)
        except Exception:
            self._compensate(report)
            raise

        logger.info(
            "damage_reported",
            report_id=report_id,
            item_id=report.item_id,
            severity=severity,
            booking_id=booking_id,
        )

        status, error = self._notify_customer(report, booking, notify_customer)
        report.record_notification(status, error)
        try:
            self.reports.update(report_id, lambda r: r.record_notification(status, error))
        except (Indeterminate, ConcurrentUpdateConflict) as exc:
            logger.warning("damage_notification_status_not_saved", report_id=report_id, error=exc.message)
        return report

    def _booking(self, booking_id):
        if not booking_id:
            return None
        try:
            return self.bookings.get(booking_id)
        except BookingNotFound:
            logger.info("damage_report_booking_missing", booking_id=booking_id)
            return None

    def _saved(self, report_id):
        try:
            self.reports.get(report_id)
            return True
        except DamageReportNotFound:
            return False

    def _damage_landed(self, report, damage_id):
        try:
            return self.ledger.operation_applied(report.item_id, damage_id)
        except Indeterminate as exc:
            logger.error(
                "damage_mark_unresolved",
                report_id=str(report.id),
                item_id=report.item_id,
                operation_id=damage_id,
                reason=exc.message,
            )
            return False

    def _compensate(self, report):
        result = self.ledger.mark_repaired_or_restored(report.item_id, operation_id(report.id, "compensate"))
        if result.success:
            logger.info("damage_report_compensated", report_id=str(report.id), item_id=report.item_id)
        else:
            logger.error(
                "damage_report_compensation_failed",
                report_id=str(report.id),
                item_id=report.item_id,
                error=result.error.value,
                reason=result.message,
            )

    def _notify_customer(self, report, booking, notify_customer):
        if not notify_customer:
            return NotificationStatus.SKIPPED.value, None
        if not report.customer_email:
            return NotificationStatus.FAILED.value, "No customer email available"

        params = DamageReportTemplate.render(
            {
                "customer_email": report.customer_email,
                "customer_name": report.customer_name,
                "booking_id": report.booking_id,
                "venue": booking.venue if booking else None,
                "rental_date": booking.start_date.isoformat() if booking else None,
                "return_date": booking.end_date.isoformat() if booking else None,
                "item_name": report.item_name,
                "severity": report.severity,
                "description": report.description,
                "estimated_repair_cost": report.estimated_repair_cost,
                "penalty_fee": report.penalty_fee,
                "reported_at": report.reported_at,
            }
        )
        try:
            response = self.notifier.send(params)
        except Exception as exc:
            logger.exception("damage_notification_error", report_id=str(report.id))
            return NotificationStatus.FAILED.value, str(exc)

        if response.get("status") == NotificationStatus.SENT.value:
            logger.info("damage_notification_sent", report_id=str(report.id), message_id=response.get("message_id"))
            return NotificationStatus.SENT.value, None

        logger.warning("damage_notification_failed", report_id=str(report.id), error=response.get("error"))
        return NotificationStatus.FAILED.value, response.get("error")

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def start_repair(self, report_id) -> DamageReport:
        report, _ = self.reports.update(report_id, lambda r: r.start_repair())
        logger.info("damage_repair_started", report_id=str(report_id))
        return report

    def revert_repair(self, report_id) -> DamageReport:
        report, _ = self.reports.update(report_id, lambda r: r.revert_repair())
        logger.info("damage_repair_reverted", report_id=str(report_id))
        return report

    def complete_repair(self, report_id, repair_cost=None) -> DamageReport:
        report = self.reports.get(report_id)
        if report.status == DamageStatus.REPAIRED.value:
            return report
        report.assert_can_transition(DamageStatus.REPAIRED)

        result = self.ledger.mark_repaired_or_restored(report.item_id, operation_id(report_id, "restore"))
        if not result.success:
            raise LedgerOperationFailed(result)

        report, _ = self.reports.update(report_id, lambda r: r.complete_repair(repair_cost))
        logger.info("damage_repaired", report_id=str(report_id), item_id=report.item_id, repair_cost=report.repair_cost)
        return report

    def write_off(self, report_id) -> DamageReport:
        report = self.reports.get(report_id)
        if report.status == DamageStatus.WRITTEN_OFF.value:
            return report
        report.assert_can_transition(DamageStatus.WRITTEN_OFF)

        result = self.ledger.write_off(report.item_id, operation_id(report_id, "writeOff"))
        if not result.success:
            raise LedgerOperationFailed(result)

        report, _ = self.reports.update(report_id, lambda r: r.write_off())
        logger.info("damage_written_off", report_id=str(report_id), item_id=report.item_id)
        return report

    def delete_report(self, report_id) -> bool:
        """Delete a report. Returns True when the unit went back into service."""
        report = self.reports.get(report_id)
        restored = report.status == DamageStatus.DAMAGED.value

        if restored:
            result = self.ledger.mark_repaired_or_restored(report.item_id, operation_id(report_id, "restore"))
            if not result.success:
                raise LedgerOperationFailed(result)

        report.withdraw(restored)
        self.reports.delete(report_id, report)
        logger.info(
            "damage_report_deleted",
            report_id=str(report_id),
            item_id=report.item_id,
            status=report.status,
            restored=restored,
        )
        return restored
