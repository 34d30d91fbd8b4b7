"""ReportDamage command — take a unit out of service and open a damage report."""

from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.mixins import handle

from rentals.damage.report import DamageReport, DamageSeverity
from rentals.domain import rentals
from rentals.services import get_damage_workflow


@rentals.command(part_of="DamageReport")
class ReportDamage:
    item_ref = String(required=True, max_length=200)  # id or name
    severity = String(required=True, choices=DamageSeverity)
    description = Text()
    booking_id = Identifier()
    estimated_repair_cost = Float(default=0.0)
    estimated_repair_time = String(max_length=100)
    penalty_fee = Float(default=0.0)
    customer_name = String(max_length=200)
    customer_email = String(max_length=254)
    reported_by = String(max_length=254)
    notify_customer = Boolean(default=True)


@rentals.command_handler(part_of=DamageReport)
class DamageReportingHandler:
    @handle(ReportDamage)
    def report_damage(self, command):
        report = get_damage_workflow().report_damage(
            command.item_ref,
            command.severity,
            description=command.description,
            booking_id=command.booking_id,
            estimated_repair_cost=command.estimated_repair_cost,
            estimated_repair_time=command.estimated_repair_time,
            penalty_fee=command.penalty_fee,
            customer_name=command.customer_name,
            customer_email=command.customer_email,
            reported_by=command.reported_by,
            notify_customer=command.notify_customer,
        )
        return str(report.id)
