"""Repair commands — move a damage report through repair, write-off or deletion."""

from protean.fields import Float, Identifier
from protean.utils.mixins import handle

from rentals.damage.report import DamageReport
from rentals.domain import rentals
from rentals.services import get_damage_workflow


@rentals.command(part_of="DamageReport")
class StartRepair:
    report_id = Identifier(required=True)


@rentals.command(part_of="DamageReport")
class RevertRepair:
    report_id = Identifier(required=True)


@rentals.command(part_of="DamageReport")
class CompleteRepair:
    report_id = Identifier(required=True)
    repair_cost = Float(min_value=0.0)


@rentals.command(part_of="DamageReport")
class WriteOffDamagedItem:
    report_id = Identifier(required=True)


@rentals.command(part_of="DamageReport")
class DeleteDamageReport:
    report_id = Identifier(required=True)


@rentals.command_handler(part_of=DamageReport)
class DamageRepairHandler:
    @handle(StartRepair)
    def start_repair(self, command):
        return get_damage_workflow().start_repair(command.report_id)

    @handle(RevertRepair)
    def revert_repair(self, command):
        return get_damage_workflow().revert_repair(command.report_id)

    @handle(CompleteRepair)
    def complete_repair(self, command):
        return get_damage_workflow().complete_repair(command.report_id, repair_cost=command.repair_cost)

    @handle(WriteOffDamagedItem)
    def write_off(self, command):
        return get_damage_workflow().write_off(command.report_id)

    @handle(DeleteDamageReport)
    def delete_report(self, command):
        return get_damage_workflow().delete_report(command.report_id)
