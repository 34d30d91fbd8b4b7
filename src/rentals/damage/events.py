"""Domain events for the DamageReport aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from rentals.domain import rentals


@rentals.event(part_of="DamageReport")
class DamageReported:
    __version__ = 1

    report_id = Identifier(required=True)
    item_id = Identifier(required=True)
    item_name = String(required=True)
    booking_id = Identifier()
    severity = String(required=True)
    description = Text()
    estimated_repair_cost = Float()
    penalty_fee = Float()
    reported_at = DateTime(required=True)


@rentals.event(part_of="DamageReport")
class DamageStatusChanged:
    __version__ = 1

    report_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    repair_cost = Float()
    changed_at = DateTime(required=True)


@rentals.event(part_of="DamageReport")
class DamageReportDeleted:
    """A report was withdrawn. ``restored`` tells whether the unit went back into service."""

    __version__ = 1

    report_id = Identifier(required=True)
    item_id = Identifier(required=True)
    status = String(required=True)
    restored = String(required=True)  # "True"/"False"
    deleted_at = DateTime(required=True)


@rentals.event(part_of="DamageReport")
class CustomerNotified:
    __version__ = 1

    report_id = Identifier(required=True)
    status = String(required=True)  # sent / failed / skipped
    error = Text()
    notified_at = DateTime(required=True)
