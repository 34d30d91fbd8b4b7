"""ChangeBookingStatus — activate, complete or cancel a booking.

The handler returns the BatchOutcome: when some items could not be
updated the status stays put and the same command can simply be sent
again.
"""

from protean.fields import Identifier, String
from protean.utils.mixins import handle

from rentals.booking.booking import Booking, BookingStatus
from rentals.domain import rentals
from rentals.services import get_booking_lifecycle


@rentals.command(part_of="Booking")
class ChangeBookingStatus:
    booking_id = Identifier(required=True)
    status = String(required=True, choices=BookingStatus)


@rentals.command_handler(part_of=Booking)
class ChangeBookingStatusHandler:
    @handle(ChangeBookingStatus)
    def change_booking_status(self, command):
        return get_booking_lifecycle().change_status(command.booking_id, BookingStatus(command.status))
