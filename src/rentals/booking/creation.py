"""CreateBooking — reserve the requested equipment and place the booking."""

import json

from protean.fields import Date, Identifier, String, Text
from protean.utils.mixins import handle

from rentals.booking.booking import Booking
from rentals.domain import rentals
from rentals.services import get_booking_lifecycle


@rentals.command(part_of="Booking")
class CreateBooking:
    user_id = Identifier(required=True)
    start_date = Date(required=True)
    end_date = Date(required=True)
    items = Text()  # JSON: [{item_id, quantity, unit_price, item_name}]
    package = Text()  # JSON: {package_id, name, price, items: [{item_id, quantity}]}
    customer_name = String(max_length=200)
    customer_email = String(max_length=254)
    venue = String(max_length=300)


@rentals.command_handler(part_of=Booking)
class CreateBookingHandler:
    @handle(CreateBooking)
    def create_booking(self, command):
        booking = get_booking_lifecycle().create_booking(
            user_id=command.user_id,
            start_date=command.start_date,
            end_date=command.end_date,
            items=json.loads(command.items) if command.items else None,
            package=json.loads(command.package) if command.package else None,
            customer_name=command.customer_name,
            customer_email=command.customer_email,
            venue=command.venue,
        )
        return str(booking.id)
