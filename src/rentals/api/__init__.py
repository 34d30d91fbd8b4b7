from rentals.api.errors import register_rental_exception_handlers
from rentals.api.routes import (
    booking_router,
    collection_router,
    damage_router,
    inventory_router,
    verification_router,
)

__all__ = [
    "inventory_router",
    "booking_router",
    "damage_router",
    "collection_router",
    "verification_router",
    "register_rental_exception_handlers",
]
