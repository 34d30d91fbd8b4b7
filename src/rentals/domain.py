"""Rentals domain — equipment inventory, bookings and damage tracking.

A single Protean domain hosts the InventoryItem, Booking and DamageReport
aggregates, the Collection and IdentityVerification aggregates, their
commands and the InventoryLevel read model. Quantity changes never go
through repositories: the InventoryLedger owns them and persists item
documents through the DocumentStore with version checks.
"""

from protean.domain import Domain

from rentals.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
rentals = Domain(name="rentals")
