"""Service wiring — ledger, workflows, collections, ID checks and their collaborators.

Each service is a lazily created singleton bound to the current document
store, notifier and media store. ``reset_services()`` drops them so tests
can swap adapters between runs.
"""

from rentals.store import get_store

_ledger = None
_booking_lifecycle = None
_booking_payments = None
_damage_workflow = None
_collection_library = None
_identity_verifications = None


def get_ledger():
    """Return the InventoryLedger, with the InventoryLevel read model subscribed."""
    global _ledger
    if _ledger is None:
        from rentals.inventory.ledger import InventoryLedger
        from rentals.projections.inventory_level import InventoryLevelProjector

        _ledger = InventoryLedger(get_store())
        _ledger.subscribe(InventoryLevelProjector(_ledger))
    return _ledger


def get_booking_lifecycle():
    global _booking_lifecycle
    if _booking_lifecycle is None:
        from rentals.booking.lifecycle import BookingLifecycle

        _booking_lifecycle = BookingLifecycle(get_store(), get_ledger())
    return _booking_lifecycle


def get_booking_payments():
    global _booking_payments
    if _booking_payments is None:
        from rentals.booking.payment import BookingPayments
        from rentals.media import get_media_store

        _booking_payments = BookingPayments(get_store(), get_media_store(), get_ledger().publisher)
    return _booking_payments


def get_damage_workflow():
    global _damage_workflow
    if _damage_workflow is None:
        from rentals.damage.workflow import DamageRepairWorkflow
        from rentals.notification import get_notifier

        _damage_workflow = DamageRepairWorkflow(get_store(), get_ledger(), get_notifier())
    return _damage_workflow


def get_collection_library():
    global _collection_library
    if _collection_library is None:
        from rentals.gallery.library import CollectionLibrary
        from rentals.media import get_media_store

        _collection_library = CollectionLibrary(get_store(), get_media_store(), get_ledger().publisher)
    return _collection_library


def get_identity_verifications():
    global _identity_verifications
    if _identity_verifications is None:
        from rentals.media import get_media_store
        from rentals.verification.identity import IdentityVerifications

        _identity_verifications = IdentityVerifications(get_store(), get_media_store(), get_ledger().publisher)
    return _identity_verifications


def reset_services() -> None:
    """Drop every service singleton (useful for testing)."""
    global _ledger, _booking_lifecycle, _booking_payments, _damage_workflow
    global _collection_library, _identity_verifications
    _ledger = None
    _booking_lifecycle = None
    _booking_payments = None
    _damage_workflow = None
    _collection_library = None
    _identity_verifications = None
