"""Failure taxonomy shared by the ledger, the workflows and the API.

Rule violations on a single aggregate (not enough free stock, a forbidden
status change) are protean ``ValidationError`` subclasses so they carry field
messages like every other domain rule. Failures that are about the outside
world (missing documents, lost races, store timeouts) derive from
``RentalsError`` and carry a single human-readable message.
"""

from protean.exceptions import ValidationError


class InsufficientStock(ValidationError):
    """Requested quantity exceeds what is free for reservation."""


class InvalidTransition(ValidationError):
    """Status change not allowed by the state machine."""


class RentalsError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ItemNotFound(RentalsError):
    pass


class BookingNotFound(RentalsError):
    pass


class DamageReportNotFound(RentalsError):
    pass


class ConcurrentUpdateConflict(RentalsError):
    """Version conflicts persisted after every retry attempt."""


class Indeterminate(RentalsError):
    """The store timed out; the write may or may not have been applied.

    Re-issue the same call with the same operation id once the store is
    reachable again.
    """


class LedgerOperationFailed(RentalsError):
    """A workflow step needed a ledger call that did not succeed."""

    def __init__(self, result):
        super().__init__(result.message or f"Ledger operation failed: {result.error}")
        self.result = result


class CollectionNotFound(RentalsError):
    pass


class VerificationNotFound(RentalsError):
    pass


class AccessDenied(RentalsError):
    """The user may not see this collection's files."""
