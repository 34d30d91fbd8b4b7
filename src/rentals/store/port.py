"""Document store port (abstract interface).

The authoritative store for items, bookings and damage reports. Every
document carries a monotonically increasing version; writes are
compare-and-swap on that version so concurrent writers never silently
overwrite each other.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Document:
    """A stored document and the version it was read at."""

    id: str
    version: int
    data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PutResult:
    """Outcome of a conditional write.

    ``applied`` is False only when the expected version did not match;
    ``current_version`` then holds the version the store actually has
    (0 when the document does not exist).
    """

    applied: bool
    version: int | None = None
    current_version: int | None = None


class StoreError(Exception):
    """Base class for document store failures."""


class StoreTimeout(StoreError):
    """The call timed out. The write may or may not have taken effect."""


class StoreUnavailable(StoreError):
    """The store refused the call. Nothing was written."""


class DocumentStore(ABC):
    """Abstract document store interface."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None:
        """Read one document, or None if it does not exist."""
        ...

    @abstractmethod
    def put(self, collection: str, doc_id: str, data: dict, expected_version: int) -> PutResult:
        """Write ``data`` if the stored version equals ``expected_version``.

        ``expected_version=0`` means the document must not exist yet.
        """
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str, expected_version: int | None = None) -> PutResult:
        """Delete a document, optionally guarded by its version."""
        ...

    @abstractmethod
    def query(self, collection: str, filters: dict | None = None) -> list[Document]:
        """Return documents whose fields equal every key/value in ``filters``."""
        ...
