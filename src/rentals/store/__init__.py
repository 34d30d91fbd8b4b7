"""Document store factory.

Provides get_store() / set_store() / reset_store() to swap implementations.
The in-memory store is the only adapter shipped; production deployments
plug a hosted document database in behind the same port.
"""

import os

from rentals.store.port import DocumentStore

_current_store: DocumentStore | None = None


def get_store() -> DocumentStore:
    """Return the configured document store (singleton).

    Selected via the STORE_ADAPTER environment variable, "memory" by default.
    """
    global _current_store
    if _current_store is None:
        adapter = os.environ.get("STORE_ADAPTER", "memory")
        if adapter == "memory":
            from rentals.store.memory_adapter import MemoryDocumentStore

            _current_store = MemoryDocumentStore()
        else:
            raise ValueError(f"Unknown store adapter: {adapter}")
    return _current_store


def set_store(store: DocumentStore) -> None:
    """Override the active document store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_store() -> None:
    """Reset to the default store."""
    global _current_store
    _current_store = None
