"""In-memory document store for development and testing.

Versions and compare-and-swap behave like the real store. Faults can be
queued per operation to reproduce timeouts, outages and lost races
deterministically:

    store.inject_fault("put", kind="timeout", doc_id="pmw-200")
    store.inject_fault("put", kind="timeout", applied=True)
    store.inject_fault("put", kind="conflict", times=3)
"""

import copy
import threading
from dataclasses import dataclass

import structlog

from rentals.store.port import (
    Document,
    DocumentStore,
    PutResult,
    StoreTimeout,
    StoreUnavailable,
)

logger = structlog.get_logger(__name__)

FAULT_KINDS = ("timeout", "unavailable", "conflict")


@dataclass
class _Fault:
    operation: str
    kind: str
    collection: str | None
    doc_id: str | None
    applied: bool
    remaining: int

    def matches(self, operation, collection, doc_id):
        return (
            self.remaining > 0
            and self.operation == operation
            and (self.collection is None or self.collection == collection)
            and (self.doc_id is None or self.doc_id == doc_id)
        )


class MemoryDocumentStore(DocumentStore):
    """Thread-safe dict-backed store with injectable faults."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._faults: list[_Fault] = []
        self._lock = threading.RLock()
        self.calls: list[dict] = []

    # -------------------------------------------------------------------
    # Fault injection
    # -------------------------------------------------------------------
    def inject_fault(
        self,
        operation: str,
        kind: str = "timeout",
        collection: str | None = None,
        doc_id: str | None = None,
        applied: bool = False,
        times: int = 1,
    ) -> None:
        """Queue a failure for the next ``times`` matching calls.

        ``conflict`` simulates a concurrent writer bumping the version just
        before the write. ``applied`` only matters for timeouts: the write
        lands but the caller still sees StoreTimeout.
        """
        if kind not in FAULT_KINDS:
            raise ValueError(f"Unknown fault kind: {kind}")
        with self._lock:
            self._faults.append(_Fault(operation, kind, collection, doc_id, applied, times))

    def _take_fault(self, operation, collection, doc_id):
        for fault in self._faults:
            if fault.matches(operation, collection, doc_id):
                fault.remaining -= 1
                return fault
        return None

    def reset(self) -> None:
        """Drop all documents, queued faults and recorded calls."""
        with self._lock:
            self._collections.clear()
            self._faults.clear()
            self.calls.clear()

    # -------------------------------------------------------------------
    # DocumentStore
    # -------------------------------------------------------------------
    def get(self, collection: str, doc_id: str) -> Document | None:
        with self._lock:
            self.calls.append({"method": "get", "collection": collection, "doc_id": doc_id})
            fault = self._take_fault("get", collection, doc_id)
            if fault is not None:
                self._raise(fault, collection, doc_id)
            doc = self._collections.get(collection, {}).get(doc_id)
            return self._copy(doc)

    def put(self, collection: str, doc_id: str, data: dict, expected_version: int) -> PutResult:
        with self._lock:
            self.calls.append(
                {
                    "method": "put",
                    "collection": collection,
                    "doc_id": doc_id,
                    "expected_version": expected_version,
                }
            )
            docs = self._collections.setdefault(collection, {})
            fault = self._take_fault("put", collection, doc_id)

            if fault is not None and fault.kind == "conflict":
                self._bump(docs, doc_id)
            elif fault is not None and not (fault.kind == "timeout" and fault.applied):
                self._raise(fault, collection, doc_id)

            current = docs.get(doc_id)
            current_version = current.version if current else 0
            if current_version != expected_version:
                logger.debug(
                    "store_version_conflict",
                    collection=collection,
                    doc_id=doc_id,
                    expected_version=expected_version,
                    current_version=current_version,
                )
                return PutResult(applied=False, current_version=current_version)

            new_version = current_version + 1
            docs[doc_id] = Document(id=doc_id, version=new_version, data=copy.deepcopy(data))

            if fault is not None and fault.kind == "timeout":
                self._raise(fault, collection, doc_id)
            return PutResult(applied=True, version=new_version, current_version=new_version)

    def delete(self, collection: str, doc_id: str, expected_version: int | None = None) -> PutResult:
        with self._lock:
            self.calls.append({"method": "delete", "collection": collection, "doc_id": doc_id})
            docs = self._collections.setdefault(collection, {})
            fault = self._take_fault("delete", collection, doc_id)
            if fault is not None and fault.kind == "conflict":
                self._bump(docs, doc_id)
            elif fault is not None and not (fault.kind == "timeout" and fault.applied):
                self._raise(fault, collection, doc_id)

            current = docs.get(doc_id)
            current_version = current.version if current else 0
            if current is None or (expected_version is not None and expected_version != current_version):
                return PutResult(applied=False, current_version=current_version)

            del docs[doc_id]
            if fault is not None and fault.kind == "timeout":
                self._raise(fault, collection, doc_id)
            return PutResult(applied=True, current_version=0)

    def query(self, collection: str, filters: dict | None = None) -> list[Document]:
        with self._lock:
            self.calls.append({"method": "query", "collection": collection, "filters": filters})
            fault = self._take_fault("query", collection, None)
            if fault is not None:
                self._raise(fault, collection, None)
            filters = filters or {}
            return [
                self._copy(doc)
                for doc in self._collections.get(collection, {}).values()
                if all(doc.data.get(key) == value for key, value in filters.items())
            ]

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _copy(doc):
        if doc is None:
            return None
        return Document(id=doc.id, version=doc.version, data=copy.deepcopy(doc.data))

    @staticmethod
    def _bump(docs, doc_id):
        current = docs.get(doc_id)
        if current is not None:
            docs[doc_id] = Document(id=doc_id, version=current.version + 1, data=current.data)

    @staticmethod
    def _raise(fault, collection, doc_id):
        logger.debug(
            "store_fault_injected",
            operation=fault.operation,
            kind=fault.kind,
            collection=collection,
            doc_id=doc_id,
        )
        if fault.kind == "timeout":
            raise StoreTimeout(f"{fault.operation} on {collection}/{doc_id} timed out")
        raise StoreUnavailable(f"{fault.operation} on {collection}/{doc_id} refused: store unavailable")
