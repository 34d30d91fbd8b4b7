"""Aggregate persistence over the document store.

Bookings and damage reports are saved through a DocumentRepository: the
aggregate is rebuilt from its document, changed, and written back with the
version it was read at. A lost race re-reads and re-applies the change.
Events raised by a committed change go to the repository's publisher.
"""

import structlog

from rentals.errors import ConcurrentUpdateConflict, Indeterminate
from rentals.publisher import EventPublisher
from rentals.store.port import DocumentStore, StoreTimeout, StoreUnavailable

logger = structlog.get_logger(__name__)


class DocumentRepository:
    """Load/save one aggregate type in one collection.

    ``aggregate_cls`` must provide ``from_document(doc_id, data)`` and
    ``to_document()``; ``not_found`` is the exception raised for a missing id.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        aggregate_cls,
        not_found,
        max_attempts: int = 3,
        publisher: EventPublisher | None = None,
    ):
        self.store = store
        self.collection = collection
        self.aggregate_cls = aggregate_cls
        self.not_found = not_found
        self.max_attempts = max_attempts
        self.publisher = publisher or EventPublisher()

    def _call(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (StoreTimeout, StoreUnavailable) as exc:
            raise Indeterminate(f"{self.collection}: {exc}") from exc

    def publish(self, aggregate):
        """Hand the events of a committed change to subscribers."""
        self.publisher.publish(list(aggregate._events))

    def get(self, doc_id):
        doc = self._call(self.store.get, self.collection, str(doc_id))
        if doc is None:
            raise self.not_found(f"{self.aggregate_cls.__name__} `{doc_id}` not found")
        return self.aggregate_cls.from_document(doc.id, doc.data)

    def list(self, **filters):
        docs = self._call(self.store.query, self.collection, filters or None)
        return [self.aggregate_cls.from_document(doc.id, doc.data) for doc in docs]

    def add(self, aggregate):
        """Insert a new aggregate. Fails if the id is already taken."""
        doc_id = str(aggregate.id)
        result = self._call(self.store.put, self.collection, doc_id, aggregate.to_document(), 0)
        if not result.applied:
            raise ConcurrentUpdateConflict(f"{self.aggregate_cls.__name__} `{doc_id}` already exists")
        self.publish(aggregate)
        return aggregate

    def update(self, doc_id, mutate):
        """Apply ``mutate(aggregate)`` and save, retrying on version conflicts.

        ``mutate`` may run more than once and must only touch the aggregate.
        Returns ``(aggregate, value_returned_by_mutate)``.
        """
        doc_id = str(doc_id)
        for attempt in range(1, self.max_attempts + 1):
            doc = self._call(self.store.get, self.collection, doc_id)
            if doc is None:
                raise self.not_found(f"{self.aggregate_cls.__name__} `{doc_id}` not found")

            aggregate = self.aggregate_cls.from_document(doc.id, doc.data)
            value = mutate(aggregate)
            result = self._call(self.store.put, self.collection, doc_id, aggregate.to_document(), doc.version)
            if result.applied:
                self.publish(aggregate)
                return aggregate, value

            logger.info(
                "document_update_retry",
                collection=self.collection,
                doc_id=doc_id,
                attempt=attempt,
            )

        raise ConcurrentUpdateConflict(
            f"{self.aggregate_cls.__name__} `{doc_id}` kept changing; gave up after {self.max_attempts} attempts"
        )

    def delete(self, doc_id, aggregate=None) -> bool:
        """Delete the document; ``aggregate`` carries the events announcing it."""
        result = self._call(self.store.delete, self.collection, str(doc_id))
        if result.applied and aggregate is not None:
            self.publish(aggregate)
        return result.applied
