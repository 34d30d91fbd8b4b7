"""CollectionLibrary — media collections and who may open them.

Collection documents live in the ``collections`` collection of the document
store; their files live in the media store under ``collections/<id>``. Files
are uploaded before the collection document is updated, so a failed update
deletes the fresh upload again unless a re-read shows the update landed.
Removing a file or a collection deletes the stored media only after the
document change is committed.
"""

import structlog

from rentals.errors import AccessDenied, CollectionNotFound, Indeterminate
from rentals.gallery.collection import Collection
from rentals.media.port import MediaError, MediaStore
from rentals.publisher import EventPublisher
from rentals.store.port import DocumentStore
from rentals.store.repository import DocumentRepository

logger = structlog.get_logger(__name__)

COLLECTIONS_COLLECTION = "collections"
COLLECTION_MEDIA_FOLDER = "collections"


class CollectionLibrary:
    def __init__(self, store: DocumentStore, media: MediaStore, publisher: EventPublisher | None = None):
        self.media = media
        self.collections = DocumentRepository(
            store,
            COLLECTIONS_COLLECTION,
            Collection,
            CollectionNotFound,
            publisher=publisher,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get(self, collection_id) -> Collection:
        return self.collections.get(collection_id)

    def list_collections(self) -> list[Collection]:
        """Every collection, newest first."""
        collections = self.collections.list()
        collections.sort(key=lambda c: c.created_at.isoformat() if c.created_at else "", reverse=True)
        return collections

    def collections_for_user(self, user_email) -> list[Collection]:
        return [c for c in self.list_collections() if c.is_listed_for(user_email)]

    def files_for_user(self, collection_id, user_email) -> list[dict]:
        collection = self.collections.get(collection_id)
        if not collection.is_listed_for(user_email):
            raise AccessDenied(f"Collection `{collection_id}` is not shared with {user_email}")
        if not collection.is_unlocked_for(user_email):
            raise AccessDenied(f"Collection `{collection_id}` is locked until it is paid for")
        return collection.file_list()

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def create_collection(self, name, price=0.0, description=None, assigned_users=None, created_by=None):
        collection = Collection.create(
            name=name,
            price=price,
            description=description,
            assigned_users=assigned_users,
            created_by=created_by,
        )
        self.collections.add(collection)
        logger.info(
            "collection_created",
            collection_id=str(collection.id),
            price=collection.price,
            assigned_users=len(collection.users()),
        )
        return collection

    def update_price(self, collection_id, price) -> Collection:
        collection, _ = self.collections.update(collection_id, lambda c: c.change_price(price))
        logger.info("collection_price_changed", collection_id=str(collection_id), price=collection.price)
        return collection

    def assign_users(self, collection_id, emails) -> Collection:
        collection, _ = self.collections.update(collection_id, lambda c: c.assign_users(emails))
        logger.info(
            "collection_access_changed",
            collection_id=str(collection_id),
            assigned_users=len(collection.users()),
        )
        return collection

    def unlock(self, collection_id, user_email, reference=None) -> bool:
        """Open a premium collection for a paying user. False when it already was."""
        _, unlocked = self.collections.update(collection_id, lambda c: c.unlock(user_email, reference=reference))
        logger.info(
            "collection_unlocked",
            collection_id=str(collection_id),
            reference=reference,
            duplicate=not unlocked,
        )
        return unlocked

    def add_file(self, collection_id, content: bytes, filename: str, title: str, description=None, uploader=None):
        """Upload a file into the collection. Returns ``(collection, file_id)``."""
        # Fail fast on unknown collections before uploading anything
        self.collections.get(collection_id)

        asset = self.media.upload(content, filename, f"{COLLECTION_MEDIA_FOLDER}/{collection_id}")
        try:
            collection, file_id = self.collections.update(
                collection_id,
                lambda c: c.add_file(asset, title, description=description, uploader=uploader),
            )
        except Indeterminate:
            landed = self._file_landed(collection_id, asset)
            if landed is None:
                raise
            collection, file_id = landed
        except Exception:
            self._discard(asset.public_id, collection_id)
            raise

        logger.info(
            "collection_file_added",
            collection_id=str(collection_id),
            file_id=file_id,
            public_id=asset.public_id,
            file_count=collection.file_count(),
        )
        return collection, file_id

    def remove_file(self, collection_id, file_id) -> Collection:
        collection, removed = self.collections.update(collection_id, lambda c: c.remove_file(file_id))
        self._discard(removed["public_id"], collection_id)
        logger.info(
            "collection_file_removed",
            collection_id=str(collection_id),
            file_id=str(file_id),
            file_count=collection.file_count(),
        )
        return collection

    def delete_collection(self, collection_id) -> bool:
        """Delete the collection, then its stored files."""
        collection = self.collections.get(collection_id)
        collection.withdraw()
        deleted = self.collections.delete(collection_id, collection)
        if deleted:
            for entry in collection.file_list():
                self._discard(entry["public_id"], collection_id)
        logger.info(
            "collection_deleted",
            collection_id=str(collection_id),
            deleted=deleted,
            file_count=collection.file_count(),
        )
        return deleted

    # -------------------------------------------------------------------
    # Media cleanup
    # -------------------------------------------------------------------
    def _file_landed(self, collection_id, asset):
        """Re-read after an ambiguous write; the upload is kept unless the collection surely lacks it."""
        try:
            collection = self.collections.get(collection_id)
        except Indeterminate:
            logger.warning(
                "collection_file_unresolved",
                collection_id=str(collection_id),
                public_id=asset.public_id,
            )
            return None

        for entry in collection.file_list():
            if entry["public_id"] == asset.public_id:
                return collection, entry["file_id"]
        self._discard(asset.public_id, collection_id)
        return None

    def _discard(self, public_id, collection_id):
        try:
            self.media.delete(public_id)
        except MediaError as exc:
            logger.warning(
                "collection_media_cleanup_failed",
                collection_id=str(collection_id),
                public_id=public_id,
                error=str(exc),
            )
