"""Domain events for the Collection aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from rentals.domain import rentals


@rentals.event(part_of="Collection")
class CollectionCreated:
    __version__ = 1

    collection_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    assigned_users = Text()  # JSON list of emails
    created_by = String()
    created_at = DateTime(required=True)


@rentals.event(part_of="Collection")
class CollectionPriceChanged:
    __version__ = 1

    collection_id = Identifier(required=True)
    previous_price = Float(required=True)
    new_price = Float(required=True)
    changed_at = DateTime(required=True)


@rentals.event(part_of="Collection")
class CollectionAccessChanged:
    """The set of users the collection is listed for was replaced."""

    __version__ = 1

    collection_id = Identifier(required=True)
    assigned_users = Text(required=True)  # JSON list of emails
    changed_at = DateTime(required=True)


@rentals.event(part_of="Collection")
class CollectionUnlocked:
    """A user paid for a premium collection."""

    __version__ = 1

    collection_id = Identifier(required=True)
    user_email = String(required=True)
    reference = String()
    unlocked_at = DateTime(required=True)


@rentals.event(part_of="Collection")
class CollectionFileAdded:
    __version__ = 1

    collection_id = Identifier(required=True)
    file_id = Identifier(required=True)
    title = String(required=True)
    public_id = String(required=True)
    size_bytes = Integer()
    file_count = Integer(required=True)
    added_at = DateTime(required=True)


@rentals.event(part_of="Collection")
class CollectionFileRemoved:
    __version__ = 1

    collection_id = Identifier(required=True)
    file_id = Identifier(required=True)
    public_id = String(required=True)
    file_count = Integer(required=True)
    removed_at = DateTime(required=True)


@rentals.event(part_of="Collection")
class CollectionDeleted:
    __version__ = 1

    collection_id = Identifier(required=True)
    file_count = Integer(required=True)
    deleted_at = DateTime(required=True)
