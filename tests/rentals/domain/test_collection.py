"""Tests for the Collection aggregate: pricing, sharing and unlocking."""

import pytest
from protean.exceptions import ValidationError
from rentals.gallery.collection import Collection
from rentals.gallery.events import (
    CollectionCreated,
    CollectionFileAdded,
    CollectionFileRemoved,
    CollectionPriceChanged,
    CollectionUnlocked,
)
from rentals.media.port import MediaAsset


def _asset(name="shot-01"):
    return MediaAsset(public_id=f"collections/c1/{name}", url=f"https://media.test/{name}.jpg", format="jpg", bytes=42)


def _make_collection(**overrides):
    defaults = {
        "name": "Reyes Wedding",
        "price": 1500.0,
        "assigned_users": ["Ana@Example.com ", "ben@example.com"],
    }
    defaults.update(overrides)
    return Collection.create(**defaults)


class TestCreateCollection:
    def test_emails_are_normalized(self):
        collection = _make_collection(assigned_users=["Ana@Example.com ", "ana@example.com", ""])
        assert collection.users() == ["ana@example.com"]

    def test_create_raises_collection_created(self):
        collection = _make_collection()
        assert [type(e) for e in collection._events] == [CollectionCreated]

    def test_negative_price_is_rejected(self):
        with pytest.raises(ValidationError):
            _make_collection(price=-1.0)

    def test_document_round_trip_keeps_files_and_unlocks(self):
        collection = _make_collection()
        collection.add_file(_asset(), "First dance")
        collection.unlock("ana@example.com", reference="GC-1")

        restored = Collection.from_document(str(collection.id), collection.to_document())
        assert restored.file_count() == 1
        assert restored.is_unlocked_for("ana@example.com")
        assert restored.to_document()["is_premium"] is True


class TestAccess:
    def test_free_collection_is_open_to_listed_users(self):
        collection = _make_collection(price=0.0)
        assert collection.has_access("ben@example.com")
        assert not collection.has_access("stranger@example.com")

    def test_premium_collection_is_locked_until_unlocked(self):
        collection = _make_collection()
        assert collection.is_listed_for("ana@example.com")
        assert not collection.has_access("ana@example.com")

        assert collection.unlock("ANA@example.com", reference="PAYPAL-7") is True
        assert collection.has_access("ana@example.com")
        assert not collection.has_access("ben@example.com")

    def test_unlocking_twice_is_a_no_op(self):
        collection = _make_collection()
        collection.unlock("ana@example.com")
        assert collection.unlock("ana@example.com") is False
        assert len(collection.unlocks()) == 1
        assert len([e for e in collection._events if isinstance(e, CollectionUnlocked)]) == 1

    def test_unlock_requires_assignment(self):
        with pytest.raises(ValidationError):
            _make_collection().unlock("stranger@example.com")

    def test_free_collections_cannot_be_unlocked(self):
        with pytest.raises(ValidationError):
            _make_collection(price=0.0).unlock("ana@example.com")

    def test_dropping_the_price_opens_the_collection(self):
        collection = _make_collection()
        collection.change_price(0.0)
        assert collection.has_access("ben@example.com")
        changed = [e for e in collection._events if isinstance(e, CollectionPriceChanged)]
        assert changed[0].previous_price == 1500.0

    def test_reassigning_users_revokes_listing(self):
        collection = _make_collection(price=0.0)
        collection.assign_users(["carla@example.com"])
        assert not collection.has_access("ana@example.com")
        assert collection.has_access("carla@example.com")


class TestFiles:
    def test_add_and_remove_file(self):
        collection = _make_collection()
        file_id = collection.add_file(_asset(), "First dance", uploader="admin@rp.test")
        assert collection.file(file_id)["public_id"] == "collections/c1/shot-01"

        removed = collection.remove_file(file_id)
        assert removed["title"] == "First dance"
        assert collection.file_count() == 0
        assert [type(e) for e in collection._events][-2:] == [CollectionFileAdded, CollectionFileRemoved]

    def test_file_needs_a_title(self):
        with pytest.raises(ValidationError):
            _make_collection().add_file(_asset(), "  ")

    def test_removing_an_unknown_file(self):
        with pytest.raises(ValidationError):
            _make_collection().remove_file("missing")
