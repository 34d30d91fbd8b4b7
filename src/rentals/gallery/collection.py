"""Collection aggregate — a set of media files shared with chosen customers.

A collection is listed for the users it is assigned to. Free collections
(price 0) are open to every listed user; a premium collection's files stay
locked for a user until the collection is unlocked for them, which happens
once they have paid for it.
"""

import json
from datetime import UTC, datetime
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, String, Text

from rentals.domain import rentals
from rentals.gallery.events import (
    CollectionAccessChanged,
    CollectionCreated,
    CollectionDeleted,
    CollectionFileAdded,
    CollectionFileRemoved,
    CollectionPriceChanged,
    CollectionUnlocked,
)
from rentals.utils.documents import dump_datetime, load_datetime


def normalize_emails(emails):
    """Lower-case, strip and de-duplicate, keeping first-seen order."""
    seen = []
    for email in emails or []:
        email = (email or "").strip().lower()
        if email and email not in seen:
            seen.append(email)
    return seen


@rentals.aggregate
class Collection:
    name = String(required=True, max_length=200)
    description = Text()
    price = Float(default=0.0)

    assigned_users = Text()  # JSON: [email]
    unlocked_by = Text()  # JSON: [{email, reference, unlocked_at}]
    files = Text()  # JSON: [{file_id, title, description, public_id, url, format, bytes, uploader, added_at}]

    created_by = String(max_length=254)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def price_cannot_be_negative(self):
        if self.price is not None and self.price < 0:
            raise ValidationError({"price": ["Price cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory / persistence
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, name, price=0.0, description=None, assigned_users=None, created_by=None):
        now = datetime.now(UTC)
        users = normalize_emails(assigned_users)
        collection = cls(
            id=str(uuid4()),
            name=name,
            description=description,
            price=float(price or 0.0),
            assigned_users=json.dumps(users),
            unlocked_by=json.dumps([]),
            files=json.dumps([]),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        collection.raise_(
            CollectionCreated(
                collection_id=str(collection.id),
                name=name,
                price=collection.price,
                assigned_users=json.dumps(users),
                created_by=created_by,
                created_at=now,
            )
        )
        return collection

    @classmethod
    def from_document(cls, doc_id, data):
        return cls(
            id=doc_id,
            name=data.get("name"),
            description=data.get("description"),
            price=data.get("price") or 0.0,
            assigned_users=json.dumps(data.get("assigned_users") or []),
            unlocked_by=json.dumps(data.get("unlocked_by") or []),
            files=json.dumps(data.get("files") or []),
            created_by=data.get("created_by"),
            created_at=load_datetime(data.get("created_at")),
            updated_at=load_datetime(data.get("updated_at")),
        )

    def to_document(self):
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "is_premium": self.is_premium(),
            "assigned_users": self.users(),
            "unlocked_by": self.unlocks(),
            "files": self.file_list(),
            "file_count": self.file_count(),
            "created_by": self.created_by,
            "created_at": dump_datetime(self.created_at),
            "updated_at": dump_datetime(self.updated_at),
        }

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def users(self):
        return json.loads(self.assigned_users) if self.assigned_users else []

    def unlocks(self):
        return json.loads(self.unlocked_by) if self.unlocked_by else []

    def file_list(self):
        return json.loads(self.files) if self.files else []

    def file_count(self):
        return len(self.file_list())

    def file(self, file_id):
        for entry in self.file_list():
            if entry["file_id"] == str(file_id):
                return entry
        return None

    def is_premium(self):
        return (self.price or 0.0) > 0

    def is_listed_for(self, email):
        return (email or "").strip().lower() in self.users()

    def is_unlocked_for(self, email):
        if not self.is_premium():
            return True
        email = (email or "").strip().lower()
        return any(entry["email"] == email for entry in self.unlocks())

    def has_access(self, email):
        return self.is_listed_for(email) and self.is_unlocked_for(email)

    # -------------------------------------------------------------------
    # Changes
    # -------------------------------------------------------------------
    def change_price(self, price):
        previous = self.price or 0.0
        now = datetime.now(UTC)
        with atomic_change(self):
            self.price = float(price)
            self.updated_at = now

        self.raise_(
            CollectionPriceChanged(
                collection_id=str(self.id),
                previous_price=previous,
                new_price=self.price,
                changed_at=now,
            )
        )

    def assign_users(self, emails):
        users = normalize_emails(emails)
        now = datetime.now(UTC)
        with atomic_change(self):
            self.assigned_users = json.dumps(users)
            self.updated_at = now

        self.raise_(
            CollectionAccessChanged(
                collection_id=str(self.id),
                assigned_users=json.dumps(users),
                changed_at=now,
            )
        )

    def unlock(self, email, reference=None):
        """Open a premium collection for ``email``. Returns False if it already was."""
        email = (email or "").strip().lower()
        if not email:
            raise ValidationError({"user_email": ["User email is required"]})
        if not self.is_premium():
            raise ValidationError({"price": ["Free collections need no unlocking"]})
        if not self.is_listed_for(email):
            raise ValidationError({"user_email": [f"Collection is not assigned to {email}"]})
        if self.is_unlocked_for(email):
            return False

        now = datetime.now(UTC)
        unlocks = self.unlocks()
        unlocks.append({"email": email, "reference": reference, "unlocked_at": now.isoformat()})
        with atomic_change(self):
            self.unlocked_by = json.dumps(unlocks)
            self.updated_at = now

        self.raise_(
            CollectionUnlocked(
                collection_id=str(self.id),
                user_email=email,
                reference=reference,
                unlocked_at=now,
            )
        )
        return True

    def add_file(self, asset, title, description=None, uploader=None):
        """Append an uploaded media asset; returns the new file id."""
        if not (title or "").strip():
            raise ValidationError({"title": ["Title is required"]})

        now = datetime.now(UTC)
        file_id = str(uuid4())
        files = self.file_list()
        files.append(
            {
                "file_id": file_id,
                "title": title.strip(),
                "description": description or "",
                "public_id": asset.public_id,
                "url": asset.url,
                "format": asset.format,
                "bytes": asset.bytes,
                "uploader": uploader or "admin",
                "added_at": now.isoformat(),
            }
        )
        with atomic_change(self):
            self.files = json.dumps(files)
            self.updated_at = now

        self.raise_(
            CollectionFileAdded(
                collection_id=str(self.id),
                file_id=file_id,
                title=title.strip(),
                public_id=asset.public_id,
                size_bytes=asset.bytes,
                file_count=len(files),
                added_at=now,
            )
        )
        return file_id

    def remove_file(self, file_id):
        """Drop a file entry; returns the removed entry."""
        removed = self.file(file_id)
        if removed is None:
            raise ValidationError({"file_id": [f"File `{file_id}` is not in this collection"]})

        now = datetime.now(UTC)
        files = [entry for entry in self.file_list() if entry["file_id"] != removed["file_id"]]
        with atomic_change(self):
            self.files = json.dumps(files)
            self.updated_at = now

        self.raise_(
            CollectionFileRemoved(
                collection_id=str(self.id),
                file_id=removed["file_id"],
                public_id=removed["public_id"],
                file_count=len(files),
                removed_at=now,
            )
        )
        return removed

    def withdraw(self):
        """Announce deletion of the collection."""
        self.raise_(
            CollectionDeleted(
                collection_id=str(self.id),
                file_count=self.file_count(),
                deleted_at=datetime.now(UTC),
            )
        )
