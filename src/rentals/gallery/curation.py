"""Collection commands — create, price, share, unlock and fill media collections."""

import base64
import binascii
import json

from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.mixins import handle

from rentals.domain import rentals
from rentals.gallery.collection import Collection
from rentals.services import get_collection_library


@rentals.command(part_of="Collection")
class CreateCollection:
    name = String(required=True, max_length=200)
    description = Text()
    price = Float(min_value=0.0, default=0.0)
    assigned_users = Text()  # JSON: [email]
    created_by = String(max_length=254)


@rentals.command(part_of="Collection")
class UpdateCollectionPrice:
    collection_id = Identifier(required=True)
    price = Float(required=True, min_value=0.0)


@rentals.command(part_of="Collection")
class AssignCollectionUsers:
    collection_id = Identifier(required=True)
    assigned_users = Text()  # JSON: [email]


@rentals.command(part_of="Collection")
class UnlockCollection:
    collection_id = Identifier(required=True)
    user_email = String(required=True, max_length=254)
    reference = String(max_length=255)


@rentals.command(part_of="Collection")
class AddCollectionFile:
    collection_id = Identifier(required=True)
    title = String(required=True, max_length=200)
    description = Text()
    filename = String(required=True, max_length=255)
    content = Text(required=True)  # base64
    uploader = String(max_length=254)


@rentals.command(part_of="Collection")
class RemoveCollectionFile:
    collection_id = Identifier(required=True)
    file_id = Identifier(required=True)


@rentals.command(part_of="Collection")
class DeleteCollection:
    collection_id = Identifier(required=True)


def _emails(value):
    if not value:
        return []
    try:
        emails = json.loads(value)
    except ValueError as exc:
        raise ValidationError({"assigned_users": ["Assigned users must be a JSON list of emails"]}) from exc
    if not isinstance(emails, list):
        raise ValidationError({"assigned_users": ["Assigned users must be a JSON list of emails"]})
    return emails


@rentals.command_handler(part_of=Collection)
class CollectionCurationHandler:
    @handle(CreateCollection)
    def create_collection(self, command):
        collection = get_collection_library().create_collection(
            name=command.name,
            price=command.price,
            description=command.description,
            assigned_users=_emails(command.assigned_users),
            created_by=command.created_by,
        )
        return str(collection.id)

    @handle(UpdateCollectionPrice)
    def update_price(self, command):
        return get_collection_library().update_price(command.collection_id, command.price)

    @handle(AssignCollectionUsers)
    def assign_users(self, command):
        return get_collection_library().assign_users(command.collection_id, _emails(command.assigned_users))

    @handle(UnlockCollection)
    def unlock(self, command):
        return get_collection_library().unlock(command.collection_id, command.user_email, reference=command.reference)

    @handle(AddCollectionFile)
    def add_file(self, command):
        try:
            content = base64.b64decode(command.content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError({"content": ["File content must be base64 encoded"]}) from exc
        collection, _ = get_collection_library().add_file(
            command.collection_id,
            content,
            command.filename,
            command.title,
            description=command.description,
            uploader=command.uploader,
        )
        return collection

    @handle(RemoveCollectionFile)
    def remove_file(self, command):
        return get_collection_library().remove_file(command.collection_id, command.file_id)

    @handle(DeleteCollection)
    def delete_collection(self, command):
        return get_collection_library().delete_collection(command.collection_id)
