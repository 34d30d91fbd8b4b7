"""Verification commands — submit ID documents, approve or reject them."""

import base64
import binascii

from protean.exceptions import ValidationError
from protean.fields import Date, Identifier, String, Text
from protean.utils.mixins import handle

from rentals.domain import rentals
from rentals.services import get_identity_verifications
from rentals.verification.verification import DETAIL_FIELDS, IMAGE_FIELDS, IdentityVerification


@rentals.command(part_of="IdentityVerification")
class SubmitVerification:
    user_email = String(required=True, max_length=254)
    user_name = String(max_length=200)

    first_name = String(max_length=100)
    middle_name = String(max_length=100)
    last_name = String(max_length=100)
    suffix = String(max_length=20)
    id_type = String(max_length=100)
    id_number = String(max_length=100)
    date_of_birth = Date()
    address = Text()
    phone_number = String(max_length=50)

    # base64 image content and its file name
    id_front = Text()
    id_front_filename = String(max_length=255)
    id_back = Text()
    id_back_filename = String(max_length=255)
    selfie = Text()
    selfie_filename = String(max_length=255)


@rentals.command(part_of="IdentityVerification")
class ApproveVerification:
    verification_id = Identifier(required=True)
    reviewed_by = String(max_length=254)
    notes = Text()


@rentals.command(part_of="IdentityVerification")
class RejectVerification:
    verification_id = Identifier(required=True)
    reasons = Text(required=True)  # comma separated
    reviewed_by = String(max_length=254)


def _images(command):
    images = {}
    for field in IMAGE_FIELDS:
        encoded = getattr(command, field)
        if not encoded:
            continue
        try:
            content = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError({field: ["Image must be base64 encoded"]}) from exc
        images[field] = (content, getattr(command, f"{field}_filename") or f"{field}.jpg")
    return images


@rentals.command_handler(part_of=IdentityVerification)
class VerificationReviewHandler:
    @handle(SubmitVerification)
    def submit(self, command):
        return get_identity_verifications().submit(
            command.user_email,
            {field: getattr(command, field) for field in DETAIL_FIELDS},
            _images(command),
            user_name=command.user_name,
        )

    @handle(ApproveVerification)
    def approve(self, command):
        return get_identity_verifications().approve(
            command.verification_id,
            reviewed_by=command.reviewed_by,
            notes=command.notes,
        )

    @handle(RejectVerification)
    def reject(self, command):
        return get_identity_verifications().reject(
            command.verification_id,
            command.reasons.split(","),
            reviewed_by=command.reviewed_by,
        )
