"""IdentityVerification aggregate — a customer's ID documents and their review.

State Machine:
    PENDING → APPROVED | REJECTED
    REJECTED → PENDING (resubmission)
    APPROVED → (terminal)

There is one verification per customer; its id is derived from the
customer's email so a second first-time submission collides instead of
creating a duplicate.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import NAMESPACE_URL, uuid5

from protean import atomic_change
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Integer, String, Text

from rentals.domain import rentals
from rentals.errors import InvalidTransition
from rentals.utils.documents import dump_datetime, load_date, load_datetime
from rentals.verification.events import VerificationApproved, VerificationRejected, VerificationSubmitted


class VerificationStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


_VALID_TRANSITIONS = {
    VerificationStatus.PENDING: {VerificationStatus.APPROVED, VerificationStatus.REJECTED},
    VerificationStatus.REJECTED: {VerificationStatus.PENDING},
    VerificationStatus.APPROVED: set(),  # Terminal state
}

DETAIL_FIELDS = (
    "first_name",
    "middle_name",
    "last_name",
    "suffix",
    "id_type",
    "id_number",
    "date_of_birth",
    "address",
    "phone_number",
)
REQUIRED_DETAILS = ("first_name", "last_name", "id_type", "id_number")

IMAGE_FIELDS = ("id_front", "id_back", "selfie")
REQUIRED_IMAGES = ("id_front", "selfie")

_DOCUMENT_FIELDS = (
    "user_email",
    "user_name",
    "first_name",
    "middle_name",
    "last_name",
    "suffix",
    "id_type",
    "id_number",
    "address",
    "phone_number",
    "status",
    "admin_notes",
    "reviewed_by",
    "resubmission_count",
    "previous_status",
)
_DOCUMENT_TIMESTAMPS = ("submitted_at", "verified_at", "updated_at")


def verification_id_for(user_email):
    return str(uuid5(NAMESPACE_URL, f"mailto:{user_email.strip().lower()}"))


def _asset_document(asset):
    return {"public_id": asset.public_id, "url": asset.url, "format": asset.format, "bytes": asset.bytes}


@rentals.aggregate
class IdentityVerification:
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

    id_front = Text()  # JSON: {public_id, url, format, bytes}
    id_back = Text()
    selfie = Text()

    status = String(choices=VerificationStatus, default=VerificationStatus.PENDING.value)
    admin_notes = Text()
    reviewed_by = String(max_length=254)
    resubmission_count = Integer(default=0)
    previous_status = String(choices=VerificationStatus)

    submitted_at = DateTime()
    verified_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory / persistence
    # -------------------------------------------------------------------
    @classmethod
    def submit(cls, user_email, details, images, user_name=None):
        """First submission. ``images`` maps image fields to uploaded MediaAssets."""
        _check_details(details)
        _check_images(images)

        email = user_email.strip().lower()
        now = datetime.now(UTC)
        verification = cls(
            id=verification_id_for(email),
            user_email=email,
            user_name=user_name or email,
            status=VerificationStatus.PENDING.value,
            resubmission_count=0,
            submitted_at=now,
            updated_at=now,
            **_detail_values(details),
            **{field: json.dumps(_asset_document(asset)) for field, asset in images.items()},
        )
        verification._announce_submission(now)
        return verification

    @classmethod
    def from_document(cls, doc_id, data):
        values = {field: data.get(field) for field in _DOCUMENT_FIELDS}
        values.update({field: load_datetime(data.get(field)) for field in _DOCUMENT_TIMESTAMPS})
        values.update({field: json.dumps(data[field]) if data.get(field) else None for field in IMAGE_FIELDS})
        values["date_of_birth"] = load_date(data.get("date_of_birth"))
        values["resubmission_count"] = data.get("resubmission_count") or 0
        return cls(id=doc_id, **values)

    def to_document(self):
        document = {field: getattr(self, field) for field in _DOCUMENT_FIELDS}
        document.update({field: dump_datetime(getattr(self, field)) for field in _DOCUMENT_TIMESTAMPS})
        document.update({field: self.image(field) for field in IMAGE_FIELDS})
        document["date_of_birth"] = self.date_of_birth.isoformat() if self.date_of_birth else None
        return document

    def image(self, field):
        value = getattr(self, field)
        return json.loads(value) if value else None

    def image_ids(self):
        return [image["public_id"] for image in (self.image(field) for field in IMAGE_FIELDS) if image]

    def is_approved(self):
        return self.status == VerificationStatus.APPROVED.value

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def assert_can_transition(self, target_status):
        current = VerificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def resubmit(self, details, images):
        """Replace details and any re-uploaded images after a rejection.

        Returns the public ids of the images that were replaced.
        """
        self.assert_can_transition(VerificationStatus.PENDING)
        _check_details(details)

        replaced = []
        image_values = {}
        for field, asset in images.items():
            previous = self.image(field)
            if previous and previous["public_id"] != asset.public_id:
                replaced.append(previous["public_id"])
            image_values[field] = json.dumps(_asset_document(asset))

        now = datetime.now(UTC)
        with atomic_change(self):
            for field, value in {**_detail_values(details), **image_values}.items():
                setattr(self, field, value)
            self.previous_status = self.status
            self.status = VerificationStatus.PENDING.value
            self.resubmission_count = (self.resubmission_count or 0) + 1
            self.admin_notes = None
            self.reviewed_by = None
            self.verified_at = None
            self.submitted_at = now
            self.updated_at = now

        self._announce_submission(now)
        return replaced

    def approve(self, reviewed_by=None, notes=None):
        self.assert_can_transition(VerificationStatus.APPROVED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = VerificationStatus.APPROVED.value
            self.admin_notes = notes
            self.reviewed_by = reviewed_by
            self.verified_at = now
            self.updated_at = now

        self.raise_(
            VerificationApproved(
                verification_id=str(self.id),
                user_email=self.user_email,
                reviewed_by=reviewed_by,
                verified_at=now,
            )
        )

    def reject(self, reasons, reviewed_by=None):
        """Reject with at least one reason; the reasons are kept as the admin notes."""
        if isinstance(reasons, str):
            reasons = [reasons]
        reasons = [reason.strip() for reason in reasons or [] if reason and reason.strip()]
        if not reasons:
            raise ValidationError({"reasons": ["At least one rejection reason is required"]})
        self.assert_can_transition(VerificationStatus.REJECTED)

        now = datetime.now(UTC)
        notes = ", ".join(reasons)
        with atomic_change(self):
            self.status = VerificationStatus.REJECTED.value
            self.admin_notes = notes
            self.reviewed_by = reviewed_by
            self.verified_at = now
            self.updated_at = now

        self.raise_(
            VerificationRejected(
                verification_id=str(self.id),
                user_email=self.user_email,
                reasons=notes,
                reviewed_by=reviewed_by,
                verified_at=now,
            )
        )

    def _announce_submission(self, now):
        self.raise_(
            VerificationSubmitted(
                verification_id=str(self.id),
                user_email=self.user_email,
                id_type=self.id_type,
                resubmission_count=self.resubmission_count or 0,
                submitted_at=now,
            )
        )


def _detail_values(details):
    values = {field: details.get(field) for field in DETAIL_FIELDS}
    values["date_of_birth"] = load_date(values["date_of_birth"])
    return values


def _check_details(details):
    blank = [field for field in REQUIRED_DETAILS if not (details.get(field) or "").strip()]
    missing = {field: ["This field is required"] for field in blank}
    if missing:
        raise ValidationError(missing)


def _check_images(images):
    missing = {field: ["Image is required"] for field in REQUIRED_IMAGES if field not in images}
    if missing:
        raise ValidationError(missing)
