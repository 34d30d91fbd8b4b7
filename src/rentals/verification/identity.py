"""IdentityVerifications — ID document submission and admin review.

Images are uploaded to the media store under ``id-verifications/<id>`` before
the verification document is written. If the write fails the fresh uploads
are deleted again, unless a re-read shows the write landed; images replaced
by a resubmission are deleted once the resubmission is committed.
"""

import structlog
from protean.exceptions import ValidationError

from rentals.errors import Indeterminate, VerificationNotFound
from rentals.media.port import MediaError, MediaStore
from rentals.publisher import EventPublisher
from rentals.store.port import DocumentStore
from rentals.store.repository import DocumentRepository
from rentals.verification.verification import (
    IMAGE_FIELDS,
    IdentityVerification,
    VerificationStatus,
    verification_id_for,
)

logger = structlog.get_logger(__name__)

VERIFICATIONS_COLLECTION = "id_verifications"
VERIFICATION_MEDIA_FOLDER = "id-verifications"


class IdentityVerifications:
    def __init__(self, store: DocumentStore, media: MediaStore, publisher: EventPublisher | None = None):
        self.media = media
        self.verifications = DocumentRepository(
            store,
            VERIFICATIONS_COLLECTION,
            IdentityVerification,
            VerificationNotFound,
            publisher=publisher,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get(self, verification_id) -> IdentityVerification:
        return self.verifications.get(verification_id)

    def for_user(self, user_email) -> IdentityVerification | None:
        try:
            return self.verifications.get(verification_id_for(user_email))
        except VerificationNotFound:
            return None

    def is_verified(self, user_email) -> bool:
        verification = self.for_user(user_email)
        return verification is not None and verification.is_approved()

    def list_verifications(self, status=None) -> list[IdentityVerification]:
        """Verifications, most recently submitted first."""
        verifications = self.verifications.list(**({"status": status} if status else {}))
        verifications.sort(key=lambda v: v.submitted_at.isoformat() if v.submitted_at else "", reverse=True)
        return verifications

    # -------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------
    def submit(self, user_email, details: dict, images: dict, user_name=None) -> IdentityVerification:
        """Submit or resubmit ID documents.

        ``images`` maps ``id_front``/``id_back``/``selfie`` to ``(content, filename)``.
        A resubmission may leave out images to keep the ones already on file.
        """
        if not (user_email or "").strip():
            raise ValidationError({"user_email": ["User email is required"]})
        unknown = sorted(set(images) - set(IMAGE_FIELDS))
        if unknown:
            raise ValidationError({field: ["Unknown image field"] for field in unknown})

        verification_id = verification_id_for(user_email)
        existing = self.for_user(user_email)
        if existing is not None:
            # Fail fast before uploading anything
            existing.assert_can_transition(VerificationStatus.PENDING)

        assets = self._upload(verification_id, images)
        created = None
        try:
            if existing is None:
                created = IdentityVerification.submit(user_email, details, assets, user_name=user_name)
                verification = self.verifications.add(created)
                replaced = []
            else:
                verification, replaced = self.verifications.update(
                    verification_id,
                    lambda v: v.resubmit(details, assets),
                )
        except Indeterminate:
            verification = self._submission_landed(verification_id, assets)
            if verification is None:
                raise
            if created is not None:
                self.verifications.publish(created)
            kept = set(verification.image_ids())
            replaced = [public_id for public_id in (existing.image_ids() if existing else []) if public_id not in kept]
        except Exception:
            self._discard_all(assets.values(), verification_id)
            raise

        for public_id in replaced:
            self._discard(public_id, verification_id)

        logger.info(
            "verification_submitted",
            verification_id=verification_id,
            resubmission_count=verification.resubmission_count,
            images=sorted(assets),
        )
        return verification

    # -------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------
    def approve(self, verification_id, reviewed_by=None, notes=None) -> IdentityVerification:
        verification, _ = self.verifications.update(
            verification_id,
            lambda v: v.approve(reviewed_by=reviewed_by, notes=notes),
        )
        logger.info("verification_approved", verification_id=str(verification_id), reviewed_by=reviewed_by)
        return verification

    def reject(self, verification_id, reasons, reviewed_by=None) -> IdentityVerification:
        verification, _ = self.verifications.update(
            verification_id,
            lambda v: v.reject(reasons, reviewed_by=reviewed_by),
        )
        logger.info(
            "verification_rejected",
            verification_id=str(verification_id),
            reviewed_by=reviewed_by,
            reasons=verification.admin_notes,
        )
        return verification

    # -------------------------------------------------------------------
    # Media
    # -------------------------------------------------------------------
    def _upload(self, verification_id, images):
        assets = {}
        try:
            for field, (content, filename) in images.items():
                assets[field] = self.media.upload(content, filename, f"{VERIFICATION_MEDIA_FOLDER}/{verification_id}")
        except Exception:
            self._discard_all(assets.values(), verification_id)
            raise
        return assets

    def _submission_landed(self, verification_id, assets):
        """Re-read after an ambiguous write; uploads are kept unless the document surely lacks them."""
        try:
            verification = self.verifications.get(verification_id)
        except Indeterminate:
            logger.warning(
                "verification_submission_unresolved",
                verification_id=verification_id,
                public_ids=sorted(asset.public_id for asset in assets.values()),
            )
            return None
        except VerificationNotFound:
            verification = None

        stored = set(verification.image_ids()) if verification else set()
        if assets and all(asset.public_id in stored for asset in assets.values()):
            return verification
        self._discard_all(assets.values(), verification_id)
        return None

    def _discard_all(self, assets, verification_id):
        for asset in assets:
            self._discard(asset.public_id, verification_id)

    def _discard(self, public_id, verification_id):
        try:
            self.media.delete(public_id)
        except MediaError as exc:
            logger.warning(
                "verification_media_cleanup_failed",
                verification_id=str(verification_id),
                public_id=public_id,
                error=str(exc),
            )
