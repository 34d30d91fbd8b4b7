"""Application tests for ID verification submission and review."""

import base64

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from rentals.errors import Indeterminate, InvalidTransition, VerificationNotFound
from rentals.media.port import MediaError
from rentals.verification.identity import VERIFICATIONS_COLLECTION
from rentals.verification.review import ApproveVerification, RejectVerification, SubmitVerification
from rentals.verification.verification import VerificationStatus

DETAILS = {
    "first_name": "Ana",
    "last_name": "Reyes",
    "id_type": "drivers-license",
    "id_number": "N01-23-456789",
    "date_of_birth": "1994-02-11",
    "address": "12 Mabini St, Manila",
}

IMAGES = {
    "id_front": (b"front-bytes", "front.jpg"),
    "id_back": (b"back-bytes", "back.jpg"),
    "selfie": (b"selfie-bytes", "selfie.jpg"),
}


@pytest.fixture()
def submitted(verifications):
    return verifications.submit("ana@example.com", DETAILS, IMAGES, user_name="Ana Reyes")


class TestSubmit:
    def test_images_are_uploaded_and_stored(self, verifications, media, submitted):
        assert submitted.status == VerificationStatus.PENDING.value
        assert len(media.assets) == 3
        assert set(submitted.image_ids()) == set(media.assets)

    def test_lookup_by_user(self, verifications, submitted):
        assert verifications.for_user("ANA@example.com").id == submitted.id
        assert verifications.for_user("nobody@example.com") is None
        assert not verifications.is_verified("ana@example.com")

    def test_second_submission_while_pending_uploads_nothing(self, verifications, media, submitted):
        uploads = len(media.calls)
        with pytest.raises(InvalidTransition):
            verifications.submit("ana@example.com", DETAILS, IMAGES)
        assert len(media.calls) == uploads

    def test_missing_details_leave_no_uploads(self, verifications, media):
        with pytest.raises(ValidationError):
            verifications.submit("ana@example.com", {**DETAILS, "last_name": ""}, IMAGES)
        assert media.assets == {}

    def test_unknown_image_field(self, verifications, media):
        with pytest.raises(ValidationError):
            verifications.submit("ana@example.com", DETAILS, {**IMAGES, "passport_scan": (b"x", "x.jpg")})
        assert media.calls == []

    def test_failed_upload_discards_earlier_ones(self, verifications, media):
        with pytest.raises(MediaError):
            verifications.submit("ana@example.com", DETAILS, {**IMAGES, "selfie": (b"", "selfie.jpg")})
        assert media.assets == {}

    def test_uploads_kept_when_the_timed_out_write_landed(self, verifications, media, store, ledger):
        received = []
        ledger.subscribe(received.append)
        store.inject_fault("put", kind="timeout", collection=VERIFICATIONS_COLLECTION, applied=True)
        verification = verifications.submit("ana@example.com", DETAILS, IMAGES)
        assert set(verification.image_ids()) == set(media.assets)
        assert [type(e).__name__ for e in received] == ["VerificationSubmitted"]

    def test_uploads_discarded_when_the_timed_out_write_was_lost(self, verifications, media, store):
        store.inject_fault("put", kind="timeout", collection=VERIFICATIONS_COLLECTION)
        with pytest.raises(Indeterminate):
            verifications.submit("ana@example.com", DETAILS, IMAGES)
        assert media.assets == {}
        assert verifications.for_user("ana@example.com") is None

    def test_submit_via_command(self, media):
        verification = current_domain.process(
            SubmitVerification(
                user_email="ben@example.com",
                first_name="Ben",
                last_name="Cruz",
                id_type="passport",
                id_number="P7654321",
                id_front=base64.b64encode(b"front").decode(),
                id_front_filename="front.png",
                selfie=base64.b64encode(b"selfie").decode(),
            ),
            asynchronous=False,
        )
        assert verification.image("id_back") is None
        assert len(media.assets) == 2


class TestReview:
    def test_approve(self, verifications, submitted):
        verifications.approve(submitted.id, reviewed_by="admin@rp.test")
        assert verifications.is_verified("ana@example.com")

    def test_reject_then_resubmit_replaces_images(self, verifications, media, submitted):
        old_selfie = submitted.image("selfie")["public_id"]
        verifications.reject(submitted.id, ["Blurry selfie"], reviewed_by="admin@rp.test")

        resubmitted = verifications.submit("ana@example.com", DETAILS, {"selfie": (b"new-selfie", "selfie.jpg")})

        assert resubmitted.resubmission_count == 1
        assert resubmitted.previous_status == VerificationStatus.REJECTED.value
        assert old_selfie not in media.assets
        assert resubmitted.image("selfie")["public_id"] in media.assets
        assert resubmitted.image("id_front") == submitted.image("id_front")

    def test_list_by_status(self, verifications, submitted):
        verifications.submit("ben@example.com", DETAILS, IMAGES)
        verifications.approve(submitted.id)
        assert [v.user_email for v in verifications.list_verifications(status="pending")] == ["ben@example.com"]
        assert len(verifications.list_verifications()) == 2

    def test_unknown_verification(self, verifications):
        with pytest.raises(VerificationNotFound):
            verifications.approve("missing")

    def test_review_via_commands(self, submitted):
        rejected = current_domain.process(
            RejectVerification(verification_id=str(submitted.id), reasons="ID expired,Name mismatch"),
            asynchronous=False,
        )
        assert rejected.admin_notes == "ID expired, Name mismatch"
        with pytest.raises(InvalidTransition):
            current_domain.process(ApproveVerification(verification_id=str(submitted.id)), asynchronous=False)

    def test_review_is_published(self, verifications, ledger, submitted):
        received = []
        ledger.subscribe(received.append)
        verifications.reject(submitted.id, "Blurry selfie")
        assert [type(e).__name__ for e in received] == ["VerificationRejected"]
