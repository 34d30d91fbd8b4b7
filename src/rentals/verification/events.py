"""Domain events for the IdentityVerification aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from rentals.domain import rentals


@rentals.event(part_of="IdentityVerification")
class VerificationSubmitted:
    """ID documents were submitted, or resubmitted after a rejection."""

    __version__ = 1

    verification_id = Identifier(required=True)
    user_email = String(required=True)
    id_type = String(required=True)
    resubmission_count = Integer(required=True)
    submitted_at = DateTime(required=True)


@rentals.event(part_of="IdentityVerification")
class VerificationApproved:
    __version__ = 1

    verification_id = Identifier(required=True)
    user_email = String(required=True)
    reviewed_by = String()
    verified_at = DateTime(required=True)


@rentals.event(part_of="IdentityVerification")
class VerificationRejected:
    __version__ = 1

    verification_id = Identifier(required=True)
    user_email = String(required=True)
    reasons = Text(required=True)
    reviewed_by = String()
    verified_at = DateTime(required=True)
