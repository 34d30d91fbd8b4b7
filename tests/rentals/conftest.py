import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def rentals_bed():
    from rentals.domain import rentals

    bed = DomainFixture(rentals)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(rentals_bed):
    with rentals_bed.domain_context():
        yield


@pytest.fixture()
def store():
    from rentals.store import get_store

    return get_store()


@pytest.fixture()
def ledger():
    from rentals.services import get_ledger

    return get_ledger()


@pytest.fixture()
def lifecycle():
    from rentals.services import get_booking_lifecycle

    return get_booking_lifecycle()


@pytest.fixture()
def payments():
    from rentals.services import get_booking_payments

    return get_booking_payments()


@pytest.fixture()
def workflow():
    from rentals.services import get_damage_workflow

    return get_damage_workflow()


@pytest.fixture()
def notifier():
    from rentals.notification import get_notifier

    return get_notifier()


@pytest.fixture()
def media():
    from rentals.media import get_media_store

    return get_media_store()


@pytest.fixture()
def library():
    from rentals.services import get_collection_library

    return get_collection_library()


@pytest.fixture()
def verifications():
    from rentals.services import get_identity_verifications

    return get_identity_verifications()
