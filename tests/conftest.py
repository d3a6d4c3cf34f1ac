import os

# config requires a signing key while auth is enabled
os.environ.setdefault("AUTH_JWT_SECRET", "rescue-console-test-signing-key-0001")

import pytest  # noqa: E402

from common.config.conts import PET_COLLECTION, REQUEST_COLLECTION, USERS_COLLECTION
from common.exception.exceptions import StorageError
from common.repository.in_memory_db import InMemoryRepository
from common.service.service import EntityServiceImpl
from common.storage.blob_store import InMemoryBlobStore
from entity.adoption_request.lifecycle import AdoptionRequestLifecycle
from entity.console.service import ConsoleService
from entity.message.service import MessagingService
from entity.notification.feed import NotificationFeed
from entity.pet.service import PetService
from entity.report.service import ReportService

VERSION = "1"


class FailingRepository(InMemoryRepository):
    """Records every update and raises StorageError on updates to the listed collections."""

    def __init__(self):
        super().__init__()
        self.fail_updates_for = set()
        self.updates = []

    async def update(self, meta, technical_id, entity, condition=None):
        self.updates.append((meta["entity_model"], str(technical_id)))
        if meta["entity_model"] in self.fail_updates_for:
            raise StorageError(f"{meta['entity_model']} is unavailable")
        return await super().update(meta, technical_id, entity, condition=condition)


@pytest.fixture
def repository():
    return FailingRepository()


@pytest.fixture
def entity_service(repository):
    return EntityServiceImpl(repository=repository)


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def lifecycle(entity_service):
    return AdoptionRequestLifecycle(entity_service=entity_service, token=None, entity_version=VERSION)


@pytest.fixture
def pet_service(entity_service, blob_store):
    return PetService(entity_service=entity_service, token=None, blob_store=blob_store, entity_version=VERSION)


@pytest.fixture
def report_service(entity_service):
    return ReportService(entity_service=entity_service, token=None, entity_version=VERSION)


@pytest.fixture
def messaging_service(entity_service, blob_store):
    return MessagingService(entity_service=entity_service, token=None, blob_store=blob_store,
                            entity_version=VERSION)


@pytest.fixture
def notification_feed(entity_service):
    return NotificationFeed(entity_service=entity_service, token=None, entity_version=VERSION)


@pytest.fixture
def console_service(entity_service, lifecycle):
    return ConsoleService(entity_service=entity_service, token=None, lifecycle=lifecycle, entity_version=VERSION)


@pytest.fixture
def seed(entity_service):
    """Store a raw document and return its technical_id."""

    async def _seed(entity_model, entity):
        return await entity_service.add_item(
            token=None, entity_model=entity_model, entity_version=VERSION, entity=dict(entity)
        )

    return _seed


@pytest.fixture
def fetch(entity_service):

    async def _fetch(entity_model, technical_id):
        return await entity_service.get_item(
            token=None, entity_model=entity_model, entity_version=VERSION, technical_id=technical_id
        )

    return _fetch


@pytest.fixture
def adoption(seed):
    """A pet, its applicant and one request for it; returns their ids."""

    async def _adoption(request_fields=None, pet_status="Available"):
        pet_id = await seed(PET_COLLECTION, {"pet_name": "Mochi", "type": "Cat", "status": pet_status})
        await seed(USERS_COLLECTION, {"uid": "user-1", "firstname": "Ana", "lastname": "Reyes",
                                      "type": "customer"})
        request = {"petId": pet_id, "user_id": "user-1", "created_at": "2024-05-01T10:00:00+00:00"}
        request.update(request_fields or {})
        request_id = await seed(REQUEST_COLLECTION, request)
        return request_id, pet_id

    return _adoption
