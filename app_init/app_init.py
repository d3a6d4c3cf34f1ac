import logging
import os

from common.auth.session import AdminAuthProvider
from common.auth.store_auth import StoreAuthService
from common.config import config
from common.repository.in_memory_db import InMemoryRepository
from common.repository.remote.remote_repository import RemoteRepository
from common.service.service import EntityServiceImpl
from common.storage.blob_store import HttpBlobStore, InMemoryBlobStore
from entity.adoption_request.lifecycle import AdoptionRequestLifecycle
from entity.console.service import ConsoleService
from entity.message.service import MessagingService
from entity.notification.feed import NotificationFeed
from entity.pet.service import PetService
from entity.report.service import ReportService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

class BeanFactory:
    _instance = None
    _initialized = False

    def __new__(cls, config=None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config=None):
        # Only run the initialization logic a single time
        if self.__class__._initialized:
            return
        self.__class__._initialized = True

        settings = self._load_default_config()
        settings.update(config or {})

        try:
            self.store_auth_service = self._create_store_auth_service(settings)
            self.entity_repository = self._create_repository(
                repo_type=settings["STORE_REPOSITORY"],
                store_auth_service=self.store_auth_service
            )
            self.entity_service = EntityServiceImpl(
                repository=self.entity_repository
            )
            self.blob_store = self._create_blob_store(
                blob_backend=settings["BLOB_BACKEND"],
                store_auth_service=self.store_auth_service
            )
            # Repositories authenticate themselves through store_auth_service, services carry no per-call token
            token = None
            self.adoption_lifecycle = AdoptionRequestLifecycle(entity_service=self.entity_service, token=token)
            self.pet_service = PetService(entity_service=self.entity_service, token=token, blob_store=self.blob_store)
            self.report_service = ReportService(entity_service=self.entity_service, token=token)
            self.messaging_service = MessagingService(entity_service=self.entity_service, token=token,
                                                      blob_store=self.blob_store)
            self.notification_feed = NotificationFeed(entity_service=self.entity_service, token=token)
            self.console_service = ConsoleService(entity_service=self.entity_service, token=token,
                                                  lifecycle=self.adoption_lifecycle)
            self.admin_auth_provider = AdminAuthProvider()

        except Exception as e:
            logger.exception(f"Error during BeanFactory initialization: {e}")
            raise

    def _load_default_config(self):
        """
        Load default configuration values, optionally from environment variables.
        """
        return {
            "STORE_REPOSITORY": os.getenv("STORE_REPOSITORY", config.STORE_REPOSITORY),
            "BLOB_BACKEND": os.getenv("BLOB_BACKEND", config.BLOB_BACKEND),
        }

    def _create_store_auth_service(self, settings):
        """
        Only the remote backends talk to the hosted store, so its credentials
        are required only when one of them is selected.
        """
        if settings["STORE_REPOSITORY"].lower() != "remote" and settings["BLOB_BACKEND"].lower() != "http":
            return None
        return StoreAuthService(
            client_id=config.get_env("STORE_CLIENT_ID"),
            client_secret=config.get_env("STORE_CLIENT_SECRET"),
            token_url=config.STORE_TOKEN_URL,
        )

    def _create_repository(self, repo_type, store_auth_service):
        """
        Create the appropriate repository based on configuration.
        """
        if repo_type.lower() == "remote":
            return RemoteRepository(store_auth_service=store_auth_service)
        else:
            return InMemoryRepository()

    def _create_blob_store(self, blob_backend, store_auth_service):
        if blob_backend.lower() == "http":
            return HttpBlobStore(
                store_auth_service=store_auth_service,
                base_url=config.BLOB_BASE_URL,
                public_url=config.BLOB_PUBLIC_URL,
            )
        return InMemoryBlobStore()

    def get_services(self):
        """
        Retrieve a dictionary of all managed services for further use.
        """
        return {
            "entity_repository": self.entity_repository,
            "entity_service": self.entity_service,
            "store_auth_service": self.store_auth_service,
            "blob_store": self.blob_store,
            "adoption_lifecycle": self.adoption_lifecycle,
            "pet_service": self.pet_service,
            "report_service": self.report_service,
            "messaging_service": self.messaging_service,
            "notification_feed": self.notification_feed,
            "console_service": self.console_service,
            "admin_auth_provider": self.admin_auth_provider,
        }
