import logging
from datetime import datetime, timezone
from typing import List, Optional

from common.config.config import ENTITY_VERSION
from common.config.conts import PET_COLLECTION
from common.exception.exceptions import NotFoundError, ValidationError
from common.storage.blob_store import BlobStore, object_name
from entity.pet.workflow import matches_search, normalize_pet, validate_pet_has_name, validate_pet_status

logger = logging.getLogger(__name__)


class PetService:
    """Pet intake and listing. A pet's status is owned by the adoption lifecycle."""

    def __init__(self, entity_service, token, blob_store: BlobStore, entity_version: str = ENTITY_VERSION):
        self._entity_service = entity_service
        self._token = token
        self._blob_store = blob_store
        self._entity_version = entity_version

    async def add_pet(self, data: dict, image: Optional[dict] = None) -> str:
        """
        `image` is {"filename", "content", "content_type"}; it is uploaded
        before the pet is stored and its URL kept under "images".
        """
        pet = dict(data)
        if not validate_pet_has_name(pet):
            raise ValidationError("Pet name is required")
        if not validate_pet_status(pet):
            raise ValidationError(f"Unknown pet status '{pet.get('status')}'")
        pet["images"] = ""
        if image:
            path = object_name("images", image.get("filename"))
            pet["images"] = await self._blob_store.upload(
                path, image["content"], image.get("content_type") or "application/octet-stream"
            )
        technical_id = await self._entity_service.add_item(
            token=self._token,
            entity_model=PET_COLLECTION,
            entity_version=self._entity_version,
            entity=pet,
            workflow=normalize_pet,
        )
        logger.info(f"Added pet {technical_id} ({pet['pet_name']})")
        return technical_id

    async def get_pet(self, pet_id) -> dict:
        pet = await self._entity_service.get_item(
            token=self._token,
            entity_model=PET_COLLECTION,
            entity_version=self._entity_version,
            technical_id=pet_id,
        )
        if pet is None:
            raise NotFoundError(PET_COLLECTION, pet_id)
        return pet

    async def list_pets(self, status: Optional[str] = None) -> List[dict]:
        if status:
            return await self._entity_service.get_items_by_condition(
                token=self._token,
                entity_model=PET_COLLECTION,
                entity_version=self._entity_version,
                condition={"status": status},
            )
        return await self._entity_service.get_items(
            token=self._token,
            entity_model=PET_COLLECTION,
            entity_version=self._entity_version,
        )

    async def search_pets(self, term: str) -> List[dict]:
        pets = await self.list_pets()
        return [pet for pet in pets if matches_search(pet, term or "")]

    async def update_pet(self, pet_id, changes: dict) -> dict:
        if "status" in changes:
            raise ValidationError("Pet status changes only through adoption decisions")
        if "pet_name" in changes and not validate_pet_has_name(changes):
            raise ValidationError("Pet name is required")
        await self.get_pet(pet_id)
        changes = {k: v for k, v in changes.items() if k != "technical_id"}
        changes["updated_at"] = datetime.now(timezone.utc).isoformat()
        return await self._entity_service.update_item(
            token=self._token,
            entity_model=PET_COLLECTION,
            entity_version=self._entity_version,
            technical_id=pet_id,
            entity=changes,
        )

    async def delete_pet(self, pet_id) -> None:
        await self.get_pet(pet_id)
        await self._entity_service.delete_item(
            token=self._token,
            entity_model=PET_COLLECTION,
            entity_version=self._entity_version,
            technical_id=pet_id,
        )
        logger.info(f"Deleted pet {pet_id}")
