import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from common.repository.crud_repository import CrudRepository

logger = logging.getLogger(__name__)


class EntityServiceImpl:
    """
    Async facade over a CrudRepository. Callers address documents by
    entity model (collection) and version, passing the store token along.
    """

    def __init__(self, repository: CrudRepository):
        self._repository = repository

    async def add_item(self, token, entity_model: str, entity_version: str, entity: Dict[str, Any],
                       workflow: Optional[Callable[[dict], Awaitable[Any]]] = None) -> str:
        """
        Persist a new entity. The optional workflow coroutine runs before
        persistence and may mutate the entity in place.
        """
        if workflow is not None:
            await workflow(entity)
        meta = await self._repository.get_meta(token, entity_model, entity_version)
        technical_id = await self._repository.save(meta=meta, entity=entity)
        logger.debug(f"Added {entity_model} {technical_id}")
        return technical_id

    async def get_item(self, token, entity_model: str, entity_version: str,
                       technical_id: Any) -> Optional[Dict[str, Any]]:
        meta = await self._repository.get_meta(token, entity_model, entity_version)
        return await self._repository.find_by_id(meta, technical_id)

    async def get_items(self, token, entity_model: str, entity_version: str) -> List[Dict[str, Any]]:
        meta = await self._repository.get_meta(token, entity_model, entity_version)
        return await self._repository.find_all(meta)

    async def get_items_by_condition(self, token, entity_model: str, entity_version: str,
                                     condition: Dict[str, Any]) -> List[Dict[str, Any]]:
        meta = await self._repository.get_meta(token, entity_model, entity_version)
        return await self._repository.find_all_by_criteria(meta, condition)

    async def count_items(self, token, entity_model: str, entity_version: str) -> int:
        meta = await self._repository.get_meta(token, entity_model, entity_version)
        return await self._repository.count(meta)

    async def update_item(self, token, entity_model: str, entity_version: str, technical_id: Any,
                          entity: Dict[str, Any], condition: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        meta = await self._repository.get_meta(token, entity_model, entity_version)
        return await self._repository.update(meta, technical_id, entity, condition=condition)

    async def delete_item(self, token, entity_model: str, entity_version: str, technical_id: Any) -> None:
        meta = await self._repository.get_meta(token, entity_model, entity_version)
        await self._repository.delete_by_id(meta, technical_id)

    def subscribe(self, token, entity_model: str, entity_version: str,
                  callback: Callable[[List[Dict[str, Any]]], Any]) -> Callable[[], None]:
        meta = {"token": token, "entity_model": entity_model, "entity_version": entity_version}
        return self._repository.subscribe(meta, callback)
