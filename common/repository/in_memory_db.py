import asyncio
import copy
import inspect
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from common.exception.exceptions import ConflictError
from common.repository.crud_repository import CrudRepository, apply_partial, matches_criteria

logger = logging.getLogger(__name__)


class InMemoryRepository(CrudRepository):
    """
    Process-local document store used for development and tests.
    Writes are serialized with an asyncio lock, so conditional updates
    are atomic with respect to other coroutines in the same loop.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._subscribers: Dict[str, List[Callable]] = {}
        self._lock = asyncio.Lock()
        self._pending_deliveries = set()

    def clear(self):
        self._collections.clear()
        self._subscribers.clear()

    def _collection(self, meta) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(meta["entity_model"], {})

    def _snapshot(self, entity_model: str) -> List[Dict[str, Any]]:
        docs = self._collections.get(entity_model, {})
        return [self._export(technical_id, doc) for technical_id, doc in docs.items()]

    @staticmethod
    def _export(technical_id: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        data = copy.deepcopy(doc)
        data["technical_id"] = technical_id
        return data

    async def find_all(self, meta) -> List[Dict[str, Any]]:
        return self._snapshot(meta["entity_model"])

    async def find_by_id(self, meta, technical_id: Any) -> Optional[Dict[str, Any]]:
        doc = self._collection(meta).get(str(technical_id))
        if doc is None:
            return None
        return self._export(str(technical_id), doc)

    async def find_all_by_criteria(self, meta, criteria: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [doc for doc in self._snapshot(meta["entity_model"]) if matches_criteria(doc, criteria)]

    async def save(self, meta, entity: Dict[str, Any]) -> str:
        technical_id = str(uuid.uuid4())
        data = copy.deepcopy(entity)
        data.pop("technical_id", None)
        async with self._lock:
            self._collection(meta)[technical_id] = data
        await self._notify(meta["entity_model"])
        return technical_id

    async def update(self, meta, technical_id: Any, entity: Dict[str, Any],
                     condition: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        technical_id = str(technical_id)
        async with self._lock:
            stored = self._collection(meta).get(technical_id)
            if stored is None:
                raise ConflictError(f"{meta['entity_model']} {technical_id} no longer exists")
            if not matches_criteria(stored, condition):
                raise ConflictError(
                    f"{meta['entity_model']} {technical_id} changed concurrently, expected {condition}"
                )
            changes = copy.deepcopy(entity)
            changes.pop("technical_id", None)
            apply_partial(stored, changes)
            result = self._export(technical_id, stored)
        await self._notify(meta["entity_model"])
        return result

    async def delete_by_id(self, meta, technical_id: Any) -> None:
        async with self._lock:
            self._collection(meta).pop(str(technical_id), None)
        await self._notify(meta["entity_model"])

    def subscribe(self, meta, callback: Callable[[List[Dict[str, Any]]], Any]) -> Callable[[], None]:
        entity_model = meta["entity_model"]
        listeners = self._subscribers.setdefault(entity_model, [])
        listeners.append(callback)
        delivery = self._deliver(callback, self._snapshot(entity_model))
        if delivery is not None:
            self._pending_deliveries.add(delivery)
            delivery.add_done_callback(self._delivery_done)

        def unsubscribe():
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def _delivery_done(self, delivery):
        self._pending_deliveries.discard(delivery)
        if not delivery.cancelled() and delivery.exception() is not None:
            logger.error(f"Subscriber failed on its initial snapshot: {delivery.exception()}")

    async def _notify(self, entity_model: str) -> None:
        for callback in list(self._subscribers.get(entity_model, [])):
            result = self._deliver(callback, self._snapshot(entity_model))
            if result is not None:
                await result

    @staticmethod
    def _deliver(callback, snapshot):
        result = callback(snapshot)
        if inspect.isawaitable(result):
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                # No loop yet: the initial snapshot of a sync subscribe cannot be awaited
                result.close()
                logger.warning("Dropped initial snapshot for async subscriber outside an event loop")
                return None
            return asyncio.ensure_future(result)
        return None
