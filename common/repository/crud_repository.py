from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional


class _DeleteField:
    def __repr__(self):
        return "DELETE_FIELD"


# Marker value for partial updates: removes the key from the stored document
DELETE_FIELD = _DeleteField()


def apply_partial(document: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in changes.items():
        if value is DELETE_FIELD:
            document.pop(key, None)
        else:
            document[key] = value
    return document


def matches_criteria(document: Dict[str, Any], criteria: Optional[Dict[str, Any]]) -> bool:
    if not criteria:
        return True
    return all(document.get(field) == value for field, value in criteria.items())


class CrudRepository(ABC):
    """
    Async document store contract. Every call is addressed by a meta dict
    holding the token, the entity model (collection name) and its version.
    Documents are plain dicts; their id is exposed under "technical_id".
    """

    async def get_meta(self, token, entity_model, entity_version):
        return {"token": token, "entity_model": entity_model, "entity_version": entity_version}

    async def count(self, meta) -> int:
        items = await self.find_all(meta)
        return len(items)

    async def exists_by_id(self, meta, technical_id: Any) -> bool:
        return (await self.find_by_id(meta, technical_id)) is not None

    @abstractmethod
    async def find_all(self, meta) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def find_by_id(self, meta, technical_id: Any) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def find_all_by_criteria(self, meta, criteria: Dict[str, Any]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def save(self, meta, entity: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    async def update(self, meta, technical_id: Any, entity: Dict[str, Any],
                     condition: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Merge `entity` into the stored document and return the stored result.
        With `condition`, every listed field must still hold the given value,
        otherwise ConflictError is raised and nothing is written.
        """

    @abstractmethod
    async def delete_by_id(self, meta, technical_id: Any) -> None:
        pass

    @abstractmethod
    def subscribe(self, meta, callback: Callable[[List[Dict[str, Any]]], Any]) -> Callable[[], None]:
        """
        Deliver the collection snapshot to `callback` on every change.
        Returns a function that cancels the subscription.
        """
