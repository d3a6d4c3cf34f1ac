import logging
from typing import List

from common.config.config import ENTITY_VERSION
from common.config.conts import (
    CUSTOMER_TYPE,
    FEEDBACK_COLLECTION,
    PET_COLLECTION,
    PET_REPORTS_COLLECTION,
    PET_STATUSES,
    REPORT_RESOLVED,
    REPORTS_COLLECTION,
    USERS_COLLECTION,
)

logger = logging.getLogger(__name__)


def user_display(user: dict) -> dict:
    if not user:
        return {"name": "Unknown User", "initials": "?"}
    first = (user.get("firstname") or "").strip()
    last = (user.get("lastname") or "").strip()
    return {
        "name": f"{first} {last}".strip() or "Unknown User",
        "initials": (first[:1] + last[:1]).upper() or "?",
    }


class ConsoleService:
    """Read-only views for the dashboard, the users list and the feedback page."""

    def __init__(self, entity_service, token, lifecycle, entity_version: str = ENTITY_VERSION):
        self._entity_service = entity_service
        self._token = token
        self._lifecycle = lifecycle
        self._entity_version = entity_version

    async def _items(self, entity_model: str, condition: dict = None) -> List[dict]:
        if condition:
            return await self._entity_service.get_items_by_condition(
                token=self._token,
                entity_model=entity_model,
                entity_version=self._entity_version,
                condition=condition,
            )
        return await self._entity_service.get_items(
            token=self._token,
            entity_model=entity_model,
            entity_version=self._entity_version,
        )

    async def list_customers(self) -> List[dict]:
        return await self._items(USERS_COLLECTION, {"type": CUSTOMER_TYPE})

    async def list_feedback(self) -> List[dict]:
        users = {u["technical_id"]: u for u in await self._items(USERS_COLLECTION)}
        feedback = []
        for item in await self._items(FEEDBACK_COLLECTION):
            entry = dict(item)
            entry["author"] = user_display(users.get(item.get("uid")))
            feedback.append(entry)
        return feedback

    async def dashboard_stats(self) -> dict:
        pets = await self._items(PET_COLLECTION)
        pets_by_status = {status: 0 for status in PET_STATUSES}
        for pet in pets:
            status = pet.get("status")
            if status:
                pets_by_status[status] = pets_by_status.get(status, 0) + 1
        return {
            "users": len(await self._items(USERS_COLLECTION)),
            "pets": len(pets),
            "pets_by_status": pets_by_status,
            "lost_reports": len(await self._items(PET_REPORTS_COLLECTION)),
            "resolved_reports": len(await self._items(REPORTS_COLLECTION, {"status": REPORT_RESOLVED})),
            "requests": await self._lifecycle.count_by_status(),
        }
