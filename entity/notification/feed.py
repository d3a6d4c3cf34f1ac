import logging
from typing import Any, Callable, Dict, List

from common.config.config import ENTITY_VERSION
from common.exception.exceptions import ValidationError
from entity.notification.workflow import NOTIFICATION_SOURCES, merge_notifications, report_notification

logger = logging.getLogger(__name__)


class NotificationFeed:
    """
    Badge feed for the console header: pending found and lost reports,
    merged into one list, newest first.
    """

    def __init__(self, entity_service, token, entity_version: str = ENTITY_VERSION):
        self._entity_service = entity_service
        self._token = token
        self._entity_version = entity_version

    def subscribe(self, admin_uid: str, callback: Callable[[List[dict]], Any]) -> Callable[[], None]:
        if not admin_uid:
            raise ValidationError("An authenticated admin is required for notifications")

        latest: Dict[str, List[dict]] = {model: [] for model in NOTIFICATION_SOURCES}

        def listener(entity_model):
            def on_snapshot(reports):
                latest[entity_model] = [
                    n for n in (report_notification(entity_model, r) for r in reports) if n
                ]
                return callback(merge_notifications(*latest.values()))
            return on_snapshot

        unsubscribers = [
            self._entity_service.subscribe(
                token=self._token,
                entity_model=entity_model,
                entity_version=self._entity_version,
                callback=listener(entity_model),
            )
            for entity_model in NOTIFICATION_SOURCES
        ]
        logger.info(f"Notification feed started for admin {admin_uid}")

        def unsubscribe():
            for unsubscribe_source in unsubscribers:
                unsubscribe_source()

        return unsubscribe

    async def current(self) -> List[dict]:
        groups = []
        for entity_model in NOTIFICATION_SOURCES:
            reports = await self._entity_service.get_items(
                token=self._token,
                entity_model=entity_model,
                entity_version=self._entity_version,
            )
            groups.append([n for n in (report_notification(entity_model, r) for r in reports) if n])
        return merge_notifications(*groups)
