from datetime import datetime, timezone
from typing import Iterable, List, Optional

from common.config.conts import ANIMAL_REPORTS_COLLECTION, PET_REPORTS_COLLECTION

NOTIFICATION_SOURCES = {
    ANIMAL_REPORTS_COLLECTION: {
        "prefix": "stray",
        "text": "New Pet Found report received",
        "link": "/pet-found",
    },
    PET_REPORTS_COLLECTION: {
        "prefix": "missing",
        "text": "New Pet Lost report received",
        "link": "/pet-lost",
    },
}


def report_notification(entity_model: str, report: dict, now: Optional[str] = None) -> Optional[dict]:
    """A notification for a report still waiting for staff, None otherwise."""
    if report.get("status") != "pending":
        return None
    source = NOTIFICATION_SOURCES[entity_model]
    return {
        "id": f"{source['prefix']}-{report['technical_id']}",
        "type": "pet_report",
        "timestamp": report.get("updatedAt") or now or datetime.now(timezone.utc).isoformat(),
        "text": source["text"],
        "link": source["link"],
    }


def merge_notifications(*groups: Iterable[dict]) -> List[dict]:
    merged = {}
    for group in groups:
        for notification in group:
            merged.setdefault(notification["id"], notification)
    return sorted(merged.values(), key=lambda n: str(n["timestamp"]), reverse=True)
