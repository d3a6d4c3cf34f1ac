from typing import Any, Dict, Iterable, Optional

from common.config.conts import (
    REPORT_IN_PROGRESS,
    REPORT_PENDING,
    REPORT_RESOLVED,
    REPORT_STATUSES,
    REPORT_TYPES,
)
from common.exception.exceptions import ValidationError


def normalize_report(entity: Dict[str, Any]) -> Dict[str, Any]:
    """Anything not yet picked up by staff, whatever the submitting app wrote, is Pending."""
    if entity.get("status") not in (REPORT_IN_PROGRESS, REPORT_RESOLVED):
        entity["status"] = REPORT_PENDING
    return entity


def validate_report_status(status: str) -> str:
    if status not in REPORT_STATUSES:
        raise ValidationError(f"Unknown report status '{status}', expected one of {', '.join(REPORT_STATUSES)}")
    return status


def validate_report_type(report_type: str) -> str:
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"Unknown report type '{report_type}', expected one of {', '.join(REPORT_TYPES)}")
    return report_type


def matches_report(entity: Dict[str, Any], report_type: Optional[str], status: Optional[str]) -> bool:
    if report_type and entity.get("report_type") != report_type:
        return False
    if status and entity.get("status") != status:
        return False
    return True


def summarize_reports(reports: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    counts = {"total": 0}
    counts.update({status: 0 for status in REPORT_STATUSES})
    for report in reports:
        counts["total"] += 1
        counts[report["status"]] += 1
    return counts
