import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from common.config.config import ENTITY_VERSION
from common.config.conts import REPORTS_COLLECTION
from common.exception.exceptions import NotFoundError
from entity.report.workflow import (
    matches_report,
    normalize_report,
    summarize_reports,
    validate_report_status,
    validate_report_type,
)

logger = logging.getLogger(__name__)


class ReportService:
    """Lost and found animal reports reviewed by staff."""

    def __init__(self, entity_service, token, entity_version: str = ENTITY_VERSION):
        self._entity_service = entity_service
        self._token = token
        self._entity_version = entity_version

    async def list_reports(self, report_type: Optional[str] = None, status: Optional[str] = None) -> List[dict]:
        if report_type:
            validate_report_type(report_type)
        if status:
            validate_report_status(status)
        reports = await self._entity_service.get_items(
            token=self._token,
            entity_model=REPORTS_COLLECTION,
            entity_version=self._entity_version,
        )
        reports = [normalize_report(r) for r in reports]
        return [r for r in reports if matches_report(r, report_type, status)]

    async def report_counts(self, report_type: Optional[str] = None) -> Dict[str, int]:
        return summarize_reports(await self.list_reports(report_type=report_type))

    async def update_report_status(self, report_id, status: str) -> dict:
        validate_report_status(status)
        report = await self._entity_service.get_item(
            token=self._token,
            entity_model=REPORTS_COLLECTION,
            entity_version=self._entity_version,
            technical_id=report_id,
        )
        if report is None:
            raise NotFoundError(REPORTS_COLLECTION, report_id)
        updated = await self._entity_service.update_item(
            token=self._token,
            entity_model=REPORTS_COLLECTION,
            entity_version=self._entity_version,
            technical_id=report_id,
            entity={"status": status, "updatedAt": datetime.now(timezone.utc).isoformat()},
        )
        logger.info(f"Report {report_id} marked as {status}")
        return updated
