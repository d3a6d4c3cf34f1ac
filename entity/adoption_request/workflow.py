from datetime import datetime, timezone
from typing import Iterable, Optional

from common.config.conts import (
    DECISION_APPROVE,
    DECISION_DISAPPROVE,
    DECISIONS,
    PET_ADOPTED,
    PET_AVAILABLE,
    STATUS_APPROVED,
    STATUS_DISAPPROVED,
    STATUS_PENDING,
)
from common.exception.exceptions import InvalidTransitionError, ValidationError
from common.repository.crud_repository import DELETE_FIELD

# (current status, decision) -> new status. Approved has no way out.
TRANSITIONS = {
    (STATUS_PENDING, DECISION_APPROVE): STATUS_APPROVED,
    (STATUS_PENDING, DECISION_DISAPPROVE): STATUS_DISAPPROVED,
    (STATUS_DISAPPROVED, DECISION_APPROVE): STATUS_APPROVED,
}

PET_STATUS_FOR = {
    STATUS_APPROVED: PET_ADOPTED,
    STATUS_DISAPPROVED: PET_AVAILABLE,
}


def normalize_request(entity: dict) -> dict:
    """Requests submitted without a status are Pending."""
    if not entity.get("status"):
        entity["status"] = STATUS_PENDING
    return entity


def validate_decision(decision: str, reason: Optional[str] = None) -> Optional[str]:
    """
    Check a decision before anything is read or written.
    Returns the trimmed reason for a disapproval, None for an approval.
    """
    if decision not in DECISIONS:
        raise ValidationError(f"Unknown decision '{decision}', expected one of {', '.join(DECISIONS)}")
    if decision == DECISION_DISAPPROVE:
        if reason is None or not str(reason).strip():
            raise ValidationError("A reason is required to disapprove a request")
        return str(reason).strip()
    return None


def next_status(current_status: str, decision: str) -> str:
    new_status = TRANSITIONS.get((current_status, decision))
    if new_status is None:
        raise InvalidTransitionError(current_status, decision)
    return new_status


def decision_changes(new_status: str, reason: Optional[str]) -> dict:
    changes = {
        "status": new_status,
        "decided_at": datetime.now(timezone.utc).isoformat(),
    }
    # disapprove_reason is present only while the request is Disapproved
    if new_status == STATUS_DISAPPROVED:
        changes["disapprove_reason"] = reason
    else:
        changes["disapprove_reason"] = DELETE_FIELD
    return changes


def submission_sort_key(entity: dict):
    submitted = entity.get("created_at") or entity.get("timestamp")
    return (submitted is not None, str(submitted or ""))


def pet_status_from_requests(requests: Iterable[dict]) -> str:
    if any(normalize_request(dict(r))["status"] == STATUS_APPROVED for r in requests):
        return PET_ADOPTED
    return PET_AVAILABLE
