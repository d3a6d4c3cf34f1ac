import logging
from typing import Dict, List, Optional

from common.config.config import ENTITY_VERSION
from common.config.conts import (
    PET_COLLECTION,
    REQUEST_COLLECTION,
    REQUEST_STATUSES,
    STATUS_APPROVED,
    STATUS_DISAPPROVED,
    STATUS_PENDING,
    USERS_COLLECTION,
)
from common.exception.exceptions import (
    ConflictError,
    NotFoundError,
    PartialDecisionError,
    StorageError,
    ValidationError,
)
from entity.adoption_request.workflow import (
    PET_STATUS_FOR,
    decision_changes,
    next_status,
    normalize_request,
    pet_status_from_requests,
    submission_sort_key,
    validate_decision,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class AdoptionRequestLifecycle:
    """
    Owns adoption request decisions and keeps the referenced pet's
    availability in step with them.

    Every decision is one conditional request write followed by at most
    one pet write. The request write requires the stored status to be the
    one that was read, so two staff members cannot both decide the same
    request. The pet is only written after the request write succeeded.
    """

    def __init__(self, entity_service, token, entity_version: str = ENTITY_VERSION):
        self._entity_service = entity_service
        self._token = token
        self._entity_version = entity_version

    async def _get(self, entity_model: str, technical_id) -> Optional[dict]:
        return await self._entity_service.get_item(
            token=self._token,
            entity_model=entity_model,
            entity_version=self._entity_version,
            technical_id=technical_id,
        )

    async def get_request(self, request_id) -> dict:
        request = await self._get(REQUEST_COLLECTION, request_id)
        if request is None:
            raise NotFoundError(REQUEST_COLLECTION, request_id)
        return normalize_request(request)

    async def get_request_details(self, request_id) -> dict:
        """The request with its pet and applicant records, either may be None."""
        request = await self.get_request(request_id)
        pet = None
        if request.get("petId"):
            pet = await self._get(PET_COLLECTION, request["petId"])
        applicant = None
        if request.get("user_id"):
            users = await self._entity_service.get_items_by_condition(
                token=self._token,
                entity_model=USERS_COLLECTION,
                entity_version=self._entity_version,
                condition={"uid": request["user_id"]},
            )
            applicant = users[0] if users else None
        return {"request": request, "pet": pet, "applicant": applicant}

    async def list_by_status(self, status: str) -> List[dict]:
        """Requests in `status`, most recently submitted first."""
        if status not in REQUEST_STATUSES:
            raise ValidationError(f"Unknown status '{status}', expected one of {', '.join(REQUEST_STATUSES)}")
        if status == STATUS_PENDING:
            # documents without a status field count as Pending
            candidates = await self._entity_service.get_items(
                token=self._token,
                entity_model=REQUEST_COLLECTION,
                entity_version=self._entity_version,
            )
        else:
            candidates = await self._entity_service.get_items_by_condition(
                token=self._token,
                entity_model=REQUEST_COLLECTION,
                entity_version=self._entity_version,
                condition={"status": status},
            )
        requests = [normalize_request(r) for r in candidates]
        requests = [r for r in requests if r["status"] == status]
        return sorted(requests, key=submission_sort_key, reverse=True)

    async def count_by_status(self) -> Dict[str, int]:
        requests = await self._entity_service.get_items(
            token=self._token,
            entity_model=REQUEST_COLLECTION,
            entity_version=self._entity_version,
        )
        counts = {status: 0 for status in REQUEST_STATUSES}
        for request in requests:
            status = normalize_request(request)["status"]
            counts[status] = counts.get(status, 0) + 1
        return counts

    async def _has_other_approval(self, pet_id, request_id) -> bool:
        requests = await self._entity_service.get_items_by_condition(
            token=self._token,
            entity_model=REQUEST_COLLECTION,
            entity_version=self._entity_version,
            condition={"petId": pet_id},
        )
        return any(
            str(r["technical_id"]) != str(request_id) and normalize_request(r)["status"] == STATUS_APPROVED
            for r in requests
        )

    async def submit_decision(self, request_id, decision: str, reason: Optional[str] = None) -> dict:
        reason = validate_decision(decision, reason)

        stored = await self._get(REQUEST_COLLECTION, request_id)
        if stored is None:
            raise NotFoundError(REQUEST_COLLECTION, request_id)
        stored_status = stored.get("status")
        current_status = normalize_request(dict(stored))["status"]
        new_status = next_status(current_status, decision)

        pet_id = stored.get("petId")
        if pet_id and await self._get(PET_COLLECTION, pet_id) is None:
            raise NotFoundError(PET_COLLECTION, pet_id)
        adopted_elsewhere = (
            bool(pet_id)
            and new_status == STATUS_DISAPPROVED
            and await self._has_other_approval(pet_id, request_id)
        )

        updated = await self._entity_service.update_item(
            token=self._token,
            entity_model=REQUEST_COLLECTION,
            entity_version=self._entity_version,
            technical_id=request_id,
            entity=decision_changes(new_status, reason),
            condition={"status": stored_status},
        )
        logger.info(f"Adoption request {request_id}: {current_status} -> {new_status}")

        if not pet_id:
            logger.info(f"Adoption request {request_id} has no pet reference, pet left untouched")
            return updated
        if adopted_elsewhere:
            logger.info(f"Pet {pet_id} stays Adopted, another request for it is Approved")
            return updated

        pet_status = PET_STATUS_FOR[new_status]
        try:
            await self._entity_service.update_item(
                token=self._token,
                entity_model=PET_COLLECTION,
                entity_version=self._entity_version,
                technical_id=pet_id,
                entity={"status": pet_status},
            )
        except (StorageError, ConflictError) as e:
            logger.exception(f"Request {request_id} is {new_status} but pet {pet_id} was not updated")
            raise PartialDecisionError(updated, pet_id, pet_status, e) from e
        logger.info(f"Pet {pet_id} set to {pet_status}")
        return updated

    async def reconcile_pet_status(self, pet_id) -> dict:
        """
        Recompute a pet's status from its adoption requests and write it if
        it drifted, e.g. after a PartialDecisionError.
        """
        pet = await self._get(PET_COLLECTION, pet_id)
        if pet is None:
            raise NotFoundError(PET_COLLECTION, pet_id)
        requests = await self._entity_service.get_items_by_condition(
            token=self._token,
            entity_model=REQUEST_COLLECTION,
            entity_version=self._entity_version,
            condition={"petId": pet_id},
        )
        expected = pet_status_from_requests(requests)
        if pet.get("status") == expected:
            return pet
        logger.info(f"Reconciling pet {pet_id}: {pet.get('status')} -> {expected}")
        return await self._entity_service.update_item(
            token=self._token,
            entity_model=PET_COLLECTION,
            entity_version=self._entity_version,
            technical_id=pet_id,
            entity={"status": expected},
        )
