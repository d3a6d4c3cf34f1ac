import asyncio

import pytest

from common.config.conts import PET_COLLECTION, REQUEST_COLLECTION
from common.exception.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PartialDecisionError,
    StorageError,
    ValidationError,
)


async def test_approve_pending_request_adopts_pet(lifecycle, adoption, fetch):
    request_id, pet_id = await adoption()

    updated = await lifecycle.submit_decision(request_id, "Approve")

    assert updated["status"] == "Approved"
    assert "disapprove_reason" not in updated
    assert (await fetch(REQUEST_COLLECTION, request_id))["status"] == "Approved"
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Adopted"


async def test_disapprove_with_reason_keeps_pet_available(lifecycle, adoption, fetch):
    request_id, pet_id = await adoption()

    updated = await lifecycle.submit_decision(request_id, "Disapprove", "Insufficient yard space")

    assert updated["status"] == "Disapproved"
    assert updated["disapprove_reason"] == "Insufficient yard space"
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Available"


async def test_disapprove_reason_is_trimmed(lifecycle, adoption):
    request_id, _ = await adoption()

    updated = await lifecycle.submit_decision(request_id, "Disapprove", "  No fenced yard \n")

    assert updated["disapprove_reason"] == "No fenced yard"


@pytest.mark.parametrize("reason", ["", "   ", None])
async def test_disapprove_without_reason_writes_nothing(lifecycle, adoption, fetch, repository, reason):
    request_id, pet_id = await adoption()

    with pytest.raises(ValidationError):
        await lifecycle.submit_decision(request_id, "Disapprove", reason)

    assert repository.updates == []
    assert "status" not in await fetch(REQUEST_COLLECTION, request_id)
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Available"


async def test_unknown_decision_is_rejected(lifecycle, adoption, repository):
    request_id, _ = await adoption()

    with pytest.raises(ValidationError):
        await lifecycle.submit_decision(request_id, "Maybe")

    assert repository.updates == []


async def test_reapproval_after_disapproval_adopts_pet_and_clears_reason(lifecycle, adoption, fetch):
    request_id, pet_id = await adoption({"status": "Disapproved", "disapprove_reason": "No references"})

    updated = await lifecycle.submit_decision(request_id, "Approve")

    assert updated["status"] == "Approved"
    assert "disapprove_reason" not in updated
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Adopted"


async def test_missing_request_is_not_found(lifecycle, repository):
    with pytest.raises(NotFoundError) as exc_info:
        await lifecycle.submit_decision("does-not-exist", "Approve")

    assert exc_info.value.entity_model == REQUEST_COLLECTION
    assert repository.updates == []


async def test_second_approval_is_an_invalid_transition(lifecycle, adoption, fetch, repository):
    request_id, pet_id = await adoption()
    await lifecycle.submit_decision(request_id, "Approve")
    writes = list(repository.updates)

    with pytest.raises(InvalidTransitionError) as exc_info:
        await lifecycle.submit_decision(request_id, "Approve")

    assert exc_info.value.current_status == "Approved"
    assert repository.updates == writes
    assert (await fetch(REQUEST_COLLECTION, request_id))["status"] == "Approved"
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Adopted"


async def test_approved_request_cannot_be_disapproved(lifecycle, adoption):
    request_id, _ = await adoption({"status": "Approved"})

    with pytest.raises(InvalidTransitionError):
        await lifecycle.submit_decision(request_id, "Disapprove", "Changed our minds")


async def test_disapproved_request_cannot_be_disapproved_again(lifecycle, adoption):
    request_id, _ = await adoption({"status": "Disapproved", "disapprove_reason": "No references"})

    with pytest.raises(InvalidTransitionError):
        await lifecycle.submit_decision(request_id, "Disapprove", "Still no references")


async def test_request_without_pet_is_decided_without_pet_write(lifecycle, seed, repository):
    request_id = await seed(REQUEST_COLLECTION, {"petId": None, "user_id": "user-1"})

    updated = await lifecycle.submit_decision(request_id, "Approve")

    assert updated["status"] == "Approved"
    assert repository.updates == [(REQUEST_COLLECTION, request_id)]


async def test_decision_writes_request_once_then_pet_once(lifecycle, adoption, repository):
    request_id, pet_id = await adoption()

    await lifecycle.submit_decision(request_id, "Approve")

    assert repository.updates == [(REQUEST_COLLECTION, request_id), (PET_COLLECTION, pet_id)]


async def test_missing_pet_is_detected_before_any_write(lifecycle, seed, repository):
    request_id = await seed(REQUEST_COLLECTION, {"petId": "gone", "user_id": "user-1"})

    with pytest.raises(NotFoundError) as exc_info:
        await lifecycle.submit_decision(request_id, "Approve")

    assert exc_info.value.entity_model == PET_COLLECTION
    assert repository.updates == []


async def test_failed_request_write_leaves_pet_untouched(lifecycle, adoption, fetch, repository):
    request_id, pet_id = await adoption()
    repository.fail_updates_for.add(REQUEST_COLLECTION)

    with pytest.raises(StorageError) as exc_info:
        await lifecycle.submit_decision(request_id, "Approve")

    assert not isinstance(exc_info.value, PartialDecisionError)
    assert repository.updates == [(REQUEST_COLLECTION, request_id)]
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Available"


async def test_failed_pet_write_is_reported_as_partial(lifecycle, adoption, fetch, repository):
    request_id, pet_id = await adoption()
    repository.fail_updates_for.add(PET_COLLECTION)

    with pytest.raises(PartialDecisionError) as exc_info:
        await lifecycle.submit_decision(request_id, "Approve")

    error = exc_info.value
    assert error.request["status"] == "Approved"
    assert error.pet_id == pet_id
    assert error.pet_status == "Adopted"
    assert error.to_dict()["partial"] is True
    assert (await fetch(REQUEST_COLLECTION, request_id))["status"] == "Approved"
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Available"


async def test_reconcile_repairs_pet_after_partial_decision(lifecycle, adoption, fetch, repository):
    request_id, pet_id = await adoption()
    repository.fail_updates_for.add(PET_COLLECTION)
    with pytest.raises(PartialDecisionError):
        await lifecycle.submit_decision(request_id, "Approve")
    repository.fail_updates_for.clear()

    pet = await lifecycle.reconcile_pet_status(pet_id)

    assert pet["status"] == "Adopted"
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Adopted"


async def test_reconcile_without_drift_does_not_write(lifecycle, adoption, repository):
    _, pet_id = await adoption()

    pet = await lifecycle.reconcile_pet_status(pet_id)

    assert pet["status"] == "Available"
    assert repository.updates == []


async def test_reconcile_unknown_pet_is_not_found(lifecycle):
    with pytest.raises(NotFoundError):
        await lifecycle.reconcile_pet_status("missing")


async def test_concurrent_decisions_only_one_wins(lifecycle, adoption, fetch):
    request_id, pet_id = await adoption()

    results = await asyncio.gather(
        lifecycle.submit_decision(request_id, "Approve"),
        lifecycle.submit_decision(request_id, "Disapprove", "Someone else decided"),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, dict)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], (ConflictError, InvalidTransitionError))
    stored = await fetch(REQUEST_COLLECTION, request_id)
    assert stored["status"] == successes[0]["status"]
    expected_pet = "Adopted" if stored["status"] == "Approved" else "Available"
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == expected_pet


async def test_list_by_status_treats_missing_status_as_pending(lifecycle, seed):
    await seed(REQUEST_COLLECTION, {"user_id": "a", "created_at": "2024-01-01T00:00:00+00:00"})
    await seed(REQUEST_COLLECTION, {"user_id": "b", "status": "Pending", "created_at": "2024-03-01T00:00:00+00:00"})
    await seed(REQUEST_COLLECTION, {"user_id": "c", "status": "Approved", "created_at": "2024-02-01T00:00:00+00:00"})

    pending = await lifecycle.list_by_status("Pending")

    assert [r["user_id"] for r in pending] == ["b", "a"]
    assert all(r["status"] == "Pending" for r in pending)


async def test_list_by_status_newest_first(lifecycle, seed):
    await seed(REQUEST_COLLECTION, {"user_id": "old", "status": "Approved", "timestamp": "2023-12-01T00:00:00+00:00"})
    await seed(REQUEST_COLLECTION, {"user_id": "new", "status": "Approved", "created_at": "2024-06-01T00:00:00+00:00"})
    await seed(REQUEST_COLLECTION, {"user_id": "undated", "status": "Approved"})

    approved = await lifecycle.list_by_status("Approved")

    assert [r["user_id"] for r in approved] == ["new", "old", "undated"]


async def test_list_by_unknown_status_is_rejected(lifecycle):
    with pytest.raises(ValidationError):
        await lifecycle.list_by_status("Archived")


async def test_count_by_status(lifecycle, seed):
    await seed(REQUEST_COLLECTION, {"user_id": "a"})
    await seed(REQUEST_COLLECTION, {"user_id": "b", "status": "Approved"})
    await seed(REQUEST_COLLECTION, {"user_id": "c", "status": "Disapproved", "disapprove_reason": "x"})
    await seed(REQUEST_COLLECTION, {"user_id": "d", "status": "Disapproved", "disapprove_reason": "y"})

    assert await lifecycle.count_by_status() == {"Pending": 1, "Approved": 1, "Disapproved": 2}


async def test_request_details_include_pet_and_applicant(lifecycle, adoption):
    request_id, pet_id = await adoption()

    details = await lifecycle.get_request_details(request_id)

    assert details["request"]["technical_id"] == request_id
    assert details["request"]["status"] == "Pending"
    assert details["pet"]["technical_id"] == pet_id
    assert details["applicant"]["firstname"] == "Ana"


async def test_request_details_tolerate_missing_references(lifecycle, seed):
    request_id = await seed(REQUEST_COLLECTION, {"petId": "gone", "user_id": "nobody"})

    details = await lifecycle.get_request_details(request_id)

    assert details["pet"] is None
    assert details["applicant"] is None


async def test_disapproving_a_rival_request_keeps_adopted_pet(lifecycle, adoption, seed, fetch, repository):
    first_id, pet_id = await adoption()
    rival_id = await seed(REQUEST_COLLECTION, {"petId": pet_id, "user_id": "user-2"})
    await lifecycle.submit_decision(first_id, "Approve")
    writes = list(repository.updates)

    updated = await lifecycle.submit_decision(rival_id, "Disapprove", "Already adopted")

    assert updated["status"] == "Disapproved"
    assert repository.updates == writes + [(REQUEST_COLLECTION, rival_id)]
    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Adopted"
    assert (await lifecycle.reconcile_pet_status(pet_id))["status"] == "Adopted"
    assert repository.updates == writes + [(REQUEST_COLLECTION, rival_id)]


async def test_disapproving_sole_request_frees_pet(lifecycle, adoption, seed, fetch):
    first_id, pet_id = await adoption()
    await seed(REQUEST_COLLECTION, {"petId": pet_id, "user_id": "user-2", "status": "Disapproved",
                                    "disapprove_reason": "No yard"})

    await lifecycle.submit_decision(first_id, "Disapprove", "Incomplete form")

    assert (await fetch(PET_COLLECTION, pet_id))["status"] == "Available"
    assert (await lifecycle.reconcile_pet_status(pet_id))["status"] == "Available"
