import asyncio
import logging

import pytest

from common.exception.exceptions import ConflictError
from common.repository.crud_repository import DELETE_FIELD
from common.repository.in_memory_db import InMemoryRepository


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
async def meta(repo):
    return await repo.get_meta(None, "pet", "1")


async def test_save_assigns_id_and_copies_document(repo, meta):
    entity = {"pet_name": "Mochi", "tags": ["calm"]}

    technical_id = await repo.save(meta, entity)
    entity["tags"].append("mutated")

    stored = await repo.find_by_id(meta, technical_id)
    assert stored == {"pet_name": "Mochi", "tags": ["calm"], "technical_id": technical_id}
    assert await repo.exists_by_id(meta, technical_id)
    assert await repo.count(meta) == 1


async def test_find_by_unknown_id_returns_none(repo, meta):
    assert await repo.find_by_id(meta, "nope") is None
    assert not await repo.exists_by_id(meta, "nope")


async def test_collections_are_separate(repo, meta):
    await repo.save(meta, {"pet_name": "Mochi"})
    other = await repo.get_meta(None, "users", "1")

    assert await repo.find_all(other) == []


async def test_find_all_by_criteria(repo, meta):
    await repo.save(meta, {"pet_name": "Mochi", "status": "Available"})
    await repo.save(meta, {"pet_name": "Bantay", "status": "Adopted"})

    found = await repo.find_all_by_criteria(meta, {"status": "Adopted"})

    assert [p["pet_name"] for p in found] == ["Bantay"]


async def test_update_merges_and_deletes_fields(repo, meta):
    technical_id = await repo.save(meta, {"pet_name": "Mochi", "status": "Available", "note": "shy"})

    result = await repo.update(meta, technical_id, {"status": "Adopted", "note": DELETE_FIELD})

    assert result == {"pet_name": "Mochi", "status": "Adopted", "technical_id": technical_id}
    assert await repo.find_by_id(meta, technical_id) == result


async def test_conditional_update_rejects_stale_condition(repo, meta):
    technical_id = await repo.save(meta, {"status": "Pending"})

    with pytest.raises(ConflictError):
        await repo.update(meta, technical_id, {"status": "Approved"}, condition={"status": "Disapproved"})

    assert (await repo.find_by_id(meta, technical_id))["status"] == "Pending"


async def test_condition_on_absent_field_matches_none(repo, meta):
    technical_id = await repo.save(meta, {"user_id": "a"})

    result = await repo.update(meta, technical_id, {"status": "Approved"}, condition={"status": None})

    assert result["status"] == "Approved"


async def test_update_of_missing_document_conflicts(repo, meta):
    with pytest.raises(ConflictError):
        await repo.update(meta, "missing", {"status": "Adopted"})


async def test_delete_by_id(repo, meta):
    technical_id = await repo.save(meta, {"pet_name": "Mochi"})

    await repo.delete_by_id(meta, technical_id)

    assert await repo.find_by_id(meta, technical_id) is None


async def test_subscribe_delivers_snapshots_until_unsubscribed(repo, meta):
    snapshots = []
    unsubscribe = repo.subscribe(meta, snapshots.append)

    technical_id = await repo.save(meta, {"pet_name": "Mochi"})
    await repo.update(meta, technical_id, {"status": "Adopted"})
    unsubscribe()
    await repo.delete_by_id(meta, technical_id)

    assert len(snapshots) == 3
    assert snapshots[0] == []
    assert snapshots[1][0]["pet_name"] == "Mochi"
    assert snapshots[2][0]["status"] == "Adopted"


async def test_async_subscriber_is_awaited(repo, meta):
    snapshots = []

    async def on_snapshot(documents):
        snapshots.append(len(documents))

    repo.subscribe(meta, on_snapshot)
    await repo.save(meta, {"pet_name": "Mochi"})

    assert snapshots[-1] == 1


async def test_clear_drops_documents(repo, meta):
    await repo.save(meta, {"pet_name": "Mochi"})

    repo.clear()

    assert await repo.find_all(meta) == []


async def test_failed_initial_snapshot_of_async_subscriber_is_logged(repo, meta, caplog):
    async def on_snapshot(documents):
        raise RuntimeError("listener exploded")

    with caplog.at_level(logging.ERROR, logger="common.repository.in_memory_db"):
        repo.subscribe(meta, on_snapshot)
        await asyncio.gather(*repo._pending_deliveries, return_exceptions=True)
        await asyncio.sleep(0)

    assert repo._pending_deliveries == set()
    assert "listener exploded" in caplog.text
