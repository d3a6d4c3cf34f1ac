import asyncio
import copy
import inspect
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from common.config.config import STORE_POLL_INTERVAL
from common.exception.exceptions import ConflictError, StorageError
from common.repository.crud_repository import CrudRepository, apply_partial, matches_criteria
from common.repository.remote.util.search_models import equality_search
from common.utils.utils import custom_serializer, send_store_request

logger = logging.getLogger(__name__)


class RemoteRepository(CrudRepository):
    """
    Repository backed by the hosted document store HTTP API.
    Retries once on HTTP 401 by invalidating tokens and fetching fresh ones.
    """

    def __init__(self, store_auth_service, poll_interval: float = STORE_POLL_INTERVAL):
        self._store_auth_service = store_auth_service
        self._poll_interval = poll_interval

    async def _request(self, method: str, path: str, data: Optional[str] = None) -> dict:
        return await send_store_request(
            store_auth_service=self._store_auth_service, method=method, path=path, data=data
        )

    async def _wait_for_search_completion(
            self,
            snapshot_id: str,
            timeout: float = 60.0,
            interval: float = 0.3
    ) -> None:
        """
        Poll the snapshot status endpoint until SUCCESSFUL or error/timeout.
        """
        start = time.monotonic()
        status_path = f"search/snapshot/{snapshot_id}/status"

        while True:
            resp = await self._request("get", status_path)
            status = (resp.get("json") or {}).get("snapshotStatus")
            if status == "SUCCESSFUL":
                return
            if status not in ("RUNNING",):
                raise StorageError(f"Snapshot search failed: {resp.get('json')}")
            if time.monotonic() - start > timeout:
                raise StorageError(f"Snapshot search timed out after {timeout} seconds")
            await asyncio.sleep(interval)

    @staticmethod
    def _from_node(node: dict, technical_id: Any = None) -> Dict[str, Any]:
        data = dict(node.get("data") or {})
        data["technical_id"] = technical_id or node.get("meta", {}).get("id")
        return data

    async def find_all(self, meta) -> List[Dict[str, Any]]:
        path = f"entity/{meta['entity_model']}/{meta['entity_version']}"
        resp = await self._request("get", path)
        if resp.get("status") == 404:
            return []
        return [self._from_node(node) for node in resp.get("json") or []]

    async def find_by_id(self, meta, technical_id: Any) -> Optional[Dict[str, Any]]:
        resp = await self._request("get", f"entity/{technical_id}")
        if resp.get("status") == 404 or not resp.get("json"):
            return None
        payload = resp["json"]
        model = payload.get("meta", {}).get("modelKey", {}).get("name")
        if model and model != meta["entity_model"]:
            return None
        return self._from_node(payload, technical_id=str(technical_id))

    async def find_all_by_criteria(self, meta, criteria: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not criteria:
            return await self.find_all(meta)

        # 1) trigger snapshot
        snap_path = f"search/snapshot/{meta['entity_model']}/{meta['entity_version']}"
        resp = await self._request("post", snap_path, data=json.dumps(equality_search(criteria), default=custom_serializer))
        snapshot_id = resp.get("json")

        # 2) poll until ready
        await self._wait_for_search_completion(snapshot_id)

        # 3) fetch results (first page)
        result_resp = await self._request("get", f"search/snapshot/{snapshot_id}")
        if result_resp.get("status") != 200:
            return []
        resp_json = result_resp.get("json") or {}
        if isinstance(resp_json, str):
            resp_json = json.loads(resp_json)

        if resp_json.get("page", {}).get("totalElements", 0) == 0:
            return []

        nodes = resp_json.get("_embedded", {}).get("objectNodes", [])
        return [self._from_node(node) for node in nodes]

    async def save(self, meta, entity: Dict[str, Any]) -> str:
        data = dict(entity)
        data.pop("technical_id", None)
        path = f"entity/JSON/{meta['entity_model']}/{meta['entity_version']}"
        resp = await self._request("post", path, data=json.dumps(data, default=custom_serializer))
        result = resp.get("json") or []

        technical_id = None
        if isinstance(result, list) and result:
            technical_id = result[0].get("entityIds", [None])[0]
        if not technical_id:
            raise StorageError(f"Store did not return an id for new {meta['entity_model']}: {result}")
        return technical_id

    async def update(self, meta, technical_id: Any, entity: Dict[str, Any],
                     condition: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        # The API replaces whole documents, so partial updates are merged client-side
        stored = await self.find_by_id(meta, technical_id)
        if stored is None:
            raise ConflictError(f"{meta['entity_model']} {technical_id} no longer exists")
        if not matches_criteria(stored, condition):
            raise ConflictError(
                f"{meta['entity_model']} {technical_id} changed concurrently, expected {condition}"
            )
        merged = apply_partial(stored, copy.deepcopy(entity))
        merged.pop("technical_id", None)

        path = (
            f"entity/JSON/{technical_id}"
            "?transactional=true&waitForConsistencyAfter=true"
        )
        await self._request("put", path, data=json.dumps(merged, default=custom_serializer))
        merged["technical_id"] = str(technical_id)
        return merged

    async def delete_by_id(self, meta, technical_id: Any) -> None:
        await self._request("delete", f"entity/{technical_id}")

    def subscribe(self, meta, callback: Callable[[List[Dict[str, Any]]], Any]) -> Callable[[], None]:
        task = asyncio.get_running_loop().create_task(self._poll(meta, callback))

        def unsubscribe():
            task.cancel()

        return unsubscribe

    async def _poll(self, meta, callback) -> None:
        """
        The HTTP API has no change feed, so subscriptions poll the collection
        and deliver a snapshot only when it differs from the last one.
        """
        last = None
        while True:
            try:
                snapshot = await self.find_all(meta)
                fingerprint = json.dumps(snapshot, sort_keys=True, default=custom_serializer)
                if fingerprint != last:
                    last = fingerprint
                    result = callback(snapshot)
                    if inspect.isawaitable(result):
                        await result
            except StorageError as e:
                logger.warning(f"Polling {meta['entity_model']} failed, retrying: {e}")
            await asyncio.sleep(self._poll_interval)
