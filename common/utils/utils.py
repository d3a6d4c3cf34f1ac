import json
import logging
from datetime import date, datetime
from typing import Any, Optional

import httpx

from common.config.config import STORE_API_URL, STORE_REQUEST_TIMEOUT
from common.exception.exceptions import StorageError

logger = logging.getLogger(__name__)


def custom_serializer(obj):
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, set):
        return list(obj)
    raise TypeError(f"Type {type(obj)} not serializable")


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except json.JSONDecodeError:
        return response.text


async def send_store_request(store_auth_service, method: str, path: str, data: Optional[str] = None,
                             base_url: str = STORE_API_URL) -> dict:
    """
    Send an authenticated request to the document store API.
    Retries once on HTTP 401 with a fresh token. Transport failures and
    error statuses other than 404 raise StorageError; 404 is returned to
    the caller as {"status": 404, "json": ...}.
    """
    url = f"{base_url}/{path}"
    for attempt in range(2):
        token = await store_auth_service.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=STORE_REQUEST_TIMEOUT) as client:
                response = await client.request(method.upper(), url, headers=headers, content=data)
        except httpx.HTTPError as e:
            logger.exception(f"Store request {method.upper()} {path} failed")
            raise StorageError(f"Store request {method.upper()} {path} failed: {e}") from e

        if response.status_code == 401 and attempt == 0:
            logger.warning(f"Store returned 401 for {path}, refreshing token")
            store_auth_service.invalidate_tokens()
            continue
        break

    body = _parse_body(response)
    if response.status_code >= 400 and response.status_code != 404:
        raise StorageError(f"Store request {method.upper()} {path} returned {response.status_code}: {body}")
    return {"status": response.status_code, "json": body}
