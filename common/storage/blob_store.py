import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from common.config.config import STORE_REQUEST_TIMEOUT
from common.exception.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)


def object_name(folder: str, filename: str, now: Optional[float] = None) -> str:
    """images/<epoch_ms>_<filename>, keeping uploads with the same name apart."""
    if not filename or not filename.strip():
        raise ValidationError("Uploaded file has no name")
    epoch_ms = int((now if now is not None else time.time()) * 1000)
    return f"{folder}/{epoch_ms}_{filename.strip()}"


class BlobStore(ABC):

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store the object and return a URL it can be retrieved from."""


class InMemoryBlobStore(BlobStore):

    def __init__(self):
        self.objects: Dict[str, Tuple[bytes, str]] = {}

    async def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self.objects[path] = (data, content_type)
        return f"memory://{path}"


class HttpBlobStore(BlobStore):
    """Uploads with an authenticated PUT and returns the public object URL."""

    def __init__(self, store_auth_service, base_url: str, public_url: str):
        self._store_auth_service = store_auth_service
        self._base_url = base_url.rstrip("/")
        self._public_url = public_url.rstrip("/")

    async def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        token = await self._store_auth_service.get_access_token()
        url = f"{self._base_url}/{quote(path)}"
        try:
            async with httpx.AsyncClient(timeout=STORE_REQUEST_TIMEOUT) as client:
                resp = await client.put(
                    url,
                    content=data,
                    headers={"Authorization": f"Bearer {token}", "Content-Type": content_type},
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.exception(f"Upload of {path} failed")
            raise StorageError(f"Upload of {path} failed: {e}") from e
        logger.info(f"Uploaded {path} ({len(data)} bytes)")
        return f"{self._public_url}/{quote(path)}"
