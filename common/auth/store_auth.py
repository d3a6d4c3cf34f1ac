import asyncio
import time
import logging
from typing import Optional

from authlib.integrations.httpx_client import AsyncOAuth2Client

logger = logging.getLogger(__name__)

class StoreAuthService:
    """
    OAuth2-based auth service for the remote document store using client_credentials flow.
    Handles token acquisition, caching, and re-authentication on expiration.
    """

    def __init__(self, client_id: str, client_secret: str, token_url: str, scope: Optional[str] = None):
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._scope = scope

        self._access_token: Optional[str] = None
        self._access_token_expiry: Optional[float] = None

        self._client: Optional[AsyncOAuth2Client] = None
        self._async_lock = asyncio.Lock()


    def invalidate_tokens(self):
        """
        Wipe any cached tokens so the next request does a full re-authentication.
        """
        logger.info("Invalidating cached OAuth2 tokens")
        self._access_token = None
        self._access_token_expiry = None

    async def get_access_token(self) -> str:
        """
        Returns a valid access token, fetching a new one if missing or expired.
        """
        async with self._async_lock:
            if self._is_token_stale():
                await self._fetch_access_token()
            return self._access_token

    async def _fetch_access_token(self):
        if not self._client:
            self._client = AsyncOAuth2Client(
                client_id=self._client_id,
                client_secret=self._client_secret,
                scope=self._scope
            )

        logger.info(f"Requesting new store access token from {self._token_url}")
        token = await self._client.fetch_token(url=self._token_url, grant_type="client_credentials")

        self._access_token = token.get("access_token")
        expires_in = token.get("expires_in", 300)
        self._access_token_expiry = time.time() + float(expires_in)

        logger.info("Successfully obtained new store access token")

    def _is_token_stale(self) -> bool:
        """
        Determine whether the access token is missing or expiring within 60 seconds.
        """
        now = time.time()
        return (
            not self._access_token
            or not self._access_token_expiry
            or now >= self._access_token_expiry - 60
        )
