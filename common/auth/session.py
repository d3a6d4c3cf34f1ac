import logging
from dataclasses import dataclass
from typing import Optional

import httpx
import jwt
from authlib.integrations.httpx_client import AsyncOAuth2Client, OAuthError

from common.config.config import (
    AUTH_CLIENT_ID,
    AUTH_JWT_ALGORITHM,
    AUTH_JWT_SECRET,
    AUTH_REVOKE_URL,
    AUTH_TOKEN_URL,
)
from common.exception.exceptions import StorageError, UnauthorizedAccessException

logger = logging.getLogger(__name__)

SESSION_UNRESOLVED = "unresolved"
SESSION_AUTHENTICATED = "authenticated"
SESSION_UNAUTHENTICATED = "unauthenticated"

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class SessionContext:
    """
    Who is operating the console. Built from the bearer token on every
    request; "unresolved" is the state before the token has been checked.
    """
    state: str = SESSION_UNRESOLVED
    admin_uid: Optional[str] = None
    user_name: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.state == SESSION_AUTHENTICATED

    @classmethod
    def unresolved(cls) -> "SessionContext":
        return cls(state=SESSION_UNRESOLVED)

    @classmethod
    def unauthenticated(cls) -> "SessionContext":
        return cls(state=SESSION_UNAUTHENTICATED)

    @classmethod
    def authenticated(cls, admin_uid: str, user_name: Optional[str] = None,
                      access_token: Optional[str] = None) -> "SessionContext":
        return cls(state=SESSION_AUTHENTICATED, admin_uid=admin_uid, user_name=user_name,
                   access_token=access_token)

    def to_dict(self) -> dict:
        return {"state": self.state, "admin_uid": self.admin_uid, "user_name": self.user_name}


def session_from_token(token: Optional[str], secret: str = AUTH_JWT_SECRET,
                       algorithm: str = AUTH_JWT_ALGORITHM) -> SessionContext:
    """Verify an admin JWT. Anything short of a valid admin token is unauthenticated."""
    if not token:
        return SessionContext.unauthenticated()
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.PyJWTError as e:
        logger.info(f"Rejected session token: {e}")
        return SessionContext.unauthenticated()
    if claims.get("role") != ADMIN_ROLE or not claims.get("sub"):
        return SessionContext.unauthenticated()
    return SessionContext.authenticated(
        admin_uid=claims["sub"], user_name=claims.get("name"), access_token=token
    )


class AdminAuthProvider:
    """Signs staff in and out against the identity provider (OAuth2 password grant)."""

    def __init__(self, client_id: str = AUTH_CLIENT_ID, token_url: str = AUTH_TOKEN_URL,
                 revoke_url: str = AUTH_REVOKE_URL):
        self._client_id = client_id
        self._token_url = token_url
        self._revoke_url = revoke_url

    async def sign_in(self, email: str, password: str) -> SessionContext:
        if not email or not password:
            raise UnauthorizedAccessException("Email and password are required")
        async with AsyncOAuth2Client(client_id=self._client_id) as client:
            try:
                token = await client.fetch_token(url=self._token_url, username=email, password=password)
            except OAuthError as e:
                logger.info(f"Sign-in refused for {email}: {e}")
                raise UnauthorizedAccessException("Invalid email or password") from e
            except httpx.HTTPError as e:
                logger.exception("Identity provider unreachable")
                raise StorageError(f"Identity provider unreachable: {e}") from e
        session = session_from_token(token.get("access_token"))
        if not session.is_authenticated:
            raise UnauthorizedAccessException("Account is not a console administrator")
        logger.info(f"Admin {session.admin_uid} signed in")
        return session

    async def sign_out(self, session: SessionContext) -> SessionContext:
        if session.access_token:
            async with AsyncOAuth2Client(client_id=self._client_id) as client:
                try:
                    await client.revoke_token(self._revoke_url, token=session.access_token)
                except httpx.HTTPError as e:
                    logger.exception("Token revocation failed")
                    raise StorageError(f"Token revocation failed: {e}") from e
            logger.info(f"Admin {session.admin_uid} signed out")
        return SessionContext.unauthenticated()
