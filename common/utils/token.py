import functools
import logging
from typing import Optional

from quart import g, request

from common.auth.session import SessionContext, session_from_token
from common.config.config import ENABLE_AUTH, LOCAL_ADMIN_UID
from common.exception.exceptions import UnauthorizedAccessException

logger = logging.getLogger(__name__)


def _get_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """
    Extracts the token from an "Authorization: Bearer <token>" header.
    """
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def resolve_session(auth_header: Optional[str], enable_auth: Optional[bool] = None) -> SessionContext:
    if enable_auth is None:
        enable_auth = ENABLE_AUTH
    if not enable_auth:
        return SessionContext.authenticated(admin_uid=LOCAL_ADMIN_UID, user_name="Admin")
    return session_from_token(_get_bearer_token(auth_header))


def auth_required(func):
    """
    Decorator to enforce an authenticated admin session.
    The resolved SessionContext is passed to the view as `session`
    and kept on `g.session` for the rest of the request.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        session = resolve_session(request.headers.get('Authorization'))
        if not session.is_authenticated:
            raise UnauthorizedAccessException("Missing or invalid Authorization header")
        g.session = session
        kwargs['session'] = session
        return await func(*args, **kwargs)

    return wrapper
