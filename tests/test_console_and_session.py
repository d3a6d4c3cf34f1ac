import jwt
import pytest

from common.auth.session import SessionContext, session_from_token
from common.config.config import AUTH_JWT_SECRET
from common.config.conts import (
    FEEDBACK_COLLECTION,
    PET_COLLECTION,
    PET_REPORTS_COLLECTION,
    REPORTS_COLLECTION,
    REQUEST_COLLECTION,
    USERS_COLLECTION,
)
from common.utils import token as token_utils
from entity.console.service import user_display


def admin_token(**claims):
    payload = {"sub": "admin-1", "role": "admin", "name": "Rhea"}
    payload.update(claims)
    return jwt.encode(payload, AUTH_JWT_SECRET, algorithm="HS256")


def test_user_display():
    assert user_display({"firstname": "ana", "lastname": "Reyes"}) == {"name": "ana Reyes", "initials": "AR"}
    assert user_display(None) == {"name": "Unknown User", "initials": "?"}


async def test_list_customers(console_service, seed):
    await seed(USERS_COLLECTION, {"uid": "u1", "type": "customer"})
    await seed(USERS_COLLECTION, {"uid": "u2", "type": "admin"})

    customers = await console_service.list_customers()

    assert [u["uid"] for u in customers] == ["u1"]


async def test_list_feedback_joins_authors(console_service, seed):
    author_id = await seed(USERS_COLLECTION, {"firstname": "Ana", "lastname": "Reyes"})
    await seed(FEEDBACK_COLLECTION, {"uid": author_id, "message": "Great service"})
    await seed(FEEDBACK_COLLECTION, {"uid": "gone", "message": "Anonymous"})

    feedback = await console_service.list_feedback()

    assert [f["author"]["name"] for f in feedback] == ["Ana Reyes", "Unknown User"]
    assert feedback[0]["author"]["initials"] == "AR"


async def test_dashboard_stats(console_service, seed):
    await seed(USERS_COLLECTION, {"uid": "u1", "type": "customer"})
    await seed(PET_COLLECTION, {"pet_name": "Mochi", "status": "Available"})
    await seed(PET_COLLECTION, {"pet_name": "Bantay", "status": "Adopted"})
    await seed(PET_REPORTS_COLLECTION, {"status": "pending"})
    await seed(REPORTS_COLLECTION, {"status": "Resolved"})
    await seed(REPORTS_COLLECTION, {"status": "Pending"})
    await seed(REQUEST_COLLECTION, {"user_id": "u1"})

    stats = await console_service.dashboard_stats()

    assert stats == {
        "users": 1,
        "pets": 2,
        "pets_by_status": {"Available": 1, "Adopted": 1},
        "lost_reports": 1,
        "resolved_reports": 1,
        "requests": {"Pending": 1, "Approved": 0, "Disapproved": 0},
    }


def test_session_from_valid_admin_token():
    session = session_from_token(admin_token())

    assert session.is_authenticated
    assert session.admin_uid == "admin-1"
    assert session.to_dict() == {"state": "authenticated", "admin_uid": "admin-1", "user_name": "Rhea"}


@pytest.mark.parametrize("token", [
    None,
    "not-a-jwt",
    jwt.encode({"sub": "admin-1", "role": "admin"}, "some-other-secret", algorithm="HS256"),
])
def test_invalid_tokens_are_unauthenticated(token):
    assert session_from_token(token).state == "unauthenticated"


def test_non_admin_role_is_unauthenticated():
    assert not session_from_token(admin_token(role="customer")).is_authenticated


def test_new_session_is_unresolved():
    assert SessionContext().state == "unresolved"
    assert not SessionContext.unresolved().is_authenticated


def test_resolve_session_reads_bearer_header():
    session = token_utils.resolve_session(f"Bearer {admin_token()}", enable_auth=True)

    assert session.admin_uid == "admin-1"
    assert not token_utils.resolve_session("Basic abc", enable_auth=True).is_authenticated
    assert not token_utils.resolve_session(None, enable_auth=True).is_authenticated


def test_resolve_session_without_auth_uses_local_admin(monkeypatch):
    monkeypatch.setattr(token_utils, "ENABLE_AUTH", False)

    session = token_utils.resolve_session(None)

    assert session.is_authenticated
    assert session.admin_uid == token_utils.LOCAL_ADMIN_UID
