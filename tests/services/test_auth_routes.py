"""Auth routes: signup, login, current user and the super-admin bootstrap.

Invariants:
    - Emails are normalized to lowercase on signup and login
    - Admin self-registration is ignored unless explicitly allowed
    - Wrong passwords are audited as login_failure; unknown emails are not
    - Deactivated accounts can neither log in nor use an existing token
    - The configured admin email is promoted to super-admin on first login
"""

from sqlalchemy import select

from atreo.models.audit_log import AuditLog
from atreo.models.user import Admin
from atreo.services.admin_service import BOOTSTRAP_ADMIN_ID

from tests.services.helpers import API, PASSWORD, error_detail


# -- Signup ----------------------------------------------------------------------


async def test_signup_returns_token_and_user(client):
    res = await client.post(
        f"{API}/auth/signup",
        json={"name": "Ada", "email": "Ada@Example.com", "password": PASSWORD},
    )
    assert res.status_code == 201
    body = res.json()
    assert body["token"]
    assert body["token_type"] == "Bearer"
    assert body["user"]["email"] == "ada@example.com"
    assert body["user"]["role"] == "user"


async def test_signup_ignores_admin_role_when_disallowed(client):
    res = await client.post(
        f"{API}/auth/signup",
        json={"name": "Eve", "email": "eve@example.com", "password": PASSWORD, "role": "admin"},
    )
    assert res.status_code == 201
    assert res.json()["user"]["role"] == "user"
    assert res.json()["user"]["admin_role"] is None


async def test_signup_duplicate_email_rejected(client, member):
    res = await client.post(
        f"{API}/auth/signup",
        json={"name": "Dup", "email": member.email, "password": PASSWORD},
    )
    assert res.status_code == 400
    assert error_detail(res) == "User already exists with this email"


async def test_signup_short_password_is_bad_request(client):
    res = await client.post(
        f"{API}/auth/signup",
        json={"name": "Short", "email": "short@example.com", "password": "123"},
    )
    assert res.status_code == 400


# -- Login -----------------------------------------------------------------------


async def test_login_success(client, member):
    res = await client.post(
        f"{API}/auth/login", json={"email": "MEMBER@example.com", "password": PASSWORD}
    )
    assert res.status_code == 200
    body = res.json()
    assert body["user"]["id"] == member.id
    assert body["user"]["last_login"] is not None
    assert body["expires_in"] == 24 * 3600


async def test_login_wrong_password_is_audited(client, member, test_db):
    res = await client.post(
        f"{API}/auth/login", json={"email": member.email, "password": "wrong-one"}
    )
    assert res.status_code == 401
    assert error_detail(res) == "Invalid credentials"

    result = await test_db.execute(select(AuditLog).where(AuditLog.action == "login_failure"))
    entry = result.scalar_one()
    assert entry.user_email == member.email
    assert entry.status == "failure"
    assert entry.error_message == "Invalid password"


async def test_login_unknown_email(client):
    res = await client.post(
        f"{API}/auth/login", json={"email": "ghost@example.com", "password": PASSWORD}
    )
    assert res.status_code == 401


async def test_login_deactivated_account(client, make_user):
    await make_user("gone@example.com", is_active=False)
    res = await client.post(
        f"{API}/auth/login", json={"email": "gone@example.com", "password": PASSWORD}
    )
    assert res.status_code == 401
    assert error_detail(res) == "Account is deactivated"


async def test_login_bootstraps_configured_super_admin(client, make_user, test_db):
    owner = await make_user("owner@example.com", role="admin")

    res = await client.post(
        f"{API}/auth/login", json={"email": owner.email, "password": PASSWORD}
    )

    assert res.status_code == 200
    assert res.json()["user"]["admin_role"] == "super-admin"
    result = await test_db.execute(select(Admin).where(Admin.user_id == owner.id))
    admin = result.scalar_one()
    assert admin.admin_id == BOOTSTRAP_ADMIN_ID
    assert admin.capabilities["can_manage_admins"] is True


# -- Current user ----------------------------------------------------------------


async def test_me_requires_token(client):
    res = await client.get(f"{API}/auth/me")
    assert res.status_code == 401


async def test_me_returns_admin_role_and_modules(client, admin, auth, grant):
    await grant(admin, {"tools": {"pages": {"list": {"read": True}}}})

    res = await client.get(f"{API}/auth/me", headers=auth(admin))

    assert res.status_code == 200
    user = res.json()["user"]
    assert user["admin_role"] == "admin"
    assert user["permissions"]["modules"]["tools"]["pages"]["list"] == {
        "read": True,
        "write": False,
    }


async def test_me_rejects_token_of_deactivated_user(client, make_user, auth):
    user = await make_user("paused@example.com", is_active=False)
    res = await client.get(f"{API}/auth/me", headers=auth(user))
    assert res.status_code == 401


async def test_me_rejects_garbage_token(client):
    res = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401


async def test_logout(client):
    res = await client.post(f"{API}/auth/logout")
    assert res.status_code == 200
    assert res.json() == {"message": "Logged out successfully"}
