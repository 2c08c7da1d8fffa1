"""Admin account routes: all super-admin only.

Invariants:
    - Plain admins are refused every admin-management route
    - Creating an admin creates a role=admin user and its Admin record
    - Role changes reset capabilities (can_manage_admins only for super-admins)
    - Clearing admins never removes the caller
"""

from sqlalchemy import select

from atreo.models.user import Admin, User

from tests.services.helpers import API, PASSWORD, error_detail, jsonapi


async def _admin_record(test_db, user):
    result = await test_db.execute(select(Admin).where(Admin.user_id == user.id))
    return result.scalar_one()


async def test_plain_admin_is_refused(client, admin, auth):
    res = await client.get(f"{API}/admins", headers=auth(admin))
    assert res.status_code == 403
    assert error_detail(res) == "Super-admin access required"


async def test_list_admins(client, super_admin, admin, auth):
    res = await client.get(f"{API}/admins", headers=auth(super_admin))
    assert res.status_code == 200
    body = res.json()
    assert body["meta"]["total"] == 2
    assert {item["attributes"]["email"] for item in body["data"]} == {
        super_admin.email,
        admin.email,
    }


async def test_create_admin(client, super_admin, auth, test_db):
    res = await client.post(
        f"{API}/admins",
        headers=auth(super_admin),
        json=jsonapi("admins", name="Second", email="second@example.com", password=PASSWORD, role="admin"),
    )

    assert res.status_code == 201
    attrs = res.json()["data"]["attributes"]
    assert attrs["admin_id"].startswith("ADM")
    assert attrs["capabilities"]["can_manage_admins"] is False
    assert attrs["created_by"] == super_admin.id
    user = await test_db.get(User, attrs["user_id"])
    assert user.role == "admin"


async def test_create_admin_duplicate_email(client, super_admin, member, auth):
    res = await client.post(
        f"{API}/admins",
        headers=auth(super_admin),
        json=jsonapi("admins", name="Dup", email=member.email, password=PASSWORD, role="admin"),
    )
    assert res.status_code == 400
    assert error_detail(res) == "Email already exists"


async def test_update_admin_role_resets_capabilities(client, super_admin, admin, auth, test_db):
    record = await _admin_record(test_db, admin)

    res = await client.patch(
        f"{API}/admins/{record.id}",
        headers=auth(super_admin),
        json=jsonapi("admins", role="super-admin", name="Promoted"),
    )

    assert res.status_code == 200
    attrs = res.json()["data"]["attributes"]
    assert attrs["role"] == "super-admin"
    assert attrs["name"] == "Promoted"
    assert attrs["capabilities"]["can_manage_admins"] is True


async def test_admin_status(client, super_admin, admin, auth, test_db):
    record = await _admin_record(test_db, admin)

    res = await client.patch(
        f"{API}/admins/{record.id}/status", headers=auth(super_admin), json={"status": "inactive"}
    )
    assert res.json()["data"]["attributes"]["status"] == "inactive"

    res = await client.patch(
        f"{API}/admins/{record.id}/status", headers=auth(super_admin), json={"status": "banned"}
    )
    assert res.status_code == 400


async def test_inactive_admins_are_not_listed(client, super_admin, admin, auth, test_db):
    record = await _admin_record(test_db, admin)
    await client.patch(
        f"{API}/admins/{record.id}/status", headers=auth(super_admin), json={"status": "inactive"}
    )

    res = await client.get(f"{API}/admins", headers=auth(super_admin))
    assert res.json()["meta"]["total"] == 1


async def test_delete_admin_removes_user(client, super_admin, admin, auth, test_db):
    record = await _admin_record(test_db, admin)

    res = await client.delete(f"{API}/admins/{record.id}", headers=auth(super_admin))

    assert res.status_code == 204
    res = await client.get(f"{API}/admins/{record.id}", headers=auth(super_admin))
    assert res.status_code == 404


async def test_clear_admins_keeps_caller(client, super_admin, admin, make_user, auth, test_db):
    caller_id = super_admin.id
    await make_user("third@example.com", role="admin", admin_role="admin")

    res = await client.delete(f"{API}/admins/clear-all", headers=auth(super_admin))

    assert res.json() == {"meta": {"deleted_count": 2}}
    test_db.expire_all()
    remaining = await test_db.execute(select(Admin.user_id))
    assert remaining.scalars().all() == [caller_id]
