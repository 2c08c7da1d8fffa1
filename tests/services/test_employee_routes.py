"""Employee routes: admin-only CRUD with a linked login account.

Invariants:
    - Every employee gets a role=user login sharing its email and employee id
    - Duplicate emails and employee ids are rejected
    - Only super-admins can reset an employee's password; others are ignored
    - Name, email and employee id changes are mirrored onto the login
    - Deleting an employee deletes its login
"""

from atreo.models.user import User
from atreo.security import verify_password

from tests.services.helpers import API, PASSWORD, error_detail, jsonapi

NEW_EMPLOYEE = {
    "name": "Grace Hopper",
    "email": "grace@example.com",
    "password": PASSWORD,
    "position": "Engineer",
    "department": "Compilers",
    "employee_id": "EMP100",
}


async def _create(client, actor, auth, **overrides):
    attrs = {**NEW_EMPLOYEE, **overrides}
    return await client.post(f"{API}/employees", headers=auth(actor), json=jsonapi("employees", **attrs))


async def test_employees_require_admin(client, member, auth):
    res = await client.get(f"{API}/employees", headers=auth(member))
    assert res.status_code == 403


async def test_create_employee_with_login(client, admin, auth, test_db):
    res = await _create(
        client,
        admin,
        auth,
        emergency_contact={"name": "Alan", "phone": "555"},
        salary_revision_history=[{"date": "2024-01-01", "amount": 5000, "reason": "Hire"}],
        kpis="Ship\nReview",
        date_of_joined="2024-01-01",
    )

    assert res.status_code == 201
    attrs = res.json()["data"]["attributes"]
    assert attrs["email"] == "grace@example.com"
    assert attrs["emergency_contact"]["name"] == "Alan"
    assert attrs["salary_revision_history"][0]["date"] == "2024-01-01"
    assert attrs["kpis"] == ["Ship", "Review"]
    assert attrs["hire_date"] == "2024-01-01"

    user = await test_db.get(User, attrs["user_id"])
    assert user.role == "user"
    assert user.employee_id == "EMP100"


async def test_duplicate_employee_id(client, admin, auth):
    await _create(client, admin, auth)
    res = await _create(client, admin, auth, email="other@example.com")
    assert res.status_code == 400
    assert error_detail(res) == "Employee ID already exists"


async def test_duplicate_email(client, admin, auth):
    await _create(client, admin, auth)
    res = await _create(client, admin, auth, employee_id="EMP200")
    assert res.status_code == 400
    assert error_detail(res) == "Email already exists"


async def test_list_employees_includes_login(client, admin, auth):
    await _create(client, admin, auth)
    res = await client.get(f"{API}/employees", headers=auth(admin))
    body = res.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["attributes"]["user"]["email"] == "grace@example.com"


async def test_update_mirrors_onto_login(client, admin, auth, test_db):
    created = (await _create(client, admin, auth)).json()["data"]

    res = await client.patch(
        f"{API}/employees/{created['id']}",
        headers=auth(admin),
        json=jsonapi("employees", name="Rear Admiral Hopper", email="ADMIRAL@example.com"),
    )

    assert res.status_code == 200
    user = await test_db.get(User, created["attributes"]["user_id"])
    await test_db.refresh(user)
    assert user.name == "Rear Admiral Hopper"
    assert user.email == "admiral@example.com"


async def test_salary_revisions_keep_date_key(client, admin, auth):
    created = (await _create(client, admin, auth)).json()["data"]
    history = [
        {"date": "2024-01-01", "amount": 5000, "reason": "Hire"},
        {"date": "2024-07-01", "amount": 5600, "reason": "Review"},
        {"amount": 6000},
    ]

    res = await client.patch(
        f"{API}/employees/{created['id']}",
        headers=auth(admin),
        json=jsonapi("employees", salary_revision_history=history),
    )

    assert res.status_code == 200
    revisions = res.json()["data"]["attributes"]["salary_revision_history"]
    assert [r.get("date") for r in revisions] == ["2024-01-01", "2024-07-01", None]
    assert revisions[1]["amount"] == 5600
    assert all("revision_date" not in r for r in revisions)


async def test_negative_salary_revision_rejected(client, admin, auth):
    res = await _create(client, admin, auth, salary_revision_history=[{"amount": -1}])
    assert res.status_code == 400


async def test_password_reset_ignored_for_plain_admin(client, admin, auth, test_db):
    created = (await _create(client, admin, auth)).json()["data"]

    await client.patch(
        f"{API}/employees/{created['id']}",
        headers=auth(admin),
        json=jsonapi("employees", password="brand-new-pass"),
    )

    user = await test_db.get(User, created["attributes"]["user_id"])
    await test_db.refresh(user)
    assert verify_password(PASSWORD, user.password_hash)


async def test_password_reset_by_super_admin(client, super_admin, auth, test_db):
    created = (await _create(client, super_admin, auth)).json()["data"]

    await client.patch(
        f"{API}/employees/{created['id']}",
        headers=auth(super_admin),
        json=jsonapi("employees", password="brand-new-pass"),
    )

    user = await test_db.get(User, created["attributes"]["user_id"])
    await test_db.refresh(user)
    assert verify_password("brand-new-pass", user.password_hash)


async def test_delete_employee_removes_login(client, admin, auth, test_db):
    created = (await _create(client, admin, auth)).json()["data"]

    res = await client.delete(f"{API}/employees/{created['id']}", headers=auth(admin))

    assert res.status_code == 204
    test_db.expire_all()
    assert await test_db.get(User, created["attributes"]["user_id"]) is None


async def test_clear_employees(client, admin, auth):
    await _create(client, admin, auth)
    await _create(client, admin, auth, email="b@example.com", employee_id="EMP101")

    res = await client.delete(f"{API}/employees/clear-all", headers=auth(admin))

    assert res.json() == {"meta": {"deleted_count": 2}}


async def test_get_missing_employee(client, admin, auth):
    res = await client.get(f"{API}/employees/00000000-0000-0000-0000-000000000000", headers=auth(admin))
    assert res.status_code == 404
