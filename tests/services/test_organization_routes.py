"""Organization routes: CRUD, membership moves and details.

Invariants:
    - Only admins reach these routes
    - Domains are stored lowercased and stay unique
    - Deleting an organization moves its users and tools to another one
    - The last organization can be neither deleted nor left
"""

from atreo.models.tool import Tool
from atreo.models.user import User

from tests.services.helpers import API, error_detail, jsonapi


async def _create(client, user, auth, name="Acme", domain="acme.io"):
    return await client.post(
        f"{API}/organizations",
        headers=auth(user),
        json=jsonapi("organizations", name=name, domain=domain),
    )


# -- CRUD ------------------------------------------------------------------------


async def test_create_lowercases_domain(client, admin, auth):
    res = await _create(client, admin, auth, domain="  ACME.IO ")

    assert res.status_code == 201
    attrs = res.json()["data"]["attributes"]
    assert attrs["name"] == "Acme"
    assert attrs["domain"] == "acme.io"


async def test_duplicate_domain_conflicts(client, admin, auth):
    await _create(client, admin, auth)
    res = await _create(client, admin, auth, name="Other", domain="Acme.io")

    assert res.status_code == 409
    assert error_detail(res) == "Organization with this domain already exists"


async def test_blank_values_rejected(client, admin, auth):
    res = await _create(client, admin, auth, name="  ", domain="x.io")
    assert res.status_code == 400
    assert error_detail(res) == "Name and domain are required"


async def test_member_forbidden(client, member, auth):
    res = await client.get(f"{API}/organizations", headers=auth(member))
    assert res.status_code == 403


async def test_list_includes_counts(client, admin, member, auth, test_db):
    org_id = (await _create(client, admin, auth)).json()["data"]["id"]
    user = await test_db.get(User, member.id)
    user.organization_id = org_id
    test_db.add(Tool(name="Figma", created_by=admin.id, organization_id=org_id))
    await test_db.commit()

    res = await client.get(f"{API}/organizations", headers=auth(admin))

    assert res.status_code == 200
    body = res.json()
    assert body["meta"]["total"] == 1
    attrs = body["data"][0]["attributes"]
    assert attrs["user_count"] == 1
    assert attrs["tool_count"] == 1
    assert attrs["invoice_count"] == 0


async def test_get_missing_is_404(client, admin, auth):
    res = await client.get(f"{API}/organizations/nope", headers=auth(admin))
    assert res.status_code == 404


async def test_update_rejects_taken_domain(client, admin, auth):
    await _create(client, admin, auth)
    other = (await _create(client, admin, auth, name="Beta", domain="beta.io")).json()["data"]

    res = await client.put(
        f"{API}/organizations/{other['id']}",
        headers=auth(admin),
        json=jsonapi("organizations", name="Beta", domain="acme.io"),
    )
    assert res.status_code == 409
    assert error_detail(res) == "Domain is already taken by another organization"

    res = await client.put(
        f"{API}/organizations/{other['id']}",
        headers=auth(admin),
        json=jsonapi("organizations", name="Beta Labs", domain="beta.io"),
    )
    assert res.status_code == 200
    assert res.json()["data"]["attributes"]["name"] == "Beta Labs"


# -- Deletion --------------------------------------------------------------------


async def test_delete_moves_members(client, admin, member, auth, test_db):
    member_id = member.id
    keep = (await _create(client, admin, auth)).json()["data"]["id"]
    gone = (await _create(client, admin, auth, name="Beta", domain="beta.io")).json()["data"]["id"]
    await client.post(f"{API}/organizations/{gone}/users/{member_id}", headers=auth(admin))

    res = await client.delete(f"{API}/organizations/{gone}", headers=auth(admin))

    assert res.status_code == 204
    test_db.expire_all()
    user = await test_db.get(User, member_id)
    assert user.organization_id == keep


async def test_last_organization_cannot_be_deleted(client, admin, auth):
    org_id = (await _create(client, admin, auth)).json()["data"]["id"]

    res = await client.delete(f"{API}/organizations/{org_id}", headers=auth(admin))
    assert res.status_code == 400
    assert error_detail(res) == "Cannot delete the last organization"


# -- Membership ------------------------------------------------------------------


async def test_add_and_remove_user(client, admin, member, auth):
    first = (await _create(client, admin, auth)).json()["data"]["id"]
    second = (await _create(client, admin, auth, name="Beta", domain="beta.io")).json()["data"]["id"]

    res = await client.post(f"{API}/organizations/{second}/users/{member.id}", headers=auth(admin))
    assert res.status_code == 200
    assert res.json()["data"]["attributes"]["organization_id"] == second

    res = await client.delete(f"{API}/organizations/{second}/users/{member.id}", headers=auth(admin))
    assert res.status_code == 200
    assert res.json()["data"]["attributes"]["organization_id"] == first


async def test_remove_non_member_rejected(client, admin, member, auth):
    org_id = (await _create(client, admin, auth)).json()["data"]["id"]

    res = await client.delete(f"{API}/organizations/{org_id}/users/{member.id}", headers=auth(admin))
    assert res.status_code == 400
    assert error_detail(res) == "User does not belong to this organization"


async def test_add_unknown_user_is_404(client, admin, auth):
    org_id = (await _create(client, admin, auth)).json()["data"]["id"]
    res = await client.post(f"{API}/organizations/{org_id}/users/ghost", headers=auth(admin))
    assert res.status_code == 404


async def test_details_lists_members(client, admin, member, auth):
    org_id = (await _create(client, admin, auth)).json()["data"]["id"]
    await client.post(f"{API}/organizations/{org_id}/users/{member.id}", headers=auth(admin))

    res = await client.get(f"{API}/organizations/{org_id}/details", headers=auth(admin))

    assert res.status_code == 200
    attrs = res.json()["data"]["attributes"]
    assert [u["email"] for u in attrs["users"]] == ["member@example.com"]
    assert attrs["tools"] == []
    assert attrs["invoices"] == []
