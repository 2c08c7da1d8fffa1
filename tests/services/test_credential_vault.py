"""Credential vault routes: masked lists, audited reveals.

Invariants:
    - The credentials module gates every route (accountants included)
    - Lists never carry passwords and mask API keys
    - Each reveal is audited as credential_viewed; audit details hold no secrets
    - Sending the mask back on update keeps the stored secret
    - Lists are ordered by name and paginate with name cursors
"""

from sqlalchemy import select

from atreo.models.audit_log import AuditLog
from atreo.services.credential_service import MASK

from tests.services.helpers import API, error_detail, jsonapi


async def _create(client, user, auth, **attrs):
    attrs.setdefault("name", "AWS Root")
    attrs.setdefault("service", "AWS")
    res = await client.post(
        f"{API}/credentials", headers=auth(user), json=jsonapi("credentials", **attrs)
    )
    assert res.status_code == 201
    return res.json()["data"]


async def test_accountant_has_credentials_module(client, accountant, auth):
    res = await client.get(f"{API}/credentials", headers=auth(accountant))
    assert res.status_code == 200


async def test_create_returns_masked_view(client, super_admin, auth):
    created = await _create(client, super_admin, auth, password="p@ss", api_key="AKIA123")
    attrs = created["attributes"]
    assert attrs["service"] == "AWS"
    assert attrs["api_key"] == MASK
    assert "password" not in attrs


async def test_blank_service_rejected(client, super_admin, auth):
    res = await client.post(
        f"{API}/credentials",
        headers=auth(super_admin),
        json=jsonapi("credentials", name="Thing", service="  "),
    )
    assert res.status_code == 400
    assert error_detail(res) == "Name and service are required"


async def test_list_is_masked_and_alphabetical(client, super_admin, auth):
    await _create(client, super_admin, auth, name="Zendesk", api_key="z-key")
    await _create(client, super_admin, auth, name="Atlassian")

    res = await client.get(f"{API}/credentials", headers=auth(super_admin))

    data = res.json()["data"]
    assert [item["attributes"]["name"] for item in data] == ["Atlassian", "Zendesk"]
    assert data[0]["attributes"]["api_key"] is None
    assert data[1]["attributes"]["api_key"] == MASK
    assert all("password" not in item["attributes"] for item in data)


async def test_list_paginates_by_name(client, super_admin, auth):
    for name in ("Alpha", "Bravo", "Charlie"):
        await _create(client, super_admin, auth, name=name)

    first = await client.get(
        f"{API}/credentials", params={"page[size]": 2}, headers=auth(super_admin)
    )
    assert first.json()["meta"]["has_next"] is True

    second = await client.get(first.json()["links"]["next"], headers=auth(super_admin))
    assert [item["attributes"]["name"] for item in second.json()["data"]] == ["Charlie"]
    assert second.json()["meta"]["has_prev"] is True


async def test_reveal_is_audited(client, super_admin, auth, test_db):
    created = await _create(client, super_admin, auth, password="p@ss")

    res = await client.get(f"{API}/credentials/{created['id']}", headers=auth(super_admin))

    assert res.json()["data"]["attributes"]["password"] == "p@ss"
    result = await test_db.execute(
        select(AuditLog).where(AuditLog.action == "credential_viewed")
    )
    entry = result.scalar_one()
    assert entry.resource == "credential"
    assert entry.resource_id == created["id"]
    assert "p@ss" not in str(entry.details)


async def test_masked_password_keeps_stored_secret(client, super_admin, auth):
    created = await _create(client, super_admin, auth, password="p@ss")

    res = await client.put(
        f"{API}/credentials/{created['id']}",
        headers=auth(super_admin),
        json=jsonapi("credentials", password=MASK, notes="rotated"),
    )
    assert res.status_code == 200

    res = await client.get(f"{API}/credentials/{created['id']}", headers=auth(super_admin))
    attrs = res.json()["data"]["attributes"]
    assert attrs["password"] == "p@ss"
    assert attrs["notes"] == "rotated"


async def test_update_replaces_secret(client, super_admin, auth, test_db):
    created = await _create(client, super_admin, auth, password="old")

    await client.put(
        f"{API}/credentials/{created['id']}",
        headers=auth(super_admin),
        json=jsonapi("credentials", password="new"),
    )

    res = await client.get(f"{API}/credentials/{created['id']}", headers=auth(super_admin))
    assert res.json()["data"]["attributes"]["password"] == "new"
    result = await test_db.execute(
        select(AuditLog).where(AuditLog.action == "credential_updated")
    )
    assert result.scalar_one().details["secrets_changed"] is True


async def test_delete_credential(client, super_admin, auth):
    created = await _create(client, super_admin, auth)

    res = await client.delete(f"{API}/credentials/{created['id']}", headers=auth(super_admin))
    assert res.status_code == 204

    res = await client.get(f"{API}/credentials/{created['id']}", headers=auth(super_admin))
    assert res.status_code == 404
