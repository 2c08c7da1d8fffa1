"""Audit log routes and the append-only guarantee on the model.

Invariants:
    - Reading needs the ``logs`` module; cleanup needs a super-admin
    - Entries are listed newest first and can be filtered
    - Sensitive detail keys are redacted at write time
    - Entries cannot be updated or deleted through the session
"""

from datetime import timedelta

import pytest

from atreo.models.audit_log import AuditLog, ImmutableAuditLogError
from atreo.models.base import utcnow
from atreo.services.audit_service import AuditService

from tests.services.helpers import API, error_detail


@pytest.fixture
async def seeded(test_db, super_admin, member):
    audit = AuditService(test_db)
    await audit.record("login_success", user=member, resource="auth")
    await audit.record(
        "login_failure", user_email="ghost@example.com", resource="auth", status="failure"
    )
    await audit.record(
        "credential_viewed",
        user=super_admin,
        resource="credential",
        resource_id="c1",
        details={"service": "stripe", "api_key": "sk_live"},
    )


# -- Reading ---------------------------------------------------------------------


async def test_list_newest_first(client, super_admin, auth, seeded):
    res = await client.get(f"{API}/logs", headers=auth(super_admin))

    assert res.status_code == 200
    actions = [e["attributes"]["action"] for e in res.json()["data"]]
    assert set(actions) == {"login_success", "login_failure", "credential_viewed"}


async def test_filters(client, super_admin, member, auth, seeded):
    headers = auth(super_admin)

    res = await client.get(f"{API}/logs", headers=headers, params={"status": "failure"})
    assert [e["attributes"]["user_email"] for e in res.json()["data"]] == ["ghost@example.com"]

    res = await client.get(f"{API}/logs", headers=headers, params={"user_id": member.id})
    assert [e["attributes"]["action"] for e in res.json()["data"]] == ["login_success"]

    res = await client.get(f"{API}/logs", headers=headers, params={"resource_type": "credential"})
    assert len(res.json()["data"]) == 1

    res = await client.get(f"{API}/logs", headers=headers, params={"search": "ghost"})
    assert len(res.json()["data"]) == 1

    res = await client.get(f"{API}/logs", headers=headers, params={"action": "login"})
    assert len(res.json()["data"]) == 2


async def test_filtered_pages_follow_next_link(client, super_admin, auth, test_db):
    audit = AuditService(test_db)
    for _ in range(3):
        await audit.record("credential_viewed", user=super_admin, resource="credential")
        await audit.record("login_success", user=super_admin, resource="auth")

    headers = auth(super_admin)
    first = await client.get(
        f"{API}/logs", headers=headers, params={"action": "credential", "page[size]": 2}
    )
    second = await client.get(first.json()["links"]["next"], headers=headers)

    actions = [e["attributes"]["action"] for e in first.json()["data"] + second.json()["data"]]
    assert actions == ["credential_viewed"] * 3
    assert second.json()["meta"]["has_next"] is False


async def test_invalid_status_filter_rejected(client, super_admin, auth):
    res = await client.get(f"{API}/logs", headers=auth(super_admin), params={"status": "odd"})
    assert res.status_code == 400


async def test_sensitive_details_redacted(client, super_admin, auth, seeded):
    res = await client.get(
        f"{API}/logs", headers=auth(super_admin), params={"action": "credential_viewed"}
    )
    entry = res.json()["data"][0]
    assert entry["attributes"]["details"]["service"] == "stripe"
    assert entry["attributes"]["details"]["api_key"] == "[REDACTED]"

    res = await client.get(f"{API}/logs/{entry['id']}", headers=auth(super_admin))
    assert res.status_code == 200
    assert res.json()["data"]["attributes"]["resource_id"] == "c1"


async def test_missing_entry_is_404(client, super_admin, auth):
    res = await client.get(f"{API}/logs/nope", headers=auth(super_admin))
    assert res.status_code == 404
    assert error_detail(res) == "Log entry not found"


async def test_module_required(client, admin, auth, grant):
    res = await client.get(f"{API}/logs", headers=auth(admin))
    assert res.status_code == 403

    await grant(admin, {"logs": {"pages": {}}})
    res = await client.get(f"{API}/logs", headers=auth(admin))
    assert res.status_code == 200


async def test_stats_summary(client, super_admin, member, auth, seeded):
    res = await client.get(f"{API}/logs/stats/summary", headers=auth(super_admin))

    assert res.status_code == 200
    stats = res.json()["data"]["attributes"]
    assert stats["total"] == 3
    assert stats["last_24h"] == 3
    assert {a["action"] for a in stats["top_actions"]} == {
        "login_success",
        "login_failure",
        "credential_viewed",
    }
    emails = {u["email"] for u in stats["top_users"]}
    assert emails == {member.email, "root@example.com"}


# -- Retention -------------------------------------------------------------------


async def test_cleanup_removes_old_entries(client, super_admin, admin, auth, test_db, seeded):
    test_db.add(AuditLog(action="login_success", created_at=utcnow() - timedelta(days=200)))
    await test_db.commit()

    res = await client.delete(f"{API}/logs/cleanup", headers=auth(admin))
    assert res.status_code == 403

    res = await client.delete(
        f"{API}/logs/cleanup", headers=auth(super_admin), params={"days": 90}
    )
    assert res.status_code == 200
    assert res.json()["meta"] == {"deleted_count": 1, "days": 90}


# -- Immutability ----------------------------------------------------------------


async def test_entries_cannot_be_modified(test_db):
    entry = await AuditService(test_db).record("login_success", user_email="a@example.com")

    entry.action = "tampered"
    with pytest.raises(ImmutableAuditLogError):
        await test_db.commit()
    await test_db.rollback()


async def test_entries_cannot_be_deleted(test_db):
    entry = await AuditService(test_db).record("login_success", user_email="a@example.com")

    await test_db.delete(entry)
    with pytest.raises(ImmutableAuditLogError):
        await test_db.commit()
    await test_db.rollback()
