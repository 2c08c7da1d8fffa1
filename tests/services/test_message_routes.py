"""Message routes: inbox, sent box, read receipts and access rules.

Invariants:
    - Every route needs the ``messages`` module
    - Only the sender or the recipient can open or delete a message
    - The recipient opening a message marks it read; the sender does not
    - Only the recipient can mark a message read
    - Sending is audited with a truncated subject
"""

import pytest
from sqlalchemy import select

from atreo.models.audit_log import AuditLog
from atreo.models.message import Message

from tests.services.helpers import API, error_detail, jsonapi


@pytest.fixture
async def alice(make_user, grant):
    user = await make_user("alice@example.com", name="Alice")
    await grant(user, {"messages": {"pages": {}}})
    return user


@pytest.fixture
async def bob(make_user, grant):
    user = await make_user("bob@example.com", name="Bob")
    await grant(user, {"messages": {"pages": {}}})
    return user


async def _send(client, auth, sender, recipient, **attrs):
    attrs.setdefault("subject", "Payroll run")
    attrs.setdefault("content", "Payslips are out.")
    return await client.post(
        f"{API}/messages",
        headers=auth(sender),
        json=jsonapi("messages", to=recipient.id, **attrs),
    )


# -- Sending ---------------------------------------------------------------------


async def test_send_message(client, auth, alice, bob):
    res = await _send(client, auth, alice, bob, priority="high", category="payroll")

    assert res.status_code == 201
    attrs = res.json()["data"]["attributes"]
    assert attrs["from"] == {"id": alice.id, "name": "Alice", "email": "alice@example.com"}
    assert attrs["to"]["email"] == "bob@example.com"
    assert attrs["priority"] == "high"
    assert attrs["category"] == "payroll"
    assert attrs["is_read"] is False


async def test_missing_fields_rejected(client, auth, alice, bob):
    res = await _send(client, auth, alice, bob, content="   ")
    assert res.status_code == 400
    assert error_detail(res) == "Recipient, subject, and content are required"


async def test_unknown_recipient_rejected(client, auth, alice):
    res = await client.post(
        f"{API}/messages",
        headers=auth(alice),
        json=jsonapi("messages", to="missing-user", subject="Hi", content="Hello"),
    )
    assert res.status_code == 400
    assert error_detail(res) == "Recipient not found"


async def test_invalid_priority_rejected(client, auth, alice, bob):
    res = await _send(client, auth, alice, bob, priority="whenever")
    assert res.status_code == 400


async def test_send_is_audited_with_short_subject(client, auth, alice, bob, test_db):
    subject = "Quarterly planning " * 5
    res = await _send(client, auth, alice, bob, subject=subject)
    assert res.status_code == 201

    result = await test_db.execute(select(AuditLog).where(AuditLog.action == "message_sent"))
    entry = result.scalar_one()
    assert entry.user_id == alice.id
    assert entry.details["recipient"] == "bob@example.com"
    assert entry.details["subject"] == subject.strip()[:50] + "..."


# -- Inbox and sent box ----------------------------------------------------------


async def test_inbox_and_sent_box(client, auth, alice, bob):
    await _send(client, auth, alice, bob, subject="One")
    await _send(client, auth, alice, bob, subject="Two")
    await _send(client, auth, bob, alice, subject="Reply")

    res = await client.get(f"{API}/messages", headers=auth(bob))
    body = res.json()
    assert {m["attributes"]["subject"] for m in body["data"]} == {"One", "Two"}
    assert body["meta"]["unread_count"] == 2

    res = await client.get(f"{API}/messages/sent", headers=auth(bob))
    assert [m["attributes"]["subject"] for m in res.json()["data"]] == ["Reply"]


async def test_inbox_filters(client, auth, alice, bob):
    await _send(client, auth, alice, bob, subject="Laptop", category="it", priority="urgent")
    first = await _send(client, auth, alice, bob, subject="Lunch")
    await client.get(f"{API}/messages/{first.json()['data']['id']}", headers=auth(bob))

    res = await client.get(f"{API}/messages", headers=auth(bob), params={"unread": "true"})
    assert [m["attributes"]["subject"] for m in res.json()["data"]] == ["Laptop"]

    res = await client.get(f"{API}/messages", headers=auth(bob), params={"category": "it"})
    assert [m["attributes"]["subject"] for m in res.json()["data"]] == ["Laptop"]

    res = await client.get(f"{API}/messages", headers=auth(bob), params={"priority": "normal"})
    assert [m["attributes"]["subject"] for m in res.json()["data"]] == ["Lunch"]


async def test_inbox_is_paginated(client, auth, alice, bob):
    for subject in ("One", "Two", "Three"):
        await _send(client, auth, alice, bob, subject=subject)

    res = await client.get(f"{API}/messages", headers=auth(bob), params={"page[size]": 2})
    body = res.json()
    assert len(body["data"]) == 2
    assert body["meta"]["has_next"] is True

    rest = (await client.get(body["links"]["next"], headers=auth(bob))).json()
    subjects = {m["attributes"]["subject"] for m in body["data"] + rest["data"]}
    assert subjects == {"One", "Two", "Three"}


# -- Reading ---------------------------------------------------------------------


async def test_recipient_read_marks_message_read(client, auth, alice, bob, test_db):
    message_id = (await _send(client, auth, alice, bob)).json()["data"]["id"]

    res = await client.get(f"{API}/messages/{message_id}", headers=auth(alice))
    assert res.json()["data"]["attributes"]["is_read"] is False

    res = await client.get(f"{API}/messages/{message_id}", headers=auth(bob))
    attrs = res.json()["data"]["attributes"]
    assert attrs["is_read"] is True
    assert attrs["read_at"] is not None


async def test_outsider_cannot_read(client, auth, alice, bob, make_user, grant):
    outsider = await make_user("carol@example.com")
    await grant(outsider, {"messages": {"pages": {}}})
    message_id = (await _send(client, auth, alice, bob)).json()["data"]["id"]

    res = await client.get(f"{API}/messages/{message_id}", headers=auth(outsider))
    assert res.status_code == 403
    assert error_detail(res) == "Access denied"


async def test_missing_message_is_404(client, auth, alice):
    res = await client.get(f"{API}/messages/nope", headers=auth(alice))
    assert res.status_code == 404
    assert error_detail(res) == "Message not found"


async def test_only_recipient_marks_read(client, auth, alice, bob):
    message_id = (await _send(client, auth, alice, bob)).json()["data"]["id"]

    res = await client.put(f"{API}/messages/{message_id}/read", headers=auth(alice))
    assert res.status_code == 403

    res = await client.put(f"{API}/messages/{message_id}/read", headers=auth(bob))
    assert res.status_code == 200
    assert res.json()["meta"]["is_read"] is True


# -- Deleting and stats ----------------------------------------------------------


async def test_delete_by_participant_only(client, auth, alice, bob, make_user, grant, test_db):
    outsider = await make_user("dave@example.com")
    await grant(outsider, {"messages": {"pages": {}}})
    message_id = (await _send(client, auth, alice, bob)).json()["data"]["id"]

    res = await client.delete(f"{API}/messages/{message_id}", headers=auth(outsider))
    assert res.status_code == 403

    res = await client.delete(f"{API}/messages/{message_id}", headers=auth(bob))
    assert res.status_code == 204
    assert (await test_db.execute(select(Message))).scalars().all() == []


async def test_stats_summary(client, auth, alice, bob):
    await _send(client, auth, alice, bob, priority="urgent")
    await _send(client, auth, alice, bob)
    await _send(client, auth, bob, alice)

    res = await client.get(f"{API}/messages/stats/summary", headers=auth(bob))
    assert res.status_code == 200
    assert res.json()["data"]["attributes"] == {
        "total_received": 2,
        "unread_count": 2,
        "total_sent": 1,
        "priority_breakdown": {"urgent": 1, "normal": 1},
    }


async def test_module_required(client, auth, member, super_admin):
    res = await client.get(f"{API}/messages", headers=auth(member))
    assert res.status_code == 403
    assert error_detail(res) == "Access denied: Module 'messages' is not accessible"

    res = await client.get(f"{API}/messages", headers=auth(super_admin))
    assert res.status_code == 200
