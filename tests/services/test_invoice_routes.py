"""Invoice routes: multipart creation, scoping, approval and signed downloads.

Invariants:
    - Admin-created invoices start approved; everyone else's start pending
    - Non-admins see their organization's invoices, or only their own uploads
    - Attached documents are limited to PDF and images and land under /uploads
    - Downloads hand out signed URLs that the files route honours; access is audited
    - Approval, rejection and bulk deletion need an admin
"""

from urllib.parse import urlparse

from sqlalchemy import select

from atreo.models.audit_log import AuditLog
from atreo.models.organization import Organization

from tests.services.helpers import API, error_detail

FORM = {"amount": "120.50", "billing_date": "2025-03-01T00:00:00Z", "provider": "Acme Cloud"}
PDF = {"file": ("march.pdf", b"%PDF-1.4 invoice", "application/pdf")}


async def _create(client, user, auth, files=None, **fields):
    data = {**FORM, **fields}
    return await client.post(f"{API}/invoices", headers=auth(user), data=data, files=files)


def _relative(url):
    parsed = urlparse(url)
    return f"{parsed.path}?{parsed.query}"


# -- Creation --------------------------------------------------------------------


async def test_accountant_invoice_starts_pending(client, accountant, auth):
    res = await _create(client, accountant, auth, tool_ids="t1, t2", currency="eur")

    assert res.status_code == 201
    attrs = res.json()["data"]["attributes"]
    assert attrs["status"] == "pending"
    assert attrs["currency"] == "EUR"
    assert attrs["tool_ids"] == ["t1", "t2"]
    assert attrs["uploaded_by"] == accountant.id


async def test_admin_invoice_starts_approved(client, super_admin, auth):
    res = await _create(client, super_admin, auth)
    attrs = res.json()["data"]["attributes"]
    assert attrs["status"] == "approved"
    assert attrs["approved_by"] == super_admin.id
    assert attrs["approved_at"] is not None


async def test_plain_user_works_with_own_invoices(client, member, auth):
    created = await _create(client, member, auth, provider="Own")
    assert created.status_code == 201
    assert created.json()["data"]["attributes"]["status"] == "pending"

    res = await client.get(f"{API}/invoices", headers=auth(member))
    assert res.status_code == 200
    assert [i["attributes"]["provider"] for i in res.json()["data"]] == ["Own"]

    res = await client.get(f"{API}/invoices/summary", headers=auth(member))
    assert res.json()["data"]["attributes"]["total"]["count"] == 1


async def test_anonymous_rejected(client):
    res = await client.get(f"{API}/invoices")
    assert res.status_code == 401


async def test_unknown_currency_rejected(client, accountant, auth):
    res = await _create(client, accountant, auth, currency="XYZ")
    assert res.status_code == 400
    assert "Unsupported currency" in error_detail(res)


async def test_negative_amount_rejected(client, accountant, auth):
    res = await _create(client, accountant, auth, amount="-5")
    assert res.status_code == 400


async def test_attachment_stored_and_audited(client, accountant, auth, test_db):
    res = await _create(client, accountant, auth, files=PDF)

    attrs = res.json()["data"]["attributes"]
    assert attrs["file_url"].startswith("/uploads/invoices/")
    assert attrs["file_name"] == "march.pdf"
    assert attrs["file_size"] == len(b"%PDF-1.4 invoice")
    result = await test_db.execute(select(AuditLog).where(AuditLog.action == "file_uploaded"))
    assert result.scalar_one().resource == "invoice"


async def test_attachment_type_enforced(client, accountant, auth):
    files = {"file": ("notes.txt", b"plain", "text/plain")}
    res = await _create(client, accountant, auth, files=files)
    assert res.status_code == 400


# -- Visibility ------------------------------------------------------------------


async def test_users_without_org_see_own_uploads(client, accountant, make_user, auth):
    other = await make_user("ledger@example.com", role="accountant")
    await _create(client, accountant, auth, provider="Mine")
    await _create(client, other, auth, provider="Theirs")

    res = await client.get(f"{API}/invoices", headers=auth(accountant))
    assert [i["attributes"]["provider"] for i in res.json()["data"]] == ["Mine"]


async def test_org_members_share_invoices(client, make_user, auth, test_db):
    org = Organization(name="Acme", domain="acme.example.com")
    test_db.add(org)
    await test_db.commit()
    first = await make_user("a@acme.example.com", role="accountant", organization_id=org.id)
    second = await make_user("b@acme.example.com", role="accountant", organization_id=org.id)
    await _create(client, first, auth)

    res = await client.get(f"{API}/invoices", headers=auth(second))
    assert len(res.json()["data"]) == 1


async def test_out_of_scope_invoice_is_not_found(client, accountant, make_user, auth):
    other = await make_user("other-books@example.com", role="accountant")
    created = (await _create(client, other, auth)).json()["data"]

    res = await client.get(f"{API}/invoices/{created['id']}", headers=auth(accountant))
    assert res.status_code == 404


async def test_list_filters(client, super_admin, accountant, auth):
    await _create(client, accountant, auth, provider="Acme Cloud")
    await _create(client, super_admin, auth, provider="Other Co")

    res = await client.get(
        f"{API}/invoices", params={"status": "pending"}, headers=auth(super_admin)
    )
    assert [i["attributes"]["provider"] for i in res.json()["data"]] == ["Acme Cloud"]

    res = await client.get(f"{API}/invoices", params={"provider": "other"}, headers=auth(super_admin))
    assert [i["attributes"]["provider"] for i in res.json()["data"]] == ["Other Co"]


async def test_summary_totals(client, super_admin, accountant, auth):
    await _create(client, accountant, auth, amount="100")
    await _create(client, super_admin, auth, amount="50")

    res = await client.get(f"{API}/invoices/summary", headers=auth(super_admin))

    attrs = res.json()["data"]["attributes"]
    assert attrs["pending"] == {"count": 1, "amount": 100.0}
    assert attrs["approved"] == {"count": 1, "amount": 50.0}
    assert attrs["rejected"] == {"count": 0, "amount": 0.0}
    assert attrs["total"] == {"count": 2, "amount": 150.0}
    assert attrs["average_amount"] == 75.0


# -- Workflow --------------------------------------------------------------------


async def test_approve_and_reject(client, super_admin, accountant, auth):
    created = (await _create(client, accountant, auth)).json()["data"]

    res = await client.post(
        f"{API}/invoices/{created['id']}/reject",
        headers=auth(super_admin),
        json={"reason": "Duplicate"},
    )
    attrs = res.json()["data"]["attributes"]
    assert attrs["status"] == "rejected"
    assert attrs["rejection_reason"] == "Duplicate"

    res = await client.post(f"{API}/invoices/{created['id']}/approve", headers=auth(super_admin))
    attrs = res.json()["data"]["attributes"]
    assert attrs["status"] == "approved"
    assert attrs["rejection_reason"] is None


async def test_accountant_cannot_approve(client, accountant, auth):
    created = (await _create(client, accountant, auth)).json()["data"]
    res = await client.post(f"{API}/invoices/{created['id']}/approve", headers=auth(accountant))
    assert res.status_code == 403


async def test_uploader_deletes_invoice(client, accountant, auth):
    created = (await _create(client, accountant, auth, files=PDF)).json()["data"]
    res = await client.delete(f"{API}/invoices/{created['id']}", headers=auth(accountant))
    assert res.status_code == 204


async def test_clear_all_requires_admin(client, super_admin, accountant, auth):
    await _create(client, accountant, auth)

    res = await client.delete(f"{API}/invoices/clear-all", headers=auth(accountant))
    assert res.status_code == 403

    res = await client.delete(f"{API}/invoices/clear-all", headers=auth(super_admin))
    assert res.json() == {"meta": {"deleted_count": 1}}


# -- Downloads -------------------------------------------------------------------


async def test_download_signed_url_round_trip(client, accountant, auth, test_db):
    created = (await _create(client, accountant, auth, files=PDF)).json()["data"]

    res = await client.get(f"{API}/invoices/{created['id']}/download", headers=auth(accountant))

    assert res.status_code == 200
    body = res.json()
    assert body["file_name"] == "march.pdf"
    file_res = await client.get(_relative(body["url"]))
    assert file_res.status_code == 200
    assert file_res.content == b"%PDF-1.4 invoice"

    result = await test_db.execute(select(AuditLog).where(AuditLog.action == "file_downloaded"))
    assert result.scalar_one().resource_id == created["id"]


async def test_download_without_file(client, accountant, auth):
    created = (await _create(client, accountant, auth)).json()["data"]
    res = await client.get(f"{API}/invoices/{created['id']}/download", headers=auth(accountant))
    assert res.status_code == 404
    assert error_detail(res) == "Invoice has no associated file"


async def test_file_route_rejects_bad_token(client, accountant, auth):
    created = (await _create(client, accountant, auth, files=PDF)).json()["data"]
    path = created["attributes"]["file_url"].removeprefix("/uploads/")

    res = await client.get(f"{API}/files/{path}", params={"token": "forged"})
    assert res.status_code == 403
