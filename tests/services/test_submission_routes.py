"""Submission routes: payment requests raised by staff and reviewed by admins.

Invariants:
    - New submissions are pending and carry the caller's employee identity
    - Non-admins only list their own submissions
    - Reviews stamp reviewer and time; a rejection reason survives only on rejection
    - Invoice numbers are unique
"""

from atreo.models.employee import Employee

from tests.services.helpers import API, error_detail, jsonapi

BANK = {"bank_name": "First Bank", "account_number": "****1234"}


async def _submit(client, user, auth, **attrs):
    body = {"work_period": "March 2025", "total_amount": 1800, "bank_details": BANK, **attrs}
    return await client.post(
        f"{API}/submissions", headers=auth(user), json=jsonapi("submissions", **body)
    )


async def test_submission_uses_employee_record(client, member, auth, test_db):
    test_db.add(
        Employee(
            employee_id="EMP042",
            user_id=member.id,
            name="Member Person",
            email=member.email,
            position="Engineer",
            department="Platform",
        )
    )
    await test_db.commit()

    res = await _submit(client, member, auth, description="Contract work")

    assert res.status_code == 201
    attrs = res.json()["data"]["attributes"]
    assert attrs["status"] == "pending"
    assert attrs["employee_id"] == "EMP042"
    assert attrs["employee_name"] == "Member Person"
    assert attrs["user_id"] == member.id
    assert attrs["bank_details"]["bank_name"] == "First Bank"
    assert attrs["submitted_at"] is not None


async def test_submission_without_employee_falls_back_to_account(client, member, auth):
    attrs = (await _submit(client, member, auth)).json()["data"]["attributes"]
    assert attrs["employee_id"] == member.id
    assert attrs["employee_name"] == member.name


async def test_negative_amount_rejected(client, member, auth):
    res = await _submit(client, member, auth, total_amount=-5)
    assert res.status_code == 400


async def test_listing_is_scoped(client, member, admin, make_user, auth):
    await _submit(client, member, auth)
    other = await make_user("other@example.com")
    await _submit(client, other, auth)

    mine = await client.get(f"{API}/submissions", headers=auth(member))
    assert [s["attributes"]["user_id"] for s in mine.json()["data"]] == [member.id]

    everything = await client.get(f"{API}/submissions", headers=auth(admin))
    assert everything.json()["meta"]["total"] == 2


async def test_admin_approves_with_payment_details(client, member, admin, auth):
    submission_id = (await _submit(client, member, auth)).json()["data"]["id"]

    res = await client.patch(
        f"{API}/submissions/{submission_id}/status",
        headers=auth(admin),
        json={
            "status": "approved",
            "rejection_reason": "ignored",
            "invoice_number": "INV-100",
            "payment_reference": "TX-9",
        },
    )

    assert res.status_code == 200
    attrs = res.json()["data"]["attributes"]
    assert attrs["status"] == "approved"
    assert attrs["reviewed_by"] == admin.id
    assert attrs["reviewer_name"] == admin.name
    assert attrs["reviewed_at"] is not None
    assert attrs["rejection_reason"] is None
    assert attrs["invoice_number"] == "INV-100"
    assert attrs["payment_reference"] == "TX-9"


async def test_rejection_keeps_reason(client, member, admin, auth):
    submission_id = (await _submit(client, member, auth)).json()["data"]["id"]

    res = await client.patch(
        f"{API}/submissions/{submission_id}/status",
        headers=auth(admin),
        json={"status": "rejected", "rejection_reason": "Missing timesheet"},
    )
    assert res.json()["data"]["attributes"]["rejection_reason"] == "Missing timesheet"


async def test_review_requires_admin(client, member, auth):
    submission_id = (await _submit(client, member, auth)).json()["data"]["id"]
    res = await client.patch(
        f"{API}/submissions/{submission_id}/status",
        headers=auth(member),
        json={"status": "approved"},
    )
    assert res.status_code == 403


async def test_review_rejects_unknown_status_and_submission(client, admin, auth):
    res = await client.patch(
        f"{API}/submissions/missing/status", headers=auth(admin), json={"status": "paid"}
    )
    assert res.status_code == 400

    res = await client.patch(
        f"{API}/submissions/missing/status", headers=auth(admin), json={"status": "approved"}
    )
    assert res.status_code == 404
    assert error_detail(res) == "Submission not found"


async def test_duplicate_invoice_number_conflicts(client, member, auth):
    await _submit(client, member, auth, invoice_number="INV-1")
    res = await _submit(client, member, auth, invoice_number="INV-1")

    assert res.status_code == 409
    assert error_detail(res) == "Invoice number already exists"
