"""OTP routes: issuing, resending and verifying one-time codes.

Invariants:
    - Only the bcrypt hash of a code is persisted
    - Issuing a new code invalidates earlier live codes for the same purpose
    - Resends inside the resend interval are refused with 429 + Retry-After
    - Wrong codes increment attempts and are audited as otp_failed
    - Successful email verification marks the user verified
"""

from datetime import timedelta

from sqlalchemy import select

from atreo.models.audit_log import AuditLog
from atreo.models.base import utcnow
from atreo.models.otp import OTP
from atreo.services.otp_service import OTPService

from tests.services.helpers import API, error_detail


async def _latest(test_db, email):
    test_db.expire_all()
    result = await test_db.execute(
        select(OTP).where(OTP.email == email).order_by(OTP.created_at.desc()).limit(1)
    )
    return result.scalar_one()


# -- Sending ---------------------------------------------------------------------


async def test_send_otp_stores_hash_only(client, make_user, test_db):
    await make_user("new@example.com", email_verified=False)

    res = await client.post(f"{API}/otp/send-otp", json={"email": "new@example.com"})

    assert res.status_code == 200
    assert res.json()["message"] == "OTP sent successfully"
    otp = await _latest(test_db, "new@example.com")
    assert otp.hashed_otp.startswith("$2")
    assert otp.verified is False


async def test_send_otp_unknown_user(client):
    res = await client.post(f"{API}/otp/send-otp", json={"email": "nobody@example.com"})
    assert res.status_code == 404


async def test_send_otp_already_verified(client, member):
    res = await client.post(f"{API}/otp/send-otp", json={"email": member.email})
    assert res.status_code == 400
    assert error_detail(res) == "Email already verified"


async def test_resend_inside_interval_is_limited(client, make_user, test_db):
    await make_user("wait@example.com", email_verified=False)
    await OTPService(test_db).create_otp("wait@example.com")

    res = await client.post(f"{API}/otp/send-otp", json={"email": "wait@example.com"})

    assert res.status_code == 429
    assert int(res.headers["Retry-After"]) > 0


async def test_password_reset_does_not_require_unverified_user(client):
    res = await client.post(
        f"{API}/otp/send-otp",
        json={"email": "anyone@example.com", "purpose": "password-reset"},
    )
    assert res.status_code == 200


async def test_unknown_purpose_is_bad_request(client):
    res = await client.post(
        f"{API}/otp/send-otp", json={"email": "x@example.com", "purpose": "party"}
    )
    assert res.status_code == 400


# -- Verifying -------------------------------------------------------------------


async def test_verify_marks_email_verified(client, make_user, test_db):
    user = await make_user("verify@example.com", email_verified=False)
    code = await OTPService(test_db).create_otp(user.email)

    res = await client.post(f"{API}/otp/verify-otp", json={"email": user.email, "otp": code})

    assert res.status_code == 200
    await test_db.refresh(user)
    assert user.email_verified is True
    assert user.email_verified_at is not None


async def test_verify_wrong_code_counts_attempt(client, make_user, test_db):
    user = await make_user("typo@example.com", email_verified=False)
    code = await OTPService(test_db).create_otp(user.email)
    wrong = "000000" if code != "000000" else "111111"

    res = await client.post(f"{API}/otp/verify-otp", json={"email": user.email, "otp": wrong})

    assert res.status_code == 400
    assert error_detail(res) == "Invalid OTP"
    otp = await _latest(test_db, user.email)
    assert otp.attempts == 1
    failures = await test_db.execute(select(AuditLog).where(AuditLog.action == "otp_failed"))
    assert failures.scalar_one().error_message == "Invalid OTP"


async def test_verify_after_max_attempts_is_limited(client, make_user, test_db):
    user = await make_user("locked@example.com", email_verified=False)
    email = user.email
    code = await OTPService(test_db).create_otp(email)
    otp = await _latest(test_db, email)
    otp.attempts = 5
    await test_db.commit()

    res = await client.post(f"{API}/otp/verify-otp", json={"email": email, "otp": code})

    assert res.status_code == 429


async def test_verify_expired_code(client, make_user, test_db):
    user = await make_user("late@example.com", email_verified=False)
    email = user.email
    code = await OTPService(test_db).create_otp(email)
    otp = await _latest(test_db, email)
    otp.expires_at = utcnow() - timedelta(minutes=1)
    await test_db.commit()

    res = await client.post(f"{API}/otp/verify-otp", json={"email": email, "otp": code})

    assert res.status_code == 400
    assert error_detail(res) == "OTP has expired"


async def test_new_code_invalidates_previous(client, make_user, test_db):
    user = await make_user("twice@example.com", email_verified=False)
    service = OTPService(test_db)
    first = await service.create_otp(user.email)
    second = await service.create_otp(user.email)

    if first != second:
        res = await client.post(
            f"{API}/otp/verify-otp", json={"email": user.email, "otp": first}
        )
        assert res.status_code == 400

    res = await client.post(f"{API}/otp/verify-otp", json={"email": user.email, "otp": second})
    assert res.status_code == 200


async def test_verify_without_live_code(client):
    res = await client.post(
        f"{API}/otp/verify-otp", json={"email": "none@example.com", "otp": "123456"}
    )
    assert res.status_code == 400
    assert error_detail(res) == "Invalid or expired OTP"
