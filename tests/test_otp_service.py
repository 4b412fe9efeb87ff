"""One-time code service tests (service level, no HTTP)."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from crafthub.auth.errors import DeliveryFailed
from crafthub.db.models import OtpCode, OtpPurpose
from crafthub.services.otp_service import OtpService, generate_code


async def _codes(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(OtpCode))).scalar_one()


def test_generate_code_shape():
    for _ in range(50):
        code = generate_code()
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != "0"


@pytest.mark.asyncio
async def test_issue_sends_and_stores(db_session, otp_sender):
    otp = await OtpService(db_session, otp_sender).issue("a@example.com", OtpPurpose.SIGNUP)

    assert otp_sender.sent == [("a@example.com", otp.code, OtpPurpose.SIGNUP)]
    assert otp.attempts == 0
    assert otp.is_used is False
    assert await _codes(db_session) == 1


@pytest.mark.asyncio
async def test_issue_discards_unused_codes(db_session, otp_sender):
    svc = OtpService(db_session, otp_sender)
    await svc.issue("a@example.com", OtpPurpose.LOGIN)
    await svc.issue("a@example.com", OtpPurpose.LOGIN)
    await svc.issue("b@example.com", OtpPurpose.LOGIN)
    assert await _codes(db_session) == 2


@pytest.mark.asyncio
async def test_issue_delivery_failure(db_session, otp_sender):
    otp_sender.fail = True
    with pytest.raises(DeliveryFailed):
        await OtpService(db_session, otp_sender).issue("a@example.com", OtpPurpose.LOGIN)


@pytest.mark.asyncio
async def test_verify_right_code_once(db_session, otp_sender):
    svc = OtpService(db_session, otp_sender)
    otp = await svc.issue("a@example.com", OtpPurpose.LOGIN)

    assert await svc.verify("a@example.com", otp.code) is True
    assert await svc.verify("a@example.com", otp.code) is False


@pytest.mark.asyncio
async def test_verify_non_ascii_code_is_a_miss(db_session, otp_sender):
    svc = OtpService(db_session, otp_sender)
    otp = await svc.issue("a@example.com", OtpPurpose.LOGIN)

    assert await svc.verify("a@example.com", "١٢٣٤٥٦") is False
    assert await svc.verify("a@example.com", otp.code) is True


@pytest.mark.asyncio
async def test_code_is_bound_to_identifier(db_session, otp_sender):
    svc = OtpService(db_session, otp_sender)
    otp = await svc.issue("a@example.com", OtpPurpose.LOGIN)
    assert await svc.verify("b@example.com", otp.code) is False


@pytest.mark.asyncio
async def test_expired_code_rejected(db_session, otp_sender):
    svc = OtpService(db_session, otp_sender)
    otp = await svc.issue("a@example.com", OtpPurpose.LOGIN)
    otp.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    await db_session.commit()

    assert await svc.verify("a@example.com", otp.code) is False


@pytest.mark.asyncio
async def test_attempt_limit(db_session, otp_sender):
    svc = OtpService(db_session, otp_sender, max_attempts=2)
    otp = await svc.issue("a@example.com", OtpPurpose.LOGIN)
    wrong = "999999" if otp.code != "999999" else "888888"

    assert await svc.verify("a@example.com", wrong) is False
    assert await svc.verify("a@example.com", wrong) is False
    assert await svc.verify("a@example.com", otp.code) is False

    await db_session.refresh(otp)
    assert otp.is_used is True


@pytest.mark.asyncio
async def test_purge_expired(db_session, otp_sender):
    svc = OtpService(db_session, otp_sender)
    used = await svc.issue("used@example.com", OtpPurpose.LOGIN)
    await svc.verify("used@example.com", used.code)
    expired = await svc.issue("old@example.com", OtpPurpose.LOGIN)
    expired.expires_at = datetime.now(timezone.utc) - timedelta(minutes=10)
    await db_session.commit()
    await svc.issue("live@example.com", OtpPurpose.LOGIN)

    assert await svc.purge_expired() == 2
    remaining = (await db_session.execute(select(OtpCode.identifier))).scalars().all()
    assert remaining == ["live@example.com"]
