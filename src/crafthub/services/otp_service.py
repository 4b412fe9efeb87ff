"""One-time code service — issue, deliver, and verify 6-digit codes.

Learn: Codes back both contact verification (email / phone) and
passwordless login. Rules:
- Issuing a code discards any unused code for the same identifier
- Codes expire after settings.otp_ttl_seconds (5 minutes)
- Each verification attempt counts; after otp_max_attempts the code
  is burned, even if the next guess would have matched
- A matching code is marked used and can't be replayed

Delivery goes through an OtpSender. The default sender only logs the
code; email/SMS gateways plug in by implementing the same protocol.
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from crafthub.auth.errors import DeliveryFailed
from crafthub.config import settings
from crafthub.db.models import OtpCode, OtpPurpose

logger = structlog.get_logger()

CODE_DIGITS = 6


class OtpSender(Protocol):
    async def send(self, identifier: str, code: str, purpose: OtpPurpose) -> bool: ...


class LogOtpSender:
    """Development sender — writes the code to the log instead of sending it."""

    async def send(self, identifier: str, code: str, purpose: OtpPurpose) -> bool:
        logger.info(
            "otp.sent",
            identifier=identifier,
            purpose=OtpPurpose(purpose).value,
            code=code if settings.environment == "development" else "******",
        )
        return True


def generate_code() -> str:
    """Random 6-digit code (never starts with 0)."""
    low = 10 ** (CODE_DIGITS - 1)
    return str(low + secrets.randbelow(9 * low))


class OtpService:
    """Business logic for one-time codes."""

    def __init__(
        self,
        db: AsyncSession,
        sender: OtpSender,
        ttl_seconds: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        self.db = db
        self.sender = sender
        self.ttl_seconds = ttl_seconds or settings.otp_ttl_seconds
        self.max_attempts = max_attempts or settings.otp_max_attempts

    async def issue(
        self,
        identifier: str,
        purpose: OtpPurpose,
        user_id: Optional[uuid.UUID] = None,
    ) -> OtpCode:
        """Create a fresh code for `identifier` and deliver it.

        Raises DeliveryFailed if the sender reports failure.
        """
        await self.db.execute(
            delete(OtpCode).where(
                OtpCode.identifier == identifier,
                OtpCode.is_used.is_(False),
            )
        )
        otp = OtpCode(
            identifier=identifier,
            code=generate_code(),
            purpose=purpose,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds),
            attempts=0,
            is_used=False,
            user_id=user_id,
        )
        self.db.add(otp)
        await self.db.commit()

        if not await self.sender.send(identifier, otp.code, purpose):
            logger.warning("otp.delivery_failed", identifier=identifier)
            raise DeliveryFailed()
        return otp

    async def verify(self, identifier: str, code: str) -> bool:
        """Check `code` against the live code for `identifier`."""
        q = (
            select(OtpCode)
            .where(
                OtpCode.identifier == identifier,
                OtpCode.is_used.is_(False),
                OtpCode.expires_at > datetime.now(timezone.utc),
            )
            .order_by(OtpCode.created_at.desc())
        )
        result = await self.db.execute(q)
        otp = result.scalars().first()
        if otp is None:
            return False

        if otp.attempts >= self.max_attempts:
            otp.is_used = True
            await self.db.commit()
            return False

        otp.attempts += 1
        matched = secrets.compare_digest(otp.code.encode(), code.encode())
        if matched:
            otp.is_used = True
        await self.db.commit()
        return matched

    async def purge_expired(self) -> int:
        """Delete expired and used codes. Returns the number removed."""
        result = await self.db.execute(
            delete(OtpCode).where(
                or_(
                    OtpCode.expires_at < datetime.now(timezone.utc),
                    OtpCode.is_used.is_(True),
                )
            )
        )
        await self.db.commit()
        return result.rowcount or 0
