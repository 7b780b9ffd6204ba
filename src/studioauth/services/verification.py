"""Email verification token lifecycle: issue, resend, consume."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from urllib.parse import urlencode

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from studioauth.config import Settings, settings
from studioauth.constants import VERIFY_PATH
from studioauth.models import User, VerificationToken, normalize_email
from studioauth.services.email import EmailService, email_service

logger = logging.getLogger(__name__)

# 32 random bytes = 256 bits of entropy, base64url encoded without padding
TOKEN_BYTES = 32


class VerificationFailure(str, Enum):
    """Reasons a resend or consume call did not succeed."""

    NOT_FOUND = "not-found"
    EXPIRED = "expired"
    ALREADY_VERIFIED = "already-verified"
    COOLDOWN = "cooldown"


class EmailSendError(Exception):
    """The verification email could not be delivered."""

    kind = "email-send-failed"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a resend or consume call."""

    ok: bool
    reason: VerificationFailure | None = None

    @classmethod
    def success(cls) -> "VerificationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: VerificationFailure) -> "VerificationResult":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class IssuedToken:
    """A freshly persisted token and the link that carries it."""

    token: str
    verify_url: str
    expires: datetime


@dataclass(frozen=True)
class VerificationConfig:
    """Explicit configuration for the token manager."""

    app_url: str
    ttl: timedelta = timedelta(minutes=30)
    cooldown: timedelta = timedelta(minutes=2)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "VerificationConfig":
        source = source or settings
        return cls(
            app_url=source.app_url,
            ttl=timedelta(minutes=source.verify_token_ttl_minutes),
            cooldown=timedelta(minutes=source.verify_resend_cooldown_minutes),
        )


def generate_token() -> str:
    """Generate an unguessable URL-safe token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def build_verify_url(app_url: str, token: str) -> str:
    return f"{app_url.rstrip('/')}{VERIFY_PATH}?{urlencode({'token': token})}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    stmt = select(User).where(User.email == email)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


class VerificationTokenManager:
    """Issues, resends and consumes single-use email verification tokens.

    Each call runs against the caller's session and commits its own work.
    Storage errors are not caught here; they propagate to the caller.
    """

    def __init__(
        self,
        config: VerificationConfig,
        emails: EmailService | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self.emails = emails or email_service
        self.clock = clock

    async def issue(self, session: AsyncSession, email: str) -> IssuedToken:
        """Persist a new token for ``email`` and build its verification link.

        Existing tokens for the identifier are left untouched.
        """
        identifier = normalize_email(email)
        token = generate_token()
        expires = self.clock() + self.config.ttl

        session.add(VerificationToken(identifier=identifier, token=token, expires=expires))
        await session.commit()

        logger.info(f"Issued verification token for {identifier} (expires {expires.isoformat()})")
        return IssuedToken(
            token=token,
            verify_url=build_verify_url(self.config.app_url, token),
            expires=expires,
        )

    async def send(self, issued: IssuedToken, to: str, name: str | None = None) -> None:
        """Deliver the verification email for an issued token.

        Raises:
            EmailSendError: if the backend reports a failed delivery
        """
        sent = await self.emails.send_verification_email(
            to=to, verify_url=issued.verify_url, name=name
        )
        if not sent:
            raise EmailSendError(f"Failed to send verification email to {to}")

    async def resend(self, session: AsyncSession, email: str) -> VerificationResult:
        """Issue and email a new token unless the user is missing, verified or in cooldown.

        The cooldown compares the newest token's expiry against
        ``now - cooldown``; issuance time is not stored separately.

        Raises:
            EmailSendError: if the new token was stored but the email failed
        """
        identifier = normalize_email(email)

        user = await get_user_by_email(session, identifier)
        if not user:
            return VerificationResult.failure(VerificationFailure.NOT_FOUND)
        if user.email_verified is not None:
            return VerificationResult.failure(VerificationFailure.ALREADY_VERIFIED)

        stmt = (
            select(VerificationToken)
            .where(VerificationToken.identifier == identifier)
            .order_by(VerificationToken.expires.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        result = await session.execute(stmt)
        recent = result.scalar_one_or_none()

        now = self.clock()
        if recent and recent.expires > now - self.config.cooldown:
            logger.info(f"Verification resend for {identifier} rejected by cooldown")
            return VerificationResult.failure(VerificationFailure.COOLDOWN)

        issued = await self.issue(session, identifier)
        await self.send(issued, to=identifier, name=user.name)
        return VerificationResult.success()

    async def consume(self, session: AsyncSession, token: str) -> VerificationResult:
        """Redeem a token, marking its user verified and deleting all of their tokens."""
        result = await session.execute(
            select(VerificationToken).where(VerificationToken.token == token)
        )
        record = result.scalar_one_or_none()
        if not record:
            return VerificationResult.failure(VerificationFailure.NOT_FOUND)

        now = self.clock()
        if record.expires < now:
            return VerificationResult.failure(VerificationFailure.EXPIRED)

        identifier = record.identifier
        user = await get_user_by_email(session, identifier)
        if not user:
            return VerificationResult.failure(VerificationFailure.NOT_FOUND)
        if user.email_verified is not None:
            return VerificationResult.failure(VerificationFailure.ALREADY_VERIFIED)

        # The row delete doubles as the claim: a concurrent consumer blocks on it
        # and then sees zero rows once this transaction commits.
        claimed = await session.execute(
            delete(VerificationToken).where(VerificationToken.token == token)  # type: ignore[arg-type]
        )
        if claimed.rowcount != 1:
            await session.rollback()
            return VerificationResult.failure(VerificationFailure.NOT_FOUND)

        try:
            await session.execute(
                update(User)
                .where(User.id == user.id, User.email_verified.is_(None))  # type: ignore[union-attr,arg-type]
                .values(email_verified=now)
            )
            await session.execute(
                delete(VerificationToken).where(VerificationToken.identifier == identifier)  # type: ignore[arg-type]
            )
            await session.commit()
        except Exception:
            await session.rollback()
            raise

        logger.info(f"Verified email for {identifier}")
        return VerificationResult.success()


def get_verification_manager() -> VerificationTokenManager:
    """Build a manager from application settings."""
    return VerificationTokenManager(VerificationConfig.from_settings())
