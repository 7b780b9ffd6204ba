"""Authentication service: password hashing, credential checks and JWT sessions."""

import logging
from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from studioauth.config import settings
from studioauth.constants import PASSWORD_MAX_BYTES, PASSWORD_MIN_LENGTH
from studioauth.models import User, normalize_email

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Authentication error."""

    pass


class InvalidCredentialsError(AuthError):
    """Unknown email, password-less account, or wrong password."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class EmailNotVerifiedError(AuthError):
    """Password was correct but the email address has not been verified."""

    code = "EMAIL_NOT_VERIFIED"

    def __init__(self, message: str = "EMAIL_NOT_VERIFIED") -> None:
        super().__init__(message)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.password_hash_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    """Check a password against a bcrypt hash in constant time."""
    encoded = password.encode("utf-8")
    if len(encoded) > PASSWORD_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


async def authenticate_credentials(session: AsyncSession, email: str, password: str) -> User:
    """Authorize an email/password pair.

    Raises:
        InvalidCredentialsError: the pair does not identify a password account
        EmailNotVerifiedError: the password matched but the email is unverified
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        raise InvalidCredentialsError()

    stmt = select(User).where(User.email == normalize_email(email))
    result = await session.execute(stmt)
    user = result.scalar_one_or_none()

    if not user or not user.password:
        raise InvalidCredentialsError()

    if not check_password(password, user.password):
        raise InvalidCredentialsError()

    if user.email_verified is None:
        raise EmailNotVerifiedError()

    return user


def _session_payload(sub: str, email: str, name: str | None, role: str) -> dict:
    now = datetime.now(UTC)
    return {
        "sub": sub,
        "email": email,
        "name": name,
        "role": role,
        "exp": now + timedelta(days=settings.jwt_expiration_days),
        "iat": now,
    }


def create_token(user: User) -> str:
    """Create a JWT session token for a user."""
    payload = _session_payload(str(user.id), user.email, user.name, user.role.value)
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as e:
        raise AuthError(f"Invalid token: {e}") from e


async def verify_token(session: AsyncSession, token: str) -> User:
    """Verify a JWT token and return the associated user."""
    payload = decode_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token: missing user ID")

    stmt = select(User).where(User.id == user_id)
    result = await session.execute(stmt)
    user = result.scalar_one_or_none()

    if not user:
        raise AuthError("User not found")

    return user

