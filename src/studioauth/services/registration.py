"""Account registration."""

import logging

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studioauth.constants import PASSWORD_MAX_BYTES, PASSWORD_MIN_LENGTH
from studioauth.models import Profile, User, normalize_email
from studioauth.services.auth import hash_password
from studioauth.services.verification import (
    IssuedToken,
    VerificationTokenManager,
    get_user_by_email,
)

logger = logging.getLogger(__name__)


class RegistrationError(Exception):
    """Registration could not be completed."""

    pass


class EmailAlreadyRegisteredError(RegistrationError):
    """An account already exists for this email."""

    def __init__(self, message: str = "Email already registered") -> None:
        super().__init__(message)


class SignUpRequest(BaseModel):
    """Sign-up form payload."""

    firstname: str | None = Field(default=None, max_length=100)
    lastname: str | None = Field(default=None, max_length=100)
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    repeatpassword: str = Field(min_length=PASSWORD_MIN_LENGTH)
    country: str | None = Field(default=None, min_length=2, max_length=2)
    city: str | None = Field(default=None, min_length=2, max_length=120)
    address: str | None = Field(default=None, min_length=3, max_length=500)

    @field_validator("firstname", "lastname", "city", "address", mode="before")
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return value

    @model_validator(mode="after")
    def passwords_match(self) -> "SignUpRequest":
        if self.password != self.repeatpassword:
            raise ValueError("Passwords must match")
        return self

    @property
    def display_name(self) -> str | None:
        name = " ".join(part for part in (self.firstname, self.lastname) if part).strip()
        return name or None


async def register_user(session: AsyncSession, data: SignUpRequest) -> User:
    """Create an unverified user and their profile.

    Raises:
        EmailAlreadyRegisteredError: an account with this email already exists
    """
    email = normalize_email(data.email)

    if await get_user_by_email(session, email):
        raise EmailAlreadyRegisteredError()

    user = User(email=email, name=data.display_name, password=hash_password(data.password))
    session.add(user)
    try:
        await session.flush()
        session.add(
            Profile(
                user_id=user.id,
                country=data.country.upper() if data.country else None,
                city=data.city,
                address=data.address,
            )
        )
        await session.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email
        await session.rollback()
        raise EmailAlreadyRegisteredError() from e

    logger.info(f"Registered user {user.id} ({email})")
    return user


async def register_and_send_verification(
    session: AsyncSession,
    data: SignUpRequest,
    manager: VerificationTokenManager,
) -> tuple[User, IssuedToken]:
    """Register a user, issue their first verification token and email it.

    The user row is committed before the token; if issuing or sending fails
    the account stays unverified and the resend flow recovers it.
    """
    user = await register_user(session, data)
    issued = await manager.issue(session, user.email)
    await manager.send(issued, to=user.email, name=user.name)
    return user, issued
