"""User model."""

from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from studioauth.models.base import TimestampMixin, UTCDateTime, generate_nanoid


def normalize_email(email: str) -> str:
    """Normalize an email address into the identifier used for lookups."""
    return email.strip().lower()


class UserRole(str, Enum):
    """Authorization role of a user."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(TimestampMixin, SQLModel, table=True):
    """User account model."""

    __tablename__ = "users"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    email: str = Field(unique=True, index=True, max_length=255)
    name: str | None = Field(default=None, max_length=255)
    # bcrypt hash; null for accounts created through an OAuth provider
    password: str | None = Field(default=None, max_length=255)
    role: UserRole = Field(default=UserRole.USER)
    email_verified: datetime | None = Field(
        default=None,
        sa_type=UTCDateTime(),  # type: ignore[call-overload]
        description="When the email address was verified; null while unverified",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_verified(self) -> bool:
        return self.email_verified is not None


class UserRead(SQLModel):
    """Schema for reading a user."""

    id: str
    email: str
    name: str | None
    role: UserRole
    email_verified: datetime | None
