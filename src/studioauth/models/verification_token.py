"""Verification token model for email verification."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from studioauth.models.base import UTCDateTime


class VerificationToken(SQLModel, table=True):
    """Single-use token proving control of an email address.

    Several tokens may be outstanding for one identifier; consuming any of
    them removes all of them.
    """

    __tablename__ = "verification_tokens"

    token: str = Field(primary_key=True, max_length=255, description="Random verification token")
    identifier: str = Field(index=True, max_length=255, description="Normalized email address")
    expires: datetime = Field(
        sa_type=UTCDateTime(),  # type: ignore[call-overload]
        description="Token expiration time",
    )
