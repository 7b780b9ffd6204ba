"""Registration service tests."""

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from studioauth.models import Profile, User
from studioauth.services.auth import check_password
from studioauth.services.registration import (
    EmailAlreadyRegisteredError,
    SignUpRequest,
    register_and_send_verification,
    register_user,
)
from studioauth.services.verification import EmailSendError, VerificationTokenManager
from tests.conftest import tokens_for


def make_request(**overrides) -> SignUpRequest:
    data = {
        "firstname": " Ada ",
        "lastname": "Lovelace",
        "email": "  Ada@Example.COM ",
        "password": "analytical",
        "repeatpassword": "analytical",
        "country": "gb",
        "city": "London",
        "address": "12 St James's Square",
    }
    data.update(overrides)
    return SignUpRequest(**data)


class TestSignUpRequest:
    def test_display_name(self):
        assert make_request().display_name == "Ada Lovelace"
        assert make_request(firstname=None, lastname="  ").display_name is None

    def test_passwords_must_match(self):
        with pytest.raises(ValidationError, match="Passwords must match"):
            make_request(repeatpassword="different1")

    def test_password_minimum_length(self):
        with pytest.raises(ValidationError):
            make_request(password="short", repeatpassword="short")

    def test_password_byte_limit(self):
        long_password = "é" * 40  # 80 bytes
        with pytest.raises(ValidationError, match="72 bytes"):
            make_request(password=long_password, repeatpassword=long_password)

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            make_request(email="not-an-email")

    def test_country_must_be_two_letters(self):
        with pytest.raises(ValidationError):
            make_request(country="GBR")


class TestRegisterUser:
    async def test_creates_unverified_user_and_profile(self, session: AsyncSession):
        user = await register_user(session, make_request())

        assert user.email == "ada@example.com"
        assert user.name == "Ada Lovelace"
        assert user.email_verified is None
        assert user.password and check_password("analytical", user.password)

        result = await session.execute(select(Profile).where(Profile.user_id == user.id))
        profile = result.scalar_one()
        assert profile.country == "GB"
        assert profile.city == "London"

    async def test_duplicate_email(self, session: AsyncSession, user: User):
        with pytest.raises(EmailAlreadyRegisteredError):
            await register_user(session, make_request(email=" TEST@example.com"))

    async def test_register_issues_and_sends_token(
        self,
        session: AsyncSession,
        manager: VerificationTokenManager,
        email_backend: AsyncMock,
    ):
        user, issued = await register_and_send_verification(session, make_request(), manager)

        tokens = await tokens_for(session, user.email)
        assert [t.token for t in tokens] == [issued.token]

        email_backend.send.assert_called_once()
        call_kwargs = email_backend.send.call_args[1]
        assert call_kwargs["to"] == "ada@example.com"
        assert issued.verify_url in call_kwargs["text"]
        assert "Hi Ada Lovelace," in call_kwargs["text"]

    async def test_email_failure_keeps_user(
        self,
        session: AsyncSession,
        manager: VerificationTokenManager,
        email_backend: AsyncMock,
    ):
        email_backend.send.return_value = False

        with pytest.raises(EmailSendError):
            await register_and_send_verification(session, make_request(), manager)

        result = await session.execute(select(User).where(User.email == "ada@example.com"))
        assert result.scalar_one().email_verified is None
