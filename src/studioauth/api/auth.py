"""Authentication endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr, Field, ValidationError
from sqlmodel import select

from studioauth.api.deps import (
    CurrentUser,
    CurrentUserOptional,
    SessionDep,
    VerificationManagerDep,
)
from studioauth.config import settings
from studioauth.constants import PASSWORD_MIN_LENGTH
from studioauth.models import User
from studioauth.models.user import UserRead
from studioauth.services.auth import (
    AuthError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    authenticate_credentials,
    create_token,
    decode_token,
)
from studioauth.services.registration import (
    EmailAlreadyRegisteredError,
    SignUpRequest,
    register_and_send_verification,
)
from studioauth.services.verification import EmailSendError

security = HTTPBearer()

logger = logging.getLogger(__name__)

router = APIRouter()


class RegisterResponse(BaseModel):
    """Response for a successful registration."""

    ok: bool = True
    # In development, include the verification link for testing
    verify_url: str | None = None


class LoginRequest(BaseModel):
    """Request body for credential sign-in."""

    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)


class TokenResponse(BaseModel):
    """Response containing JWT token."""

    access_token: str
    token_type: str = "bearer"
    user: UserRead


class ResendRequest(BaseModel):
    """Request body for resending a verification email."""

    email: EmailStr


class VerificationResponse(BaseModel):
    """Outcome of a verification action."""

    ok: bool
    reason: str | None = None


UNEXPECTED_ERROR = "Unexpected error"


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: SignUpRequest,
    session: SessionDep,
    manager: VerificationManagerDep,
):
    """
    Create an account and email a verification link.

    The account cannot sign in with credentials until the link is used.
    """
    try:
        _, issued = await register_and_send_verification(session, request, manager)
    except EmailAlreadyRegisteredError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except EmailSendError as e:
        logger.error(f"{EmailSendError.kind}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=UNEXPECTED_ERROR,
        ) from e
    except Exception as e:
        logger.exception(f"Registration failed for {request.email}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=UNEXPECTED_ERROR,
        ) from e

    response = RegisterResponse()
    if settings.is_development:
        response.verify_url = issued.verify_url
    return response


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, session: SessionDep):
    """
    Sign in with email and password.

    Unverified accounts are refused with EMAIL_NOT_VERIFIED so the client
    can prompt for verification instead of reporting bad credentials.
    """
    try:
        user = await authenticate_credentials(session, request.email, request.password)
    except EmailNotVerifiedError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=EmailNotVerifiedError.code,
        ) from e
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        ) from e

    return TokenResponse(
        access_token=create_token(user),
        user=UserRead.model_validate(user),
    )


@router.post("/verify/resend", response_model=VerificationResponse)
async def resend_verification(
    request: Request,
    session: SessionDep,
    manager: VerificationManagerDep,
):
    """
    Email a fresh verification link.

    Returns 400 with a reason when the address is unknown, already verified,
    or a link was sent too recently.
    """
    try:
        body = await request.json()
        payload = ResendRequest.model_validate(body)
    except (ValueError, ValidationError):
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "reason": "bad-request"},
        )

    try:
        result = await manager.resend(session, payload.email)
    except EmailSendError as e:
        logger.error(f"{EmailSendError.kind}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=UNEXPECTED_ERROR,
        ) from e

    if result.ok:
        return VerificationResponse(ok=True)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"ok": False, "reason": result.reason.value if result.reason else None},
    )


@router.get("/me", response_model=UserRead)
async def get_current_user_info(user: CurrentUser):
    """Get current authenticated user info."""
    return UserRead.model_validate(user)


@router.get("/session")
async def get_session_info(user: CurrentUserOptional, request: Request):
    """
    Decoded session claims for the current bearer token.

    Debugging aid; not available in production.
    """
    if settings.is_production:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not available")

    if not user:
        return {"user": None}

    token = request.headers["Authorization"].split(" ", 1)[1]
    return {"user": UserRead.model_validate(user).model_dump(mode="json"), "claims": decode_token(token)}


@router.post("/logout")
async def logout():
    """
    Logout endpoint.

    Since we use stateless JWT, this is mostly for client-side token clearing.
    """
    return {"message": "Logged out successfully"}


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    session: SessionDep,
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
):
    """
    Refresh JWT token.

    Validates the current token and issues a new one with fresh user data
    and extended expiration.
    """
    try:
        payload = decode_token(credentials.credentials)
        user_id = payload.get("sub")

        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing user ID",
            )

        stmt = select(User).where(User.id == user_id)
        result = await session.execute(stmt)
        user = result.scalar_one_or_none()

        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found",
            )

        return TokenResponse(
            access_token=create_token(user),
            user=UserRead.model_validate(user),
        )

    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        ) from e
