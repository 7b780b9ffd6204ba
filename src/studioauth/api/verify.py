"""Verification link landing routes.

The emailed link hits ``GET /verify?token=...``; the token is consumed and the
browser is redirected to a success or error page.
"""

import logging
from html import escape

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, RedirectResponse

from studioauth.api.deps import SessionDep, VerificationManagerDep
from studioauth.constants import APP_NAME, VERIFY_PATH
from studioauth.services.verification import VerificationFailure

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_MESSAGES: dict[str, tuple[str, str]] = {
    VerificationFailure.EXPIRED.value: (
        "Verification link expired",
        "Request a new email to continue.",
    ),
    VerificationFailure.NOT_FOUND.value: (
        "Invalid verification link",
        "The link is invalid or already used.",
    ),
    VerificationFailure.ALREADY_VERIFIED.value: (
        "Email already verified",
        "You can sign in now.",
    ),
    "default": ("Verification error", "Please try again."),
}


def error_redirect(reason: str) -> RedirectResponse:
    return RedirectResponse(f"{VERIFY_PATH}/error?reason={reason}", status_code=303)


def render_page(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{escape(title)} | {APP_NAME}</title></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; padding: 24px;">
    <h1>{escape(title)}</h1>
    <p>{escape(body)}</p>
</body>
</html>
"""
    )


@router.get("")
async def verify_email(
    session: SessionDep,
    manager: VerificationManagerDep,
    token: str | None = None,
):
    """Consume a verification token and redirect to the outcome page."""
    if not token:
        return error_redirect(VerificationFailure.NOT_FOUND.value)

    result = await manager.consume(session, token)
    if result.ok:
        return RedirectResponse(f"{VERIFY_PATH}/success", status_code=303)

    reason = result.reason.value if result.reason else "default"
    logger.info(f"Verification link rejected: {reason}")
    return error_redirect(reason)


@router.get("/success", response_class=HTMLResponse)
async def verify_success():
    return render_page("Email verified", "Your email address is confirmed. You can sign in now.")


@router.get("/error", response_class=HTMLResponse)
async def verify_error(reason: str | None = None):
    """Explain why verification failed; unknown reasons fall back to a generic message."""
    title, body = ERROR_MESSAGES.get(reason or "default", ERROR_MESSAGES["default"])
    return render_page(title, body)
