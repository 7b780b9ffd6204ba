"""SQLModel database models."""

from studioauth.models.base import TimestampMixin, UTCDateTime, generate_nanoid
from studioauth.models.profile import Profile
from studioauth.models.user import User, UserRole, normalize_email
from studioauth.models.verification_token import VerificationToken

__all__ = [
    "Profile",
    "TimestampMixin",
    "UTCDateTime",
    "User",
    "UserRole",
    "VerificationToken",
    "generate_nanoid",
    "normalize_email",
]
