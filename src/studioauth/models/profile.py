"""User profile model."""

from sqlmodel import Field, SQLModel

from studioauth.models.base import TimestampMixin, generate_nanoid


class Profile(TimestampMixin, SQLModel, table=True):
    """Postal details collected at registration."""

    __tablename__ = "profiles"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    user_id: str = Field(
        foreign_key="users.id", unique=True, index=True, ondelete="CASCADE", max_length=21
    )
    country: str | None = Field(default=None, max_length=2, description="ISO 3166-1 alpha-2")
    city: str | None = Field(default=None, max_length=120)
    address: str | None = Field(default=None, max_length=500)
