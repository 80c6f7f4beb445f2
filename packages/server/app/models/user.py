"""User model."""

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    full_name: str = Field(nullable=False)
    email: str = Field(unique=True, index=True, nullable=False)  # stored lower-cased
    password_hash: str = Field(nullable=False)  # bcrypt
