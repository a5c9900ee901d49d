"""Database models."""

from app.models.users import metadata, user_logins, users

__all__ = [
    "metadata",
    "user_logins",
    "users",
]
