"""Accounts, password hashing and JWT tokens."""

from autocontent.auth.models import Role, User
from autocontent.auth.store import get_user_store

__all__ = ["Role", "User", "get_user_store"]
