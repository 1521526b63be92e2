"""Port for user lookup operations used by credential verification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class UserRecord:
    """User persistence model."""

    user_id: int
    username: str
    password_hash: str
    created_at: datetime
    updated_at: datetime


class UserRepositoryPort(Protocol):
    """User repository contract.

    Callers pass the session explicitly; repositories never open or hold one.
    """

    async def get_by_username(self, *, session: Any, username: str) -> UserRecord | None:
        """Return user whose username equals the input exactly, or None."""

    async def count_users(self, *, session: Any) -> int:
        """Return the number of stored users."""

    async def create_user(
        self,
        *,
        session: Any,
        username: str,
        password_hash: str,
    ) -> UserRecord | None:
        """Insert and commit one user; return None when the username is already taken."""
