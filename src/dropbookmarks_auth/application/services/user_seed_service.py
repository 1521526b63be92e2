"""Seed the first account so a fresh user store can authenticate anyone."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum

from dropbookmarks_auth.application.ports.password_hasher_port import PasswordHasherPort
from dropbookmarks_auth.application.ports.store_session_port import StoreSessionFactoryPort
from dropbookmarks_auth.application.ports.user_repository_port import UserRepositoryPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitialUser:
    """Credentials of the account created on an empty store."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"InitialUser(username={self.username!r}, password='**********')"


class UserSeedOutcome(StrEnum):
    CREATED = "created"
    SKIPPED_USERS_PRESENT = "skipped_users_present"
    SKIPPED_USERNAME_TAKEN = "skipped_username_taken"


class UserSeedService:
    """Create the initial user through the repository when no user exists yet."""

    def __init__(
        self,
        *,
        session_factory: StoreSessionFactoryPort,
        users: UserRepositoryPort,
        password_hasher: PasswordHasherPort,
    ) -> None:
        self._session_factory = session_factory
        self._users = users
        self._password_hasher = password_hasher

    async def ensure_initial_user(self, initial_user: InitialUser) -> UserSeedOutcome:
        async with self._session_factory() as session:
            if await self._users.count_users(session=session) > 0:
                outcome = UserSeedOutcome.SKIPPED_USERS_PRESENT
            else:
                password_hash = await asyncio.to_thread(
                    self._password_hasher.hash_password,
                    initial_user.password,
                )
                created = await self._users.create_user(
                    session=session,
                    username=initial_user.username,
                    password_hash=password_hash,
                )
                # Another process may seed between the count and the insert.
                outcome = (
                    UserSeedOutcome.CREATED
                    if created is not None
                    else UserSeedOutcome.SKIPPED_USERNAME_TAKEN
                )

        logger.info(
            "user_seed_result username=%r outcome=%s",
            initial_user.username,
            outcome.value,
        )
        return outcome
