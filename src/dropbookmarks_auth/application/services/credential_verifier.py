"""Application service verifying basic credentials against the user store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum

from dropbookmarks_auth.application.ports.password_hasher_port import PasswordHasherPort
from dropbookmarks_auth.application.ports.store_session_port import StoreSessionFactoryPort
from dropbookmarks_auth.application.ports.user_repository_port import (
    UserRecord,
    UserRepositoryPort,
)

logger = logging.getLogger(__name__)


class VerificationOutcome(StrEnum):
    """Terminal outcomes of one credential verification."""

    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class VerificationResult:
    """Verification result model; `user` is set only when authenticated."""

    outcome: VerificationOutcome
    user: UserRecord | None = None

    @classmethod
    def not_found(cls) -> VerificationResult:
        return cls(outcome=VerificationOutcome.NOT_FOUND)

    @classmethod
    def mismatch(cls) -> VerificationResult:
        return cls(outcome=VerificationOutcome.MISMATCH)

    @classmethod
    def authenticated(cls, user: UserRecord) -> VerificationResult:
        return cls(outcome=VerificationOutcome.AUTHENTICATED, user=user)

    @property
    def is_authenticated(self) -> bool:
        return self.outcome is VerificationOutcome.AUTHENTICATED


class CredentialStoreError(RuntimeError):
    """Raised when credentials could not be evaluated against the user store."""


class CredentialVerifier:
    """Look up a user by username and check the supplied password hash."""

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

    async def verify(self, *, username: str, password: str) -> VerificationResult:
        """Verify one username/password pair inside its own store session.

        Unknown users and wrong passwords are returned as results. Failures of
        the store or comparator raise `CredentialStoreError` after the session
        has been released.
        """

        try:
            async with self._session_factory() as session:
                user = await self._users.get_by_username(session=session, username=username)
                if user is None:
                    result = VerificationResult.not_found()
                elif await asyncio.to_thread(
                    self._password_hasher.verify_password,
                    password=password,
                    password_hash=user.password_hash,
                ):
                    result = VerificationResult.authenticated(user)
                else:
                    result = VerificationResult.mismatch()
        except Exception as exc:
            logger.warning(
                "credential_verification_failed username=%r error=%s",
                username,
                type(exc).__name__,
            )
            raise CredentialStoreError("credential store unavailable") from exc

        logger.info(
            "credential_verification_result username=%r outcome=%s",
            username,
            result.outcome.value,
        )
        return result
