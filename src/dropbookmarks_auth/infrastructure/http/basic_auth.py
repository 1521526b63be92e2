"""HTTP Basic authentication hook backed by the credential verifier."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from dropbookmarks_auth.application.ports.user_repository_port import UserRecord
from dropbookmarks_auth.application.services.credential_verifier import (
    CredentialStoreError,
    CredentialVerifier,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_DETAIL = "invalid credentials"
AUTH_UNAVAILABLE_DETAIL = "authentication unavailable"


class BasicAuthenticator:
    """Resolve decoded basic credentials to an authenticated principal."""

    def __init__(self, *, verifier: CredentialVerifier, realm: str) -> None:
        self._verifier = verifier
        self._realm = realm
        self._scheme = HTTPBasic(realm=realm)

    @property
    def challenge_headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": f'Basic realm="{self._realm}"'}

    async def authenticate(self, credentials: HTTPBasicCredentials) -> UserRecord | None:
        """Return the principal for valid credentials or None.

        `CredentialStoreError` propagates when the store cannot be evaluated.
        """

        result = await self._verifier.verify(
            username=credentials.username,
            password=credentials.password,
        )
        return result.user if result.is_authenticated else None

    def require_user(self) -> Callable[..., Awaitable[UserRecord]]:
        """Build a FastAPI dependency that answers 401 unless credentials verify."""

        async def dependency(
            credentials: HTTPBasicCredentials = Depends(self._scheme),
        ) -> UserRecord:
            try:
                user = await self.authenticate(credentials)
            except CredentialStoreError as exc:
                logger.warning("basic_auth_unavailable username=%r", credentials.username)
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail=AUTH_UNAVAILABLE_DETAIL,
                    headers=self.challenge_headers,
                ) from exc

            if user is None:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail=INVALID_CREDENTIALS_DETAIL,
                    headers=self.challenge_headers,
                )
            return user

        return dependency
