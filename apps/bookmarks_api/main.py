"""bookmarks-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dropbookmarks_auth.application.ports.password_hasher_port import PasswordHasherPort
from dropbookmarks_auth.application.services.credential_verifier import CredentialVerifier
from dropbookmarks_auth.application.services.user_seed_service import (
    InitialUser,
    UserSeedService,
)
from dropbookmarks_auth.config.settings import DEFAULT_AUTH_REALM, Settings, load_settings
from dropbookmarks_auth.infrastructure.db.session import (
    create_session_factory,
    dispose_session_factory,
)
from dropbookmarks_auth.infrastructure.db.user_repository import SqlAlchemyUserRepository
from dropbookmarks_auth.infrastructure.http.account_router import build_account_router
from dropbookmarks_auth.infrastructure.http.basic_auth import BasicAuthenticator
from dropbookmarks_auth.infrastructure.logging import configure_logging
from dropbookmarks_auth.infrastructure.security.password_hasher import BcryptPasswordHasher

BOOKMARKS_API_HOST = "0.0.0.0"
BOOKMARKS_API_PORT = 8080
logger = logging.getLogger(__name__)


def build_credential_verifier(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    password_hasher: PasswordHasherPort,
) -> CredentialVerifier:
    """Build credential verifier with SQLAlchemy-backed dependencies."""

    return CredentialVerifier(
        session_factory=session_factory,
        users=SqlAlchemyUserRepository(),
        password_hasher=password_hasher,
    )


def initial_user_from_settings(settings: Settings) -> InitialUser | None:
    """Return the seed account configured through BOOTSTRAP_* variables, if any."""

    if settings.bootstrap_username is None or settings.bootstrap_password is None:
        return None
    return InitialUser(
        username=settings.bootstrap_username,
        password=settings.bootstrap_password.get_secret_value(),
    )


def create_app(
    *,
    database_url: str | None = None,
    realm: str | None = None,
    verifier: CredentialVerifier | None = None,
    password_hasher: PasswordHasherPort | None = None,
    initial_user: InitialUser | None = None,
) -> FastAPI:
    """Create FastAPI app exposing basic-auth protected account routes.

    Settings are loaded from the environment only when `database_url` is not
    supplied; in that case the seed account also comes from settings.
    """

    if database_url is None:
        settings = load_settings()
        configure_logging(level=settings.log_level)
        database_url = settings.database_url
        if realm is None:
            realm = settings.auth_realm
        if password_hasher is None:
            password_hasher = BcryptPasswordHasher(rounds=settings.bcrypt_rounds)
        if initial_user is None:
            initial_user = initial_user_from_settings(settings)

    hasher = password_hasher or BcryptPasswordHasher()
    session_factory = create_session_factory(database_url)
    if verifier is None:
        verifier = build_credential_verifier(session_factory, password_hasher=hasher)
    authenticator = BasicAuthenticator(verifier=verifier, realm=realm or DEFAULT_AUTH_REALM)
    seed = initial_user

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if seed is not None:
            await UserSeedService(
                session_factory=session_factory,
                users=SqlAlchemyUserRepository(),
                password_hasher=hasher,
            ).ensure_initial_user(seed)
        try:
            yield
        finally:
            await dispose_session_factory(session_factory)

    app = FastAPI(lifespan=lifespan)
    app.state.session_factory = session_factory
    app.include_router(build_account_router(authenticator=authenticator))
    return app


def run_asgi_server(*, host: str = BOOKMARKS_API_HOST, port: int = BOOKMARKS_API_PORT) -> None:
    """Run bookmarks-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.bookmarks_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run bookmarks-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
