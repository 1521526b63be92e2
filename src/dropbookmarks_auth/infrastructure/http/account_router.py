"""FastAPI router for the authenticated account endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dropbookmarks_auth.application.dto.account_models import CurrentUserResponse, HealthResponse
from dropbookmarks_auth.application.ports.user_repository_port import UserRecord
from dropbookmarks_auth.infrastructure.http.basic_auth import BasicAuthenticator


def build_account_router(*, authenticator: BasicAuthenticator) -> APIRouter:
    """Build router exposing the health check and the current-principal endpoint."""

    router = APIRouter(tags=["account"])
    require_user = authenticator.require_user()

    @router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    @router.get("/users/me", response_model=CurrentUserResponse)
    async def current_user(user: UserRecord = Depends(require_user)) -> CurrentUserResponse:
        return CurrentUserResponse.from_record(user)

    return router
