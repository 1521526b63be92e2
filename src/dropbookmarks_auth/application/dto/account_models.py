"""Pydantic response models for account endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from dropbookmarks_auth.application.ports.user_repository_port import UserRecord


class CurrentUserResponse(BaseModel):
    """Authenticated principal as exposed over HTTP; never carries the hash."""

    model_config = ConfigDict(extra="forbid")

    user_id: int
    username: str
    created_at: datetime

    @classmethod
    def from_record(cls, user: UserRecord) -> CurrentUserResponse:
        return cls(user_id=user.user_id, username=user.username, created_at=user.created_at)


class HealthResponse(BaseModel):
    """Liveness check response."""

    status: str = "ok"
