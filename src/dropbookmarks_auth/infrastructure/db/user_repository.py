"""SQLAlchemy adapter for user lookup and seeding queries."""

from __future__ import annotations

from datetime import datetime
from typing import cast

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dropbookmarks_auth.application.ports.user_repository_port import (
    UserRecord,
    UserRepositoryPort,
)
from dropbookmarks_auth.infrastructure.db.metadata import users

_USER_COLUMNS = (
    users.c.id,
    users.c.username,
    users.c.password_hash,
    users.c.created_at,
    users.c.updated_at,
)


class SqlAlchemyUserRepository(UserRepositoryPort):
    """User repository running queries on caller-provided async sessions."""

    async def get_by_username(self, *, session: AsyncSession, username: str) -> UserRecord | None:
        """Return user whose username equals the input exactly, or None."""

        statement = sa.select(*_USER_COLUMNS).where(users.c.username == username).limit(1)

        result = await session.execute(statement)
        row = result.mappings().first()
        if row is None:
            return None
        return _to_user_record(row)

    async def count_users(self, *, session: AsyncSession) -> int:
        result = await session.execute(sa.select(sa.func.count()).select_from(users))
        return int(result.scalar_one())

    async def create_user(
        self,
        *,
        session: AsyncSession,
        username: str,
        password_hash: str,
    ) -> UserRecord | None:
        """Insert and commit one user; a unique-username violation yields None."""

        statement = (
            sa.insert(users)
            .values(username=username, password_hash=password_hash)
            .returning(*_USER_COLUMNS)
        )
        try:
            result = await session.execute(statement)
            row = result.mappings().one()
            await session.commit()
        except IntegrityError:
            await session.rollback()
            return None
        return _to_user_record(row)


def _to_user_record(row: sa.RowMapping) -> UserRecord:
    return UserRecord(
        user_id=int(row["id"]),
        username=cast(str, row["username"]),
        password_hash=cast(str, row["password_hash"]),
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime, row["updated_at"]),
    )
