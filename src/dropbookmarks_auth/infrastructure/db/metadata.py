"""SQLAlchemy metadata definitions for the user store."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()
sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("username", sa.Text(), nullable=False),
    sa.Column("password_hash", sa.Text(), nullable=False),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.UniqueConstraint("username", name="uq_users_username"),
)
sa.Index("ix_users_username", users.c.username)
