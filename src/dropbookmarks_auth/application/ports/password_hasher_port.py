"""Port for password hashing and verification."""

from __future__ import annotations

from typing import Protocol


class PasswordHasherPort(Protocol):
    """Pluggable one-way password hash contract."""

    def hash_password(self, password: str) -> str:
        """Hash plaintext password for storage."""

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        """Return whether plaintext password matches the stored hash."""
