"""Port for opening scoped user-store sessions."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class StoreSessionFactoryPort(Protocol):
    """Factory returning one new session scope per call.

    Leaving the returned context releases the session, including when the
    body raises. `async_sessionmaker[AsyncSession]` satisfies this contract.
    """

    def __call__(self) -> AbstractAsyncContextManager[Any]:
        """Open a new, unshared store session scope."""
