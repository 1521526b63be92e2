from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from dropbookmarks_auth.application.ports.user_repository_port import UserRecord
from dropbookmarks_auth.application.services.credential_verifier import (
    CredentialStoreError,
    CredentialVerifier,
    VerificationOutcome,
    VerificationResult,
)


@dataclass
class FakeSession:
    session_id: int
    close_calls: int = 0


class FakeSessionFactory:
    def __init__(self, *, fail_on_open: bool = False) -> None:
        self.fail_on_open = fail_on_open
        self.sessions: list[FakeSession] = []

    def __call__(self) -> AbstractAsyncContextManager[FakeSession]:
        return self._scope()

    @asynccontextmanager
    async def _scope(self) -> AsyncIterator[FakeSession]:
        if self.fail_on_open:
            raise ConnectionError("database unreachable")
        session = FakeSession(session_id=len(self.sessions) + 1)
        self.sessions.append(session)
        try:
            yield session
        finally:
            session.close_calls += 1


@dataclass
class FakeUserRepository:
    users_by_username: dict[str, UserRecord] = field(default_factory=dict)
    error: Exception | None = None
    seen_sessions: list[FakeSession] = field(default_factory=list)

    async def get_by_username(self, *, session: FakeSession, username: str) -> UserRecord | None:
        self.seen_sessions.append(session)
        if self.error is not None:
            raise self.error
        return self.users_by_username.get(username)


class FakePasswordHasher:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.verify_calls: list[tuple[str, str]] = []

    def hash_password(self, password: str) -> str:
        return f"hashed::{password}"

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        self.verify_calls.append((password, password_hash))
        if self.error is not None:
            raise self.error
        return password_hash == f"hashed::{password}"


def _user(*, username: str = "alice", password: str = "secret123") -> UserRecord:
    now = datetime.now(tz=UTC)
    return UserRecord(
        user_id=1,
        username=username,
        password_hash=f"hashed::{password}",
        created_at=now,
        updated_at=now,
    )


def _verifier(
    *,
    sessions: FakeSessionFactory,
    users: FakeUserRepository,
    hasher: FakePasswordHasher,
) -> CredentialVerifier:
    return CredentialVerifier(session_factory=sessions, users=users, password_hasher=hasher)


@pytest.mark.asyncio
async def test_matching_password_returns_authenticated_user() -> None:
    alice = _user()
    sessions = FakeSessionFactory()
    hasher = FakePasswordHasher()
    verifier = _verifier(
        sessions=sessions,
        users=FakeUserRepository(users_by_username={"alice": alice}),
        hasher=hasher,
    )

    result = await verifier.verify(username="alice", password="secret123")

    assert result.outcome is VerificationOutcome.AUTHENTICATED
    assert result.is_authenticated is True
    assert result.user == alice
    assert hasher.verify_calls == [("secret123", "hashed::secret123")]
    assert [session.close_calls for session in sessions.sessions] == [1]


@pytest.mark.asyncio
async def test_wrong_password_returns_mismatch_without_user() -> None:
    sessions = FakeSessionFactory()
    verifier = _verifier(
        sessions=sessions,
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=FakePasswordHasher(),
    )

    result = await verifier.verify(username="alice", password="wrong")

    assert result == VerificationResult.mismatch()
    assert result.user is None
    assert [session.close_calls for session in sessions.sessions] == [1]


@pytest.mark.asyncio
async def test_unknown_user_returns_not_found_and_skips_password_check() -> None:
    sessions = FakeSessionFactory()
    hasher = FakePasswordHasher()
    verifier = _verifier(
        sessions=sessions,
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=hasher,
    )

    result = await verifier.verify(username="bob", password="anything")

    assert result == VerificationResult.not_found()
    assert hasher.verify_calls == []
    assert [session.close_calls for session in sessions.sessions] == [1]


@pytest.mark.asyncio
async def test_lookup_is_exact_and_case_is_left_to_the_store() -> None:
    verifier = _verifier(
        sessions=FakeSessionFactory(),
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=FakePasswordHasher(),
    )

    result = await verifier.verify(username="Alice", password="secret123")

    assert result.outcome is VerificationOutcome.NOT_FOUND


@pytest.mark.asyncio
async def test_empty_inputs_fail_lookup_or_comparison_without_raising() -> None:
    verifier = _verifier(
        sessions=FakeSessionFactory(),
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=FakePasswordHasher(),
    )

    empty_username = await verifier.verify(username="", password="secret123")
    empty_password = await verifier.verify(username="alice", password="")

    assert empty_username.outcome is VerificationOutcome.NOT_FOUND
    assert empty_password.outcome is VerificationOutcome.MISMATCH


@pytest.mark.asyncio
async def test_lookup_failure_raises_store_error_after_releasing_session() -> None:
    sessions = FakeSessionFactory()
    lookup_error = ConnectionError("connection reset")
    verifier = _verifier(
        sessions=sessions,
        users=FakeUserRepository(error=lookup_error),
        hasher=FakePasswordHasher(),
    )

    with pytest.raises(CredentialStoreError) as exc_info:
        await verifier.verify(username="alice", password="secret123")

    assert exc_info.value.__cause__ is lookup_error
    assert [session.close_calls for session in sessions.sessions] == [1]


@pytest.mark.asyncio
async def test_comparator_failure_raises_store_error_after_releasing_session() -> None:
    sessions = FakeSessionFactory()
    verifier = _verifier(
        sessions=sessions,
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=FakePasswordHasher(error=RuntimeError("hasher crashed")),
    )

    with pytest.raises(CredentialStoreError):
        await verifier.verify(username="alice", password="secret123")

    assert [session.close_calls for session in sessions.sessions] == [1]


@pytest.mark.asyncio
async def test_session_open_failure_raises_store_error() -> None:
    verifier = _verifier(
        sessions=FakeSessionFactory(fail_on_open=True),
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=FakePasswordHasher(),
    )

    with pytest.raises(CredentialStoreError) as exc_info:
        await verifier.verify(username="alice", password="secret123")

    assert isinstance(exc_info.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_each_call_uses_its_own_session_and_results_repeat() -> None:
    sessions = FakeSessionFactory()
    users = FakeUserRepository(users_by_username={"alice": _user()})
    verifier = _verifier(sessions=sessions, users=users, hasher=FakePasswordHasher())

    first = await verifier.verify(username="alice", password="secret123")
    second = await verifier.verify(username="alice", password="secret123")

    assert first == second
    assert [session.session_id for session in users.seen_sessions] == [1, 2]
    assert [session.close_calls for session in sessions.sessions] == [1, 1]


@pytest.mark.asyncio
async def test_plaintext_password_is_never_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG)
    verifier = _verifier(
        sessions=FakeSessionFactory(),
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=FakePasswordHasher(),
    )

    await verifier.verify(username="alice", password="secret123")
    await verifier.verify(username="alice", password="hunter2-typo")

    assert "credential_verification_result username='alice' outcome=authenticated" in caplog.text
    assert "outcome=mismatch" in caplog.text
    assert "secret123" not in caplog.text
    assert "hunter2-typo" not in caplog.text


class SlowPasswordHasher(FakePasswordHasher):
    def __init__(self, *, delay_seconds: float) -> None:
        super().__init__()
        self.delay_seconds = delay_seconds

    def verify_password(self, *, password: str, password_hash: str) -> bool:
        time.sleep(self.delay_seconds)
        return super().verify_password(password=password, password_hash=password_hash)


@pytest.mark.asyncio
async def test_password_check_does_not_block_the_event_loop() -> None:
    verifier = _verifier(
        sessions=FakeSessionFactory(),
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=SlowPasswordHasher(delay_seconds=0.3),
    )
    stop = asyncio.Event()
    gaps: list[float] = []

    async def heartbeat() -> None:
        last = time.perf_counter()
        while not stop.is_set():
            await asyncio.sleep(0.005)
            now = time.perf_counter()
            gaps.append(now - last)
            last = now

    beat = asyncio.create_task(heartbeat())
    results = await asyncio.gather(
        *(verifier.verify(username="alice", password="secret123") for _ in range(4))
    )
    stop.set()
    await beat

    assert all(result.is_authenticated for result in results)
    assert gaps
    assert max(gaps) < 0.2


@pytest.mark.asyncio
async def test_control_characters_in_username_cannot_forge_log_lines(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO)
    forged = "mallory\r\n2026-01-01 00:00:00 INFO [x] credential_verification_result outcome=ok"
    verifier = _verifier(
        sessions=FakeSessionFactory(),
        users=FakeUserRepository(users_by_username={"alice": _user()}),
        hasher=FakePasswordHasher(),
    )

    await verifier.verify(username=forged, password="anything")

    messages = [record.getMessage() for record in caplog.records]
    assert messages
    assert all("\n" not in message and "\r" not in message for message in messages)
    assert any("\\r\\n" in message for message in messages)
