"""Pytest configuration, in-memory collaborators and fixtures."""

import asyncio
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

import pytest

from certtrack.catalog import iter_catalog
from certtrack.context import StoreContext, build_context
from certtrack.db import models  # noqa: F401 - Import models to register them
from certtrack.db.base import Base
from certtrack.errors import AuthError, RemoteError, StorageError
from certtrack.schemas.auth import AuthSession, SessionUser, UserAttributes
from certtrack.services.remote import Order, Row, Where

USER_ID = UUID("11111111-1111-1111-1111-111111111111")
OTHER_USER_ID = UUID("22222222-2222-2222-2222-222222222222")


class FakeRemoteStore:
    """
    RemoteStore over plain dicts.

    Rows get the columns of the real table; ids and timestamps are filled in
    like the database would, from a clock that ticks one second per write.
    `calls` records (operation, table) in order. `fail(op, table)` makes that
    call raise until `heal()`, or just the next time with `once=True`.
    `hold(op, table)` parks the next such call until the returned event is set.
    """

    def __init__(self):
        self.tables: dict[str, list[Row]] = defaultdict(list)
        self.calls: list[tuple[str, str]] = []
        self._failures: dict[tuple[str, str], Exception] = {}
        self._one_shot: set[tuple[str, str]] = set()
        self._holds: dict[tuple[str, str], asyncio.Event] = {}
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    # -- test controls ---------------------------------------------------------

    def fail(self, op: str, table: str, error: Exception | None = None, *, once: bool = False) -> None:
        self._failures[(op, table)] = error or RemoteError(f"{op} on {table} failed")
        if once:
            self._one_shot.add((op, table))

    def heal(self) -> None:
        self._failures.clear()
        self._one_shot.clear()

    def hold(self, op: str, table: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds[(op, table)] = event
        return event

    async def reached(self, op: str, table: str, times: int = 1) -> None:
        """Yield to the event loop until a call has been made `times` times."""
        for _ in range(1000):
            if self.count(op, table) >= times:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"{op} on {table} was never called")

    def count(self, op: str | None = None, table: str | None = None) -> int:
        return sum(
            1
            for call_op, call_table in self.calls
            if (op is None or call_op == op) and (table is None or call_table == table)
        )

    def seed(self, table: str, **values: Any) -> Row:
        row = self._new_row(table, values)
        self.tables[table].append(row)
        return dict(row)

    # -- internals -------------------------------------------------------------

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _new_row(self, table: str, values: Mapping[str, Any]) -> Row:
        now = self._tick()
        row: Row = {}
        for column in Base.metadata.tables[table].c:
            if column.name in values:
                row[column.name] = values[column.name]
            elif column.name == "id":
                row["id"] = uuid4()
            elif column.name in ("created_at", "updated_at"):
                row[column.name] = now
            else:
                row[column.name] = None
        return row

    async def _enter(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        hold = self._holds.pop((op, table), None)
        if hold is not None:
            await hold.wait()
        if (op, table) in self._failures:
            error = self._failures[(op, table)]
            if (op, table) in self._one_shot:
                self._one_shot.discard((op, table))
                del self._failures[(op, table)]
            raise error

    # -- RemoteStore -----------------------------------------------------------

    async def select(
        self,
        table: str,
        where: Where,
        *,
        order: Order | None = None,
        limit: int | None = None,
        embed: Sequence[str] = (),
    ) -> list[Row]:
        await self._enter("select", table)
        rows = [dict(row) for row in self.tables[table] if where.matches(row)]
        if order is not None:
            rows.sort(key=lambda row: row[order.column], reverse=order.descending)
        if limit is not None:
            rows = rows[:limit]
        for child in embed:
            for row in rows:
                row[child] = [dict(link) for link in self.tables[child] if link["sao_id"] == row["id"]]
        return rows

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        await self._enter("insert", table)
        created = [self._new_row(table, row) for row in rows]
        self.tables[table].extend(created)
        return [dict(row) for row in created]

    async def update(self, table: str, values: Mapping[str, Any], where: Where) -> list[Row]:
        await self._enter("update", table)
        updated = []
        for row in self.tables[table]:
            if where.matches(row):
                row.update(values)
                if "updated_at" in row:
                    row["updated_at"] = self._tick()
                updated.append(dict(row))
        return updated

    async def upsert(self, table: str, row: Mapping[str, Any], conflict_key: Sequence[str]) -> Row:
        await self._enter("upsert", table)
        key = Where.by(**{column: row[column] for column in conflict_key})
        for existing in self.tables[table]:
            if key.matches(existing):
                existing.update(row)
                if "updated_at" in existing:
                    existing["updated_at"] = self._tick()
                return dict(existing)
        created = self._new_row(table, row)
        self.tables[table].append(created)
        return dict(created)

    async def delete(self, table: str, where: Where) -> int:
        await self._enter("delete", table)
        kept = [row for row in self.tables[table] if not where.matches(row)]
        deleted = len(self.tables[table]) - len(kept)
        self.tables[table] = kept
        return deleted


class FakeIdentity:
    """IdentityProvider holding accounts and the session in memory."""

    def __init__(self, user: SessionUser | None = None):
        self.session = AuthSession(access_token="token", user=user) if user else None
        self.passwords: dict[str, str] = {}
        self.accounts: dict[str, SessionUser] = {}
        self.updates: list[UserAttributes] = []
        self.sign_outs = 0
        self._listeners = []

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self.session)

    def register(self, email: str, password: str, user_id: UUID | None = None) -> SessionUser:
        user = SessionUser(id=user_id or uuid4(), email=email)
        self.accounts[email] = user
        self.passwords[email] = password
        return user

    def switch_to(self, user: SessionUser | None) -> None:
        """Simulate the provider changing the session on its own (e.g. another tab)."""
        self.session = AuthSession(access_token="token", user=user) if user else None
        self._emit("SIGNED_IN" if user else "SIGNED_OUT")

    async def get_session(self) -> AuthSession | None:
        return self.session

    async def get_user(self) -> SessionUser | None:
        return self.session.user if self.session else None

    def on_session_change(self, callback):
        self._listeners.append(callback)
        callback("INITIAL_SESSION", self.session)
        return lambda: self._listeners.remove(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        if self.passwords.get(email) != password:
            raise AuthError("Invalid login credentials")
        self.session = AuthSession(access_token="token", user=self.accounts[email])
        self._emit("SIGNED_IN")
        return self.session

    async def sign_up(self, email: str, password: str, data: dict[str, Any] | None = None) -> SessionUser:
        if email in self.accounts:
            raise AuthError("User already registered")
        user = self.register(email, password)
        self.accounts[email] = user.model_copy(update={"user_metadata": dict(data or {})})
        return self.accounts[email]

    async def sign_out(self) -> None:
        self.sign_outs += 1
        self.session = None
        self._emit("SIGNED_OUT")

    async def update_user(self, attributes: UserAttributes) -> SessionUser:
        if self.session is None:
            raise AuthError("No authenticated user found")
        self.updates.append(attributes)
        user = self.session.user
        changes: dict[str, Any] = {}
        if attributes.email:
            changes["email"] = attributes.email
        if attributes.data:
            changes["user_metadata"] = {**user.user_metadata, **attributes.data}
        user = user.model_copy(update=changes)
        self.session = self.session.model_copy(update={"user": user})
        self._emit("USER_UPDATED")
        return user


class FakeBlobStorage:
    """BlobStorage keeping objects in a dict."""

    base_url = "https://blobs.test/documents"

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.removed: list[str] = []
        self.fail_upload = False
        self.fail_remove = False
        self.fail_sign = False

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        if self.fail_upload:
            raise StorageError("File upload failed: bucket unavailable")
        self.objects[path] = data

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    async def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        if self.fail_sign:
            raise StorageError("Failed to sign download URL")
        return f"{self.base_url}/{path}?token=signed&expires_in={ttl_seconds}"

    async def remove(self, paths: Sequence[str]) -> None:
        self.removed.extend(paths)
        if self.fail_remove:
            raise StorageError("Failed to remove file")
        for path in paths:
            self.objects.pop(path, None)


def seed_catalog(remote: FakeRemoteStore, user_id, ranks: dict[int, int] | None = None) -> None:
    """One user_skills row per catalog skill, ranked where `ranks` says so."""
    ranks = ranks or {}
    for category_name, skill_id, skill_name in iter_catalog():
        rank = ranks.get(skill_id)
        remote.seed(
            "user_skills",
            user_id=user_id,
            skill_id=skill_id,
            category_name=category_name,
            skill_name=skill_name,
            rank=rank,
            status="completed" if rank else "not-started",
        )


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def user() -> SessionUser:
    return SessionUser(id=USER_ID, email="ada@example.com", user_metadata={"full_name": "Ada Lovelace"})


@pytest.fixture
def identity(user: SessionUser) -> FakeIdentity:
    identity = FakeIdentity(user)
    identity.register("ada@example.com", "correct-horse", user_id=user.id)
    return identity


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def blobs() -> FakeBlobStorage:
    return FakeBlobStorage()


@pytest.fixture
def local_documents_path(tmp_path):
    return tmp_path / "local-documents-storage.json"


@pytest.fixture
def ctx(identity, remote, blobs, local_documents_path) -> StoreContext:
    context = build_context(
        identity,
        remote,
        blobs,
        local_documents_path=local_documents_path,
        timeout=1.0,
        signed_url_ttl_seconds=60,
    )
    yield context
    context.auth.close()
