# tests/fakes.py

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from task_sync.core.cancel import Subscription
from task_sync.core.models import Document, Identity, Snapshot


def snap(*docs: tuple[str, dict[str, Any]]) -> Snapshot:
    return Snapshot(documents=tuple(Document(id=i, data=d) for i, d in docs))


@dataclass(slots=True)
class FakeQuery:
    collection: str
    where: dict[str, Any]
    handler: Any
    on_error: Any
    token: Subscription


class FakeDocumentStore:
    """
    Deterministic DocumentStore for unit tests.

    - Captures subscribe/insert/update/delete calls for assertions
    - Never pushes on its own: tests push snapshots explicitly
    - Failure injection per operation
    - Optional hold on delete to observe in-flight state
    """

    def __init__(self) -> None:
        self.queries: list[FakeQuery] = []
        self.inserts: list[tuple[str, dict[str, Any]]] = []
        self.updates: list[tuple[str, str, dict[str, Any]]] = []
        self.deletes: list[tuple[str, str]] = []
        self.fail_subscribe = False
        self.fail_writes = False
        self.delete_gate: asyncio.Event | None = None
        self._next_id = 0

    @property
    def live(self) -> list[FakeQuery]:
        return [q for q in self.queries if q.token.active]

    @property
    def write_calls(self) -> int:
        return len(self.inserts) + len(self.updates) + len(self.deletes)

    def subscribe(self, collection: str, where: Mapping[str, Any], on_snapshot, on_error=None) -> Subscription:
        if self.fail_subscribe:
            raise RuntimeError("permission denied")
        token = Subscription(on_snapshot, label=f"fake:{dict(where)}")
        self.queries.append(FakeQuery(collection, dict(where), on_snapshot, on_error, token))
        return token

    def push(self, snapshot: Snapshot, query: FakeQuery | None = None) -> bool:
        """Deliver through the token (respects cancellation)."""
        q = query or self.queries[-1]
        return q.token.deliver(snapshot)

    def push_raw(self, snapshot: Snapshot, query: FakeQuery) -> None:
        """Call the handler directly, as a racing in-flight event would."""
        query.handler(snapshot)

    def drop(self, query: FakeQuery | None = None, exc: Exception | None = None) -> None:
        q = query or self.queries[-1]
        q.token.cancel()
        if q.on_error is not None:
            q.on_error(exc or RuntimeError("stream closed"))

    async def insert(self, collection: str, fields: Mapping[str, Any]) -> str:
        self.inserts.append((collection, dict(fields)))
        if self.fail_writes:
            raise RuntimeError("insert rejected")
        self._next_id += 1
        return f"doc{self._next_id}"

    async def update_fields(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        self.updates.append((collection, doc_id, dict(fields)))
        if self.fail_writes:
            raise RuntimeError("update rejected")

    async def delete(self, collection: str, doc_id: str) -> None:
        self.deletes.append((collection, doc_id))
        if self.delete_gate is not None:
            await self.delete_gate.wait()
        if self.fail_writes:
            raise RuntimeError("delete rejected")

    async def list_all(self, collection: str) -> list[Document]:
        return []


class FakeIdentityProvider:
    """In-memory IdentityProvider; tests drive changes with set_identity()."""

    def __init__(self, current: Identity | None = None) -> None:
        self._current = current
        self._listeners: list[Subscription] = []

    @property
    def listener_count(self) -> int:
        return len([s for s in self._listeners if s.active])

    def current_identity(self) -> Identity | None:
        return self._current

    def on_change(self, handler) -> Subscription:
        sub = Subscription(handler, label="fake-identity")
        self._listeners.append(sub)
        return sub

    def set_identity(self, identity: Identity | None) -> None:
        self._current = identity
        for sub in list(self._listeners):
            sub.deliver(identity)

    async def sign_in(self, email: str, password: str) -> Identity:
        identity = Identity(uid=f"uid-{email}", email=email)
        self.set_identity(identity)
        return identity

    async def create_account(self, email: str, password: str) -> Identity:
        return await self.sign_in(email, password)

    async def sign_out(self) -> None:
        self.set_identity(None)


@dataclass(slots=True)
class FakeNotifier:
    messages: list[str] = field(default_factory=list)

    def notify(self, message: str) -> None:
        self.messages.append(message)


class FakeConfirm:
    """ConfirmGate returning a fixed answer and recording prompts."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer
