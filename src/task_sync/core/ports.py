# src/task_sync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the sync core.

The core depends on Protocols instead of concrete implementations.
This keeps the identity provider and the document store swappable and makes testing easier.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from .errors import TaskSyncError
from .models import Document, Identity, Snapshot

IdentityHandler = Callable[[Identity | None], None]
SnapshotHandler = Callable[[Snapshot], None]
ErrorHandler = Callable[[Exception], None]

# Equality filter: {"owner": "U1"} matches documents whose owner field equals "U1".
Where = Mapping[str, Any]


class CancelToken(Protocol):
    """
    Handle returned by every push subscription.

    cancel() is synchronous and total: once it returns, the handler is never called again.
    """

    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class IdentityProvider(Protocol):
    def current_identity(self) -> Identity | None: ...

    # Delivers future changes only; callers that need the current value read current_identity().
    def on_change(self, handler: IdentityHandler) -> CancelToken: ...

    async def sign_in(self, email: str, password: str) -> Identity: ...
    async def create_account(self, email: str, password: str) -> Identity: ...
    async def sign_out(self) -> None: ...


class DocumentStore(Protocol):
    def subscribe(
            self,
            collection: str,
            where: Where,
            on_snapshot: SnapshotHandler,
            on_error: ErrorHandler | None = None,
    ) -> CancelToken: ...

    async def insert(self, collection: str, fields: Mapping[str, Any]) -> str: ...
    async def update_fields(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None: ...
    async def delete(self, collection: str, doc_id: str) -> None: ...
    async def list_all(self, collection: str) -> list[Document]: ...


class Notifier(Protocol):
    """User-visible feedback channel (alerts, status line)."""

    def notify(self, message: str) -> None: ...


# Synchronous yes/no gate the caller must pass before a destructive operation.
ConfirmGate = Callable[[str], bool]

# Observability sink for errors that are logged but never raised to the caller.
ErrorSink = Callable[[TaskSyncError], None]
