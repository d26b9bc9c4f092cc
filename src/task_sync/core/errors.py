# src/task_sync/core/errors.py

from __future__ import annotations

"""
Error taxonomy.

Every failure is local to one user action; none of these is fatal to the process.
"""


class TaskSyncError(Exception):
    """Base class for all task_sync errors."""


class ValidationError(TaskSyncError):
    """Input rejected before any network call (e.g. empty text, no identity)."""


class RemoteWriteError(TaskSyncError):
    """Insert/update/delete rejected by the store. Never retried automatically."""

    def __init__(self, message: str, *, op: str, record_id: str | None = None) -> None:
        super().__init__(message)
        self.op = op
        self.record_id = record_id


class SubscriptionError(TaskSyncError):
    """Snapshot subscription failed to establish or dropped."""

    def __init__(self, message: str, *, owner_id: str | None = None) -> None:
        super().__init__(message)
        self.owner_id = owner_id


class AuthError(TaskSyncError):
    """Identity provider rejected a sign-in / sign-up request."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        return f"{self.args[0]} ({self.code})"


class DocumentNotFound(TaskSyncError, KeyError):
    """Update targeted a document id the store does not hold."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"No document {doc_id!r} in collection {collection!r}")
        self.collection = collection
        self.doc_id = doc_id

    def __str__(self) -> str:
        return str(self.args[0])
