# src/task_sync/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .errors import TaskSyncError

# Stored field names of a task document.
FIELD_TEXT = "text"
FIELD_OWNER = "owner"


@dataclass(slots=True, frozen=True)
class Identity:
    """Signed-in principal. Created and destroyed by the identity provider only."""

    uid: str
    email: str = ""


@dataclass(slots=True, frozen=True)
class Document:
    id: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Merge the id with the field payload (id wins on collision)."""
        return {**self.data, "id": self.id}


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Complete state of a subscribed query at one point in time."""

    documents: tuple[Document, ...] = ()


@dataclass(slots=True, frozen=True)
class TaskRecord:
    id: str
    text: str
    owner: str = ""

    @classmethod
    def from_document(cls, doc: Document) -> TaskRecord:
        data = doc.data or {}
        return cls(
            id=doc.id,
            text=str(data.get(FIELD_TEXT) or ""),
            owner=str(data.get(FIELD_OWNER) or ""),
        )


class SessionStatus(StrEnum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class MutationStatus(StrEnum):
    """
    Terminal status of one dispatched mutation.

    - applied:   the store acknowledged the write
    - rejected:  validation failed, nothing was sent
    - failed:    the store rejected the write (RemoteWriteError)
    - cancelled: the confirmation gate said no
    - skipped:   a delete for the same record is already in flight
    """

    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class MutationOutcome:
    status: MutationStatus
    record_id: str | None = None
    error: TaskSyncError | None = None

    @property
    def ok(self) -> bool:
        return self.status == MutationStatus.APPLIED
