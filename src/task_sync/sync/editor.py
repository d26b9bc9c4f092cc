# src/task_sync/sync/editor.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import ValidationError
from ..core.models import MutationOutcome, MutationStatus, TaskRecord
from .dispatcher import MutationDispatcher

logger = logging.getLogger(__name__)


class EditMode(StrEnum):
    VIEWING = "viewing"
    EDITING = "editing"


@dataclass(slots=True)
class EditSession:
    record_id: str
    buffer: str


class RecordEditor:
    """
    Viewing/Editing state machine for one list view.

    At most one record is in editing mode; starting a second edit replaces the first
    (last start wins). Local only: nothing reaches the store until save() passes validation.
    """

    def __init__(self, dispatcher: MutationDispatcher) -> None:
        self._dispatcher = dispatcher
        self._session: EditSession | None = None

    @property
    def mode(self) -> EditMode:
        return EditMode.EDITING if self._session is not None else EditMode.VIEWING

    @property
    def session(self) -> EditSession | None:
        return self._session

    @property
    def editing_id(self) -> str | None:
        return self._session.record_id if self._session else None

    @property
    def buffer(self) -> str:
        return self._session.buffer if self._session else ""

    def is_editing(self, record_id: str) -> bool:
        return self._session is not None and self._session.record_id == record_id

    def start_edit(self, record: TaskRecord) -> None:
        if self._session is not None and self._session.record_id != record.id:
            logger.debug("Edit of %s replaced by %s", self._session.record_id, record.id)
        self._session = EditSession(record_id=record.id, buffer=record.text)

    def set_buffer(self, text: str) -> None:
        if self._session is None:
            raise RuntimeError("set_buffer() called while not editing")
        self._session.buffer = text

    def cancel(self) -> None:
        self._session = None

    async def save(self) -> MutationOutcome:
        """
        Commit the buffer via the dispatcher.

        Empty-after-trim buffers are rejected and the session stays open. Otherwise the
        session ends before the write is sent; the outcome never reopens it.
        """
        session = self._session
        if session is None:
            return MutationOutcome(MutationStatus.REJECTED, None, ValidationError("Not editing"))
        if not session.buffer.strip():
            return MutationOutcome(MutationStatus.REJECTED, session.record_id, ValidationError("Task text is empty"))

        self._session = None
        return await self._dispatcher.update(session.record_id, session.buffer)

    def on_records(self, records: Iterable[TaskRecord]) -> None:
        """Drop the edit session if its record left the Visible Collection."""
        if self._session is None:
            return
        if any(r.id == self._session.record_id for r in records):
            return
        logger.info("Edited task %s disappeared; leaving edit mode", self._session.record_id)
        self._session = None
