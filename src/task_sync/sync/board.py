# src/task_sync/sync/board.py

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.models import MutationOutcome, MutationStatus, SessionStatus, TaskRecord
from ..core.ports import ConfirmGate, Notifier
from .dispatcher import MutationDispatcher
from .editor import RecordEditor
from .identity_gate import IdentityGate
from .materializer import SnapshotMaterializer
from .session import SessionController

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TaskRow:
    """What one list row renders."""

    id: str
    text: str
    editing: bool
    deleting: bool


class TaskBoard:
    """
    Presentation model of the signed-in task list.

    Owns the view-side state (draft input, edit session, delete markers through the
    dispatcher) and wires the editor to collection changes. Local state is optimistic:
    the draft is cleared and edit mode left before the write is acknowledged, and neither
    is restored on failure.
    """

    def __init__(
            self,
            *,
            gate: IdentityGate,
            session: SessionController,
            materializer: SnapshotMaterializer,
            dispatcher: MutationDispatcher,
            editor: RecordEditor,
            notifier: Notifier,
            confirm: ConfirmGate,
    ) -> None:
        self.gate = gate
        self.session = session
        self.materializer = materializer
        self.dispatcher = dispatcher
        self.editor = editor
        self._notifier = notifier
        self._confirm = confirm
        self.draft = ""
        self._remove_listener = materializer.add_listener(editor.on_records)

    @property
    def records(self) -> tuple[TaskRecord, ...]:
        return self.materializer.records

    def find(self, record_id: str) -> TaskRecord | None:
        for r in self.materializer.records:
            if r.id == record_id:
                return r
        return None

    def rows(self) -> list[TaskRow]:
        return [
            TaskRow(
                id=r.id,
                text=r.text,
                editing=self.editor.is_editing(r.id),
                deleting=self.dispatcher.is_pending(r.id),
            )
            for r in self.materializer.records
        ]

    async def submit_draft(self) -> MutationOutcome | None:
        """Add the draft as a new task. Returns None (no-op) when the draft is blank or signed out."""
        identity = self.session.identity
        if not self.draft.strip() or identity is None or self.session.status != SessionStatus.AUTHENTICATED:
            return None
        text, self.draft = self.draft, ""
        return await self.dispatcher.add(identity.uid, text)

    async def delete(self, record_id: str) -> MutationOutcome:
        return await self.dispatcher.remove(record_id, self._confirm)

    def start_edit(self, record_id: str) -> bool:
        record = self.find(record_id)
        if record is None:
            return False
        self.editor.start_edit(record)
        return True

    def cancel_edit(self) -> None:
        self.editor.cancel()

    async def save_edit(self) -> MutationOutcome:
        return await self.editor.save()

    async def logout(self) -> None:
        # The session reacts to the identity change and emits the redirect.
        await self.gate.sign_out()

    def close(self) -> None:
        self._remove_listener()
        self.session.close()


def describe(outcome: MutationOutcome | None) -> str:
    """Short status line for an outcome (console feedback)."""
    if outcome is None:
        return "Nothing to add."
    if outcome.status == MutationStatus.APPLIED:
        return f"OK ({outcome.record_id})"
    if outcome.status == MutationStatus.CANCELLED:
        return "Cancelled."
    if outcome.status == MutationStatus.SKIPPED:
        return "Already deleting."
    return str(outcome.error) if outcome.error else outcome.status.value
