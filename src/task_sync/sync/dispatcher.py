# src/task_sync/sync/dispatcher.py

from __future__ import annotations

"""
Mutation dispatcher.

Issues add/update/delete writes against the document store. Every operation:
- validates before touching the network (ValidationError -> status "rejected"),
- returns once the store acknowledges the write, not once the snapshot arrives,
- converts store failures into RemoteWriteError + a generic user-facing message,
- never raises past this boundary and never retries.

Only delete is guarded against duplicates (per-record pending marker).
"""

import logging
from collections.abc import Callable

from ..core.errors import RemoteWriteError, ValidationError
from ..core.models import FIELD_OWNER, FIELD_TEXT, MutationOutcome, MutationStatus
from ..core.ports import ConfirmGate, DocumentStore, Notifier

logger = logging.getLogger(__name__)

DELETE_PROMPT = "Are you sure you want to delete this task?"

MSG_ADD_FAILED = "Failed to add task."
MSG_UPDATE_FAILED = "Failed to update the task."
MSG_DELETE_FAILED = "Failed to delete the task."


class MutationDispatcher:
    def __init__(
            self,
            store: DocumentStore,
            notifier: Notifier,
            *,
            collection: str = "tasks",
            is_known: Callable[[str], bool] | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._collection = collection
        # Predicate for "record was observed in the Visible Collection" (update precondition).
        self._is_known = is_known
        self._pending: set[str] = set()

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._pending)

    def is_pending(self, record_id: str) -> bool:
        return record_id in self._pending

    # ---- helpers ----

    @staticmethod
    def _rejected(message: str, record_id: str | None = None) -> MutationOutcome:
        logger.debug("Mutation rejected: %s (record=%s)", message, record_id)
        return MutationOutcome(MutationStatus.REJECTED, record_id, ValidationError(message))

    def _failed(self, op: str, message: str, record_id: str | None, exc: Exception) -> MutationOutcome:
        logger.error("Failed to %s task %s: %r", op, record_id or "<new>", exc, exc_info=exc)
        err = RemoteWriteError(message, op=op, record_id=record_id)
        err.__cause__ = exc
        try:
            self._notifier.notify(message)
        except Exception:
            logger.exception("Notifier failed")
        return MutationOutcome(MutationStatus.FAILED, record_id, err)

    # ---- operations ----

    async def add(self, identity_id: str | None, text: str) -> MutationOutcome:
        task = (text or "").strip()
        if not identity_id:
            return self._rejected("An identity is required to add a task")
        if not task:
            return self._rejected("Task text is empty")

        try:
            new_id = await self._store.insert(self._collection, {FIELD_TEXT: task, FIELD_OWNER: identity_id})
        except Exception as e:
            return self._failed("add", MSG_ADD_FAILED, None, e)

        logger.info("Task added id=%s owner=%s", new_id, identity_id)
        return MutationOutcome(MutationStatus.APPLIED, new_id)

    async def update(self, record_id: str, text: str) -> MutationOutcome:
        task = (text or "").strip()
        if not task:
            return self._rejected("Task text is empty", record_id)
        if self._is_known is not None and not self._is_known(record_id):
            return self._rejected("Unknown task", record_id)

        try:
            await self._store.update_fields(self._collection, record_id, {FIELD_TEXT: task})
        except Exception as e:
            return self._failed("update", MSG_UPDATE_FAILED, record_id, e)

        logger.info("Task updated id=%s", record_id)
        return MutationOutcome(MutationStatus.APPLIED, record_id)

    async def remove(self, record_id: str, confirm: ConfirmGate) -> MutationOutcome:
        """
        Delete record_id after the confirmation gate agrees.

        The pending marker is set for the whole call and cleared on every exit path.
        On failure the record stays; the next snapshot confirms that.
        """
        if record_id in self._pending:
            logger.debug("Delete already in flight for %s", record_id)
            return MutationOutcome(MutationStatus.SKIPPED, record_id)
        if not confirm(DELETE_PROMPT):
            return MutationOutcome(MutationStatus.CANCELLED, record_id)

        self._pending.add(record_id)
        try:
            await self._store.delete(self._collection, record_id)
        except Exception as e:
            return self._failed("delete", MSG_DELETE_FAILED, record_id, e)
        finally:
            self._pending.discard(record_id)

        logger.info("Task deleted id=%s", record_id)
        return MutationOutcome(MutationStatus.APPLIED, record_id)
