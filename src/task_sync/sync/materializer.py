# src/task_sync/sync/materializer.py

from __future__ import annotations

"""
Snapshot materializer.

Owns the live, owner-scoped query against the task collection and turns every pushed
snapshot into a complete, ordered Visible Collection:
- each snapshot replaces the previous collection wholesale (no deltas, no merge),
- order is exactly the store's delivery order (no client-side sort),
- a stopped subscription can never publish again.

Scoping is done by the store query, never by filtering on the client.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..core.errors import SubscriptionError
from ..core.models import FIELD_OWNER, Snapshot, TaskRecord
from ..core.ports import CancelToken, DocumentStore, ErrorSink

logger = logging.getLogger(__name__)

RecordsListener = Callable[[tuple[TaskRecord, ...]], None]


def _log_sink(err: SubscriptionError) -> None:
    logger.error("Subscription error owner=%s: %s", err.owner_id, err)


@dataclass(slots=True, eq=False)
class SubscriptionHandle:
    owner_id: str
    token: CancelToken | None = None
    active: bool = True

    def __repr__(self) -> str:
        return f"<SubscriptionHandle owner={self.owner_id} active={self.active}>"


class SnapshotMaterializer:
    def __init__(
            self,
            store: DocumentStore,
            *,
            collection: str = "tasks",
            error_sink: ErrorSink | None = None,
    ) -> None:
        self._store = store
        self._collection = collection
        self._error_sink = error_sink or _log_sink
        self._records: tuple[TaskRecord, ...] = ()
        self._seen: set[str] = set()
        self._listeners: list[RecordsListener] = []
        self._current: SubscriptionHandle | None = None

    # ---- read side ----

    @property
    def records(self) -> tuple[TaskRecord, ...]:
        return self._records

    def has_seen(self, record_id: str) -> bool:
        """True if record_id was observed in a snapshot of the current subscription."""
        return record_id in self._seen

    def add_listener(self, listener: RecordsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ---- lifecycle ----

    def start_for(self, identity_id: str) -> SubscriptionHandle:
        """
        Subscribe to tasks owned by identity_id.

        Never raises: if the store refuses the query the error goes to the sink and the
        returned handle is inactive, leaving the collection untouched.
        """
        prev = self._current
        if prev is not None and prev.active:
            if prev.owner_id == identity_id:
                return prev
            logger.warning("start_for(%s) with live subscription for %s; stopping it first", identity_id, prev.owner_id)
            self.stop(prev)

        handle = SubscriptionHandle(owner_id=identity_id)
        self._current = handle
        self._seen = set()

        def on_snapshot(snapshot: Snapshot) -> None:
            self._apply(handle, snapshot)

        def on_error(exc: Exception) -> None:
            self._drop(handle, exc)

        try:
            handle.token = self._store.subscribe(
                self._collection,
                {FIELD_OWNER: identity_id},
                on_snapshot,
                on_error,
            )
        except Exception as e:
            handle.active = False
            self._report(SubscriptionError(f"Failed to subscribe: {e!r}", owner_id=identity_id))
            return handle

        # The handle may have been stopped by a consumer during the initial delivery.
        if not handle.active and handle.token is not None:
            handle.token.cancel()

        logger.info("Subscribed tasks owner=%s", identity_id)
        return handle

    def stop(self, handle: SubscriptionHandle | None) -> None:
        """Cancel handle. Synchronous: nothing from it is published after this returns."""
        if handle is None:
            return
        was_active = handle.active
        handle.active = False
        if handle.token is not None:
            handle.token.cancel()
        if self._current is handle:
            self._current = None
        if was_active:
            logger.info("Stopped task subscription owner=%s", handle.owner_id)

    def clear(self) -> None:
        """Publish an empty collection (used when the identity goes away)."""
        self._seen = set()
        self._publish(())

    # ---- internals ----

    def _apply(self, handle: SubscriptionHandle, snapshot: Snapshot) -> None:
        if not handle.active or handle is not self._current:
            logger.debug("Dropped snapshot for stopped subscription owner=%s", handle.owner_id)
            return
        records = tuple(TaskRecord.from_document(d) for d in snapshot.documents)
        self._seen.update(r.id for r in records)
        self._publish(records)

    def _drop(self, handle: SubscriptionHandle, exc: Exception) -> None:
        if not handle.active:
            return
        handle.active = False
        if handle.token is not None:
            handle.token.cancel()
        # Collection stays frozen at the last published value; no resubscribe.
        self._report(SubscriptionError(f"Subscription dropped: {exc}", owner_id=handle.owner_id))

    def _report(self, err: SubscriptionError) -> None:
        try:
            self._error_sink(err)
        except Exception:
            logger.exception("Error sink failed")

    def _publish(self, records: tuple[TaskRecord, ...]) -> None:
        self._records = records
        for listener in list(self._listeners):
            try:
                listener(records)
            except Exception:
                logger.exception("Records listener failed")
