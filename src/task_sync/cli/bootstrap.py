# src/task_sync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppContext (identity provider, document store),
- assembles the sync components behind one TaskBoard.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import ConfirmGate, Notifier
from ..core.state import AppContext
from ..identity.local_provider import LocalIdentityProvider
from ..store.document_store import SqliteDocumentStore
from ..sync.board import TaskBoard
from ..sync.dispatcher import MutationDispatcher
from ..sync.editor import RecordEditor
from ..sync.identity_gate import IdentityGate
from ..sync.materializer import SnapshotMaterializer
from ..sync.session import SessionController

logger = logging.getLogger(__name__)


class LogNotifier:
    """Notifier for headless runs: user-facing messages go to the log."""

    def notify(self, message: str) -> None:
        logger.warning("%s", message)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.accounts_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_context(*, settings=None, notifier: Notifier | None = None) -> AppContext:
    """
    Create AppContext from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    return AppContext(
        settings=settings,
        identity=LocalIdentityProvider(settings.accounts_db_path),
        store=SqliteDocumentStore(settings.db_path),
        notifier=notifier or LogNotifier(),
        collection=getattr(settings, "collection", "tasks"),
    )


def create_board(ctx: AppContext, confirm: ConfirmGate) -> TaskBoard:
    """Wire gate -> session -> materializer, and dispatcher -> editor, into one board (not started)."""
    gate = IdentityGate(ctx.identity)
    materializer = SnapshotMaterializer(ctx.store, collection=ctx.collection)
    dispatcher = MutationDispatcher(
        ctx.store,
        ctx.notifier,
        collection=ctx.collection,
        is_known=materializer.has_seen,
    )
    editor = RecordEditor(dispatcher)
    session = SessionController(gate, materializer)

    return TaskBoard(
        gate=gate,
        session=session,
        materializer=materializer,
        dispatcher=dispatcher,
        editor=editor,
        notifier=ctx.notifier,
        confirm=confirm,
    )
