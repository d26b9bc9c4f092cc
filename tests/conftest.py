# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from task_sync.core.models import Identity
from task_sync.core.state import AppContext
from task_sync.sync.board import TaskBoard
from task_sync.sync.dispatcher import MutationDispatcher
from task_sync.sync.editor import RecordEditor
from task_sync.sync.identity_gate import IdentityGate
from task_sync.sync.materializer import SnapshotMaterializer
from task_sync.sync.session import SessionController

from .fakes import FakeConfirm, FakeDocumentStore, FakeIdentityProvider, FakeNotifier

U1 = Identity(uid="U1", email="u1@example.com")
U2 = Identity(uid="U2", email="u2@example.com")


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="task-sync-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "documents.sqlite3",
        accounts_db_path=tmp_path / "accounts.sqlite3",
        collection="tasks",
        http_host="127.0.0.1",
        http_port=5000,
        cors_origins=["*"],
    )


@pytest.fixture()
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture()
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def confirm() -> FakeConfirm:
    return FakeConfirm(answer=True)


@pytest.fixture()
def context(settings, provider, store, notifier) -> AppContext:
    return AppContext(settings=settings, identity=provider, store=store, notifier=notifier)


@pytest.fixture()
def materializer(store: FakeDocumentStore) -> SnapshotMaterializer:
    return SnapshotMaterializer(store, collection="tasks")


@pytest.fixture()
def dispatcher(store, notifier, materializer) -> MutationDispatcher:
    return MutationDispatcher(store, notifier, collection="tasks", is_known=materializer.has_seen)


@pytest.fixture()
def board(provider, materializer, dispatcher, notifier, confirm) -> TaskBoard:
    """
    TaskBoard wired with deterministic fakes (not started).
    """
    gate = IdentityGate(provider)
    return TaskBoard(
        gate=gate,
        session=SessionController(gate, materializer),
        materializer=materializer,
        dispatcher=dispatcher,
        editor=RecordEditor(dispatcher),
        notifier=notifier,
        confirm=confirm,
    )
