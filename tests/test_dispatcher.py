# tests/test_dispatcher.py

from __future__ import annotations

import asyncio

import pytest

from task_sync.core.errors import RemoteWriteError, ValidationError
from task_sync.core.models import MutationStatus
from task_sync.sync.dispatcher import DELETE_PROMPT, MSG_ADD_FAILED, MSG_DELETE_FAILED, MutationDispatcher

from .fakes import FakeConfirm, FakeDocumentStore, FakeNotifier, snap


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\t\n"])
async def test_add_blank_text_sends_nothing(dispatcher, store: FakeDocumentStore, text: str) -> None:
    outcome = await dispatcher.add("U1", text)

    assert outcome.status == MutationStatus.REJECTED
    assert isinstance(outcome.error, ValidationError)
    assert store.write_calls == 0


@pytest.mark.asyncio
async def test_add_without_identity_sends_nothing(dispatcher, store: FakeDocumentStore) -> None:
    outcome = await dispatcher.add(None, "Buy eggs")

    assert outcome.status == MutationStatus.REJECTED
    assert store.inserts == []


@pytest.mark.asyncio
async def test_add_trims_and_scopes_to_owner(dispatcher, store: FakeDocumentStore) -> None:
    outcome = await dispatcher.add("U1", "  Buy eggs  ")

    assert outcome.ok
    assert outcome.record_id == "doc1"
    assert store.inserts == [("tasks", {"text": "Buy eggs", "owner": "U1"})]


@pytest.mark.asyncio
async def test_add_failure_notifies_and_does_not_raise(
    dispatcher, store: FakeDocumentStore, notifier: FakeNotifier
) -> None:
    store.fail_writes = True

    outcome = await dispatcher.add("U1", "Buy eggs")

    assert outcome.status == MutationStatus.FAILED
    assert isinstance(outcome.error, RemoteWriteError)
    assert outcome.error.op == "add"
    assert notifier.messages == [MSG_ADD_FAILED]


@pytest.mark.asyncio
async def test_update_requires_observed_record(dispatcher, store: FakeDocumentStore, materializer) -> None:
    materializer.start_for("U1")
    store.push(snap(("1", {"text": "Buy milk", "owner": "U1"})))

    unknown = await dispatcher.update("nope", "x")
    blank = await dispatcher.update("1", "  ")
    ok = await dispatcher.update("1", "  Buy oat milk ")

    assert unknown.status == MutationStatus.REJECTED
    assert blank.status == MutationStatus.REJECTED
    assert ok.ok
    assert store.updates == [("tasks", "1", {"text": "Buy oat milk"})]


@pytest.mark.asyncio
async def test_remove_requires_confirmation(dispatcher, store: FakeDocumentStore) -> None:
    gate = FakeConfirm(answer=False)

    outcome = await dispatcher.remove("2", gate)

    assert outcome.status == MutationStatus.CANCELLED
    assert gate.prompts == [DELETE_PROMPT]
    assert store.deletes == []
    assert not dispatcher.is_pending("2")


@pytest.mark.asyncio
async def test_remove_sets_marker_while_in_flight(dispatcher, store: FakeDocumentStore, confirm) -> None:
    store.delete_gate = asyncio.Event()

    call = asyncio.create_task(dispatcher.remove("2", confirm))
    await asyncio.sleep(0)

    assert dispatcher.is_pending("2")
    assert store.deletes == [("tasks", "2")]

    # Second click while in flight does not reach the store.
    dup = await dispatcher.remove("2", confirm)
    assert dup.status == MutationStatus.SKIPPED
    assert store.deletes == [("tasks", "2")]

    store.delete_gate.set()
    outcome = await call

    assert outcome.ok
    assert not dispatcher.is_pending("2")


@pytest.mark.asyncio
async def test_remove_failure_clears_marker_and_keeps_record(
    store: FakeDocumentStore, materializer, notifier: FakeNotifier, confirm
) -> None:
    d = MutationDispatcher(store, notifier, is_known=materializer.has_seen)
    materializer.start_for("U1")
    store.push(snap(("1", {"text": "Buy milk", "owner": "U1"}), ("2", {"text": "Walk dog", "owner": "U1"})))
    before = materializer.records
    store.fail_writes = True

    outcome = await d.remove("2", confirm)

    assert outcome.status == MutationStatus.FAILED
    assert isinstance(outcome.error, RemoteWriteError)
    assert not d.is_pending("2")
    assert d.pending == frozenset()
    assert materializer.records == before
    assert notifier.messages == [MSG_DELETE_FAILED]


@pytest.mark.asyncio
async def test_marker_cleared_when_delete_is_cancelled(dispatcher, store: FakeDocumentStore, confirm) -> None:
    store.delete_gate = asyncio.Event()
    call = asyncio.create_task(dispatcher.remove("3", confirm))
    await asyncio.sleep(0)
    assert dispatcher.is_pending("3")

    call.cancel()
    with pytest.raises(asyncio.CancelledError):
        await call

    assert not dispatcher.is_pending("3")
