# tests/test_materializer.py

from __future__ import annotations

import logging

import pytest

from task_sync.core.errors import SubscriptionError
from task_sync.core.models import TaskRecord
from task_sync.sync.materializer import SnapshotMaterializer

from .fakes import FakeDocumentStore, snap


def test_snapshot_becomes_ordered_visible_collection(store: FakeDocumentStore, materializer) -> None:
    seen: list[tuple[TaskRecord, ...]] = []
    materializer.add_listener(seen.append)

    handle = materializer.start_for("U1")
    assert handle.active
    assert store.queries[-1].where == {"owner": "U1"}
    assert store.queries[-1].collection == "tasks"

    store.push(
        snap(
            ("1", {"text": "Buy milk", "owner": "U1"}),
            ("2", {"text": "Walk dog", "owner": "U1"}),
        )
    )

    assert [(r.id, r.text) for r in materializer.records] == [("1", "Buy milk"), ("2", "Walk dog")]
    assert seen[-1] == materializer.records
    assert materializer.has_seen("2")


def test_each_snapshot_replaces_the_collection(store: FakeDocumentStore, materializer) -> None:
    materializer.start_for("U1")
    store.push(snap(("1", {"text": "a", "owner": "U1"}), ("2", {"text": "b", "owner": "U1"})))
    store.push(snap(("2", {"text": "b2", "owner": "U1"})))

    assert materializer.records == (TaskRecord(id="2", text="b2", owner="U1"),)


def test_no_publish_after_stop(store: FakeDocumentStore, materializer) -> None:
    seen: list = []
    materializer.add_listener(seen.append)

    handle = materializer.start_for("U1")
    query = store.queries[-1]
    store.push(snap(("1", {"text": "a", "owner": "U1"})))
    materializer.stop(handle)

    assert not handle.active
    assert not query.token.active
    # Token-side delivery is refused...
    assert store.push(snap(("9", {"text": "zombie", "owner": "U1"})), query) is False
    # ...and a racing raw callback is dropped by the handle guard.
    store.push_raw(snap(("9", {"text": "zombie", "owner": "U1"})), query)

    assert len(seen) == 1
    assert [r.id for r in materializer.records] == ["1"]


def test_start_for_other_owner_stops_previous(store: FakeDocumentStore, materializer) -> None:
    first = materializer.start_for("U1")
    old_query = store.queries[-1]
    second = materializer.start_for("U2")

    assert not first.active
    assert second.active
    assert len(store.live) == 1

    store.push_raw(snap(("x", {"text": "U1 task", "owner": "U1"})), old_query)
    assert materializer.records == ()


def test_start_for_same_owner_reuses_handle(store: FakeDocumentStore, materializer) -> None:
    first = materializer.start_for("U1")
    assert materializer.start_for("U1") is first
    assert len(store.queries) == 1


def test_subscribe_failure_is_reported_not_raised(store: FakeDocumentStore) -> None:
    errors: list[SubscriptionError] = []
    m = SnapshotMaterializer(store, error_sink=errors.append)
    store.fail_subscribe = True

    handle = m.start_for("U1")

    assert not handle.active
    assert m.records == ()
    assert len(errors) == 1
    assert errors[0].owner_id == "U1"


def test_subscribe_failure_is_logged_once(store: FakeDocumentStore, caplog: pytest.LogCaptureFixture) -> None:
    m = SnapshotMaterializer(store)
    store.fail_subscribe = True

    with caplog.at_level(logging.DEBUG, logger="task_sync.sync.materializer"):
        m.start_for("U1")

    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert "permission denied" in errors[0].getMessage()


def test_dropped_subscription_freezes_collection(store: FakeDocumentStore) -> None:
    errors: list[SubscriptionError] = []
    m = SnapshotMaterializer(store, error_sink=errors.append)
    handle = m.start_for("U1")
    query = store.queries[-1]
    store.push(snap(("1", {"text": "keep me", "owner": "U1"})))

    store.drop(query)
    store.push_raw(snap(), query)

    assert not handle.active
    assert [r.text for r in m.records] == ["keep me"]
    assert len(errors) == 1
    # No automatic resubscribe.
    assert len(store.queries) == 1


def test_listener_errors_do_not_break_fanout(store: FakeDocumentStore, materializer) -> None:
    got: list = []

    def bad(_records) -> None:
        raise ValueError("boom")

    materializer.add_listener(bad)
    materializer.add_listener(got.append)
    materializer.start_for("U1")
    store.push(snap(("1", {"text": "a", "owner": "U1"})))

    assert len(got) == 1


def test_clear_publishes_empty(store: FakeDocumentStore, materializer) -> None:
    got: list = []
    materializer.add_listener(got.append)
    materializer.start_for("U1")
    store.push(snap(("1", {"text": "a", "owner": "U1"})))

    materializer.clear()

    assert got[-1] == ()
    assert not materializer.has_seen("1")
