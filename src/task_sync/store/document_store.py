# src/task_sync/store/document_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import time
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..core.cancel import Subscription
from ..core.errors import DocumentNotFound
from ..core.models import Document, Snapshot
from ..core.ports import ErrorHandler, SnapshotHandler, Where

logger = logging.getLogger(__name__)


def _new_doc_id() -> str:
    # 20 chars, same shape as hosted document stores hand out.
    return uuid.uuid4().hex[:20]


class _Query:
    __slots__ = ("collection", "where", "subscription", "on_error")

    def __init__(
        self,
        collection: str,
        where: dict[str, Any],
        subscription: Subscription,
        on_error: ErrorHandler | None,
    ) -> None:
        self.collection = collection
        self.where = where
        self.subscription = subscription
        self.on_error = on_error

    def matches(self, data: Mapping[str, Any]) -> bool:
        return all(data.get(k) == v for k, v in self.where.items())


class SqliteDocumentStore:
    """
    SQLite document store with push subscriptions.

    Documents are schemaless JSON objects grouped by collection name. Snapshot order is
    insertion order (rowid), which consumers treat as the display order.

    Threading model:
    - each SQLite call opens its own connection
    - writes and list_all run in a worker thread (asyncio.to_thread)
    - subscribe and the post-write reload read the collection synchronously on the
      caller's (event loop) thread, then fan the snapshot out there
    """

    def __init__(self, db_path: str | Path = "documents.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._queries: list[_Query] = []
        self._ensure_schema()
        try:
            total = self.count_documents()
        except Exception:
            total = -1
        logger.info("DocumentStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Cancel every live subscription (connections are per call)."""
        for q in list(self._queries):
            q.subscription.cancel()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data TEXT NOT NULL DEFAULT '{}',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    UNIQUE (collection, doc_id)
                )
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection, seq)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _data_to_str(data: Mapping[str, Any]) -> str:
        return json.dumps(dict(data), ensure_ascii=False)

    @staticmethod
    def _str_to_data(s: str | None) -> dict[str, Any]:
        if not s:
            return {}
        try:
            val = json.loads(s)
            return val if isinstance(val, dict) else {}
        except Exception:
            return {}

    def _row_to_document(self, row: sqlite3.Row) -> Document:
        return Document(id=str(row["doc_id"]), data=self._str_to_data(row["data"]))

    def _load_collection(self, collection: str) -> list[Document]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY seq ASC",
                (collection,),
            )
            return [self._row_to_document(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def _insert_sync(self, collection: str, fields: Mapping[str, Any]) -> str:
        now = time.time()
        doc_id = _new_doc_id()
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO documents (collection, doc_id, data, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (collection, doc_id, self._data_to_str(fields), now, now),
            )
            conn.commit()
        finally:
            conn.close()
        return doc_id

    def _update_sync(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )
            row = cur.fetchone()
            if row is None:
                raise DocumentNotFound(collection, doc_id)
            merged = {**self._str_to_data(row["data"]), **dict(fields)}
            cur.execute(
                "UPDATE documents SET data = ?, updated_at = ? WHERE collection = ? AND doc_id = ?",
                (self._data_to_str(merged), time.time(), collection, doc_id),
            )
            conn.commit()
        finally:
            conn.close()

    def _delete_sync(self, collection: str, doc_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM documents WHERE collection = ? AND doc_id = ?", (collection, doc_id))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    # ---- push subscriptions ----

    def _snapshot_for(self, query: _Query, docs: list[Document]) -> Snapshot:
        return Snapshot(documents=tuple(d for d in docs if query.matches(d.data)))

    def _drop_query(self, sub: Subscription) -> None:
        self._queries = [q for q in self._queries if q.subscription is not sub]

    def _fail_query(self, query: _Query, exc: Exception) -> None:
        logger.warning("Subscription %s dropped: %r", query.subscription.label, exc)
        query.subscription.cancel()
        if query.on_error is not None:
            try:
                query.on_error(exc)
            except Exception:
                logger.exception("on_error handler failed for %s", query.subscription.label)

    def _publish(self, collection: str) -> None:
        queries = [q for q in self._queries if q.collection == collection]
        if not queries:
            return
        try:
            docs = self._load_collection(collection)
        except Exception as e:
            for q in queries:
                self._fail_query(q, e)
            return

        for q in queries:
            # Re-check: an earlier handler in this loop may have cancelled a later subscription.
            if not q.subscription.active:
                continue
            try:
                q.subscription.deliver(self._snapshot_for(q, docs))
            except Exception:
                logger.exception("Snapshot handler failed for %s", q.subscription.label)

    def subscribe(
        self,
        collection: str,
        where: Where,
        on_snapshot: SnapshotHandler,
        on_error: ErrorHandler | None = None,
    ) -> Subscription:
        """
        Start a live query. The current result set is delivered immediately, then again
        after every write to the collection. Raises if the initial query cannot run.
        """
        filt = dict(where or {})
        label = f"{collection}{filt}"
        sub = Subscription(on_snapshot, on_cancel=self._drop_query, label=label)
        query = _Query(collection, filt, sub, on_error)

        docs = self._load_collection(collection)
        self._queries.append(query)
        logger.debug("Subscribed %s", label)
        try:
            sub.deliver(self._snapshot_for(query, docs))
        except Exception:
            logger.exception("Snapshot handler failed for %s", label)
        return sub

    # ---- public API ----

    def count_documents(self, collection: str | None = None) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if collection is None:
                cur.execute("SELECT COUNT(*) FROM documents")
            else:
                cur.execute("SELECT COUNT(*) FROM documents WHERE collection = ?", (collection,))
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    async def insert(self, collection: str, fields: Mapping[str, Any]) -> str:
        doc_id = await asyncio.to_thread(self._insert_sync, collection, dict(fields))
        logger.debug("insert %s/%s", collection, doc_id)
        self._publish(collection)
        return doc_id

    async def update_fields(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._update_sync, collection, doc_id, dict(fields))
        logger.debug("update %s/%s fields=%s", collection, doc_id, sorted(fields))
        self._publish(collection)

    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document. Deleting a missing id succeeds without effect."""
        removed = await asyncio.to_thread(self._delete_sync, collection, doc_id)
        logger.debug("delete %s/%s removed=%s", collection, doc_id, removed)
        if removed:
            self._publish(collection)

    async def list_all(self, collection: str) -> list[Document]:
        return await asyncio.to_thread(self._load_collection, collection)
