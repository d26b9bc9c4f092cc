# src/task_sync/identity/local_provider.py

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import re
import secrets
import sqlite3
import time
import uuid
from pathlib import Path

from ..core.cancel import Subscription
from ..core.errors import AuthError
from ..core.models import Identity
from ..core.ports import IdentityHandler

logger = logging.getLogger(__name__)

MIN_PASSWORD_LEN = 6
PBKDF2_ITERATIONS = 200_000

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _hash_password(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class LocalIdentityProvider:
    """
    Email/password identity provider backed by SQLite.

    Mirrors the behavior of hosted auth services closely enough for the sync core:
    - create_account() signs the new identity in
    - sign_in() / sign_out() change the current identity and notify listeners
    - errors carry stable codes (auth/invalid-email, auth/weak-password, ...)

    on_change() delivers future changes only; use current_identity() for the present one.
    """

    def __init__(self, db_path: str | Path = "accounts.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._current: Identity | None = None
        self._listeners: list[Subscription] = []
        self._ensure_schema()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    uid TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    salt BLOB NOT NULL,
                    password_hash BLOB NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _check_email(email: str) -> str:
        norm = _normalize_email(email)
        if not _EMAIL_RE.match(norm):
            raise AuthError("auth/invalid-email", "The email address is badly formatted.")
        return norm

    def _create_sync(self, email: str, password: str) -> Identity:
        salt = secrets.token_bytes(16)
        digest = _hash_password(password, salt)
        uid = uuid.uuid4().hex[:28]
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO accounts (uid, email, salt, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
                (uid, email, salt, digest, time.time()),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise AuthError(
                "auth/email-already-in-use", "The email address is already in use by another account."
            ) from e
        finally:
            conn.close()
        return Identity(uid=uid, email=email)

    def _verify_sync(self, email: str, password: str) -> Identity:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT uid, email, salt, password_hash FROM accounts WHERE email = ?",
                (email,),
            ).fetchone()
        finally:
            conn.close()

        # Same error for unknown email and wrong password.
        if row is None or not hmac.compare_digest(_hash_password(password, row["salt"]), row["password_hash"]):
            raise AuthError("auth/invalid-credential", "Invalid email or password.")
        return Identity(uid=str(row["uid"]), email=str(row["email"]))

    def _set_current(self, identity: Identity | None) -> None:
        if identity == self._current:
            return
        self._current = identity
        logger.info("Identity changed: %s", identity.uid if identity else "<none>")
        for sub in list(self._listeners):
            try:
                sub.deliver(identity)
            except Exception:
                logger.exception("Identity listener failed")

    def _drop_listener(self, sub: Subscription) -> None:
        self._listeners = [s for s in self._listeners if s is not sub]

    # ---- public API ----

    def current_identity(self) -> Identity | None:
        return self._current

    def on_change(self, handler: IdentityHandler) -> Subscription:
        sub = Subscription(handler, on_cancel=self._drop_listener, label="identity")
        self._listeners.append(sub)
        return sub

    async def create_account(self, email: str, password: str) -> Identity:
        norm = self._check_email(email)
        if len(password or "") < MIN_PASSWORD_LEN:
            raise AuthError("auth/weak-password", "Password should be at least 6 characters.")
        identity = await asyncio.to_thread(self._create_sync, norm, password)
        logger.info("Account created uid=%s", identity.uid)
        self._set_current(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> Identity:
        norm = self._check_email(email)
        identity = await asyncio.to_thread(self._verify_sync, norm, password or "")
        self._set_current(identity)
        return identity

    async def sign_out(self) -> None:
        self._set_current(None)
