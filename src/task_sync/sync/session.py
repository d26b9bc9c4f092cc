# src/task_sync/sync/session.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.cancel import Subscription
from ..core.models import Identity, SessionStatus
from .identity_gate import IdentityGate
from .materializer import SnapshotMaterializer, SubscriptionHandle

logger = logging.getLogger(__name__)

StatusListener = Callable[[SessionStatus, Identity | None], None]
RedirectListener = Callable[[], None]


class SessionController:
    """
    Ties the task subscription to the current identity.

    Loading -> Authenticated | Unauthenticated, driven by the identity gate:
    - identity present: subscribe to that identity's tasks (old owner stopped first)
    - identity absent: stop, clear the collection, signal redirect to sign-in
    - close(): cancel both the identity registration and the task subscription
    """

    def __init__(self, gate: IdentityGate, materializer: SnapshotMaterializer) -> None:
        self._gate = gate
        self._materializer = materializer
        self._status = SessionStatus.LOADING
        self._identity: Identity | None = None
        self._identity_token: Subscription | None = None
        self._handle: SubscriptionHandle | None = None
        self._closed = False
        self._status_listeners: list[StatusListener] = []
        self._redirect_listeners: list[RedirectListener] = []

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def closed(self) -> bool:
        return self._closed

    def add_status_listener(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def add_redirect_listener(self, listener: RedirectListener) -> None:
        self._redirect_listeners.append(listener)

    def start(self) -> None:
        if self._closed:
            raise RuntimeError("SessionController is closed")
        if self._identity_token is not None:
            return
        # The gate fires immediately with the current identity.
        self._identity_token = self._gate.on_identity_change(self._on_identity)
        if self._closed:
            # close() ran during the immediate first callback, before the token existed.
            self.close()

    def close(self) -> None:
        """Teardown. Safe to call more than once, and from inside an identity callback."""
        self._closed = True
        token, self._identity_token = self._identity_token, None
        if token is not None:
            token.cancel()
        self._stop_subscription()
        logger.debug("Session closed")

    # ---- internals ----

    def _stop_subscription(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            self._materializer.stop(handle)

    def _on_identity(self, identity: Identity | None) -> None:
        if self._closed:
            logger.debug("Identity callback after close ignored")
            return

        if identity is None:
            self._stop_subscription()
            self._materializer.clear()
            self._identity = None
            self._set_status(SessionStatus.UNAUTHENTICATED)
            self._emit_redirect()
            return

        current = self._handle
        # Same owner keeps its handle, even a dropped one: no automatic resubscribe.
        if current is None or current.owner_id != identity.uid:
            self._stop_subscription()
            if self._identity is not None and self._identity.uid != identity.uid:
                # Never show one owner's tasks while the next owner's snapshot is pending.
                self._materializer.clear()
            self._identity = identity
            self._handle = self._materializer.start_for(identity.uid)
        else:
            self._identity = identity

        if self._closed:
            # close() ran inside a listener during start_for's initial delivery.
            self._stop_subscription()
            return
        self._set_status(SessionStatus.AUTHENTICATED)

    def _set_status(self, status: SessionStatus) -> None:
        changed = status != self._status
        self._status = status
        if changed:
            logger.info("Session %s identity=%s", status.value, self._identity.uid if self._identity else "-")
        for listener in list(self._status_listeners):
            try:
                listener(status, self._identity)
            except Exception:
                logger.exception("Status listener failed")

    def _emit_redirect(self) -> None:
        for listener in list(self._redirect_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Redirect listener failed")
