# src/task_sync/core/cancel.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class Subscription:
    """
    Concrete CancelToken wrapping one push handler.

    deliver() is a no-op once cancel() has returned, so a publisher that iterates over a
    stale list of subscriptions can never reach a cancelled handler.
    """

    __slots__ = ("_handler", "_active", "_on_cancel", "label")

    def __init__(
        self,
        handler: Callable[..., None],
        *,
        on_cancel: Callable[[Subscription], None] | None = None,
        label: str = "",
    ) -> None:
        self._handler = handler
        self._active = True
        self._on_cancel = on_cancel
        self.label = label

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        on_cancel, self._on_cancel = self._on_cancel, None
        if on_cancel is not None:
            on_cancel(self)

    def deliver(self, *args: Any) -> bool:
        """Call the handler if still active. Returns True if it was called."""
        if not self._active:
            return False
        self._handler(*args)
        return True

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"<Subscription {self.label or hex(id(self))} {state}>"
