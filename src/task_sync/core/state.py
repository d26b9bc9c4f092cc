# src/task_sync/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from .ports import DocumentStore, IdentityProvider, Notifier


@dataclass(slots=True)
class AppContext:
    """
    Process-wide collaborators, constructed once by the composition root.

    Passed by reference into the session, the dispatcher and the HTTP surface;
    nothing in the package reaches for a module-level store or auth handle.
    """

    # Store Settings on the context for easy access in other modules later.
    settings: object

    identity: IdentityProvider
    store: DocumentStore
    notifier: Notifier

    collection: str = "tasks"
