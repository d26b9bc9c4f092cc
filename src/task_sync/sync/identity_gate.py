# src/task_sync/sync/identity_gate.py

from __future__ import annotations

import logging

from ..core.cancel import Subscription
from ..core.models import Identity
from ..core.ports import CancelToken, IdentityHandler, IdentityProvider

logger = logging.getLogger(__name__)


class IdentityGate:
    """Thin wrapper over the identity provider used by the session and the board."""

    def __init__(self, provider: IdentityProvider) -> None:
        self._provider = provider

    @property
    def current(self) -> Identity | None:
        return self._provider.current_identity()

    def on_identity_change(self, handler: IdentityHandler) -> Subscription:
        """
        Register handler. It is called immediately with the current identity (or None),
        then on every change until the returned token is cancelled.
        """
        provider_token: CancelToken | None = None

        def _release(_sub: Subscription) -> None:
            if provider_token is not None:
                provider_token.cancel()

        token = Subscription(handler, on_cancel=_release, label="identity-gate")
        provider_token = self._provider.on_change(token.deliver)

        token.deliver(self._provider.current_identity())
        return token

    async def sign_in(self, email: str, password: str) -> Identity:
        return await self._provider.sign_in(email, password)

    async def create_account(self, email: str, password: str) -> Identity:
        return await self._provider.create_account(email, password)

    async def sign_out(self) -> None:
        await self._provider.sign_out()
        logger.info("Signed out")
