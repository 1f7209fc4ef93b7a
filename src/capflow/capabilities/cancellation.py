"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cooperative cancellation signal threaded through every capability call.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from ..errors import OperationCancelledError


class CancellationToken:
    """
    Cooperative cancellation signal.

    One token is shared by every capability invocation of an orchestration.
    Capabilities are expected to poll ``cancelled`` or call
    ``raise_if_cancelled()`` at their own await points. A token created with a
    ``parent`` is cancelled whenever the parent is, which lets callers layer a
    deadline on top of an outer signal::

        token = CancellationToken(parent=request_token)
        token.cancel_after(5.0)
        result = await orchestrator.execute(plan, tenant_id, token)
    """

    def __init__(self, *, parent: CancellationToken | None = None) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._callbacks: list[Callable[[CancellationToken], None]] = []
        self._timer: asyncio.TimerHandle | None = None
        self._unlink: Callable[[], None] | None = None
        if parent is not None:
            self._unlink = parent.add_callback(self._on_parent_cancelled)

    @classmethod
    def none(cls) -> CancellationToken:
        """Return a fresh token that nobody else holds."""
        return cls()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Trigger cancellation. Repeated calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        self.detach()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)

    def cancel_after(self, delay_s: float, reason: str | None = None) -> asyncio.TimerHandle:
        """Schedule cancellation on the running loop after ``delay_s`` seconds."""
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(
            max(0.0, delay_s),
            self.cancel,
            reason or f"Deadline of {delay_s:.2f}s exceeded",
        )
        return self._timer

    def add_callback(
        self, callback: Callable[[CancellationToken], None]
    ) -> Callable[[], None]:
        """
        Run ``callback(token)`` on cancellation, immediately if already cancelled.

        Returns a function that removes the callback again.
        """
        if self._event.is_set():
            callback(self)
            return _noop
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def detach(self) -> None:
        """Stop following the parent token without cancelling this one."""
        unlink, self._unlink = self._unlink, None
        if unlink is not None:
            unlink()

    def _on_parent_cancelled(self, parent: CancellationToken) -> None:
        self.cancel(parent.reason)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self._reason)

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"CancellationToken({state})"


def _noop() -> None:
    return None
