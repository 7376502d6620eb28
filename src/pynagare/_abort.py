"""Cooperative cancellation primitives.

Aborting never interrupts an awaited call. Fetch and mutation functions
receive the signal in their context and are expected to check it (or
await :meth:`AbortSignal.wait`) to stop their own work.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from pynagare.exceptions import NagareCancelledError

_logger = logging.getLogger(__name__)


class AbortSignal:
    """Read-only view of an :class:`AbortController`."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._listeners: list[Callable[[], None]] = []

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until the signal is aborted."""
        await self._event.wait()

    def raise_if_aborted(self) -> None:
        if self.aborted:
            raise NagareCancelledError("Operation was aborted")

    def add_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run *callback* once on abort (immediately if already aborted).

        Returns a function that removes the listener.
        """
        if self.aborted:
            callback()
            return lambda: None
        self._listeners.append(callback)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return _remove

    def _abort(self) -> None:
        if self.aborted:
            return
        self._event.set()
        listeners, self._listeners = self._listeners, []
        for callback in listeners:
            try:
                callback()
            except Exception:
                _logger.warning("Abort listener failed", exc_info=True)


class AbortController:
    """Owner side of an abort signal; one per engine."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self) -> None:
        self.signal._abort()  # noqa: SLF001
