"""Notification bus for cross-cutting query/mutation control.

Any part of an application can cancel or refresh live engines by key by
publishing a :class:`NotificationEvent` on the client's bus. Delivery is
synchronous and unbuffered: listeners that subscribe later never see
earlier events.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from pynagare._hashing import canonical_json, encode_key
from pynagare.exceptions import NagareError

_logger = logging.getLogger(__name__)

NotificationPredicate = Callable[["NotificationEvent"], bool]
NotificationHandler = Callable[["NotificationEvent"], None]


class NotificationType(StrEnum):
    QUERY_CANCEL = "queryCancel"
    QUERY_RETRY = "queryRetry"
    QUERY_REFRESH = "queryRefresh"
    QUERY_INVALIDATE = "queryInvalidate"
    MUTATION_CANCEL = "mutationCancel"
    MUTATION_RETRY = "mutationRetry"

    @property
    def is_query(self) -> bool:
        return self.value.startswith("query")

    @property
    def is_mutation(self) -> bool:
        return self.value.startswith("mutation")


class NotificationEvent(BaseModel):
    """A command addressed to one key, or to every engine when ``key`` is None."""

    model_config = ConfigDict(frozen=True)

    type: NotificationType
    key: Any = None
    payload: Any = None

    @field_validator("key")
    @classmethod
    def _ensure_serializable_key(cls, value: Any) -> Any:
        if value is not None:
            canonical_json(value)
        return value

    @property
    def is_broadcast(self) -> bool:
        return self.key is None

    def targets(self, encoded_key: str) -> bool:
        """Broadcast-or-exact-match routing against an engine's encoded key."""
        return self.is_broadcast or encode_key(self.key) == encoded_key


@dataclass(slots=True, eq=False)
class _Listener:
    predicate: NotificationPredicate
    handler: NotificationHandler


class NotificationBus:
    """Predicate-filtered broadcast registry owned by one client."""

    def __init__(self) -> None:
        self._listeners: list[_Listener] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(
        self,
        predicate: NotificationPredicate,
        handler: NotificationHandler,
    ) -> Callable[[], None]:
        """Register *handler* for events matching *predicate*.

        Returns
        -------
        Callable[[], None]
            Idempotent unsubscribe function.
        """
        if self._closed:
            raise NagareError("Notification bus is closed")
        listener = _Listener(predicate=predicate, handler=handler)
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, event: NotificationEvent) -> None:
        """Deliver *event* to every current matching listener."""
        if self._closed:
            raise NagareError("Notification bus is closed")
        _logger.debug("Publishing notification type=%s broadcast=%s", event.type, event.is_broadcast)
        # Listeners added while delivering are not guaranteed to see this event.
        for listener in list(self._listeners):
            try:
                if listener.predicate(event):
                    listener.handler(event)
            except Exception:
                _logger.warning("Notification handler failed for type=%s", event.type, exc_info=True)

    def close(self) -> None:
        """Drop all listeners and refuse further traffic."""
        self._listeners.clear()
        self._closed = True
