"""Observable session wrapping a :class:`Mutation`."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pynagare.exceptions import NagareConfigError
from pynagare.mutation.models import MutationFn, MutationOptions, MutationResponse
from pynagare.mutation.mutation import Mutation
from pynagare.observable import ObservableSession

if TYPE_CHECKING:
    from pynagare.client import NagareClient

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class MutationObservable(ObservableSession[MutationResponse[T], Mutation[T]], Generic[T]):
    """Stream of :class:`MutationResponse` snapshots for one write action.

    The mutation only runs when :meth:`mutate` is awaited, unless
    ``mutate_on_init`` asks for it to run on subscribe.
    """

    def __init__(
        self,
        client: NagareClient | None,
        mutation_key: Any,
        mutation_fn: MutationFn[T] | None,
        options: MutationOptions[T] | None = None,
    ) -> None:
        if client is None:
            raise NagareConfigError("Client not provided")
        if not callable(mutation_fn):
            raise NagareConfigError("Mutation function not provided")
        if mutation_key is None:
            raise NagareConfigError("Mutation key not provided")

        self._client = client
        self._mutation_key = mutation_key
        self._mutation_fn = mutation_fn
        self._options: MutationOptions[T] = options or MutationOptions()
        super().__init__()

    async def mutate(self) -> T:
        """Run the mutation on the current engine and return its result."""
        return await self._engine.mutate()

    def _create_engine(self) -> Mutation[T]:
        return Mutation(self._client, self._mutation_key, self._mutation_fn, self._options)

    def _on_subscribe(self, engine: Mutation[T]) -> None:
        if self._options.on_subscribe is not None:
            self._options.on_subscribe(engine.get_context())

    def _on_unsubscribe(self, engine: Mutation[T]) -> None:
        if self._options.on_unsubscribe is not None:
            self._options.on_unsubscribe(engine.get_context())

    def _start(self, engine: Mutation[T]) -> None:
        if self._options.mutate_on_init:
            engine.spawn(self._mutate_on_init(engine))

    @staticmethod
    async def _mutate_on_init(engine: Mutation[T]) -> None:
        # Nobody awaits this run; the failure is already in the snapshot and on_error.
        try:
            await engine.mutate()
        except Exception:
            _logger.debug("mutate_on_init run failed key=%s", engine.encoded_key, exc_info=True)
