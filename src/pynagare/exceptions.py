"""Custom exception hierarchy for pynagare."""

from __future__ import annotations


class NagareError(Exception):
    """Base exception for all pynagare errors."""


class NagareConfigError(NagareError):
    """Invalid or missing configuration.

    Raised synchronously while building a query, mutation, or client
    (missing key, missing fetch function, unknown ``observe`` field, ...).
    """


class NagareStorageError(NagareError):
    """Storage driver failure while persisting a cache record."""

    def __init__(
        self,
        message: str,
        *,
        storage_key: str = "",
    ) -> None:
        self.storage_key = storage_key
        super().__init__(message)


class NagareCancelledError(NagareError):
    """Work was abandoned because its abort signal fired.

    Fetch and mutation functions may raise this (usually via
    :meth:`pynagare.AbortSignal.raise_if_aborted`) to stop cooperatively.
    The engine treats it like any other fetch failure.
    """
