"""pynagare - Async data-fetching and caching engine with observable queries."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pynagare")
except PackageNotFoundError:
    __version__ = "0+local"
from pynagare._abort import AbortController, AbortSignal
from pynagare._hashing import encode_key
from pynagare.cache import CacheStore, StorageItem
from pynagare.client import NagareClient
from pynagare.config import NagareConfig
from pynagare.exceptions import (
    NagareCancelledError,
    NagareConfigError,
    NagareError,
    NagareStorageError,
)
from pynagare.mutation import (
    Mutation,
    MutationContext,
    MutationCycle,
    MutationObservable,
    MutationOptions,
    MutationResponse,
)
from pynagare.notifications import NotificationBus, NotificationEvent, NotificationType
from pynagare.observable import ObservableSession, Subscriber, Subscription
from pynagare.query import (
    Query,
    QueryContext,
    QueryCycle,
    QueryObservable,
    QueryOptions,
    QueryResponse,
)
from pynagare.storage import JsonFileDriver, MemoryDriver, StorageDriver

__all__ = [
    "__version__",
    "AbortController",
    "AbortSignal",
    "CacheStore",
    "JsonFileDriver",
    "MemoryDriver",
    "Mutation",
    "MutationContext",
    "MutationCycle",
    "MutationObservable",
    "MutationOptions",
    "MutationResponse",
    "NagareCancelledError",
    "NagareClient",
    "NagareConfig",
    "NagareConfigError",
    "NagareError",
    "NagareStorageError",
    "NotificationBus",
    "NotificationEvent",
    "NotificationType",
    "ObservableSession",
    "Query",
    "QueryContext",
    "QueryCycle",
    "QueryObservable",
    "QueryOptions",
    "QueryResponse",
    "StorageDriver",
    "StorageItem",
    "Subscriber",
    "Subscription",
    "encode_key",
]
