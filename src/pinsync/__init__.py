"""Public API surface for pinsync."""

__version__ = "0.1.0"

from pinsync.config import load_config
from pinsync.connectivity import HttpConnectivityProbe, StaticConnectivity
from pinsync.contracts import (
    AuthenticationError,
    ConfigError,
    ConnectivityMonitor,
    Identity,
    KeyValueStore,
    MergeResult,
    PartialReplaceError,
    Pin,
    PinNotFoundError,
    PinSyncConfig,
    PinSyncError,
    PinValidationError,
    RemoteStore,
    RemoteUnavailableError,
    SessionProvider,
    StorageError,
    SyncStatus,
)
from pinsync.remote import InMemoryRemoteStore, SupabaseRemoteStore
from pinsync.sdk import PinSync
from pinsync.storage import FileKeyValueStore, LocalPinCache, MemoryKeyValueStore
from pinsync.sync import PinReconciler, ReconnectReplayer

__all__ = [
    "AuthenticationError",
    "ConfigError",
    "ConnectivityMonitor",
    "FileKeyValueStore",
    "HttpConnectivityProbe",
    "Identity",
    "InMemoryRemoteStore",
    "KeyValueStore",
    "LocalPinCache",
    "MemoryKeyValueStore",
    "MergeResult",
    "PartialReplaceError",
    "Pin",
    "PinNotFoundError",
    "PinReconciler",
    "PinSync",
    "PinSyncConfig",
    "PinSyncError",
    "PinValidationError",
    "ReconnectReplayer",
    "RemoteStore",
    "RemoteUnavailableError",
    "SessionProvider",
    "StaticConnectivity",
    "StorageError",
    "SupabaseRemoteStore",
    "SyncStatus",
    "__version__",
    "load_config",
]
