"""Public contracts for pinsync."""

from pinsync.contracts.config import PinSyncConfig
from pinsync.contracts.connectivity import ConnectivityListener, ConnectivityMonitor
from pinsync.contracts.exceptions import (
    AuthenticationError,
    ConfigError,
    PartialReplaceError,
    PinNotFoundError,
    PinSyncError,
    PinValidationError,
    RemoteUnavailableError,
    StorageError,
)
from pinsync.contracts.identity import Identity, display_name_from_metadata
from pinsync.contracts.pin import (
    Pin,
    PinList,
    create_pin,
    merge_and_dedupe,
    new_pin_id,
    remove_pin,
    rename_pin,
    sort_pins,
    with_owner_label,
)
from pinsync.contracts.remote import RemoteStore
from pinsync.contracts.session import SessionProvider
from pinsync.contracts.storage import KeyValueStore
from pinsync.contracts.sync import MergeResult, SyncStatus

__all__ = [
    "AuthenticationError",
    "ConfigError",
    "ConnectivityListener",
    "ConnectivityMonitor",
    "Identity",
    "KeyValueStore",
    "MergeResult",
    "PartialReplaceError",
    "Pin",
    "PinList",
    "PinNotFoundError",
    "PinSyncConfig",
    "PinSyncError",
    "PinValidationError",
    "RemoteStore",
    "RemoteUnavailableError",
    "SessionProvider",
    "StorageError",
    "SyncStatus",
    "create_pin",
    "display_name_from_metadata",
    "merge_and_dedupe",
    "new_pin_id",
    "remove_pin",
    "rename_pin",
    "sort_pins",
    "with_owner_label",
]
