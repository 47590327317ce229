"""On-device storage backends and slot access."""

from pinsync.storage.kv import FileKeyValueStore, MemoryKeyValueStore
from pinsync.storage.local_cache import LocalPinCache

__all__ = ["FileKeyValueStore", "LocalPinCache", "MemoryKeyValueStore"]
