"""Exception hierarchy for pinsync.

All pinsync exceptions inherit from :class:`PinSyncError`. Remote failures are
normally absorbed by the reconciler (cache fallback or pending marker); storage
failures always reach the caller since nothing sits beneath local storage.
"""

from __future__ import annotations


class PinSyncError(Exception):
    """Base exception for all pinsync errors."""


class ConfigError(PinSyncError):
    """Configuration loading or validation failure."""


class PinValidationError(PinSyncError):
    """Invalid pin input, such as a name that is empty after trimming."""


class PinNotFoundError(PinSyncError):
    """No pin with the requested id exists in the collection."""

    def __init__(self, pin_id: str) -> None:
        super().__init__(f"Pin not found: {pin_id}")
        self.pin_id = pin_id


class StorageError(PinSyncError):
    """Durable on-device storage could not be read or written."""


class RemoteUnavailableError(PinSyncError):
    """Network or remote-store failure."""


class AuthenticationError(RemoteUnavailableError):
    """Authentication/authorization failure against the remote."""


class PartialReplaceError(RemoteUnavailableError):
    """A full-collection replace failed after some of its phases completed.

    The remote partition may be empty or partially written.
    """

    def __init__(self, message: str, *, completed_phases: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.completed_phases = completed_phases
