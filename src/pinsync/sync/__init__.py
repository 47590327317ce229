"""Pin reconciliation."""

from pinsync.sync.reconciler import PinReconciler
from pinsync.sync.replay import ReconnectReplayer

__all__ = ["PinReconciler", "ReconnectReplayer"]
