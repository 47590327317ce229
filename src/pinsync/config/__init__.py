"""Config loading helpers."""

from pinsync.config.loader import load_config

__all__ = ["load_config"]
