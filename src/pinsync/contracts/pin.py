"""Pin record contracts and collection helpers."""

from __future__ import annotations

import random
import string
from collections.abc import Iterable

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from pinsync.contracts.exceptions import PinNotFoundError, PinValidationError
from pinsync.format import format_time_ago

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_SUFFIX_LENGTH = 9


class Pin(BaseModel):
    """One saved location.

    ``created_at`` is a display string derived from ``timestamp``; it is never
    used for ordering. ``owner_label`` is attached at read time and is not
    stored remotely.
    """

    id: str
    name: str
    latitude: float
    longitude: float
    timestamp: int
    created_at: str = Field(default="", alias="createdAt")
    owner_label: str | None = Field(default=None, alias="ownerLabel")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("pin name must not be empty")
        return value

    @property
    def dedupe_key(self) -> str:
        return f"{self.latitude!r}|{self.longitude!r}|{self.timestamp}"


PinList = TypeAdapter(list[Pin])


def new_pin_id(timestamp: int) -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=_ID_SUFFIX_LENGTH))
    return f"pin_{timestamp}_{suffix}"


def create_pin(
    name: str,
    latitude: float,
    longitude: float,
    *,
    timestamp: int,
    placeholder: str,
    owner_label: str | None = None,
) -> Pin:
    """Build a new pin, falling back to *placeholder* when *name* is blank."""
    if not -90.0 <= latitude <= 90.0:
        raise PinValidationError(f"latitude out of range: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise PinValidationError(f"longitude out of range: {longitude}")

    final_name = name.strip() or placeholder
    try:
        return Pin(
            id=new_pin_id(timestamp),
            name=final_name,
            latitude=latitude,
            longitude=longitude,
            timestamp=timestamp,
            created_at=format_time_ago(timestamp, now=timestamp),
            owner_label=owner_label,
        )
    except ValidationError as exc:
        raise PinValidationError(f"invalid pin: {exc}") from exc


def sort_pins(pins: Iterable[Pin]) -> list[Pin]:
    return sorted(pins, key=lambda pin: pin.timestamp, reverse=True)


def merge_and_dedupe(primary: Iterable[Pin], secondary: Iterable[Pin]) -> list[Pin]:
    """Concatenate both sources, keep the first pin per dedupe key, newest first.

    Pins from *primary* win collisions because they are visited first.
    """
    seen: set[str] = set()
    merged: list[Pin] = []
    for pin in [*primary, *secondary]:
        key = pin.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        merged.append(pin)
    return sort_pins(merged)


def with_owner_label(pins: Iterable[Pin], label: str) -> list[Pin]:
    return [pin if pin.owner_label is not None else pin.model_copy(update={"owner_label": label}) for pin in pins]


def with_created_at(pins: Iterable[Pin], *, now: int) -> list[Pin]:
    """Recompute the ``created_at`` display string of each pin as of *now*."""
    return [pin.model_copy(update={"created_at": format_time_ago(pin.timestamp, now=now)}) for pin in pins]


def rename_pin(pins: Iterable[Pin], pin_id: str, name: str) -> list[Pin]:
    new_name = name.strip()
    if not new_name:
        raise PinValidationError("pin name must not be empty")

    renamed: list[Pin] = []
    found = False
    for pin in pins:
        if pin.id == pin_id:
            pin = pin.model_copy(update={"name": new_name})
            found = True
        renamed.append(pin)
    if not found:
        raise PinNotFoundError(pin_id)
    return renamed


def remove_pin(pins: Iterable[Pin], pin_id: str) -> list[Pin]:
    pin_list = list(pins)
    remaining = [pin for pin in pin_list if pin.id != pin_id]
    if len(remaining) == len(pin_list):
        raise PinNotFoundError(pin_id)
    return remaining
