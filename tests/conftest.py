"""Shared test fixtures for pinsync tests."""

from __future__ import annotations

import pytest

from pinsync.contracts.identity import Identity
from pinsync.storage import LocalPinCache, MemoryKeyValueStore
from pinsync.sync import PinReconciler
from tests.fakes.pins import FIXED_NOW
from tests.fakes.remote import FakeRemoteStore


@pytest.fixture
def alice() -> Identity:
    return Identity(user_id="user-alice", access_token="token-alice", display_name="Alice")


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def cache(store: MemoryKeyValueStore) -> LocalPinCache:
    return LocalPinCache(store)


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def reconciler(cache: LocalPinCache, remote: FakeRemoteStore) -> PinReconciler:
    return PinReconciler(cache, remote, device_label="This device", clock=lambda: FIXED_NOW)
