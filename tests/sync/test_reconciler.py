from __future__ import annotations

import pytest

from pinsync.contracts.exceptions import AuthenticationError, RemoteUnavailableError, StorageError
from pinsync.contracts.identity import Identity
from pinsync.contracts.pin import Pin
from pinsync.storage import LocalPinCache, MemoryKeyValueStore
from pinsync.storage.local_cache import PENDING_SYNC_KEY, SIGNED_IN_CACHE_KEY
from pinsync.sync import PinReconciler
from tests.fakes.pins import FIXED_NOW, make_pin
from tests.fakes.remote import FakeRemoteStore
from tests.fakes.session import FakeSessionProvider


def _timestamps(pins: list[Pin]) -> list[int]:
    return [pin.timestamp for pin in pins]


# ---------------------------------------------------------------------------
# Anonymous
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_anonymous_pins_load_newest_first(reconciler: PinReconciler) -> None:
    await reconciler.save_pins([make_pin(100), make_pin(200)], None, online=True)

    pins = await reconciler.load_pins(None, online=True)

    assert _timestamps(pins) == [200, 100]
    assert all(pin.owner_label == "This device" for pin in pins)


@pytest.mark.asyncio
async def test_anonymous_save_never_touches_remote(reconciler: PinReconciler, remote: FakeRemoteStore) -> None:
    await reconciler.save_pins([make_pin(1)], None, online=True)
    await reconciler.load_pins(None, online=True)

    assert remote.enter_calls == 0
    assert remote.replace_calls == []
    assert remote.fetch_calls == []


@pytest.mark.asyncio
async def test_anonymous_load_keeps_existing_owner_label(reconciler: PinReconciler, cache: LocalPinCache) -> None:
    await cache.write_anonymous([make_pin(5).model_copy(update={"owner_label": "Alice"})])

    pins = await reconciler.load_pins(None, online=False)

    assert pins[0].owner_label == "Alice"


@pytest.mark.asyncio
async def test_anonymous_load_ignores_signed_in_cache(reconciler: PinReconciler, cache: LocalPinCache) -> None:
    await cache.write_signed_in_cache([make_pin(9)])

    assert await reconciler.load_pins(None, online=True) == []


@pytest.mark.asyncio
async def test_anonymous_load_recomputes_created_at(reconciler: PinReconciler, cache: LocalPinCache) -> None:
    two_days = 2 * 24 * 60 * 60 * 1000
    await cache.write_anonymous([make_pin(FIXED_NOW - two_days).model_copy(update={"created_at": "Pinned just now"})])

    pins = await reconciler.load_pins(None, online=False)

    assert pins[0].created_at == "Pinned 2 days ago"


# ---------------------------------------------------------------------------
# Signed in: read path
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_signed_in_online_load_mirrors_remote_into_cache(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.partitions[alice.user_id] = [make_pin(10), make_pin(30), make_pin(20)]

    pins = await reconciler.load_pins(alice, online=True)

    assert _timestamps(pins) == [30, 20, 10]
    assert all(pin.owner_label == "Alice" for pin in pins)
    assert _timestamps(await cache.read_signed_in_cache()) == [30, 20, 10]
    assert await cache.get_last_sync_at() == FIXED_NOW


@pytest.mark.asyncio
async def test_signed_in_online_load_does_not_merge_anonymous_slot(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    await cache.write_anonymous([make_pin(1)])
    remote.partitions[alice.user_id] = [make_pin(2)]

    pins = await reconciler.load_pins(alice, online=True)

    assert _timestamps(pins) == [2]


@pytest.mark.asyncio
async def test_signed_in_fetch_failure_falls_back_to_cache(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    await cache.write_signed_in_cache([make_pin(7)])
    remote.fail_fetch = True

    pins = await reconciler.load_pins(alice, online=True)

    assert _timestamps(pins) == [7]
    assert pins[0].owner_label == "Alice"
    assert await cache.get_last_sync_at() is None


@pytest.mark.asyncio
async def test_signed_in_offline_load_reads_cache_without_remote(
    reconciler: PinReconciler,
    cache: LocalPinCache,
    remote: FakeRemoteStore,
    store: MemoryKeyValueStore,
    alice: Identity,
) -> None:
    await cache.write_signed_in_cache([make_pin(3), make_pin(4)])
    before = dict(store.data)

    pins = await reconciler.load_pins(alice, online=False)

    assert _timestamps(pins) == [4, 3]
    assert remote.fetch_calls == []
    assert store.data == before


# ---------------------------------------------------------------------------
# Signed in: write path
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_online_delete_empties_remote_and_cache(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.partitions[alice.user_id] = [make_pin(50)]
    await reconciler.load_pins(alice, online=True)

    await reconciler.save_pins([], alice, online=True)

    assert remote.remote_pins(alice.user_id) == []
    assert await cache.read_signed_in_cache() == []
    assert await cache.is_pending() is False


@pytest.mark.asyncio
async def test_online_save_writes_sorted_collection_to_remote(
    reconciler: PinReconciler, remote: FakeRemoteStore, alice: Identity
) -> None:
    await reconciler.save_pins([make_pin(1), make_pin(3), make_pin(2)], alice, online=True)

    assert _timestamps(remote.remote_pins(alice.user_id)) == [3, 2, 1]
    assert await reconciler.get_last_sync_at() == FIXED_NOW


@pytest.mark.asyncio
async def test_offline_save_updates_cache_and_marks_pending(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    new_pins = [make_pin(300), make_pin(100)]

    await reconciler.save_pins(new_pins, alice, online=False)

    assert await cache.is_pending() is True
    assert await cache.read_signed_in_cache() == new_pins
    assert remote.replace_calls == []
    loaded = await reconciler.load_pins(alice, online=False)
    assert [(pin.id, pin.owner_label) for pin in loaded] == [(pin.id, "Alice") for pin in new_pins]


@pytest.mark.asyncio
async def test_failed_remote_save_keeps_cache_and_marks_pending(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.fail_delete = True

    await reconciler.save_pins([make_pin(1)], alice, online=True)

    assert await cache.is_pending() is True
    assert _timestamps(await cache.read_signed_in_cache()) == [1]
    assert await cache.get_last_sync_at() is None


@pytest.mark.asyncio
async def test_partial_replace_is_treated_as_failed_write(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.partitions[alice.user_id] = [make_pin(1)]
    remote.fail_insert = True

    await reconciler.save_pins([make_pin(1), make_pin(2)], alice, online=True)

    assert remote.remote_pins(alice.user_id) == []
    assert await cache.is_pending() is True

    remote.fail_insert = False
    assert await reconciler.run_pending_sync(alice, online=True) is True
    assert _timestamps(remote.remote_pins(alice.user_id)) == [2, 1]


@pytest.mark.asyncio
async def test_save_does_not_touch_anonymous_slot(
    reconciler: PinReconciler, cache: LocalPinCache, alice: Identity
) -> None:
    await cache.write_anonymous([make_pin(1)])

    await reconciler.save_pins([make_pin(2)], alice, online=True)

    assert _timestamps(await cache.read_anonymous()) == [1]


# ---------------------------------------------------------------------------
# Identity isolation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_anonymous_writes_stay_out_of_signed_in_reads(
    reconciler: PinReconciler, remote: FakeRemoteStore, alice: Identity
) -> None:
    await reconciler.save_pins([make_pin(11)], None, online=True)

    online_pins = await reconciler.load_pins(alice, online=True)
    offline_pins = await reconciler.load_pins(alice, online=False)

    assert online_pins == []
    assert offline_pins == []


# ---------------------------------------------------------------------------
# Deferred replay
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_offline_edit_then_replay_converges(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.partitions[alice.user_id] = [make_pin(100)]
    existing = await reconciler.load_pins(alice, online=True)

    await reconciler.save_pins([make_pin(300), *existing], alice, online=False)
    assert _timestamps(await reconciler.load_pins(alice, online=False)) == [300, 100]
    assert await cache.is_pending() is True

    assert await reconciler.run_pending_sync(alice, online=True) is True

    assert _timestamps(remote.remote_pins(alice.user_id)) == [300, 100]
    assert await cache.is_pending() is False


@pytest.mark.asyncio
async def test_replay_is_noop_without_pending_flag(
    reconciler: PinReconciler, remote: FakeRemoteStore, alice: Identity
) -> None:
    assert await reconciler.run_pending_sync(alice, online=True) is False
    assert remote.replace_calls == []


@pytest.mark.asyncio
async def test_replay_requires_identity_and_connectivity(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    await cache.set_pending()

    assert await reconciler.run_pending_sync(None, online=True) is False
    assert await reconciler.run_pending_sync(alice, online=False) is False
    assert remote.replace_calls == []
    assert await cache.is_pending() is True


@pytest.mark.asyncio
async def test_failed_replay_leaves_flag_set(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    await reconciler.save_pins([make_pin(1)], alice, online=False)
    remote.fail_delete = True

    assert await reconciler.run_pending_sync(alice, online=True) is False
    assert await cache.is_pending() is True


# ---------------------------------------------------------------------------
# Migration
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_merge_moves_anonymous_pins_into_empty_account(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    await reconciler.save_pins([make_pin(10, name="pinA")], None, online=True)
    assert await reconciler.get_local_only_pins_count(alice) == 1

    result = await reconciler.merge_local_pins_to_remote(alice, online=True)

    assert result.merged is True
    assert [pin.name for pin in remote.remote_pins(alice.user_id)] == ["pinA"]
    assert await cache.read_anonymous() == []
    assert await reconciler.get_local_only_pins_count(alice) == 0


@pytest.mark.asyncio
async def test_merge_dedupes_with_remote_winning_ties(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.partitions[alice.user_id] = [make_pin(20, name="remote copy"), make_pin(5)]
    await cache.write_anonymous([make_pin(20, name="local copy"), make_pin(30)])

    result = await reconciler.merge_local_pins_to_remote(alice, online=True)

    merged = remote.remote_pins(alice.user_id)
    assert _timestamps(merged) == [30, 20, 5]
    assert merged[1].name == "remote copy"
    assert result.local_count == 2
    assert result.remote_count == 2
    assert result.merged_count == 3
    assert result.duplicates_dropped == 1
    cached = await cache.read_signed_in_cache()
    assert _timestamps(cached) == [30, 20, 5]
    assert all(pin.owner_label == "Alice" for pin in cached)
    assert await cache.get_last_sync_at() == FIXED_NOW
    assert await cache.is_pending() is False


@pytest.mark.asyncio
async def test_merge_with_empty_anonymous_slot_is_noop(
    reconciler: PinReconciler, remote: FakeRemoteStore, alice: Identity
) -> None:
    result = await reconciler.merge_local_pins_to_remote(alice, online=True)

    assert result.merged is False
    assert remote.fetch_calls == []
    assert remote.replace_calls == []


@pytest.mark.asyncio
async def test_merge_requires_sign_in(reconciler: PinReconciler, cache: LocalPinCache) -> None:
    await cache.write_anonymous([make_pin(1)])

    with pytest.raises(AuthenticationError):
        await reconciler.merge_local_pins_to_remote(None, online=True)


@pytest.mark.asyncio
async def test_merge_requires_connectivity(reconciler: PinReconciler, cache: LocalPinCache, alice: Identity) -> None:
    await cache.write_anonymous([make_pin(1)])

    with pytest.raises(RemoteUnavailableError):
        await reconciler.merge_local_pins_to_remote(alice, online=False)
    assert len(await cache.read_anonymous()) == 1


@pytest.mark.asyncio
async def test_merge_fetch_failure_changes_nothing(
    reconciler: PinReconciler,
    cache: LocalPinCache,
    remote: FakeRemoteStore,
    store: MemoryKeyValueStore,
    alice: Identity,
) -> None:
    await cache.write_anonymous([make_pin(1)])
    remote.fail_fetch = True
    before = dict(store.data)

    with pytest.raises(RemoteUnavailableError):
        await reconciler.merge_local_pins_to_remote(alice, online=True)

    assert store.data == before
    assert remote.replace_calls == []


@pytest.mark.asyncio
async def test_merge_upload_failure_keeps_anonymous_slot_and_marks_pending(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.partitions[alice.user_id] = [make_pin(2)]
    await cache.write_anonymous([make_pin(1)])
    remote.fail_insert = True

    with pytest.raises(RemoteUnavailableError):
        await reconciler.merge_local_pins_to_remote(alice, online=True)

    assert _timestamps(await cache.read_anonymous()) == [1]
    assert _timestamps(await cache.read_signed_in_cache()) == [2, 1]
    assert await cache.is_pending() is True

    remote.fail_insert = False
    assert await reconciler.run_pending_sync(alice, online=True) is True
    assert _timestamps(remote.remote_pins(alice.user_id)) == [2, 1]


@pytest.mark.asyncio
async def test_merge_replays_pending_writes_first(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    await reconciler.save_pins([make_pin(40)], alice, online=False)
    await cache.write_anonymous([make_pin(1)])

    await reconciler.merge_local_pins_to_remote(alice, online=True)

    assert _timestamps(remote.remote_pins(alice.user_id)) == [40, 1]


@pytest.mark.asyncio
async def test_merge_aborts_when_pending_replay_fails(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    await reconciler.save_pins([make_pin(40)], alice, online=False)
    await cache.write_anonymous([make_pin(1)])
    remote.fail_delete = True

    with pytest.raises(RemoteUnavailableError, match="merge aborted"):
        await reconciler.merge_local_pins_to_remote(alice, online=True)

    assert remote.fetch_calls == []
    assert _timestamps(await cache.read_anonymous()) == [1]


# ---------------------------------------------------------------------------
# Logout snapshot, counts and status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_copy_cache_to_local_snapshots_signed_in_cache(
    reconciler: PinReconciler, cache: LocalPinCache, store: MemoryKeyValueStore, alice: Identity
) -> None:
    await cache.write_anonymous([make_pin(1)])
    await reconciler.save_pins([make_pin(2), make_pin(3)], alice, online=False)

    await reconciler.copy_cache_to_local_on_logout()

    assert _timestamps(await reconciler.load_pins(None, online=True)) == [3, 2]
    assert store.data[SIGNED_IN_CACHE_KEY] == store.data["@pinnit_pins"]
    assert _timestamps(await cache.read_signed_in_cache()) == [3, 2]


@pytest.mark.asyncio
async def test_copy_cache_without_cache_leaves_anonymous_slot(
    reconciler: PinReconciler, cache: LocalPinCache
) -> None:
    await cache.write_anonymous([make_pin(1)])

    await reconciler.copy_cache_to_local_on_logout()

    assert _timestamps(await cache.read_anonymous()) == [1]


@pytest.mark.asyncio
async def test_local_only_count_is_zero_while_anonymous(reconciler: PinReconciler, cache: LocalPinCache) -> None:
    await cache.write_anonymous([make_pin(1), make_pin(2)])

    assert await reconciler.get_local_only_pins_count(None) == 0


@pytest.mark.asyncio
async def test_status_reports_pending_and_counts(
    reconciler: PinReconciler, cache: LocalPinCache, alice: Identity
) -> None:
    await cache.write_anonymous([make_pin(1)])
    await reconciler.save_pins([make_pin(2)], alice, online=False)

    status = await reconciler.status(alice)

    assert status.signed_in is True
    assert status.pending is True
    assert status.last_sync_at is None
    assert status.local_only_count == 1


@pytest.mark.asyncio
async def test_storage_failures_propagate(alice: Identity) -> None:
    store = MemoryKeyValueStore({SIGNED_IN_CACHE_KEY: "{not json", PENDING_SYNC_KEY: "1"})
    reconciler = PinReconciler(LocalPinCache(store), FakeRemoteStore(), clock=lambda: FIXED_NOW)

    with pytest.raises(StorageError):
        await reconciler.load_pins(alice, online=False)
    with pytest.raises(StorageError):
        await reconciler.run_pending_sync(alice, online=True)


@pytest.mark.asyncio
async def test_cached_pins_get_current_created_at(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    three_hours = 3 * 60 * 60 * 1000
    await cache.write_signed_in_cache([make_pin(FIXED_NOW - three_hours).model_copy(update={"created_at": "stale"})])
    remote.fail_fetch = True

    online_pins = await reconciler.load_pins(alice, online=True)
    offline_pins = await reconciler.load_pins(alice, online=False)

    assert online_pins[0].created_at == "Pinned 3 hours ago"
    assert offline_pins[0].created_at == "Pinned 3 hours ago"


@pytest.mark.asyncio
async def test_remote_pins_get_created_at_from_reconciler_clock(
    reconciler: PinReconciler, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.partitions[alice.user_id] = [make_pin(FIXED_NOW - 5 * 60 * 1000)]

    pins = await reconciler.load_pins(alice, online=True)

    assert pins[0].created_at == "Pinned 5 mins ago"


# ---------------------------------------------------------------------------
# Expired access tokens
# ---------------------------------------------------------------------------


def _refreshing_reconciler(
    cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> tuple[PinReconciler, FakeSessionProvider]:
    session = FakeSessionProvider(alice)
    session.refreshed = alice.model_copy(update={"access_token": "token-alice-2"})
    remote.valid_tokens = {"token-alice-2"}
    reconciler = PinReconciler(cache, remote, clock=lambda: FIXED_NOW, refresh_identity=session.refresh)
    return reconciler, session


@pytest.mark.asyncio
async def test_rejected_token_on_load_is_refreshed_and_retried(
    cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.partitions[alice.user_id] = [make_pin(10)]
    reconciler, session = _refreshing_reconciler(cache, remote, alice)

    pins = await reconciler.load_pins(alice, online=True)

    assert _timestamps(pins) == [10]
    assert session.refresh_calls == 1
    assert remote.fetch_calls == [alice.user_id, alice.user_id]
    assert await cache.get_last_sync_at() == FIXED_NOW


@pytest.mark.asyncio
async def test_rejected_token_on_save_is_refreshed_and_retried(
    cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    reconciler, session = _refreshing_reconciler(cache, remote, alice)

    await reconciler.save_pins([make_pin(1)], alice, online=True)

    assert _timestamps(remote.remote_pins(alice.user_id)) == [1]
    assert await cache.is_pending() is False
    assert session.refresh_calls == 1


@pytest.mark.asyncio
async def test_rejected_token_without_refresh_keeps_pending(
    reconciler: PinReconciler, cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    remote.valid_tokens = {"some-other-token"}

    await reconciler.save_pins([make_pin(1)], alice, online=True)

    assert await cache.is_pending() is True
    assert len(remote.replace_calls) == 1


@pytest.mark.asyncio
async def test_refresh_returning_same_token_is_not_retried(
    cache: LocalPinCache, remote: FakeRemoteStore, alice: Identity
) -> None:
    session = FakeSessionProvider(alice)
    remote.valid_tokens = set()
    remote.partitions[alice.user_id] = [make_pin(10)]
    await cache.write_signed_in_cache([make_pin(7)])
    reconciler = PinReconciler(cache, remote, clock=lambda: FIXED_NOW, refresh_identity=session.refresh)

    pins = await reconciler.load_pins(alice, online=True)

    assert _timestamps(pins) == [7]
    assert session.refresh_calls == 1
    assert remote.fetch_calls == [alice.user_id]
