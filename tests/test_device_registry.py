import asyncio
from datetime import time

import pytest

from greenwatt.core.device_store import DeviceChange
from greenwatt.core.exceptions import InvalidStateError, NotFoundError, SyncFailureError
from greenwatt.models.device import (
    DayOfWeek, DeviceCategory, DeviceSchedule, ScheduleAction, ScheduleItem
)
from greenwatt.services.device_registry import DEMO_DEVICES, DeviceRegistry
from tests.mocks.mock_devices import make_device


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


async def test_register_generates_id_and_persists(registry, store):
    device = await registry.register(make_device())
    assert device.id
    assert device.id in registry
    stored = await store.load_all("user-1")
    assert [d.id for d in stored] == [device.id]


async def test_register_duplicate_id(registry):
    await registry.register(make_device(id="lamp"))
    with pytest.raises(InvalidStateError):
        await registry.register(make_device(id="lamp"))
    assert len(registry) == 1


async def test_register_rejects_off_device_with_draw(registry):
    device = make_device(id="lamp").model_copy(update={"current_usage": 5.0})
    with pytest.raises(InvalidStateError):
        await registry.register(device)
    assert "lamp" not in registry


async def test_on_device_must_draw_power(registry):
    dark = make_device(id="tv", category=DeviceCategory.ELECTRONICS, watts=120.0, is_on=True)
    with pytest.raises(InvalidStateError):
        await registry.register(dark.model_copy(update={"current_usage": 0.0}))
    assert "tv" not in registry

    tv = await registry.register(dark)
    with pytest.raises(InvalidStateError):
        await registry.update(tv.model_copy(update={"current_usage": 0.0}))
    assert registry.get("tv").current_usage == 120.0


async def test_unknown_device(registry):
    with pytest.raises(NotFoundError):
        registry.get("missing")
    with pytest.raises(NotFoundError):
        await registry.toggle("missing")
    with pytest.raises(NotFoundError):
        await registry.remove("missing")


async def test_toggle_follows_average_usage(registry, clock):
    await registry.register(make_device(id="lamp", watts=60.0))
    clock.advance(30)

    on = await registry.toggle("lamp")
    assert on.is_on
    assert on.current_usage == 60.0
    assert on.last_updated == clock.now()

    off = await registry.toggle("lamp")
    assert not off.is_on
    assert off.current_usage == 0.0


async def test_toggle_without_usage_profile(registry):
    await registry.register(make_device(id="plug", watts=0.0))
    with pytest.raises(InvalidStateError):
        await registry.toggle("plug")
    assert registry.get("plug").is_on is False


async def test_snapshot_is_not_affected_by_later_mutations(registry):
    await registry.register(make_device(id="lamp"))
    snapshot = registry.snapshot()
    await registry.toggle("lamp")
    assert snapshot[0].is_on is False
    assert registry.get("lamp").is_on is True


async def test_set_power_is_noop_in_wanted_state(registry, store):
    await registry.register(make_device(id="lamp"))
    writes = store.writes
    device = await registry.set_power("lamp", False)
    assert device.is_on is False
    assert store.writes == writes

    device = await registry.set_power("lamp", True)
    assert device.is_on is True
    assert store.writes == writes + 1


async def test_rejected_write_rolls_back(registry, store):
    await registry.register(make_device(id="lamp"))
    store.reject_next()

    with pytest.raises(SyncFailureError) as excinfo:
        await registry.toggle("lamp")

    assert excinfo.value.rolled_back
    assert registry.get("lamp").is_on is False
    stored = await store.load_all("user-1")
    assert stored[0].is_on is False


async def test_rejected_register_is_rolled_back(registry, store):
    store.reject_next()
    with pytest.raises(SyncFailureError):
        await registry.register(make_device(id="lamp"))
    assert len(registry) == 0


async def test_rejected_remove_restores_position(registry, store):
    for device_id in ("a", "b", "c"):
        await registry.register(make_device(id=device_id))
    store.reject_next()

    with pytest.raises(SyncFailureError):
        await registry.remove("b")

    assert [d.id for d in registry.devices()] == ["a", "b", "c"]


async def test_remove(registry, store):
    await registry.register(make_device(id="a"))
    await registry.register(make_device(id="b"))
    await registry.remove("a")
    assert [d.id for d in registry.devices()] == ["b"]
    assert [d.id for d in await store.load_all("user-1")] == ["b"]


async def test_unavailable_store_is_retried_with_backoff(registry, store, sleep):
    await registry.register(make_device(id="lamp"))
    store.drop_next(2)

    device = await registry.toggle("lamp")

    assert device.is_on
    assert sleep.delays == [0.5, 1.0]
    assert store.writes == 4


async def test_retries_exhausted_keeps_optimistic_state(registry, store, sleep):
    await registry.register(make_device(id="lamp"))
    store.drop_next(3)

    with pytest.raises(SyncFailureError) as excinfo:
        await registry.toggle("lamp")

    assert excinfo.value.rolled_back is False
    assert registry.get("lamp").is_on is True
    assert sleep.delays == [0.5, 1.0]


async def test_update_replaces_device(registry):
    await registry.register(make_device(id="lamp", watts=60.0))
    updated = make_device(id="lamp", name="Reading Lamp", watts=40.0, is_on=True)
    await registry.update(updated)
    device = registry.get("lamp")
    assert device.name == "Reading Lamp"
    assert device.current_usage == 40.0


async def test_update_unknown_device(registry):
    with pytest.raises(NotFoundError):
        await registry.update(make_device(id="ghost"))
    with pytest.raises(InvalidStateError):
        await registry.update(make_device())


async def test_favorites_are_capped(store, clock):
    registry = DeviceRegistry(store, "user-1", clock=clock, favorites_limit=2)
    await registry.register(make_device(id="plain"))
    for device_id in ("f1", "f2", "f3"):
        await registry.register(make_device(id=device_id, is_favorite=True))
    assert [d.id for d in registry.favorites()] == ["f1", "f2"]


async def test_seed_demo_only_when_empty(registry):
    seeded = await registry.seed_demo()
    assert len(seeded) == len(DEMO_DEVICES) == 10
    assert await registry.seed_demo() == []
    assert len(registry.favorites()) == 4
    for device in registry.devices():
        device.check_usage_invariant()
        if device.is_on:
            assert device.current_usage == device.average_usage


async def test_room_breakdown(registry):
    await registry.seed_demo()
    breakdown = registry.room_breakdown(0.12)
    assert breakdown[0].room == "Living Room"
    assert [room.usage for room in breakdown] == sorted((room.usage for room in breakdown), reverse=True)
    kitchen = next(room for room in breakdown if room.room == "Kitchen")
    assert kitchen.device_count == 3
    assert kitchen.active_devices == 1
    assert kitchen.usage == pytest.approx(4.98)
    assert sum(room.percentage for room in breakdown) == pytest.approx(100, abs=0.5)


async def test_load_replaces_local_state(registry, store):
    await store.save("user-1", make_device(id="a"))
    await store.save("user-1", make_device(id="b"))
    assert await registry.load() == 2
    assert [d.id for d in registry.devices()] == ["a", "b"]


async def test_apply_remote_changes(registry):
    remote = make_device(name="Garage Light")
    registry.apply_remote(DeviceChange(op="upsert", id="remote", device=remote.to_dict(), origin="other"))
    assert registry.get("remote").name == "Garage Light"

    registry.apply_remote(DeviceChange(op="delete", id="remote", origin="other"))
    assert "remote" not in registry


async def test_apply_remote_ignores_invalid_device(registry):
    broken = make_device().to_dict()
    broken["current_usage"] = 5.0
    registry.apply_remote(DeviceChange(op="upsert", id="broken", device=broken, origin="other"))
    assert "broken" not in registry


async def test_listen_follows_other_writers(registry, store):
    task = asyncio.create_task(registry.listen())
    await settle()

    # Own writes are not echoed back
    await registry.register(make_device(id="local"))
    await store.publish_remote("user-1", DeviceChange(
        op="upsert", id="remote", device=make_device(name="Hall Light").to_dict(), origin="other"
    ))
    await settle()

    assert registry.get("remote").name == "Hall Light"
    assert [d.id for d in registry.devices()] == ["local", "remote"]

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


async def test_interrupted_seed_is_completed(registry, store):
    store.reject_at(4)
    with pytest.raises(SyncFailureError):
        await registry.seed_demo()
    assert len(registry) == 3
    assert registry.needs_demo_seed()

    seeded = await registry.seed_demo()

    assert len(seeded) == 7
    assert [d.name for d in registry.devices()] == [row[0] for row in DEMO_DEVICES]
    assert not registry.needs_demo_seed()


async def test_user_devices_are_not_seeded_over(registry):
    await registry.register(make_device(id="lamp", name="My Own Lamp"))
    assert not registry.needs_demo_seed()
    assert await registry.seed_demo() == []


async def test_schedule_is_stored_and_cleared(registry, store):
    await registry.register(make_device(id="heater", category=DeviceCategory.HEATING, watts=1500.0))
    schedule = DeviceSchedule(items=[ScheduleItem(
        days=[DayOfWeek.MONDAY, DayOfWeek.FRIDAY],
        start_time=time(6, 30),
        end_time=time(8, 0),
        action=ScheduleAction.TURN_ON,
    )])

    device = await registry.set_schedule("heater", schedule)

    assert device.schedule == schedule
    stored = await store.load_all("user-1")
    assert stored[0].schedule.items[0].start_time == time(6, 30)

    cleared = await registry.set_schedule("heater", None)
    assert cleared.schedule is None
    with pytest.raises(NotFoundError):
        await registry.set_schedule("missing", schedule)


async def test_rejected_schedule_is_rolled_back(registry, store):
    await registry.register(make_device(id="heater", category=DeviceCategory.HEATING, watts=1500.0))
    store.reject_next()
    with pytest.raises(SyncFailureError):
        await registry.set_schedule("heater", DeviceSchedule(is_enabled=False))
    assert registry.get("heater").schedule is None
