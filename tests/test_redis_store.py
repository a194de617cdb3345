import asyncio
import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from greenwatt.core.exceptions import StoreRejectedError, StoreUnavailableError
from greenwatt.core.redis_client import RedisDeviceStore
from greenwatt.services.device_registry import DeviceRegistry
from tests.mocks.mock_devices import make_device
from tests.mocks.mock_redis import MockRedis


async def next_change(changes):
    return await changes.__anext__()


async def test_save_and_load_keep_insertion_order():
    client = MockRedis()
    store = RedisDeviceStore(client)
    await store.save("user-1", make_device(id="b", name="Bedroom Light"))
    await store.save("user-1", make_device(id="a", name="Attic Light"))
    await store.save("user-1", make_device(id="b", name="Bedside Lamp"))

    devices = await store.load_all("user-1")

    assert [device.id for device in devices] == ["b", "a"]
    assert devices[0].name == "Bedside Lamp"
    assert client.lists["users:user-1:devices:order"] == ["b", "a"]
    assert len(client.published) == 3


async def test_users_are_isolated():
    store = RedisDeviceStore(MockRedis())
    await store.save("user-1", make_device(id="lamp"))
    assert await store.load_all("user-2") == []


async def test_delete():
    client = MockRedis()
    store = RedisDeviceStore(client)
    await store.save("user-1", make_device(id="lamp"))
    await store.delete("user-1", "lamp")

    assert await store.load_all("user-1") == []
    channel, message = client.published[-1]
    assert channel == "users:user-1:devices:changes"
    assert json.loads(message)["op"] == "delete"


async def test_missing_document_is_skipped():
    client = MockRedis()
    store = RedisDeviceStore(client)
    await store.save("user-1", make_device(id="lamp"))
    client.lists["users:user-1:devices:order"].append("ghost")
    assert [device.id for device in await store.load_all("user-1")] == ["lamp"]


async def test_errors_are_translated():
    client = MockRedis()
    store = RedisDeviceStore(client)

    client.fail_with = ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
    with pytest.raises(StoreRejectedError):
        await store.save("user-1", make_device(id="lamp"))

    client.fail_with = RedisConnectionError("Connection refused")
    with pytest.raises(StoreUnavailableError):
        await store.delete("user-1", "lamp")

    client.fail_with = RedisConnectionError("Connection refused")
    with pytest.raises(StoreUnavailableError):
        await store.load_all("user-1")


async def test_watch_skips_own_changes():
    client = MockRedis()
    store = RedisDeviceStore(client)
    other = RedisDeviceStore(client)

    changes = store.watch("user-1")
    pending = asyncio.create_task(next_change(changes))
    for _ in range(5):
        await asyncio.sleep(0)

    await store.save("user-1", make_device(id="local"))
    await client.publish("users:user-1:devices:changes", "not json")
    await other.save("user-1", make_device(id="remote", name="Porch Light"))

    change = await asyncio.wait_for(pending, timeout=1)
    assert change.op == "upsert"
    assert change.id == "remote"
    assert change.device["name"] == "Porch Light"
    assert change.origin == other.origin

    await changes.aclose()
    assert client.subscribers["users:user-1:devices:changes"] == []


async def test_retried_register_keeps_device_indexed(clock, sleep):
    client = MockRedis()
    client.fail_on["rpush"] = RedisConnectionError("Connection reset by peer")
    registry = DeviceRegistry(RedisDeviceStore(client), "user-1", clock=clock, sleep=sleep,
                              sync_attempts=3, sync_backoff=0.5)

    await registry.register(make_device(id="lamp"))

    assert sleep.delays == [0.5]
    assert client.lists["users:user-1:devices:order"] == ["lamp"]
    reloaded = await RedisDeviceStore(client).load_all("user-1")
    assert [device.id for device in reloaded] == ["lamp"]


async def test_retried_publish_does_not_duplicate_order():
    client = MockRedis()
    store = RedisDeviceStore(client)
    client.fail_on["publish"] = RedisConnectionError("Connection reset by peer")

    with pytest.raises(StoreUnavailableError):
        await store.save("user-1", make_device(id="lamp"))
    await store.save("user-1", make_device(id="lamp"))

    assert client.lists["users:user-1:devices:order"] == ["lamp"]
