import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError, TimeoutError as RedisTimeoutError
import logging
from typing import AsyncIterator, List, Optional
import json

from greenwatt.core.config import settings
from greenwatt.core.device_store import DeviceChange, DeviceStore
from greenwatt.core.exceptions import StoreRejectedError, StoreUnavailableError
from greenwatt.models.device import Device

logger = logging.getLogger(__name__)

# Global Redis client
redis_client: Optional[redis.Redis] = None


async def init_redis() -> redis.Redis:
    """Initialize Redis connection"""
    global redis_client

    try:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            password=settings.REDIS_PASSWORD,
            db=settings.REDIS_DB,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30
        )

        # Test connection
        await redis_client.ping()
        logger.info("Redis connection established successfully")
        return redis_client

    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        raise


async def close_redis() -> None:
    """Close Redis connection"""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis connection closed")


class RedisDeviceStore(DeviceStore):
    """Device store backed by one Redis hash per user plus a change channel"""

    def __init__(self, client: redis.Redis):
        super().__init__()
        self.client = client

    @staticmethod
    def devices_key(user_id: str) -> str:
        return f"users:{user_id}:devices"

    @staticmethod
    def order_key(user_id: str) -> str:
        return f"users:{user_id}:devices:order"

    @staticmethod
    def channel(user_id: str) -> str:
        return f"users:{user_id}:devices:changes"

    async def load_all(self, user_id: str) -> List[Device]:
        """Read every device document in insertion order"""
        try:
            device_ids = await self.client.lrange(self.order_key(user_id), 0, -1)
            if not device_ids:
                return []
            documents = await self.client.hmget(self.devices_key(user_id), device_ids)
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise StoreUnavailableError(f"Redis unavailable: {e}") from e

        devices = []
        for device_id, raw in zip(device_ids, documents):
            if raw is None:
                logger.warning(f"Device {device_id} listed in order index but missing from store")
                continue
            try:
                devices.append(Device.from_dict(json.loads(raw), device_id))
            except ValueError as e:
                logger.error(f"Skipping malformed device document {device_id}: {e}")
        return devices

    async def save(self, user_id: str, device: Device) -> None:
        """Write a device document and announce the change"""
        payload = device.to_dict()
        try:
            await self.client.hset(self.devices_key(user_id), device.id, json.dumps(payload))
            # Index on every save, hset reports nothing new when a save is retried
            if await self.client.lpos(self.order_key(user_id), device.id) is None:
                await self.client.rpush(self.order_key(user_id), device.id)
            await self._publish(user_id, DeviceChange(op="upsert", id=device.id, device=payload, origin=self.origin))
        except ResponseError as e:
            raise StoreRejectedError(f"Redis rejected write of device {device.id}: {e}") from e
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise StoreUnavailableError(f"Redis unavailable: {e}") from e

    async def delete(self, user_id: str, device_id: str) -> None:
        """Remove a device document and announce the change"""
        try:
            await self.client.hdel(self.devices_key(user_id), device_id)
            await self.client.lrem(self.order_key(user_id), 0, device_id)
            await self._publish(user_id, DeviceChange(op="delete", id=device_id, origin=self.origin))
        except ResponseError as e:
            raise StoreRejectedError(f"Redis rejected delete of device {device_id}: {e}") from e
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise StoreUnavailableError(f"Redis unavailable: {e}") from e

    async def watch(self, user_id: str) -> AsyncIterator[DeviceChange]:
        """Yield device changes published by other replicas"""
        pubsub = self.client.pubsub()
        await pubsub.subscribe(self.channel(user_id))
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    change = DeviceChange.model_validate_json(message["data"])
                except ValueError as e:
                    logger.error(f"Ignoring malformed change notification: {e}")
                    continue
                if change.origin == self.origin:
                    continue
                yield change
        finally:
            await pubsub.unsubscribe(self.channel(user_id))
            await pubsub.aclose()

    async def _publish(self, user_id: str, change: DeviceChange) -> None:
        await self.client.publish(self.channel(user_id), change.model_dump_json())
