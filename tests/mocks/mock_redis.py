import asyncio


class MockPubSub:
    def __init__(self, client):
        self.client = client
        self.queue = asyncio.Queue()
        self.channels = []

    async def subscribe(self, channel):
        self.channels.append(channel)
        self.client.subscribers.setdefault(channel, []).append(self.queue)
        self.queue.put_nowait({"type": "subscribe", "channel": channel, "data": 1})

    async def unsubscribe(self, channel):
        self.client.subscribers[channel].remove(self.queue)

    async def aclose(self):
        self.channels = []

    async def listen(self):
        while True:
            yield await self.queue.get()


class MockRedis:
    """Just enough of redis.asyncio.Redis for the device store"""

    def __init__(self):
        self.hashes = {}
        self.lists = {}
        self.subscribers = {}
        self.published = []
        self.fail_with = None
        self.fail_on = {}

    def _check(self, command):
        if command in self.fail_on:
            raise self.fail_on.pop(command)
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    async def hset(self, key, field, value):
        self._check("hset")
        table = self.hashes.setdefault(key, {})
        created = field not in table
        table[field] = value
        return 1 if created else 0

    async def hmget(self, key, fields):
        self._check("hmget")
        table = self.hashes.get(key, {})
        return [table.get(field) for field in fields]

    async def hdel(self, key, field):
        self._check("hdel")
        return 1 if self.hashes.get(key, {}).pop(field, None) is not None else 0

    async def rpush(self, key, value):
        self._check("rpush")
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    async def lrange(self, key, start, end):
        self._check("lrange")
        return list(self.lists.get(key, []))

    async def lpos(self, key, value):
        self._check("lpos")
        items = self.lists.get(key, [])
        return items.index(value) if value in items else None

    async def lrem(self, key, count, value):
        self._check("lrem")
        items = self.lists.get(key, [])
        removed = items.count(value)
        self.lists[key] = [item for item in items if item != value]
        return removed

    async def publish(self, channel, message):
        self._check("publish")
        self.published.append((channel, message))
        for queue in self.subscribers.get(channel, []):
            queue.put_nowait({"type": "message", "channel": channel, "data": message})
        return len(self.subscribers.get(channel, []))

    def pubsub(self):
        return MockPubSub(self)
