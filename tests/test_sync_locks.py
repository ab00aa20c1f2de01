from codetrack.services.sync_locks import InMemoryInFlightLocks, RedisInFlightLocks, sync_key


class FakeRedis:
    """Just enough of the redis.asyncio client for the lock table."""

    def __init__(self):
        self.values = {}
        self.ttls = {}

    async def set(self, name, value, nx=False, px=None):
        if nx and name in self.values:
            return None
        self.values[name] = value
        self.ttls[name] = px
        return True

    async def eval(self, script, numkeys, name, token):
        if self.values.get(name) == token:
            del self.values[name]
            self.ttls.pop(name, None)
            return 1
        return 0

    async def pttl(self, name):
        return self.ttls.get(name, -2) if name in self.values else -2


def test_sync_key_format():
    assert sync_key(7, 'leetcode') == 'sync:7:leetcode'


async def test_in_memory_locks_exclude_same_key_only():
    locks = InMemoryInFlightLocks(ttl_seconds=30)
    assert await locks.acquire('sync:1:leetcode')
    assert not await locks.acquire('sync:1:leetcode')
    assert await locks.acquire('sync:1:github')
    assert 29 <= await locks.remaining_seconds('sync:1:leetcode') <= 30

    await locks.release('sync:1:leetcode')
    assert await locks.remaining_seconds('sync:1:leetcode') == 0
    assert await locks.acquire('sync:1:leetcode')


async def test_redis_locks_set_nx_with_ttl():
    client = FakeRedis()
    locks = RedisInFlightLocks(client, ttl_seconds=120, prefix='test')

    assert await locks.acquire('sync:1:leetcode')
    assert client.ttls['test:sync:1:leetcode'] == 120000
    assert not await locks.acquire('sync:1:leetcode')
    assert await locks.remaining_seconds('sync:1:leetcode') == 120

    await locks.release('sync:1:leetcode')
    assert 'test:sync:1:leetcode' not in client.values
    assert await locks.remaining_seconds('sync:1:leetcode') == 0


async def test_redis_release_leaves_foreign_marker():
    client = FakeRedis()
    first = RedisInFlightLocks(client, ttl_seconds=60, prefix='test')
    second = RedisInFlightLocks(client, ttl_seconds=60, prefix='test')

    assert await first.acquire('sync:2:codechef')
    await second.release('sync:2:codechef')
    assert 'test:sync:2:codechef' in client.values

    # Marker expired and was taken over by another worker
    client.values['test:sync:2:codechef'] = 'someone-else'
    await first.release('sync:2:codechef')
    assert client.values['test:sync:2:codechef'] == 'someone-else'
