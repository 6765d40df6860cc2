import json
from unittest.mock import MagicMock

from parlay_server.services.cache import RedisCache, TTLCache, build_cache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTTLCache:
    def test_hit_then_expiry(self):
        clock = FakeClock()
        cache = TTLCache(ttl=30, clock=clock)
        cache.set("m1", {"question": "Q?"})

        clock.now += 29
        assert cache.get("m1") == {"question": "Q?"}

        clock.now += 1
        assert cache.get("m1") is None
        assert len(cache) == 0

    def test_miss(self):
        assert TTLCache().get("unknown") is None

    def test_oldest_entry_is_evicted(self):
        cache = TTLCache(ttl=30, max_entries=2, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_invalidate(self):
        cache = TTLCache(clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2

        cache.invalidate()
        assert len(cache) == 0

    def test_instances_do_not_share_state(self):
        first, second = TTLCache(), TTLCache()
        first.set("a", 1)
        assert second.get("a") is None


class TestRedisCache:
    def test_set_uses_setex(self):
        client = MagicMock()
        RedisCache(client, ttl=30).set("m1", {"yes_price": 0.5})
        client.setex.assert_called_once_with("market:m1", 30, json.dumps({"yes_price": 0.5}))

    def test_get(self):
        client = MagicMock()
        client.get.side_effect = lambda key: b'{"yes_price": 0.5}' if key == "market:m1" else None
        cache = RedisCache(client)

        assert cache.get("m1") == {"yes_price": 0.5}
        assert cache.get("m2") is None

    def test_invalidate_all_scans_prefix(self):
        client = MagicMock()
        client.scan_iter.return_value = iter([b"market:a", b"market:b"])
        RedisCache(client).invalidate()

        client.scan_iter.assert_called_once_with(match="market:*")
        client.delete.assert_called_once_with(b"market:a", b"market:b")


def test_build_cache():
    assert isinstance(build_cache(None), TTLCache)
    assert isinstance(build_cache("redis://localhost:6379/0"), RedisCache)
