import pytest

from chillbot.cache.guild_cache import GuildMemoryCache
from chillbot.datatypes.discord_datatypes import GuildID


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


def test_miss_on_empty_cache(clock):
    cache = GuildMemoryCache(clock=clock)
    assert cache.try_get(GuildID(1)) == (None, False)


def test_hit_before_ttl_and_miss_after(clock):
    cache = GuildMemoryCache(clock=clock)

    cache.set(GuildID(1), "listing", ttl=1.0)
    assert cache.try_get(GuildID(1)) == ("listing", True)

    clock.advance(0.999)
    assert cache.try_get(GuildID(1)) == ("listing", True)

    clock.advance(0.001)
    assert cache.try_get(GuildID(1)) == (None, False)
    # Expired entries are evicted on read
    assert len(cache) == 0


def test_set_overwrites_and_returns_value(clock):
    cache = GuildMemoryCache(clock=clock)

    cache.set(GuildID(1), "old", ttl=10)
    assert cache.set(GuildID(1), "new", ttl=10) == "new"
    assert cache.try_get(GuildID(1)) == ("new", True)


def test_default_ttl_used_when_not_given(clock):
    cache = GuildMemoryCache(default_ttl=5.0, clock=clock)

    cache.set(GuildID(1), "value")
    clock.advance(5.0)

    assert cache.try_get(GuildID(1)) == (None, False)


def test_set_sweeps_expired_entries_of_other_guilds(clock):
    cache = GuildMemoryCache(clock=clock)
    cache.set(GuildID(1), "never read again", ttl=1.0)
    cache.set(GuildID(3), "kept", ttl=60)

    clock.advance(2.0)
    cache.set(GuildID(2), "fresh", ttl=1.0)

    assert len(cache) == 2
    assert cache.try_get(GuildID(3)) == ("kept", True)
    assert cache.try_get(GuildID(2)) == ("fresh", True)


def test_no_ttl_never_expires(clock):
    cache = GuildMemoryCache(clock=clock)

    cache.set(GuildID(1), "forever")
    clock.advance(10 ** 9)

    assert cache.try_get(GuildID(1)) == ("forever", True)


def test_remove_invalidates_entry(clock):
    cache = GuildMemoryCache(clock=clock)
    cache.set(GuildID(55), "old projection", ttl=60)

    assert cache.remove(GuildID(55)) is True
    assert cache.try_get(GuildID(55)) == (None, False)
    assert cache.remove(GuildID(55)) is False


def test_entries_are_per_guild(clock):
    cache = GuildMemoryCache(clock=clock)
    cache.set(GuildID(1), "a", ttl=60)
    cache.set(GuildID(2), "b", ttl=60)

    cache.remove(GuildID(1))

    assert cache.try_get(GuildID(2)) == ("b", True)


def test_negative_ttl_rejected(clock):
    cache = GuildMemoryCache(clock=clock)
    with pytest.raises(ValueError):
        cache.set(GuildID(1), "x", ttl=-1)


def test_clear_and_stats(clock):
    cache = GuildMemoryCache(default_ttl=30, clock=clock)
    cache.set(GuildID(1), "a")
    cache.set(GuildID(2), "b")
    cache.try_get(GuildID(1))
    cache.try_get(GuildID(3))

    stats = cache.get_cache_stats()
    assert stats == {"size": 2, "hits": 1, "misses": 1, "default_ttl": 30}

    assert cache.clear() == 2
    assert len(cache) == 0
