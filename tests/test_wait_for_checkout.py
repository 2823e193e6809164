import time

import pytest

from chillbot.datatypes.checkout_datatypes import CheckoutLocked, CheckoutNotFound, CheckoutSuccess
from chillbot.datatypes.discord_datatypes import GuildID
from chillbot.repositories.guild_repo import GuildRepository


class ScriptedRepository(GuildRepository):
    """Returns Locked a fixed number of times, then a final result."""

    def __init__(self, locked_times, final=None):
        self.locked_times = locked_times
        self.final = final
        self.calls = 0

    async def checkout(self, guild_id):
        self.calls += 1
        if self.locked_times is None or self.calls <= self.locked_times:
            return CheckoutLocked(guild_id)
        return self.final

    async def return_guild(self, record, token, commit):
        raise AssertionError("not used")


GUILD = GuildID(3)


@pytest.mark.asyncio
async def test_zero_wait_is_a_single_checkout():
    repo = ScriptedRepository(locked_times=None)

    result = await repo.wait_for_checkout(GUILD, 0)

    assert isinstance(result, CheckoutLocked)
    assert repo.calls == 1


@pytest.mark.asyncio
async def test_zero_wait_returns_non_locked_result_unchanged():
    repo = ScriptedRepository(locked_times=0, final=CheckoutNotFound(GUILD))

    result = await repo.wait_for_checkout(GUILD, 0)

    assert result == CheckoutNotFound(GUILD)
    assert repo.calls == 1


@pytest.mark.asyncio
async def test_retries_until_unlocked():
    final = CheckoutSuccess(borrowed=None)  # type: ignore[arg-type]
    repo = ScriptedRepository(locked_times=3, final=final)

    result = await repo.wait_for_checkout(GUILD, 5.0)

    assert result is final
    assert repo.calls == 4


@pytest.mark.asyncio
async def test_not_found_stops_retrying():
    repo = ScriptedRepository(locked_times=1, final=CheckoutNotFound(GUILD))

    result = await repo.wait_for_checkout(GUILD, 5.0)

    assert isinstance(result, CheckoutNotFound)
    assert repo.calls == 2


@pytest.mark.asyncio
async def test_permanently_locked_gives_up_within_max_wait():
    repo = ScriptedRepository(locked_times=None)
    max_wait = 0.1

    started = time.monotonic()
    result = await repo.wait_for_checkout(GUILD, max_wait)
    elapsed = time.monotonic() - started

    assert isinstance(result, CheckoutLocked)
    assert repo.calls > 1
    # The last retry never starts past max_wait; allow for scheduler slack
    assert elapsed < max_wait + 0.1


@pytest.mark.asyncio
async def test_delays_grow_by_half(monkeypatch):
    import chillbot.repositories.guild_repo as guild_repo

    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(guild_repo.asyncio, "sleep", fake_sleep)
    repo = ScriptedRepository(locked_times=4, final=CheckoutNotFound(GUILD))

    await repo.wait_for_checkout(GUILD, 10.0)

    assert delays == pytest.approx([0.001, 0.0015, 0.00225, 0.003375])
