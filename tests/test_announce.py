import asyncio

import pytest

from chillbot.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.optin import announce
from discord_fakes import FakeGuild, make_category, make_text_channel


def make_setup(announcement_channel=300):
    channel = make_text_channel(300, "announcements")
    guild = FakeGuild(1, channels=[channel, make_category(400)])
    record = GuildRecord(
        guild_id=GuildID(1),
        announcement_channel=ChannelID(announcement_channel) if announcement_channel is not None else None,
    )
    return guild, record, channel


def test_creation_message():
    message = announce.channel_creation_message(UserID(7), "music", "Tunes")
    assert message.startswith("<@7> created a new channel named **music** with the description \"Tunes\"")
    assert "\"/join music\"" in message


def test_rename_and_redescribe_messages():
    assert announce.channel_rename_message(UserID(7), "a", "b") == "<@7> changed the name of the **a** channel to **b**."
    assert (
        announce.channel_redescribe_message(UserID(7), "a", "old", "new")
        == "<@7> changed the description of the **a** channel from \"old\" to \"new\""
    )


@pytest.mark.asyncio
async def test_send_disables_mentions():
    guild, record, channel = make_setup()

    assert await announce.send_announcement(guild, record, "hello") is True

    channel.send.assert_awaited_once()
    allowed = channel.send.await_args.kwargs["allowed_mentions"]
    assert allowed.everyone is False
    assert allowed.users is False
    assert allowed.roles is False


@pytest.mark.asyncio
async def test_send_without_channel_is_a_noop():
    guild, record, channel = make_setup(announcement_channel=None)
    assert await announce.send_announcement(guild, record, "hello") is False

    guild, record, channel = make_setup(announcement_channel=999)
    assert await announce.send_announcement(guild, record, "hello") is False

    # A category is not a text channel
    guild, record, channel = make_setup(announcement_channel=400)
    assert await announce.send_announcement(guild, record, "hello") is False
    channel.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_scheduled_announcement_failure_is_logged_not_raised():
    guild, record, channel = make_setup()
    channel.send.side_effect = RuntimeError("discord down")

    task = announce.schedule_announcement(guild, record, "hello")
    assert task is not None
    await announce.wait_for_pending_announcements()
    await asyncio.sleep(0)

    assert task.done()
    assert task not in announce._pending_announcements


@pytest.mark.asyncio
async def test_wait_for_pending_announcements_sends_everything():
    guild, record, channel = make_setup()

    announce.schedule_announcement(guild, record, "one")
    announce.schedule_announcement(guild, record, "two")
    await announce.wait_for_pending_announcements()

    sent = [call.args[0] for call in channel.send.await_args_list]
    assert sorted(sent) == ["one", "two"]


def test_schedule_without_loop_returns_none():
    guild, record, channel = make_setup()
    assert announce.schedule_announcement(guild, record, "hello") is None


@pytest.mark.asyncio
async def test_scheduled_announcement_keeps_channel_chosen_when_scheduled():
    guild, record, channel = make_setup()

    task = announce.schedule_announcement(guild, record, "hello")
    # The record is handed back and changed before the task runs
    record.announcement_channel = None
    await task

    channel.send.assert_awaited_once()
    assert channel.send.await_args.args[0] == "hello"


@pytest.mark.asyncio
async def test_schedule_without_announcement_channel_returns_none():
    guild, record, channel = make_setup(announcement_channel=None)
    assert announce.schedule_announcement(guild, record, "hello") is None

    guild, record, channel = make_setup(announcement_channel=999)
    assert announce.schedule_announcement(guild, record, "hello") is None
