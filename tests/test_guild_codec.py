import json

import pytest

from chillbot.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.repositories.errors import GuildRecordFormatError
from chillbot.repositories.guild_codec import decode_guild, encode_guild, guild_to_dict


GUILD = GuildID(7)


def test_decode_full_record():
    payload = json.dumps(
        {
            "OptinCreatorsRoles": [11, 12],
            "OptinUpdatersRoles": [13],
            "OptinParentCatgory": 100,
            "WelcomeChannel": 200,
            "AnnouncementChannel": 300,
        }
    ).encode()

    record = decode_guild(GUILD, payload)

    assert record.guild_id == GUILD
    assert record.optin_creators_roles == {RoleID(11), RoleID(12)}
    assert record.optin_updaters_roles == {RoleID(13)}
    assert record.optin_parent_category == ChannelID(100)
    assert record.welcome_channel == ChannelID(200)
    assert record.announcement_channel == ChannelID(300)


def test_decode_empty_object_means_everything_disabled():
    record = decode_guild(GUILD, b"{}")

    assert record.optin_creators_roles == set()
    assert record.optin_updaters_roles == set()
    assert record.optin_parent_category is None
    assert record.welcome_channel is None
    assert record.announcement_channel is None


def test_decode_ignores_unknown_fields():
    record = decode_guild(GUILD, b'{"SomethingNew": {"nested": true}, "WelcomeChannel": 5}')
    assert record.welcome_channel == ChannelID(5)


def test_decode_accepts_max_snowflake():
    record = decode_guild(GUILD, json.dumps({"WelcomeChannel": 2 ** 64 - 1}).encode())
    assert record.welcome_channel.to_int() == 2 ** 64 - 1


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"OptinCreatorsRoles": [1, "two"]}, "OptinCreatorsRoles"),
        ({"OptinUpdatersRoles": 5}, "OptinUpdatersRoles"),
        ({"OptinCreatorsRoles": [True]}, "OptinCreatorsRoles"),
        ({"OptinParentCatgory": "100"}, "OptinParentCatgory"),
        ({"WelcomeChannel": -1}, "WelcomeChannel"),
        ({"AnnouncementChannel": 2 ** 64}, "AnnouncementChannel"),
        ({"WelcomeChannel": 1.5}, "WelcomeChannel"),
        ({"WelcomeChannel": False}, "WelcomeChannel"),
        ({"WelcomeChannel": None}, "WelcomeChannel"),
    ],
)
def test_decode_rejects_wrong_shapes(payload, field):
    with pytest.raises(GuildRecordFormatError) as excinfo:
        decode_guild(GUILD, json.dumps(payload).encode())

    assert excinfo.value.field_name == field
    assert excinfo.value.guild_id == GUILD
    assert isinstance(excinfo.value, ValueError)


@pytest.mark.parametrize("payload", [b"not json", b"[1, 2]", b"\xff\xfe", b"42"])
def test_decode_rejects_non_object_payloads(payload):
    with pytest.raises(GuildRecordFormatError):
        decode_guild(GUILD, payload)


def test_encode_is_sparse():
    record = GuildRecord(guild_id=GUILD, welcome_channel=ChannelID(9))

    assert json.loads(encode_guild(record)) == {"WelcomeChannel": 9}


def test_encode_sorts_role_lists_and_keeps_misspelled_key():
    record = GuildRecord(
        guild_id=GUILD,
        optin_creators_roles={RoleID(30), RoleID(10), RoleID(20)},
        optin_parent_category=ChannelID(100),
    )

    data = guild_to_dict(record)

    assert data["OptinCreatorsRoles"] == [10, 20, 30]
    assert data["OptinParentCatgory"] == 100
    assert "OptinUpdatersRoles" not in data


def test_encoded_record_decodes_to_same_values():
    record = GuildRecord(
        guild_id=GUILD,
        optin_creators_roles={RoleID(1)},
        optin_updaters_roles={RoleID(2), RoleID(3)},
        optin_parent_category=ChannelID(4),
        announcement_channel=ChannelID(5),
    )

    assert decode_guild(GUILD, encode_guild(record, indent=2)) == record
