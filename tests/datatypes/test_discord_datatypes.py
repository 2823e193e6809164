import pytest

from chillbot.datatypes.discord_datatypes import ChannelID, GuildID, RoleID, UserID


def test_guildid_from_int_and_str_and_equality_and_hash():
    g1 = GuildID(12345)
    assert g1.to_int() == 12345
    assert str(g1) == "12345"

    g2 = GuildID("12345")
    assert g1 == g2
    assert hash(g1) == hash(g2) == hash(12345)

    # equality with raw ints
    assert g1 == 12345
    assert g1 != 54321


def test_ids_never_equal_strings():
    # A string key hashes differently, so it must not compare equal either
    assert GuildID(5) != "5"
    assert "5" not in {GuildID(5): "x"}


def test_copy_from_other_snowflake():
    role = RoleID(5)
    assert RoleID(role) == role


def test_different_id_kinds_are_not_equal():
    assert GuildID(1) != ChannelID(1)
    assert RoleID(1) != UserID(1)


def test_ids_are_usable_as_dict_keys_with_raw_ints():
    mapping = {GuildID(42): "x"}
    assert mapping[42] == "x"


def test_ordering():
    assert sorted([RoleID(3), RoleID(1), RoleID(2)]) == [RoleID(1), RoleID(2), RoleID(3)]


@pytest.mark.parametrize("bad", [-1, 2 ** 64, "abc", "", 1.5, None, True, False])
def test_invalid_values_raise(bad):
    with pytest.raises(ValueError):
        GuildID(bad)


def test_boundaries_accepted():
    assert GuildID(0).to_int() == 0
    assert GuildID(2 ** 64 - 1).to_int() == 2 ** 64 - 1


def test_repr_names_type():
    assert repr(UserID(9)) == "UserID(9)"
