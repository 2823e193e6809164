"""
Type-safe wrapper classes for Discord identifiers.

Guild, channel, role and user ids are all Discord snowflakes: unsigned 64-bit
integers. Wrapping them keeps a channel id from being passed where a role id
is expected, while still comparing and hashing equal to the plain integer so
they can be looked up with values that come straight from discord objects.
"""

from __future__ import annotations

from typing import Union

SNOWFLAKE_MAX = 2 ** 64 - 1


class Snowflake:
    """
    Base class for 64-bit Discord snowflake ids.

    Attributes:
        _value (int): The validated snowflake value.

    Example:
        >>> gid = GuildID(123456789012345678)
        >>> gid.to_int()
        123456789012345678
        >>> str(gid)
        '123456789012345678'
        >>> gid == 123456789012345678
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Initialize a snowflake from a string, int, or another snowflake.

        Args:
            value: The snowflake as a decimal string, int, or Snowflake.

        Raises:
            ValueError: If the value is not an integer in the unsigned 64-bit range.
        """
        if isinstance(value, Snowflake):
            self._value = value._value
            return

        # bool is an int subclass; True is not a snowflake
        if isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        if isinstance(value, int):
            number = value
        elif isinstance(value, str):
            number = int(value.strip())
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

        if not 0 <= number <= SNOWFLAKE_MAX:
            raise ValueError(f"{type(self).__name__} out of 64-bit range: {number}")
        self._value = number

    def to_int(self) -> int:
        """Return the snowflake as an integer for Discord API calls."""
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, bool):
            return NotImplemented
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: "Snowflake") -> bool:
        if isinstance(other, Snowflake):
            return self._value < other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(Snowflake):
    """Snowflake id of a Discord guild (server)."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Snowflake id of a Discord channel or channel category."""

    __slots__ = ()


class RoleID(Snowflake):
    """Snowflake id of a Discord role."""

    __slots__ = ()


class UserID(Snowflake):
    """Snowflake id of a Discord user or guild member."""

    __slots__ = ()
