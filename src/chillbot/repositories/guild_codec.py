"""
JSON encoding and decoding of :class:`GuildRecord` payloads.

The stored format is a sparse JSON object. A field that is missing means the
feature is off, so encoding leaves out every unset channel and every empty
role list instead of writing nulls. Unknown keys are ignored on read so older
builds can load records written by newer ones.

Example payload::

    {"OptinCreatorsRoles": [111, 222], "OptinParentCatgory": 333, "WelcomeChannel": 444}
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Set

from chillbot.datatypes.discord_datatypes import SNOWFLAKE_MAX, ChannelID, GuildID, RoleID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.repositories.errors import GuildRecordFormatError


class SerializationFields:
    # Keys as they exist in stored records; the category key is misspelled on disk
    OPTIN_CREATORS_ROLES = "OptinCreatorsRoles"
    OPTIN_UPDATERS_ROLES = "OptinUpdatersRoles"
    OPTIN_PARENT_CATEGORY = "OptinParentCatgory"
    WELCOME_CHANNEL = "WelcomeChannel"
    ANNOUNCEMENT_CHANNEL = "AnnouncementChannel"


def _is_snowflake(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= SNOWFLAKE_MAX


def _read_role_set(guild_id: GuildID, data: Dict[str, Any], key: str) -> Set[RoleID]:
    if key not in data:
        return set()

    values = data[key]
    if not isinstance(values, list):
        raise GuildRecordFormatError(f"{key} is expected to be an array type.", guild_id, key)

    roles: Set[RoleID] = set()
    for value in values:
        if not _is_snowflake(value):
            raise GuildRecordFormatError(
                f"Each member of {key} is expected to be an unsigned 64-bit integer, got {value!r}.",
                guild_id,
                key,
            )
        roles.add(RoleID(value))
    return roles


def _read_channel(guild_id: GuildID, data: Dict[str, Any], key: str) -> Optional[ChannelID]:
    if key not in data:
        return None

    value = data[key]
    if not _is_snowflake(value):
        raise GuildRecordFormatError(
            f"{key} is expected to be an unsigned 64-bit integer, got {value!r}.",
            guild_id,
            key,
        )
    return ChannelID(value)


def decode_guild(guild_id: GuildID, payload: bytes) -> GuildRecord:
    """
    Build a :class:`GuildRecord` from stored bytes.

    Args:
        guild_id: Id of the guild the payload was loaded for.
        payload: UTF-8 JSON bytes.

    Returns:
        GuildRecord: The decoded record.

    Raises:
        GuildRecordFormatError: If the payload is not a JSON object or a known
            field has the wrong shape.
    """
    try:
        data = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise GuildRecordFormatError(f"Guild {guild_id} payload is not valid JSON: {exc}", guild_id) from exc

    if not isinstance(data, dict):
        raise GuildRecordFormatError(
            f"Guild {guild_id} payload is expected to be an object, got {type(data).__name__}.",
            guild_id,
        )

    return GuildRecord(
        guild_id=guild_id,
        optin_creators_roles=_read_role_set(guild_id, data, SerializationFields.OPTIN_CREATORS_ROLES),
        optin_updaters_roles=_read_role_set(guild_id, data, SerializationFields.OPTIN_UPDATERS_ROLES),
        optin_parent_category=_read_channel(guild_id, data, SerializationFields.OPTIN_PARENT_CATEGORY),
        welcome_channel=_read_channel(guild_id, data, SerializationFields.WELCOME_CHANNEL),
        announcement_channel=_read_channel(guild_id, data, SerializationFields.ANNOUNCEMENT_CHANNEL),
    )


def _role_list(roles: Iterable[RoleID]) -> List[int]:
    return sorted(role.to_int() for role in roles)


def guild_to_dict(record: GuildRecord) -> Dict[str, Any]:
    """Return the sparse JSON-ready mapping for a record."""
    data: Dict[str, Any] = {}

    if record.optin_creators_roles:
        data[SerializationFields.OPTIN_CREATORS_ROLES] = _role_list(record.optin_creators_roles)
    if record.optin_updaters_roles:
        data[SerializationFields.OPTIN_UPDATERS_ROLES] = _role_list(record.optin_updaters_roles)
    if record.optin_parent_category is not None:
        data[SerializationFields.OPTIN_PARENT_CATEGORY] = record.optin_parent_category.to_int()
    if record.welcome_channel is not None:
        data[SerializationFields.WELCOME_CHANNEL] = record.welcome_channel.to_int()
    if record.announcement_channel is not None:
        data[SerializationFields.ANNOUNCEMENT_CHANNEL] = record.announcement_channel.to_int()

    return data


def encode_guild(record: GuildRecord, indent: Optional[int] = None) -> bytes:
    """Serialize a record to UTF-8 JSON bytes, omitting unset fields."""
    return json.dumps(guild_to_dict(record), indent=indent).encode("utf-8")
