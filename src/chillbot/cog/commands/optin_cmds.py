"""
Opt-in channel cog: slash commands for creating, finding and joining opt-in channels.

Commands:
- /create, /rename, /redescribe: manage opt-in channels (Manage Channels by default)
- /join, /leave: add or remove yourself from an opt-in channel
- /list: show every opt-in channel with its description

Every command except /list checks out the guild record for the length of
the command, so two commands in the same guild never interleave. When the
record is busy the user is asked to try again instead of waiting.
"""

from __future__ import annotations

from typing import Awaitable, Callable, List, Tuple

import discord
from discord import Option
from discord.ext import commands

from chillbot.cache.optin_channel_cache import OptinChannelCacheManager
from chillbot.datatypes.checkout_datatypes import CheckoutLocked, CheckoutNotFound, CheckoutSuccess
from chillbot.datatypes.discord_datatypes import GuildID
from chillbot.datatypes.guild_datatypes import GuildRecord
from chillbot.datatypes.optin_datatypes import (
    CreateResult,
    MembershipResult,
    NameDescription,
    OptinChannelsListed,
    OptinGuildLocked,
    OptinGuildNotFound,
    OptinNoCategory,
    RenameResult,
    UpdateDescriptionResult,
)
from chillbot.optin import optin_channel
from chillbot.repositories.errors import GuildWriteConflictError
from chillbot.repositories.guild_repo import GuildRepository
from chillbot.util.logger import get_logger

logger = get_logger("optin_commands")

SUCCESS_EMOJI = "✅"
MAX_AUTOCOMPLETE_RESULTS = 25
MAX_CHOICE_NAME_LENGTH = 100

NOT_IN_GUILD = "This command can only be used in a server."
NOT_CONFIGURED = "This server has not been configured for Chill Bot yet."
TRY_AGAIN = "Please try again."
NOT_SAVED = "Your change was not saved because the server settings were busy. Please try again."
SOMETHING_WENT_WRONG = "Something went wrong trying to do this for you. File a bug report with Chill Bot."
NO_OPTIN_CATEGORY = "This server is not set up for opt-in channels."
NO_SUCH_CHANNEL = "An opt-in channel with this name does not exist."
NO_CHANNELS_YET = (
    "This server doesn't have any opt-in channels yet. "
    "Try creating one with \"/create channel-name A description of your channel!\""
)

# (commit, message, ephemeral)
CommandReply = Tuple[bool, str, bool]
GuildOperation = Callable[[discord.Guild, GuildRecord, discord.Member], Awaitable[CommandReply]]


def build_listing_message(names_descriptions: Tuple[NameDescription, ...]) -> str:
    """Render the /list reply for a non-empty listing."""
    lines = ["The opt-in channels are:"]
    for entry in names_descriptions:
        line = f" | **{entry.name}**"
        if entry.description:
            line += f" - {entry.description}"
        lines.append(line)
    lines.append(
        "Let me know if you're interested in any of them by using a command like, "
        f"\"/join {names_descriptions[-1].name}\""
    )
    return "\n".join(lines)


async def optin_channel_autocomplete(ctx: discord.AutocompleteContext) -> List[discord.OptionChoice]:
    """Suggest opt-in channel names starting with what the user typed so far."""
    cog = ctx.cog
    guild = ctx.interaction.guild
    if cog is None or guild is None:
        return []

    try:
        result = await cog.optin_cache.get_channels(guild)
    except Exception:
        # Already logged by the cache manager
        return []

    match result:
        case OptinChannelsListed(names_descriptions=names_descriptions):
            prefix = (ctx.value or "").casefold()
            matches = [entry.name for entry in names_descriptions if entry.name.casefold().startswith(prefix)]
            return [
                discord.OptionChoice(name=name[:MAX_CHOICE_NAME_LENGTH], value=name)
                for name in matches[:MAX_AUTOCOMPLETE_RESULTS]
            ]
        case _:
            return []


class OptinCog(commands.Cog):
    """Slash commands for opt-in channels."""

    def __init__(self, bot: discord.Bot, repository: GuildRepository, optin_cache: OptinChannelCacheManager):
        self.bot = bot
        self.repository = repository
        self.optin_cache = optin_cache
        logger.info("[OPTIN CMDS] Opt-in cog loaded")

    async def _run_checked_out(
        self,
        ctx: discord.ApplicationContext,
        operation: GuildOperation,
        clear_cache: bool = False,
    ) -> None:
        """Check out the guild, run ``operation`` on it, commit if it asks to and reply."""
        if ctx.guild is None:
            await ctx.respond(NOT_IN_GUILD, ephemeral=True)
            return

        guild_id = GuildID(ctx.guild.id)
        try:
            match await self.repository.checkout(guild_id):
                case CheckoutSuccess(borrowed=borrowed):
                    async with borrowed:
                        committed, message, ephemeral = await operation(ctx.guild, borrowed.instance, ctx.user)
                        borrowed.commit = committed

                    if committed and clear_cache:
                        self.optin_cache.clear_cache(guild_id)
                    await ctx.respond(message, ephemeral=ephemeral)

                case CheckoutNotFound():
                    await ctx.respond(NOT_CONFIGURED)

                case CheckoutLocked():
                    await ctx.respond(TRY_AGAIN, ephemeral=True)

        except GuildWriteConflictError:
            logger.warning("[OPTIN CMDS] Lost the lock on guild %s before saving", guild_id)
            await ctx.respond(NOT_SAVED, ephemeral=True)
        except Exception:
            logger.exception("[OPTIN CMDS] Request in guild %s dropped", guild_id)
            await ctx.respond(SOMETHING_WENT_WRONG, ephemeral=True)

    # ------------------------------------------------------------------
    # Channel management
    # ------------------------------------------------------------------

    @commands.slash_command(
        name="create",
        description="Creates a new opt-in channel.",
        default_member_permissions=discord.Permissions(manage_channels=True),
    )
    async def create(
        self,
        ctx: discord.ApplicationContext,
        channel_name: Option(str, "The name of the channel to create"),  # type: ignore
        channel_description: Option(str, "The description of the channel to create. Ideally something that explains what it is."),  # type: ignore
    ) -> None:
        async def operation(guild, record, author) -> CommandReply:
            # Who may run this is configured on the slash command itself
            outcome = await optin_channel.create_channel(
                guild, record, author, channel_name, channel_description, check_permission=False
            )
            match outcome.result:
                case CreateResult.SUCCESS:
                    return True, f"{SUCCESS_EMOJI} New channel <#{outcome.channel_id}> created. Enjoy!", False
                case CreateResult.NO_PERMISSIONS:
                    return False, "You do not have permission to create opt-in channels.", True
                case CreateResult.NO_OPTIN_CATEGORY:
                    return False, NO_OPTIN_CATEGORY, False
                case CreateResult.CHANNEL_NAME_USED:
                    return False, "An opt-in channel with this name already exists.", True

        await self._run_checked_out(ctx, operation, clear_cache=True)

    @commands.slash_command(
        name="rename",
        description="Renames an opt-in channel.",
        default_member_permissions=discord.Permissions(manage_channels=True),
    )
    async def rename(
        self,
        ctx: discord.ApplicationContext,
        current_name: Option(str, "The current name of the channel", autocomplete=optin_channel_autocomplete),  # type: ignore
        new_name: Option(str, "The new name of the channel"),  # type: ignore
    ) -> None:
        async def operation(guild, record, author) -> CommandReply:
            outcome = await optin_channel.rename_channel(
                guild, record, author, current_name, new_name, check_permission=False
            )
            match outcome.result:
                case RenameResult.SUCCESS:
                    return True, f"{SUCCESS_EMOJI} Channel <#{outcome.channel_id}> renamed.", False
                case RenameResult.NO_PERMISSIONS:
                    return False, "You do not have permission to rename opt-in channels.", True
                case RenameResult.NO_OPTIN_CATEGORY:
                    return False, NO_OPTIN_CATEGORY, False
                case RenameResult.NO_SUCH_CHANNEL:
                    return False, NO_SUCH_CHANNEL, False
                case RenameResult.NEW_CHANNEL_NAME_USED:
                    return False, "An opt-in channel with this new name already exists.", True

        await self._run_checked_out(ctx, operation, clear_cache=True)

    @commands.slash_command(
        name="redescribe",
        description="Changes the description of an opt-in channel.",
        default_member_permissions=discord.Permissions(manage_channels=True),
    )
    async def redescribe(
        self,
        ctx: discord.ApplicationContext,
        channel_name: Option(str, "The name of the channel", autocomplete=optin_channel_autocomplete),  # type: ignore
        channel_description: Option(str, "The new description of the channel"),  # type: ignore
    ) -> None:
        async def operation(guild, record, author) -> CommandReply:
            result = await optin_channel.update_description(
                guild, record, author, channel_name, channel_description, check_permission=False
            )
            match result:
                case UpdateDescriptionResult.SUCCESS:
                    return True, f"{SUCCESS_EMOJI} Channel description updated.", False
                case UpdateDescriptionResult.NO_PERMISSIONS:
                    return False, "You do not have permission to update the description of opt-in channels.", True
                case UpdateDescriptionResult.NO_OPTIN_CATEGORY:
                    return False, NO_OPTIN_CATEGORY, False
                case UpdateDescriptionResult.NO_SUCH_CHANNEL:
                    return False, NO_SUCH_CHANNEL, False

        await self._run_checked_out(ctx, operation, clear_cache=True)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    @commands.slash_command(name="join", description="Adds you to the opt-in channel given.")
    async def join(
        self,
        ctx: discord.ApplicationContext,
        channel_name: Option(str, "The name of the channel to join", autocomplete=optin_channel_autocomplete),  # type: ignore
    ) -> None:
        async def operation(guild, record, author) -> CommandReply:
            result = await optin_channel.join_channel(guild, record, author, channel_name)
            match result:
                case MembershipResult.SUCCESS:
                    # Membership lives on the role, the record is unchanged
                    return False, f"{SUCCESS_EMOJI} Welcome to {channel_name}!", True
                case MembershipResult.NO_SUCH_CHANNEL:
                    return False, NO_SUCH_CHANNEL, True
                case MembershipResult.NO_OPTIN_CATEGORY:
                    return False, NO_OPTIN_CATEGORY, True
                case MembershipResult.ROLE_MISSING:
                    return False, "The role for this channel went missing. Talk to your server admin.", True

        await self._run_checked_out(ctx, operation)

    @commands.slash_command(name="leave", description="Removes you from the opt-in channel given.")
    async def leave(
        self,
        ctx: discord.ApplicationContext,
        channel_name: Option(str, "The name of the channel to leave", autocomplete=optin_channel_autocomplete),  # type: ignore
    ) -> None:
        async def operation(guild, record, author) -> CommandReply:
            result = await optin_channel.leave_channel(guild, record, author, channel_name)
            match result:
                case MembershipResult.SUCCESS:
                    return False, f"{SUCCESS_EMOJI} You have left {channel_name}.", True
                case MembershipResult.NO_SUCH_CHANNEL:
                    return False, "There is no opt-in channel with that name. Did you mean something else?", True
                case MembershipResult.NO_OPTIN_CATEGORY:
                    return False, "This server is not set up with any opt-in channels right now.", True
                case MembershipResult.ROLE_MISSING:
                    return False, "This channel is not set up correctly. Contact the server admin.", True

        await self._run_checked_out(ctx, operation)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @commands.slash_command(name="list", description="Lists all of the opt-in channels on this server.")
    async def list_channels(self, ctx: discord.ApplicationContext) -> None:
        if ctx.guild is None:
            await ctx.respond(NOT_IN_GUILD, ephemeral=True)
            return

        try:
            result = await self.optin_cache.get_channels(ctx.guild)
        except Exception:
            # Logged by the cache manager
            await ctx.respond(SOMETHING_WENT_WRONG, ephemeral=True)
            return

        match result:
            case OptinChannelsListed(names_descriptions=names_descriptions) if names_descriptions:
                await ctx.respond(build_listing_message(names_descriptions))
            case OptinChannelsListed():
                await ctx.respond(NO_CHANNELS_YET)
            case OptinNoCategory():
                await ctx.respond(NO_OPTIN_CATEGORY)
            case OptinGuildNotFound():
                await ctx.respond(NOT_CONFIGURED)
            case OptinGuildLocked():
                await ctx.respond(TRY_AGAIN, ephemeral=True)


def setup(bot: discord.Bot, repository: GuildRepository, optin_cache: OptinChannelCacheManager) -> None:
    """Register the OptinCog with the bot."""
    bot.add_cog(OptinCog(bot, repository, optin_cache))
