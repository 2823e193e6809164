"""Event listener Cog for Chill Bot.

Handles bot lifecycle events (on_ready) and greets members through the
welcome engine when they join a guild.
"""

import discord
from discord.ext import commands

from chillbot.engines.welcome_message_engine import WelcomeMessageEngine
from chillbot.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Handles Discord bot lifecycle and member events."""

    def __init__(self, bot: discord.Bot, welcome_engine: WelcomeMessageEngine) -> None:
        self.bot = bot
        self.welcome_engine = welcome_engine
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        """Set bot presence once connected."""
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected; user info not yet available.")
            return

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(type=discord.ActivityType.listening, name="/list"),
        )
        logger.info("[EVENTS LISTENER] Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member) -> None:
        """Greet a new member."""
        logger.debug("[EVENTS LISTENER] Member %s joined guild %s", member.id, member.guild.id)
        await self.welcome_engine.handle_user_join(member)


def setup(bot: discord.Bot, welcome_engine: WelcomeMessageEngine) -> None:
    """Register the EventsListenerCog with the bot."""
    bot.add_cog(EventsListenerCog(bot, welcome_engine))
