"""Bot commands and lifecycle logging."""

import logging

from webex_github_bot.bot.session import BotContext, WebexBot

logger = logging.getLogger(__name__)


async def on_initialized() -> None:
    logger.info("Bot is ready to receive events")


async def on_spawn(bot: BotContext) -> None:
    logger.info(f"Bot spawned in space {bot.room_id} ({bot.room_title or 'untitled'})")


async def on_despawn(bot: BotContext) -> None:
    logger.info(f"Bot despawned from space {bot.room_id}")


async def room_id_command(bot: BotContext) -> None:
    """Reply with the current space's room ID, used to configure ROOM_ID."""
    logger.info(f"Room ID requested by {bot.person_email or 'unknown'} in {bot.room_id}")
    await bot.say(f"This space's Room ID: {bot.room_id}")


def register_commands(session: WebexBot) -> WebexBot:
    """Attach the standard handlers to a bot session."""
    session.on("initialized", on_initialized)
    session.on("spawn", on_spawn)
    session.on("despawn", on_despawn)
    session.hears("roomid", room_id_command)
    return session
