"""Webex bot session and command handling."""

from webex_github_bot.bot.commands import register_commands
from webex_github_bot.bot.routes import router
from webex_github_bot.bot.session import BotContext, ChatRelay, ChatSession, WebexBot

__all__ = ["BotContext", "ChatRelay", "ChatSession", "WebexBot", "register_commands", "router"]
