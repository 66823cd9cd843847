"""Notification integrations."""

from webex_github_bot.notifications.webex import WebexClient

__all__ = ["WebexClient"]
