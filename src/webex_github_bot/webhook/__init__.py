"""Webhook handling for GitHub events."""

from webex_github_bot.webhook.formatter import format_event
from webex_github_bot.webhook.handler import router
from webex_github_bot.webhook.validator import validate_github_signature, verify_signature

__all__ = ["format_event", "router", "validate_github_signature", "verify_signature"]
