"""Chat message formatting for GitHub events."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from webex_github_bot.webhook.events import (
    GitHubEvent,
    IssuesEvent,
    PullRequestEvent,
    PushEvent,
    parse_event,
)

UNKNOWN = "unknown"


def render_event(event: GitHubEvent) -> str | None:
    """
    Render a typed event as a chat message.

    Returns None for events that have no message template; the caller
    acknowledges those without relaying anything.
    """
    if isinstance(event, PushEvent):
        return (
            f"Push Event: {event.commit_count} commits pushed to {event.ref} "
            f"by {event.pusher_name or UNKNOWN}. Compare: {event.compare}"
        )
    if isinstance(event, PullRequestEvent):
        return (
            f"Pull Request {event.action}: #{event.number} "
            f'"{event.pull_request.title}" by {event.sender.login}. '
            f"URL: {event.pull_request.html_url}"
        )
    if isinstance(event, IssuesEvent):
        return (
            f"Issue {event.action}: #{event.issue.number} "
            f'"{event.issue.title}" by {event.sender.login}. '
            f"URL: {event.issue.html_url}"
        )
    return None


def format_event(event_type: str | None, payload: Mapping[str, Any] | BaseModel) -> str | None:
    """
    Format a GitHub event for the chat space.

    Args:
        event_type: The X-GitHub-Event header value
        payload: Decoded JSON payload, or an already parsed event

    Returns:
        The message text, or None if the event type is not relayed

    Raises:
        IncompleteEventError: a supported event lacks required fields
    """
    if isinstance(payload, BaseModel):
        return render_event(payload)  # type: ignore[arg-type]
    return render_event(parse_event(event_type, payload))
