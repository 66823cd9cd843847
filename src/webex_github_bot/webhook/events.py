"""Typed GitHub webhook payloads.

Only the fields used to build chat messages are modelled; everything else in
the payload is ignored. The variant is chosen from the ``X-GitHub-Event``
header alone, never from the payload's shape.
"""

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from webex_github_bot.exceptions import IncompleteEventError


class GitHubUser(BaseModel):
    """Sender of an event."""

    login: str


class Pusher(BaseModel):
    name: str | None = None


class PullRequestInfo(BaseModel):
    title: str
    html_url: str


class IssueInfo(BaseModel):
    number: int
    title: str
    html_url: str


class PushEvent(BaseModel):
    kind: Literal["push"] = "push"
    ref: str
    compare: str
    commits: list[Any] | None = Field(default_factory=list)
    pusher: Pusher | None = None

    @property
    def commit_count(self) -> int:
        return len(self.commits or [])

    @property
    def pusher_name(self) -> str | None:
        return self.pusher.name if self.pusher else None


class PullRequestEvent(BaseModel):
    kind: Literal["pull_request"] = "pull_request"
    action: str
    number: int
    pull_request: PullRequestInfo
    sender: GitHubUser


class IssuesEvent(BaseModel):
    kind: Literal["issues"] = "issues"
    action: str
    issue: IssueInfo
    sender: GitHubUser


class UnknownEvent(BaseModel):
    """Any event type without a message template."""

    kind: Literal["unknown"] = "unknown"
    event_type: str | None = None


GitHubEvent = PushEvent | PullRequestEvent | IssuesEvent | UnknownEvent

EVENT_MODELS: dict[str, type[BaseModel]] = {
    "push": PushEvent,
    "pull_request": PullRequestEvent,
    "issues": IssuesEvent,
}

SUPPORTED_EVENTS = frozenset(EVENT_MODELS)


def event_label(event_type: str | None) -> str:
    """Metrics label for an event type; unsupported names collapse to 'other'."""
    if event_type in SUPPORTED_EVENTS:
        return event_type  # type: ignore[return-value]
    return "other"


def _missing_fields(error: ValidationError) -> list[str]:
    fields = []
    for item in error.errors():
        path = ".".join(str(part) for part in item["loc"])
        if path and path not in fields:
            fields.append(path)
    return fields


def parse_event(event_type: str | None, payload: Mapping[str, Any]) -> GitHubEvent:
    """
    Build the typed event for ``event_type`` from a decoded JSON payload.

    Raises:
        IncompleteEventError: a supported event lacks fields its message needs
    """
    model = EVENT_MODELS.get(event_type or "")
    if model is None:
        return UnknownEvent(event_type=event_type)

    # Never let the payload pick its own variant
    data = {key: value for key, value in payload.items() if key != "kind"}
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError as e:
        raise IncompleteEventError(event_type or "", _missing_fields(e)) from e
