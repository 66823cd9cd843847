"""Request-scoped helpers shared by the webhook routes."""

from typing import TYPE_CHECKING

from fastapi import Request

from webex_github_bot.exceptions import PayloadTooLargeError
from webex_github_bot.metrics import WebhookMetrics

if TYPE_CHECKING:
    from webex_github_bot.bot.session import ChatSession


def get_bot(request: Request) -> "ChatSession | None":
    """The chat session attached to the app, or None before startup."""
    return getattr(request.app.state, "bot", None)


def get_metrics(request: Request) -> WebhookMetrics:
    return request.app.state.metrics


async def read_body(request: Request, limit: int) -> bytes:
    """
    Read the raw request body, refusing anything over ``limit`` bytes.

    The bytes are returned exactly as received so signatures can be
    checked over them.
    """
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > limit:
        raise PayloadTooLargeError()

    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PayloadTooLargeError()
        chunks.append(chunk)
    return b"".join(chunks)
