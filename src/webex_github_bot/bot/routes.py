"""Webex webhook intake for bot messages and membership changes."""

import json
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Header, Request

from webex_github_bot.config import get_settings
from webex_github_bot.dependencies import get_bot, read_body
from webex_github_bot.exceptions import MalformedPayloadError, SignatureInvalidError
from webex_github_bot.webhook.validator import validate_webex_signature

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/webex")
async def webex_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_spark_signature: str | None = Header(None),
) -> dict[str, Any]:
    """
    Handle Webex webhook events addressed to the bot.

    Commands and membership changes are handled in the background so
    Webex gets its acknowledgement straight away.
    """
    settings = get_settings()
    body = await read_body(request, settings.max_body_size)

    if settings.webex_webhook_secret is not None:
        secret = settings.webex_webhook_secret.get_secret_value()
        if not validate_webex_signature(body, x_spark_signature, secret):
            logger.warning("Webex webhook rejected: invalid signature")
            raise SignatureInvalidError()
    elif settings.webhook_url:
        # Webhooks registered by the bot are always signed
        logger.warning("Webex webhook rejected: WEBEX_WEBHOOK_SECRET is not configured")
        raise SignatureInvalidError()

    try:
        envelope = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedPayloadError() from e
    if not isinstance(envelope, dict):
        raise MalformedPayloadError()

    bot = get_bot(request)
    if bot is None:
        logger.warning("Webex event received before the bot session started")
        return {"status": "ignored", "reason": "bot not started"}

    logger.info(f"Webex event received: {envelope.get('resource')}/{envelope.get('event')}")
    background_tasks.add_task(_handle_event, bot, envelope)
    return {"status": "accepted"}


async def _handle_event(bot, envelope: dict[str, Any]) -> None:
    try:
        await bot.handle_event(envelope)
    except Exception as e:
        logger.exception(f"Failed to handle Webex event: {e}")
