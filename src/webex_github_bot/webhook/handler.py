"""GitHub webhook handler."""

import asyncio
import json
import logging
import time
from typing import Any
from urllib.parse import parse_qs

from fastapi import APIRouter, Header, Request
from fastapi.responses import PlainTextResponse

from webex_github_bot.config import Settings, get_settings
from webex_github_bot.dependencies import get_bot, get_metrics, read_body
from webex_github_bot.exceptions import (
    IncompleteEventError,
    MalformedPayloadError,
    RelayError,
    SignatureInvalidError,
    SignatureMissingError,
    WebhookError,
)
from webex_github_bot.metrics import Outcome, WebhookMetrics
from webex_github_bot.webhook.events import event_label, parse_event
from webex_github_bot.webhook.formatter import render_event
from webex_github_bot.webhook.validator import validate_github_signature

logger = logging.getLogger(__name__)
router = APIRouter()

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _check_signature(body: bytes, signature: str | None, settings: Settings) -> None:
    """Raise an auth error unless the body carries a valid signature."""
    if not signature:
        logger.warning("Webhook rejected: missing signature")
        if settings.uniform_auth_response:
            raise SignatureInvalidError()
        raise SignatureMissingError()

    secret = settings.github_secret.get_secret_value()
    if not validate_github_signature(body, signature, secret):
        logger.warning(f"Webhook rejected: invalid signature (received {signature[:12]}...)")
        raise SignatureInvalidError()


def _decode_payload(body: bytes, content_type: str | None) -> dict[str, Any]:
    """Decode a JSON delivery, or the ``payload`` field of a form delivery."""
    try:
        if content_type and content_type.startswith(FORM_CONTENT_TYPE):
            fields = parse_qs(body.decode("utf-8"))
            raw = fields.get("payload", [""])[0]
        else:
            raw = body
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"JSON parsing error: {e} (content-type: {content_type})")
        raise MalformedPayloadError() from e

    if not isinstance(payload, dict):
        logger.error(f"Webhook payload is a {type(payload).__name__}, expected an object")
        raise MalformedPayloadError()
    return payload


async def _relay(request: Request, settings: Settings, event_type: str, message: str) -> bool:
    """
    Send one message to the configured space.

    Exactly one attempt is made. Failures are logged and reported as False,
    never raised: the webhook sender is not responsible for relay health.
    """
    bot = get_bot(request)
    if bot is None:
        logger.error(f"Cannot relay {event_type} event: chat session not started")
        return False
    if not settings.room_id:
        logger.error(f"Cannot relay {event_type} event: ROOM_ID is not configured")
        return False

    logger.info(f"Sending message to Webex ({len(message)} chars): {message[:100]}")
    try:
        await asyncio.wait_for(bot.send(settings.room_id, message), timeout=settings.relay_timeout)
    except asyncio.TimeoutError:
        logger.error(
            f"Timed out after {settings.relay_timeout}s posting {event_type} event to Webex"
        )
        return False
    except RelayError as e:
        logger.error(f"Error posting {event_type} event to Webex: {e}")
        return False
    except Exception:
        logger.exception(f"Unexpected error posting {event_type} event to Webex")
        return False
    return True


@router.post("/github", response_class=PlainTextResponse)
async def github_webhook(
    request: Request,
    x_hub_signature_256: str | None = Header(None),
    x_github_event: str | None = Header(None),
    x_github_delivery: str | None = Header(None),
    content_type: str | None = Header(None),
) -> PlainTextResponse:
    """
    Handle incoming GitHub webhooks.

    Validates the signature over the raw body, formats supported events
    and relays them to the Webex space. Unsupported events are
    acknowledged without relaying.
    """
    settings = get_settings()
    metrics: WebhookMetrics = get_metrics(request)
    start_time = time.perf_counter()
    label = event_label(x_github_event)

    logger.info(f"Incoming webhook: event={x_github_event} delivery={x_github_delivery}")
    metrics.received.labels(event_type=label).inc()

    try:
        body = await read_body(request, settings.max_body_size)
        _check_signature(body, x_hub_signature_256, settings)
        payload = _decode_payload(body, content_type)
        event = parse_event(x_github_event, payload)
    except IncompleteEventError as e:
        _finish(metrics, label, Outcome.INCOMPLETE, start_time)
        if settings.incomplete_event_policy == "acknowledge":
            logger.warning(f"Acknowledging incomplete event without relaying: {e}")
            return PlainTextResponse("Event received")
        logger.warning(f"Rejecting incomplete event: {e}")
        metrics.rejected.labels(reason=e.reason).inc()
        raise
    except WebhookError as e:
        _finish(metrics, label, _outcome_for(e), start_time)
        metrics.rejected.labels(reason=e.reason).inc()
        raise

    repository = payload.get("repository")
    repo_name = repository.get("full_name") if isinstance(repository, dict) else None
    logger.info(
        f"Processing GitHub event {x_github_event}: action={payload.get('action')}, "
        f"repository={repo_name}"
    )

    message = render_event(event)
    if message is None:
        logger.info(f"Unhandled event type: {x_github_event}")
        _finish(metrics, label, Outcome.ACKNOWLEDGED, start_time)
        return PlainTextResponse("Event received")

    if await _relay(request, settings, x_github_event or "", message):
        elapsed = _finish(metrics, label, Outcome.RELAYED, start_time)
        logger.info(f"Message posted to Webex for {x_github_event} event in {elapsed * 1000:.0f}ms")
    else:
        _finish(metrics, label, Outcome.RELAY_FAILED, start_time)

    return PlainTextResponse("Event processed")


def _outcome_for(error: WebhookError) -> Outcome:
    if error.status_code == 401:
        return Outcome.REJECTED
    if error.status_code == 413:
        return Outcome.TOO_LARGE
    return Outcome.MALFORMED


def _finish(metrics: WebhookMetrics, label: str, outcome: Outcome, start_time: float) -> float:
    elapsed = time.perf_counter() - start_time
    metrics.record(label, outcome, elapsed)
    return elapsed
