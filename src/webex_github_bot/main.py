"""FastAPI application entry point."""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from webex_github_bot import __version__
from webex_github_bot.bot import ChatSession, WebexBot, register_commands
from webex_github_bot.bot import router as bot_router
from webex_github_bot.config import Settings, get_settings
from webex_github_bot.exceptions import WebexAPIError, WebhookError
from webex_github_bot.metrics import CONTENT_TYPE_LATEST, WebhookMetrics
from webex_github_bot.notifications import WebexClient
from webex_github_bot.webhook import router as webhook_router

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure structured logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_bot(settings: Settings) -> WebexBot:
    """Build the Webex bot session with the standard commands attached."""
    client = WebexClient(
        token=settings.webex_token.get_secret_value(),
        base_url=settings.webex_api_url,
        timeout=settings.relay_timeout,
    )
    secret = settings.webex_webhook_secret
    session = WebexBot(
        client,
        webhook_url=settings.webhook_url,
        webhook_secret=secret.get_secret_value() if secret is not None else None,
    )
    return register_commands(session)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the bot session on startup and stop it on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Webex GitHub Bot starting up")
    logger.info(f"Environment check: {settings.environment_check()}")
    if settings.webex_webhook_secret is None:
        logger.warning("WEBEX_WEBHOOK_SECRET is not set: /webex cannot verify Webex deliveries")

    if app.state.bot is None:
        app.state.bot = create_bot(settings)

    bot: ChatSession = app.state.bot
    try:
        await bot.start()
    except WebexAPIError as e:
        # Keep serving webhooks; relays will fail and be logged per request
        logger.error(f"Failed to start Webex bot session: {e}")

    yield

    logger.info("Webex GitHub Bot shutting down")
    await bot.stop()


async def webhook_error_handler(_request: Request, exc: WebhookError) -> Response:
    body = exc.body()
    if isinstance(body, str):
        return PlainTextResponse(body, status_code=exc.status_code)
    return JSONResponse(body, status_code=exc.status_code)


def create_app(bot: ChatSession | None = None, metrics: WebhookMetrics | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        bot: Chat session to relay messages through. Built from settings at
            startup when omitted.
        metrics: Metrics sink. A fresh registry is used when omitted.
    """
    app = FastAPI(
        title="Webex GitHub Bot",
        description="Relays GitHub webhook events into a Webex space",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.bot = bot
    app.state.metrics = metrics or WebhookMetrics()

    app.add_exception_handler(WebhookError, webhook_error_handler)  # type: ignore[arg-type]

    # Include routers
    app.include_router(webhook_router, tags=["webhook"])
    app.include_router(bot_router, tags=["bot"])

    @app.get("/")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "OK",
            "message": "Webex GitHub Bot is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": {
                "github_webhook": "/github",
                "webex_webhook": "/webex",
                "metrics": "/metrics",
                "health": "/",
            },
        }

    @app.get("/metrics")
    async def metrics_endpoint(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=request.app.state.metrics.render(),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app


app = create_app()


def cli() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Webex GitHub Bot - GitHub events in Webex")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the webhook server")
    serve_parser.add_argument("--host", default=None, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    if args.command == "serve":
        settings = get_settings()
        setup_logging(settings.log_level)
        uvicorn.run(
            "webex_github_bot.main:app",
            host=args.host or settings.host,
            port=args.port or settings.port,
            reload=args.reload,
        )
    else:
        parser.print_help()


if __name__ == "__main__":
    cli()
