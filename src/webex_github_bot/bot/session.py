"""Webex bot session: lifecycle, events and commands."""

import logging
import re
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from webex_github_bot.exceptions import WebexAPIError
from webex_github_bot.notifications.webex import WebexClient

logger = logging.getLogger(__name__)

LIFECYCLE_EVENTS = ("initialized", "spawn", "despawn", "stopped")

# Webex resource/event pairs delivered to POST /webex
SUBSCRIPTIONS = (("messages", "created"), ("memberships", "all"))
WEBHOOK_NAME = "webex-github-bot"


class ChatRelay(Protocol):
    """Anything that can post a message to a chat space."""

    async def send(self, room_id: str, text: str) -> None: ...


class ChatSession(ChatRelay, Protocol):
    """A relay with a lifecycle that also receives chat events."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def handle_event(self, envelope: dict[str, Any]) -> None: ...


@dataclass
class BotContext:
    """The bot as seen from one space, handed to event and command handlers."""

    session: "WebexBot"
    room_id: str
    room_title: str = ""
    person_id: str = ""
    person_email: str = ""
    text: str = ""
    match: re.Match[str] | None = field(default=None, repr=False)

    async def say(self, text: str) -> None:
        await self.session.send(self.room_id, text)


EventHandler = Callable[..., Awaitable[None]]
CommandHandler = Callable[[BotContext], Awaitable[None]]


class WebexBot:
    """
    A long-lived Webex bot session.

    The session is created explicitly, started and stopped by the application
    lifespan, and passed to whatever needs to send messages.
    """

    def __init__(
        self,
        client: WebexClient,
        webhook_url: str = "",
        webhook_secret: str | None = None,
    ) -> None:
        self._client = client
        self._webhook_url = webhook_url.rstrip("/")
        self._webhook_secret = webhook_secret
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._commands: list[tuple[re.Pattern[str], CommandHandler]] = []
        self.person_id: str | None = None
        self.display_name: str = ""
        self.ready = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def on(self, event: str, handler: EventHandler | None = None):
        """Subscribe to a lifecycle event. Usable as a decorator."""
        if event not in LIFECYCLE_EVENTS:
            raise ValueError(f"Unknown bot event: {event}")

        def register(func: EventHandler) -> EventHandler:
            self._handlers[event].append(func)
            return func

        if handler is not None:
            return register(handler)
        return register

    def hears(self, pattern: str | re.Pattern[str], handler: CommandHandler | None = None):
        """
        Register a command handler. Usable as a decorator.

        A plain string matches when it is the first word of the message
        (case-insensitive); a compiled pattern is searched in the text.
        """
        if isinstance(pattern, str):
            pattern = re.compile(rf"^{re.escape(pattern)}\b", re.IGNORECASE)

        def register(func: CommandHandler) -> CommandHandler:
            self._commands.append((pattern, func))
            return func

        if handler is not None:
            return register(handler)
        return register

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Identify the bot, subscribe to Webex events and spawn existing spaces.

        ``initialized`` is emitted once every space the bot already belongs
        to has been spawned.
        """
        me = await self._client.get_me()
        self.person_id = me.get("id")
        self.display_name = me.get("displayName", "")

        await self._register_webhooks()
        await self._spawn_existing_rooms()

        self.ready = True
        logger.info(f"Webex bot session started as {self.display_name or self.person_id}")
        await self._emit("initialized")

    async def stop(self) -> None:
        if self.ready:
            self.ready = False
            await self._emit("stopped")
        await self._client.aclose()
        logger.info("Webex bot session stopped")

    async def _register_webhooks(self) -> None:
        if not self._webhook_url:
            logger.warning(
                "WEBHOOK_URL is not set: Webex will not deliver messages or memberships "
                "to /webex unless webhooks are registered by hand"
            )
            return
        if not self._webhook_secret:
            logger.error(
                "WEBHOOK_URL is set without WEBEX_WEBHOOK_SECRET; not registering webhooks"
            )
            return

        target = f"{self._webhook_url}/webex"
        existing = {
            (hook.get("resource"), hook.get("event"))
            for hook in await self._client.list_webhooks()
            if hook.get("targetUrl") == target
        }
        for resource, event in SUBSCRIPTIONS:
            if (resource, event) in existing:
                continue
            await self._client.create_webhook(
                name=f"{WEBHOOK_NAME} {resource}/{event}",
                target_url=target,
                resource=resource,
                event=event,
                secret=self._webhook_secret,
            )
            logger.info(f"Registered Webex webhook {resource}/{event} -> {target}")

    async def _spawn_existing_rooms(self) -> None:
        try:
            rooms = await self._client.list_rooms()
        except WebexAPIError as e:
            logger.warning(f"Could not list existing spaces: {e}")
            return

        for room in rooms:
            context = BotContext(
                session=self,
                room_id=room.get("id", ""),
                room_title=room.get("title", ""),
            )
            await self._emit("spawn", context)

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send(self, room_id: str, text: str) -> None:
        """Post a markdown message to a space."""
        await self._client.create_message(room_id, markdown=text)

    async def handle_event(self, envelope: dict[str, Any]) -> None:
        """Route a Webex webhook envelope to lifecycle or command handlers."""
        resource = envelope.get("resource")
        event = envelope.get("event")
        data = envelope.get("data") or {}

        if resource == "memberships":
            await self._handle_membership(event, data)
        elif resource == "messages" and event == "created":
            await self._handle_message(data)
        else:
            logger.debug(f"Ignoring Webex event {resource}/{event}")

    async def _handle_membership(self, event: str | None, data: dict[str, Any]) -> None:
        if not self.person_id or data.get("personId") != self.person_id:
            return

        room_id = data.get("roomId", "")
        context = BotContext(session=self, room_id=room_id)

        if event == "created":
            context.room_title = await self._room_title(room_id)
            await self._emit("spawn", context)
        elif event == "deleted":
            await self._emit("despawn", context)

    async def _handle_message(self, data: dict[str, Any]) -> None:
        # Ignore our own messages
        if self.person_id and data.get("personId") == self.person_id:
            return

        message = await self._client.get_message(data["id"])
        text = self._strip_mention(message.get("text", ""))

        for pattern, handler in self._commands:
            match = pattern.search(text)
            if match is None:
                continue
            context = BotContext(
                session=self,
                room_id=message.get("roomId", data.get("roomId", "")),
                person_id=message.get("personId", ""),
                person_email=message.get("personEmail", data.get("personEmail", "")),
                text=text,
                match=match,
            )
            await handler(context)
            return

        logger.debug(f"No command matched message in room {data.get('roomId')}")

    def _strip_mention(self, text: str) -> str:
        text = text.strip()
        name = self.display_name
        if name and text.lower().startswith(name.lower()):
            text = text[len(name) :]
        return text.strip()

    async def _room_title(self, room_id: str) -> str:
        try:
            room = await self._client.get_room(room_id)
        except WebexAPIError as e:
            logger.warning(f"Could not fetch room details for {room_id}: {e}")
            return ""
        return room.get("title", "")

    async def _emit(self, event: str, *args: Any) -> None:
        for handler in self._handlers[event]:
            try:
                await handler(*args)
            except Exception:
                logger.exception(f"Bot '{event}' handler failed")
