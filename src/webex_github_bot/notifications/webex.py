"""Webex REST API client."""

import logging
from typing import Any

import httpx

from webex_github_bot.config import WEBEX_API_URL
from webex_github_bot.exceptions import WebexAPIError

logger = logging.getLogger(__name__)


class WebexClient:
    """Thin async wrapper over the Webex endpoints the bot uses."""

    def __init__(
        self,
        token: str,
        base_url: str = WEBEX_API_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def create_message(
        self,
        room_id: str,
        markdown: str | None = None,
        text: str | None = None,
    ) -> dict[str, Any]:
        """
        Post a message to a Webex space.

        Args:
            room_id: Destination space ID
            markdown: Markdown message body
            text: Plain-text fallback body

        Returns:
            The created message resource
        """
        body: dict[str, Any] = {"roomId": room_id}
        if markdown is not None:
            body["markdown"] = markdown
        if text is not None:
            body["text"] = text
        return await self._request("POST", "/messages", json=body)

    async def get_message(self, message_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/messages/{message_id}")

    async def get_room(self, room_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/rooms/{room_id}")

    async def get_me(self) -> dict[str, Any]:
        """Details of the person that owns the token (the bot)."""
        return await self._request("GET", "/people/me")

    async def list_rooms(self, max_items: int = 1000) -> list[dict[str, Any]]:
        """Spaces the bot is a member of."""
        data = await self._request("GET", "/rooms", params={"max": max_items})
        return data.get("items", [])

    async def list_webhooks(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/webhooks")
        return data.get("items", [])

    async def create_webhook(
        self,
        name: str,
        target_url: str,
        resource: str,
        event: str,
        secret: str | None = None,
    ) -> dict[str, Any]:
        """
        Subscribe ``target_url`` to a Webex resource/event pair.

        Webex signs each delivery with ``secret`` in X-Spark-Signature.
        """
        body: dict[str, Any] = {
            "name": name,
            "targetUrl": target_url,
            "resource": resource,
            "event": event,
        }
        if secret is not None:
            body["secret"] = secret
        return await self._request("POST", "/webhooks", json=body)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise WebexAPIError(f"Webex API {method} {path} returned {status}", status) from e
        except httpx.HTTPError as e:
            raise WebexAPIError(f"Webex API {method} {path} failed: {e}") from e

        logger.debug(f"Webex API {method} {path} -> {response.status_code}")
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise WebexAPIError(
                f"Webex API {method} {path} returned a non-JSON body", response.status_code
            ) from e
        if not isinstance(data, dict):
            raise WebexAPIError(
                f"Webex API {method} {path} returned unexpected JSON", response.status_code
            )
        return data
