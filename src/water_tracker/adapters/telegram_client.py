"""Telegram API client adapter."""

from dataclasses import dataclass
from typing import Protocol

import httpx

_API_BASE = "https://api.telegram.org"


class TelegramClient(Protocol):
    """Interface for Telegram API interactions."""

    async def send_message(
        self, chat_id: int | str, text: str, reply_markup: dict | None = None
    ) -> None:
        """Send a text message to a Telegram chat."""

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> None:
        """Answer a Telegram callback query."""

    async def get_chat(self, chat_id: int | str) -> dict[str, object]:
        """Return chat details, including the user's names for private chats."""

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""


@dataclass
class HttpxTelegramClient:
    """Telegram client implemented with httpx."""

    bot_token: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 10

    @classmethod
    def create(
        cls, bot_token: str, timeout_seconds: float = 10
    ) -> "HttpxTelegramClient":
        """Create a Telegram client with a managed httpx session."""
        return cls(
            bot_token=bot_token,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def send_message(
        self, chat_id: int | str, text: str, reply_markup: dict | None = None
    ) -> None:
        """Send a message using Telegram's sendMessage API."""
        payload: dict[str, object] = {"chat_id": chat_id, "text": text}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        await self._call("sendMessage", payload)

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> None:
        """Answer a callback query using Telegram's API."""
        payload: dict[str, object] = {"callback_query_id": callback_query_id}
        if text is not None:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)

    async def get_chat(self, chat_id: int | str) -> dict[str, object]:
        """Fetch chat details using Telegram's getChat API."""
        body = await self._call("getChat", {"chat_id": chat_id})
        result = body.get("result")
        return result if isinstance(result, dict) else {}

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""
        await self._call("setMyCommands", {"commands": commands})

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _call(self, method: str, payload: dict[str, object]) -> dict:
        url = f"{_API_BASE}/bot{self.bot_token}/{method}"
        response = await self.http_client.post(
            url, json=payload, timeout=self.timeout_seconds
        )
        response.raise_for_status()
        return response.json()
