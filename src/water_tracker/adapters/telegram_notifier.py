"""Telegram-backed notification sink and profile lookup."""

import logging
from dataclasses import dataclass

from water_tracker.adapters.telegram_client import TelegramClient
from water_tracker.services.profiles import ProfileLookup
from water_tracker.services.sweep import NotificationSink

_logger = logging.getLogger(__name__)


@dataclass
class TelegramNotificationSink(NotificationSink):
    """Push reminders into the user's private chat.

    In a private chat the chat id equals the user id, so no extra mapping is
    stored.
    """

    telegram_client: TelegramClient

    async def send(self, user_id: str, text: str) -> bool:
        """Send a reminder; report failures instead of raising."""
        try:
            await self.telegram_client.send_message(chat_id=user_id, text=text)
        except Exception as exc:
            _logger.warning("Telegram delivery to %s failed: %s", user_id, exc)
            return False
        return True


@dataclass
class TelegramProfileLookup(ProfileLookup):
    """Resolve display names with Telegram's getChat."""

    telegram_client: TelegramClient

    async def get_display_name(self, user_id: str) -> str:
        """Return first and last name, falling back to the username."""
        chat = await self.telegram_client.get_chat(user_id)
        names = [
            str(chat[key]) for key in ("first_name", "last_name") if chat.get(key)
        ]
        if names:
            return " ".join(names)
        username = chat.get("username")
        return str(username) if username else ""
