"""Telegram bot command configuration."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TelegramCommand:
    """Declarative bot command definition."""

    command: str
    description: str


class BotCommand(Enum):
    """Enum of bot commands (single source of truth)."""

    START = TelegramCommand("start", "How to use the bot")
    REMINDER = TelegramCommand("reminder", "Choose how often to be reminded")
    SUMMARY = TelegramCommand("summary", "Today's intake against your goal")
    GOAL = TelegramCommand("goal", "Set your daily goal, e.g. /goal 2000")
    HELP = TelegramCommand("help", "Quick guide")


def telegram_commands() -> list[dict[str, str]]:
    """Return commands formatted for Telegram API."""
    return [
        {"command": entry.value.command, "description": entry.value.description}
        for entry in BotCommand
    ]
