"""Reply payloads produced by the event router."""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class TextReply:
    """Plain text reply."""

    text: str


@dataclass(frozen=True)
class MenuChoice:
    """One selectable option in a menu reply."""

    label: str
    payload: str


@dataclass(frozen=True)
class MenuReply:
    """Text reply with a fixed set of choices."""

    text: str
    choices: list[MenuChoice]


@dataclass(frozen=True)
class SummaryReply:
    """Structured daily intake summary."""

    day: date
    total_ml: int
    goal_ml: int
    percent: float


Reply = TextReply | MenuReply | SummaryReply
