"""Inbound chat events handled by the event router."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TextMessage:
    """A plain text message sent by a user."""

    user_id: str
    text: str
    reply_channel: int | str


@dataclass(frozen=True)
class ButtonAction:
    """A button tap carrying an opaque payload."""

    user_id: str
    payload: str
    reply_channel: int | str


InboundEvent = TextMessage | ButtonAction
