"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from water_tracker.api.admin import router as admin_router
from water_tracker.api.telegram_models import TelegramUpdate
from water_tracker.app_logging import configure_logging
from water_tracker.config import parse_allowed_user_ids
from water_tracker.containers import AppContainer
from water_tracker.domain.events import ButtonAction, InboundEvent, TextMessage
from water_tracker.domain.replies import MenuReply, Reply, SummaryReply, TextReply
from water_tracker.services.sweep import run_periodic
from water_tracker.telegram_commands import telegram_commands

REMINDER_CALLBACK_PREFIX = "remind:"
_PROGRESS_CELLS = 10


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)
    allowed_user_ids = parse_allowed_user_ids(
        container.settings.telegram_allowed_user_ids
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            await state_container.telegram_client.set_my_commands(telegram_commands())
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        sweep_task: asyncio.Task | None = None
        if state_container.settings.sweep_enabled:
            sweep_task = asyncio.create_task(
                run_periodic(
                    state_container.sweep_driver,
                    state_container.settings.sweep_interval_seconds,
                )
            )
        yield
        if sweep_task is not None:
            sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweep_task
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request
    ) -> dict[str, str]:
        """Handle Telegram webhook updates."""
        state_container: AppContainer = request.app.state.container
        telegram_client = state_container.telegram_client
        user_id = _extract_user_id(update)
        if user_id is not None and not _is_user_allowed(user_id, allowed_user_ids):
            if update.callback_query:
                await telegram_client.answer_callback_query(
                    update.callback_query.id, text="Not authorized."
                )
            elif update.message:
                await telegram_client.send_message(
                    chat_id=update.message.chat.id, text="This bot is private."
                )
            return {"status": "ok"}

        if update.callback_query:
            try:
                await telegram_client.answer_callback_query(update.callback_query.id)
            except Exception:
                logger.exception("Failed to answer callback query")

        event = _to_event(update)
        if event is None:
            return {"status": "ok"}
        reply = await state_container.event_router.handle(event)
        if reply is None:
            return {"status": "ok"}
        text, reply_markup = _render_reply(reply)
        try:
            await telegram_client.send_message(
                chat_id=event.reply_channel, text=text, reply_markup=reply_markup
            )
        except Exception:
            logger.exception("Failed to send reply", extra={"user_id": event.user_id})
        return {"status": "ok"}

    return app


def _extract_user_id(update: TelegramUpdate) -> int | None:
    """Extract Telegram user id from update, if present."""
    if update.callback_query:
        return update.callback_query.from_user.id
    if update.message:
        return update.message.from_user.id
    return None


def _is_user_allowed(user_id: int, allowed: set[int] | None) -> bool:
    """Return true when the user is allowed to interact with the bot."""
    return allowed is None or user_id in allowed


def _to_event(update: TelegramUpdate) -> InboundEvent | None:
    """Translate a Telegram update into a core event."""
    callback = update.callback_query
    if callback:
        if not callback.data or not callback.data.startswith(REMINDER_CALLBACK_PREFIX):
            return None
        chat_id = (
            callback.message.chat.id if callback.message else callback.from_user.id
        )
        return ButtonAction(
            user_id=str(callback.from_user.id),
            payload=callback.data.removeprefix(REMINDER_CALLBACK_PREFIX),
            reply_channel=chat_id,
        )
    message = update.message
    if message and message.text:
        return TextMessage(
            user_id=str(message.from_user.id),
            text=_strip_command(message.text),
            reply_channel=message.chat.id,
        )
    return None


def _strip_command(text: str) -> str:
    """Turn ``/goal@MyBot 2000`` into ``goal 2000``."""
    stripped = text.strip()
    if not stripped.startswith("/"):
        return stripped
    command, _, rest = stripped[1:].partition(" ")
    command = command.split("@", maxsplit=1)[0]
    return f"{command} {rest}".strip()


def _render_reply(reply: Reply) -> tuple[str, dict | None]:
    """Render a core reply into Telegram text and markup."""
    if isinstance(reply, SummaryReply):
        return _format_summary(reply), None
    if isinstance(reply, MenuReply):
        return reply.text, _menu_keyboard(reply)
    if isinstance(reply, TextReply):
        return reply.text, None
    raise TypeError(f"Unsupported reply: {reply!r}")


def _format_summary(summary: SummaryReply) -> str:
    filled = round(summary.percent / 100 * _PROGRESS_CELLS)
    bar = "█" * filled + "░" * (_PROGRESS_CELLS - filled)
    return "\n".join(
        [
            f"Water today ({summary.day:%d/%m/%Y})",
            bar,
            f"{summary.total_ml}/{summary.goal_ml} ml ({summary.percent:.0f}%)",
        ]
    )


def _menu_keyboard(menu: MenuReply) -> dict:
    return {
        "inline_keyboard": [
            [
                {
                    "text": choice.label,
                    "callback_data": f"{REMINDER_CALLBACK_PREFIX}{choice.payload}",
                }
            ]
            for choice in menu.choices
        ]
    }
