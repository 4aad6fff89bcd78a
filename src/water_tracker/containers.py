"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from water_tracker.adapters.supabase_user_repository import SupabaseUserRecordStore
from water_tracker.adapters.telegram_client import (
    HttpxTelegramClient,
    TelegramClient,
)
from water_tracker.adapters.telegram_notifier import (
    TelegramNotificationSink,
    TelegramProfileLookup,
)
from water_tracker.config import Settings, parse_reminder_choices
from water_tracker.services.cache import InMemoryCache
from water_tracker.services.clock import Clock, SystemClock
from water_tracker.services.intake import IntakeLedger
from water_tracker.services.locks import KeyedLocks
from water_tracker.services.profiles import ProfileService
from water_tracker.services.reminders import ReminderScheduler
from water_tracker.services.router import EventRouter
from water_tracker.services.sweep import SweepDriver
from water_tracker.services.users import UserService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    clock: Clock
    telegram_client: TelegramClient
    user_service: UserService
    event_router: EventRouter
    sweep_driver: SweepDriver
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    clock = SystemClock()
    return wire_container(
        settings=resolved_settings,
        clock=clock,
        telegram_client=telegram_client,
        user_service=UserService(
            SupabaseUserRecordStore(supabase_client),
            default_daily_goal=resolved_settings.default_daily_goal,
        ),
        close_resources=telegram_client.close,
    )


def wire_container(
    *,
    settings: Settings,
    clock: Clock,
    telegram_client: TelegramClient,
    user_service: UserService,
    close_resources: Callable[[], Awaitable[None]],
) -> AppContainer:
    """Build the core services on top of the given collaborators."""
    scheduler = ReminderScheduler(policy=settings.reschedule_policy)
    locks = KeyedLocks()
    profile_service = ProfileService(
        lookup=TelegramProfileLookup(telegram_client),
        cache=InMemoryCache(clock),
        ttl_seconds=settings.profile_ttl_seconds,
    )
    event_router = EventRouter(
        user_service=user_service,
        ledger=IntakeLedger(timezone_name=settings.timezone),
        scheduler=scheduler,
        profile_service=profile_service,
        clock=clock,
        reminder_choices=parse_reminder_choices(settings.reminder_choices),
        locks=locks,
        save_retry_attempts=settings.save_retry_attempts,
    )
    sweep_driver = SweepDriver(
        user_service=user_service,
        scheduler=scheduler,
        notifier=TelegramNotificationSink(telegram_client),
        clock=clock,
        locks=locks,
        notification_timeout_seconds=settings.notification_timeout_seconds,
        save_retry_attempts=settings.save_retry_attempts,
    )
    return AppContainer(
        settings=settings,
        clock=clock,
        telegram_client=telegram_client,
        user_service=user_service,
        event_router=event_router,
        sweep_driver=sweep_driver,
        close_resources=close_resources,
    )
