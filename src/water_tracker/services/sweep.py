"""Periodic reminder sweep."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from water_tracker.domain.models import UserRecord
from water_tracker.domain.sweep import SweepReport
from water_tracker.services.clock import Clock
from water_tracker.services.locks import KeyedLocks
from water_tracker.services.reminders import ReminderScheduler
from water_tracker.services.users import PersistenceConflictError, UserService

_logger = logging.getLogger(__name__)

# The smallest interval a user can pick is one hour, so a tick must run more
# often than that or due reminders could be skipped.
MIN_REMINDER_INTERVAL_SECONDS = 3600


class NotificationSink(Protocol):
    """Interface for pushing a message to a user."""

    async def send(self, user_id: str, text: str) -> bool:
        """Send ``text`` to the user; return False when delivery failed."""


@dataclass
class SweepDriver:
    """Dispatch due reminders and advance each user's schedule."""

    user_service: UserService
    scheduler: ReminderScheduler
    notifier: NotificationSink
    clock: Clock
    locks: KeyedLocks = field(default_factory=KeyedLocks)
    notification_timeout_seconds: float = 10.0
    save_retry_attempts: int = 3

    async def tick(self, now: datetime | None = None) -> SweepReport:
        """Run one sweep over every user with reminders switched on."""
        moment = now or self.clock.now()
        report = SweepReport()
        candidates = self.user_service.list_active_reminders(due_at=moment)
        report.checked = len(candidates)
        outcomes = await asyncio.gather(
            *(self._process(candidate.user_id, moment) for candidate in candidates),
            return_exceptions=True,
        )
        for candidate, outcome in zip(candidates, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                _logger.error(
                    "Reminder sweep failed for %s: %s", candidate.user_id, outcome
                )
                report.failed += 1
            elif outcome == "dispatched":
                report.dispatched += 1
            elif outcome == "failed":
                report.failed += 1
            else:
                report.skipped += 1
        if report.checked:
            _logger.info(
                "Reminder sweep: checked=%s dispatched=%s failed=%s skipped=%s",
                report.checked,
                report.dispatched,
                report.failed,
                report.skipped,
            )
        return report

    async def _process(self, user_id: str, now: datetime) -> str:
        async with self.locks.hold(user_id):
            user = self.user_service.get(user_id)
            if user is None or not self.scheduler.is_due(user, now):
                return "skipped"
            delivered = await self._notify(user)
            self._reschedule(user, now)
            return "dispatched" if delivered else "failed"

    async def _notify(self, user: UserRecord) -> bool:
        try:
            return await asyncio.wait_for(
                self.notifier.send(user.user_id, _reminder_text(user)),
                timeout=self.notification_timeout_seconds,
            )
        except TimeoutError:
            _logger.warning("Reminder to %s timed out", user.user_id)
        except Exception:
            _logger.exception("Reminder to %s failed", user.user_id)
        return False

    def _reschedule(self, user: UserRecord, now: datetime) -> None:
        current: UserRecord | None = user
        for attempt in range(1, self.save_retry_attempts + 1):
            if current is None or not self.scheduler.is_due(current, now):
                # Reconfigured or disabled meanwhile; the fresh state wins.
                return
            self.scheduler.reschedule(current, now)
            try:
                self.user_service.persist(current)
                return
            except PersistenceConflictError:
                _logger.warning(
                    "Reschedule conflict for %s (attempt %s/%s)",
                    user.user_id,
                    attempt,
                    self.save_retry_attempts,
                )
                current = self.user_service.get(user.user_id)
        _logger.error(
            "Could not persist reschedule for %s; it stays due", user.user_id
        )


async def run_periodic(driver: SweepDriver, interval_seconds: float) -> None:
    """Call ``driver.tick`` every ``interval_seconds`` until cancelled."""
    if not 0 < interval_seconds < MIN_REMINDER_INTERVAL_SECONDS:
        raise ValueError(
            "sweep interval must be positive and shorter than the smallest "
            "reminder interval"
        )
    while True:
        try:
            await driver.tick()
        except Exception:
            _logger.exception("Reminder sweep tick failed")
        await asyncio.sleep(interval_seconds)


def _reminder_text(user: UserRecord) -> str:
    if user.display_name:
        return f"Time to drink some water, {user.display_name}!"
    return "Time to drink some water!"
