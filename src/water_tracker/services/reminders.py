"""Reminder scheduling decisions.

The scheduler is stateless: every decision is derived from the
``UserRecord`` passed in, so it can run anywhere without shared memory.
Reminders fire from an absolute ``next_reminder_at`` timestamp, never from
the hour of day.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from water_tracker.domain.models import UserRecord

MAX_INTERVAL_HOURS = 24 * 7


class InvalidIntervalError(ValueError):
    """Raised when a reminder interval is not a whole number of hours in range."""


class ReschedulePolicy(str, Enum):
    """How the next reminder is placed after a dispatch."""

    FROM_DISPATCH = "from_dispatch"
    FROM_SCHEDULE = "from_schedule"


@dataclass
class ReminderScheduler:
    """Configure, check and advance a user's reminder."""

    policy: ReschedulePolicy = ReschedulePolicy.FROM_DISPATCH

    def configure(self, user: UserRecord, interval_hours: int, now: datetime) -> None:
        """Arm reminders every ``interval_hours``, first one an interval from now."""
        _validate_interval(interval_hours)
        next_reminder_at = now + timedelta(hours=interval_hours)
        user.reminder_interval_hours = interval_hours
        user.reminder_active = True
        user.next_reminder_at = next_reminder_at

    def disable(self, user: UserRecord) -> None:
        """Turn reminders off."""
        user.reminder_active = False
        user.reminder_interval_hours = 0
        user.next_reminder_at = None

    def is_due(self, user: UserRecord, now: datetime) -> bool:
        """Return True when a reminder should be sent at ``now``."""
        return (
            user.reminder_active
            and user.next_reminder_at is not None
            and now >= user.next_reminder_at
        )

    def reschedule(self, user: UserRecord, now: datetime) -> None:
        """Advance ``next_reminder_at`` after a dispatch."""
        interval = timedelta(hours=user.reminder_interval_hours)
        if interval <= timedelta(0):
            # Nothing sensible to schedule; leave the record for a correction pass.
            return
        if self.policy is ReschedulePolicy.FROM_SCHEDULE and user.next_reminder_at:
            missed = (now - user.next_reminder_at) // interval
            user.next_reminder_at += interval * (max(missed, 0) + 1)
            return
        user.next_reminder_at = now + interval


def parse_interval(raw: str) -> int:
    """Parse a button payload into a positive number of hours."""
    value = raw.strip()
    if not value.isascii() or not value.isdigit():
        raise InvalidIntervalError(f"not a whole number of hours: {raw!r}")
    if len(value.lstrip("0")) > len(str(MAX_INTERVAL_HOURS)):
        raise InvalidIntervalError(f"interval too long: {raw!r}")
    hours = int(value)
    _validate_interval(hours)
    return hours


def _validate_interval(interval_hours: int) -> None:
    if (
        isinstance(interval_hours, bool)
        or not isinstance(interval_hours, int)
        or not 0 < interval_hours <= MAX_INTERVAL_HOURS
    ):
        raise InvalidIntervalError(
            f"interval must be between 1 and {MAX_INTERVAL_HOURS} hours: "
            f"{interval_hours!r}"
        )
