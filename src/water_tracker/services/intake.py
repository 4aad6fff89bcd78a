"""Water intake ledger."""

from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from water_tracker.domain.models import IntakeEntry, UserRecord

MAX_AMOUNT_ML = 10_000
MAX_DAILY_GOAL_ML = 20_000


class InvalidAmountError(ValueError):
    """Raised when an intake amount is not a positive integer."""


class AmountTooLargeError(InvalidAmountError):
    """Raised when an amount is above the accepted maximum."""


@dataclass
class IntakeLedger:
    """Appends intake entries and totals them per calendar day.

    The day window is evaluated at query time in ``timezone_name``; entries
    from earlier days stay on the record but no longer count.
    """

    timezone_name: str = "UTC"

    def record(self, user: UserRecord, amount: int, now: datetime) -> int:
        """Append an intake entry and return today's running total."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmountError(f"amount must be a positive integer: {amount!r}")
        if amount > MAX_AMOUNT_ML:
            raise AmountTooLargeError(f"amount above {MAX_AMOUNT_ML} ml: {amount}")
        user.daily_intake.append(IntakeEntry(amount=amount, occurred_at=now))
        return self.total(user, now)

    def total(self, user: UserRecord, now: datetime) -> int:
        """Return the sum of entries that fall on the same day as ``now``."""
        today = self.local_day(now)
        return sum(
            entry.amount
            for entry in user.daily_intake
            if self.local_day(entry.occurred_at) == today
        )

    def local_day(self, moment: datetime) -> date:
        """Return the calendar date of ``moment`` in the ledger timezone."""
        return moment.astimezone(self.zone).date()

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)


def parse_amount(text: str, maximum: int = MAX_AMOUNT_ML) -> int:
    """Parse an all-digit message into an amount between 1 and ``maximum``."""
    if not text.isascii() or not text.isdigit():
        raise InvalidAmountError(f"not a number: {text!r}")
    # Checked on the digits so huge inputs never reach int().
    if len(text.lstrip("0")) > len(str(maximum)):
        raise AmountTooLargeError(f"amount above {maximum}: {text[:20]}...")
    amount = int(text)
    if amount <= 0:
        raise InvalidAmountError("amount must be greater than zero")
    if amount > maximum:
        raise AmountTooLargeError(f"amount above {maximum}: {amount}")
    return amount


def percent_of_goal(total: int, goal: int) -> float:
    """Return progress toward the goal clamped to [0, 100]."""
    if goal <= 0 or total >= goal:
        return 100.0
    if total <= 0:
        return 0.0
    return 100 * total / goal
