"""Domain models for the water tracker."""

from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_DAILY_GOAL_ML = 2000


@dataclass(frozen=True)
class IntakeEntry:
    """A single recorded drink."""

    amount: int
    occurred_at: datetime


@dataclass
class UserRecord:
    """Per-user intake and reminder state.

    ``version`` is the optimistic concurrency stamp; ``0`` means the record
    has not been persisted yet.
    """

    user_id: str
    created_at: datetime
    display_name: str = ""
    daily_goal: int = DEFAULT_DAILY_GOAL_ML
    reminder_interval_hours: int = 0
    reminder_active: bool = False
    next_reminder_at: datetime | None = None
    daily_intake: list[IntakeEntry] = field(default_factory=list)
    version: int = 0

    @property
    def is_new(self) -> bool:
        """Return True when the record was never saved."""
        return self.version == 0
