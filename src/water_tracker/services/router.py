"""Inbound event routing."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime

from water_tracker.domain.events import ButtonAction, InboundEvent, TextMessage
from water_tracker.domain.models import UserRecord
from water_tracker.domain.replies import (
    MenuChoice,
    MenuReply,
    Reply,
    SummaryReply,
    TextReply,
)
from water_tracker.services.clock import Clock
from water_tracker.services.intake import (
    MAX_AMOUNT_ML,
    MAX_DAILY_GOAL_ML,
    AmountTooLargeError,
    IntakeLedger,
    InvalidAmountError,
    parse_amount,
    percent_of_goal,
)
from water_tracker.services.locks import KeyedLocks
from water_tracker.services.profiles import ProfileService
from water_tracker.services.reminders import (
    InvalidIntervalError,
    ReminderScheduler,
    parse_interval,
)
from water_tracker.services.users import PersistenceConflictError, UserService

_logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")

REMINDER_OFF_PAYLOAD = "off"
TRY_AGAIN_TEXT = "Something went wrong, please try again."
GOAL_GUIDANCE_TEXT = "Send your goal in ml, for example: goal 2000"
ZERO_AMOUNT_TEXT = "Please send an amount greater than 0 ml."
AMOUNT_TOO_LARGE_TEXT = (
    f"That is a lot of water. Please log at most {MAX_AMOUNT_ML} ml at once."
)
GOAL_TOO_LARGE_TEXT = f"Please pick a daily goal of at most {MAX_DAILY_GOAL_ML} ml."
INTERVAL_GUIDANCE_TEXT = "Please pick a reminder interval from the menu."


@dataclass
class _Outcome:
    reply: Reply | None
    changed: bool = False


@dataclass
class EventRouter:
    """Interpret one inbound event against the sender's record."""

    user_service: UserService
    ledger: IntakeLedger
    scheduler: ReminderScheduler
    profile_service: ProfileService
    clock: Clock
    reminder_choices: list[int] = field(default_factory=lambda: [1, 2, 3])
    locks: KeyedLocks = field(default_factory=KeyedLocks)
    save_retry_attempts: int = 3

    async def handle(self, event: InboundEvent) -> Reply | None:
        """Process an event and return the reply to send, if any."""
        async with self.locks.hold(event.user_id):
            for attempt in range(1, self.save_retry_attempts + 1):
                try:
                    return await self._handle_once(event)
                except PersistenceConflictError:
                    _logger.warning(
                        "Save conflict for %s (attempt %s/%s)",
                        event.user_id,
                        attempt,
                        self.save_retry_attempts,
                    )
                except Exception:
                    _logger.exception(
                        "Failed to handle event", extra={"user_id": event.user_id}
                    )
                    return TextReply(TRY_AGAIN_TEXT)
        _logger.error("Giving up on event for %s after conflicts", event.user_id)
        return TextReply(TRY_AGAIN_TEXT)

    async def _handle_once(self, event: InboundEvent) -> Reply | None:
        now = self.clock.now()
        user = self.user_service.load_or_new(event.user_id, now)
        renamed = await self.profile_service.refresh(user)
        if isinstance(event, ButtonAction):
            outcome = self._handle_button(user, event.payload, now)
        elif isinstance(event, TextMessage):
            outcome = self._handle_text(user, event.text.strip(), now)
        else:
            return None
        if outcome.changed or renamed or user.is_new:
            self.user_service.persist(user)
        return outcome.reply

    def _handle_button(
        self, user: UserRecord, payload: str, now: datetime
    ) -> _Outcome:
        if payload.strip().lower() == REMINDER_OFF_PAYLOAD:
            return self._disable_reminders(user)
        try:
            hours = parse_interval(payload)
        except InvalidIntervalError:
            return _Outcome(TextReply(INTERVAL_GUIDANCE_TEXT))
        self.scheduler.configure(user, hours, now)
        first_at = user.next_reminder_at.astimezone(self.ledger.zone)
        return _Outcome(
            TextReply(
                f"Reminders set every {_hours(hours)}. "
                f"The first one comes in {_hours(hours)}"
                f" (at {first_at:%H:%M} {self.ledger.timezone_name})."
            ),
            changed=True,
        )

    def _handle_text(self, user: UserRecord, text: str, now: datetime) -> _Outcome:
        lowered = text.lower()
        if _DIGITS.fullmatch(text):
            return self._record_intake(user, text, now)
        if lowered.startswith("goal"):
            return self._set_goal(user, text)
        if lowered == "reminder":
            return _Outcome(self._reminder_menu())
        if lowered == "reminder off":
            return self._disable_reminders(user)
        if lowered == "summary":
            return _Outcome(self._summary(user, now))
        return _Outcome(TextReply(_help_text(user.display_name)))

    def _record_intake(
        self, user: UserRecord, text: str, now: datetime
    ) -> _Outcome:
        try:
            amount = parse_amount(text)
        except AmountTooLargeError:
            return _Outcome(TextReply(AMOUNT_TOO_LARGE_TEXT))
        except InvalidAmountError:
            return _Outcome(TextReply(ZERO_AMOUNT_TEXT))
        total = self.ledger.record(user, amount, now)
        return _Outcome(
            TextReply(
                f"Logged {amount} ml.\n"
                f"Today so far: {total} / {user.daily_goal} ml"
            ),
            changed=True,
        )

    def _set_goal(self, user: UserRecord, text: str) -> _Outcome:
        parts = text.split()
        if len(parts) < 2:
            return _Outcome(TextReply(GOAL_GUIDANCE_TEXT))
        try:
            goal = parse_amount(parts[1], maximum=MAX_DAILY_GOAL_ML)
        except AmountTooLargeError:
            return _Outcome(TextReply(GOAL_TOO_LARGE_TEXT))
        except InvalidAmountError:
            return _Outcome(TextReply(GOAL_GUIDANCE_TEXT))
        user.daily_goal = goal
        return _Outcome(TextReply(f"New daily goal: {goal} ml."), changed=True)

    def _disable_reminders(self, user: UserRecord) -> _Outcome:
        if not user.reminder_active:
            return _Outcome(TextReply("Reminders are already off."))
        self.scheduler.disable(user)
        return _Outcome(TextReply("Reminders turned off."), changed=True)

    def _reminder_menu(self) -> MenuReply:
        choices = [
            MenuChoice(label=f"Every {_hours(hours)}", payload=str(hours))
            for hours in self.reminder_choices
        ]
        choices.append(MenuChoice(label="Stop reminders", payload=REMINDER_OFF_PAYLOAD))
        return MenuReply(text="How often should I remind you?", choices=choices)

    def _summary(self, user: UserRecord, now: datetime) -> SummaryReply:
        total = self.ledger.total(user, now)
        return SummaryReply(
            day=self.ledger.local_day(now),
            total_ml=total,
            goal_ml=user.daily_goal,
            percent=percent_of_goal(total, user.daily_goal),
        )


def _hours(value: int) -> str:
    return "1 hour" if value == 1 else f"{value} hours"


def _help_text(display_name: str) -> str:
    greeting = f"Hi {display_name}!" if display_name else "Hi!"
    return (
        f"{greeting}\n"
        "Here is what I understand:\n"
        "- Log a drink: send the amount in ml, e.g. 200\n"
        "- Set a goal: goal <ml>\n"
        "- Reminders: reminder (or reminder off)\n"
        "- Today's progress: summary"
    )
