"""User record persistence and lifecycle."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from water_tracker.domain.models import DEFAULT_DAILY_GOAL_ML, UserRecord


class PersistenceError(RuntimeError):
    """Raised when the user store cannot complete an operation."""


class PersistenceConflictError(PersistenceError):
    """Raised when a save lost a race against another writer."""


class UserRecordStore(Protocol):
    """Persistence interface for user records."""

    def find_by_user_id(self, user_id: str) -> UserRecord | None:
        """Return the stored record for a user, if present."""

    def create(self, record: UserRecord) -> UserRecord:
        """Insert a new record and return it with its stored version."""

    def save(self, record: UserRecord) -> UserRecord:
        """Update a record if its version is still current."""

    def list_active_reminders(self, due_at: datetime | None = None) -> list[UserRecord]:
        """Return records with reminders on, optionally only those due by ``due_at``."""


@dataclass
class UserService:
    """Application service for user record lifecycle."""

    store: UserRecordStore
    default_daily_goal: int = DEFAULT_DAILY_GOAL_ML

    def load_or_new(self, user_id: str, now: datetime) -> UserRecord:
        """Return the stored record, or an unsaved default one."""
        existing = self.store.find_by_user_id(user_id)
        if existing is not None:
            return existing
        return UserRecord(
            user_id=user_id,
            created_at=now,
            daily_goal=self.default_daily_goal,
        )

    def get(self, user_id: str) -> UserRecord | None:
        """Return the stored record for a user, if present."""
        return self.store.find_by_user_id(user_id)

    def persist(self, record: UserRecord) -> UserRecord:
        """Insert new records and conditionally update existing ones."""
        if record.is_new:
            return self.store.create(record)
        return self.store.save(record)

    def list_active_reminders(self, due_at: datetime | None = None) -> list[UserRecord]:
        """Return users with reminders switched on."""
        return self.store.list_active_reminders(due_at)
