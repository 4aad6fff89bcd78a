"""Supabase-backed user record store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from postgrest.exceptions import APIError
from supabase import Client

from water_tracker.domain.models import DEFAULT_DAILY_GOAL_ML, IntakeEntry, UserRecord
from water_tracker.services.users import (
    PersistenceConflictError,
    PersistenceError,
    UserRecordStore,
)

_TABLE = "water_users"
_COLUMNS = (
    "user_id, display_name, daily_goal, reminder_interval_hours, "
    "reminder_active, next_reminder_at, daily_intake, created_at, version"
)
_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseUserRecordStore(UserRecordStore):
    """Supabase implementation with optimistic concurrency on ``version``."""

    client: Client

    def find_by_user_id(self, user_id: str) -> UserRecord | None:
        """Return the stored record for a user, if present."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def create(self, record: UserRecord) -> UserRecord:
        """Insert a new record at version 1."""
        payload = _to_row(record)
        payload["version"] = 1
        try:
            response = self.client.table(_TABLE).insert(payload).execute()
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise PersistenceConflictError(
                    f"user {record.user_id} was created concurrently"
                ) from exc
            raise PersistenceError(
                f"failed to create user {record.user_id}: {exc.message}"
            ) from exc
        if not response.data:
            raise PersistenceError("Failed to create user record in Supabase")
        record.version = 1
        return record

    def save(self, record: UserRecord) -> UserRecord:
        """Update the record only if nobody saved it since it was read."""
        payload = _to_row(record)
        payload["version"] = record.version + 1
        payload["updated_at"] = datetime.now(tz=UTC).isoformat()
        try:
            response = (
                self.client.table(_TABLE)
                .update(payload)
                .eq("user_id", record.user_id)
                .eq("version", record.version)
                .execute()
            )
        except APIError as exc:
            raise PersistenceError(
                f"failed to save user {record.user_id}: {exc.message}"
            ) from exc
        if not response.data:
            raise PersistenceConflictError(
                f"user {record.user_id} changed since version {record.version}"
            )
        record.version += 1
        return record

    def list_active_reminders(self, due_at: datetime | None = None) -> list[UserRecord]:
        """Return users with reminders on, optionally only those already due."""
        query = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("reminder_active", True)
            .gt("reminder_interval_hours", 0)
        )
        if due_at is not None:
            query = query.lte("next_reminder_at", due_at.isoformat())
        response = query.execute()
        return [_parse_row(row) for row in response.data or []]


def _to_row(record: UserRecord) -> dict[str, object]:
    return {
        "user_id": record.user_id,
        "display_name": record.display_name,
        "daily_goal": record.daily_goal,
        "reminder_interval_hours": record.reminder_interval_hours,
        "reminder_active": record.reminder_active,
        "next_reminder_at": (
            record.next_reminder_at.isoformat() if record.next_reminder_at else None
        ),
        "daily_intake": [
            {"amount": entry.amount, "occurred_at": entry.occurred_at.isoformat()}
            for entry in record.daily_intake
        ],
        "created_at": record.created_at.isoformat(),
    }


def _parse_row(row: dict[str, object]) -> UserRecord:
    intake_raw = row.get("daily_intake") or []
    entries = [
        IntakeEntry(
            amount=int(item["amount"]),
            occurred_at=_parse_timestamp(item["occurred_at"]),
        )
        for item in intake_raw
        if isinstance(item, dict) and item.get("occurred_at")
    ]
    next_raw = row.get("next_reminder_at")
    return UserRecord(
        user_id=str(row["user_id"]),
        display_name=str(row.get("display_name") or ""),
        daily_goal=int(row.get("daily_goal") or DEFAULT_DAILY_GOAL_ML),
        reminder_interval_hours=int(row.get("reminder_interval_hours") or 0),
        reminder_active=bool(row.get("reminder_active")),
        next_reminder_at=_parse_timestamp(next_raw) if next_raw else None,
        daily_intake=entries,
        created_at=_parse_timestamp(row["created_at"]),
        version=int(row.get("version") or 0),
    )


def _parse_timestamp(raw: object) -> datetime:
    parsed = datetime.fromisoformat(str(raw))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
