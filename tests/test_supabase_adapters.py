"""Tests for the Supabase user record store."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest
from postgrest.exceptions import APIError

from water_tracker.adapters.supabase_user_repository import SupabaseUserRecordStore
from water_tracker.domain.models import IntakeEntry, UserRecord
from water_tracker.services.users import PersistenceConflictError, PersistenceError

NOW = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "insert": [], "update": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    insert_error: APIError | None = None
    update_error: APIError | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        self.last_filters = []
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        self.last_filters = []
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def gt(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gt", column, value))
        return self

    def lte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("lte", column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        if action == "insert" and self.insert_error is not None:
            raise self.insert_error
        if action == "update" and self.update_error is not None:
            raise self.update_error
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def _row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "user_id": "42",
        "display_name": "Ann",
        "daily_goal": 1500,
        "reminder_interval_hours": 2,
        "reminder_active": True,
        "next_reminder_at": "2024-05-01T12:00:00+00:00",
        "daily_intake": [{"amount": 200, "occurred_at": "2024-05-01T09:00:00+00:00"}],
        "created_at": "2024-04-30T08:00:00+00:00",
        "version": 3,
    }
    row.update(overrides)
    return row


def test_find_by_user_id_parses_row() -> None:
    client = FakeSupabaseClient()
    client.table("water_users").queue("select", [_row()])

    record = SupabaseUserRecordStore(client).find_by_user_id("42")

    assert record is not None
    assert record.daily_goal == 1500
    assert record.next_reminder_at == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    assert record.daily_intake == [
        IntakeEntry(amount=200, occurred_at=datetime(2024, 5, 1, 9, 0, tzinfo=UTC))
    ]
    assert record.version == 3


def test_find_by_user_id_missing() -> None:
    assert SupabaseUserRecordStore(FakeSupabaseClient()).find_by_user_id("1") is None


def test_find_fills_defaults_for_sparse_rows() -> None:
    client = FakeSupabaseClient()
    client.table("water_users").queue(
        "select",
        [
            _row(
                daily_goal=None,
                next_reminder_at=None,
                daily_intake=None,
                created_at="2024-04-30T08:00:00",
            )
        ],
    )

    record = SupabaseUserRecordStore(client).find_by_user_id("42")

    assert record is not None
    assert record.daily_goal == 2000
    assert record.next_reminder_at is None
    assert record.daily_intake == []
    assert record.created_at.tzinfo is UTC


def test_create_inserts_version_one() -> None:
    client = FakeSupabaseClient()
    table = client.table("water_users")
    table.queue("insert", [_row(version=1)])
    record = UserRecord(user_id="42", created_at=NOW)
    record.daily_intake.append(IntakeEntry(amount=250, occurred_at=NOW))

    created = SupabaseUserRecordStore(client).create(record)

    assert created.version == 1
    assert isinstance(table.last_payload, dict)
    assert table.last_payload["version"] == 1
    assert table.last_payload["daily_intake"] == [
        {"amount": 250, "occurred_at": NOW.isoformat()}
    ]


def test_create_duplicate_is_conflict() -> None:
    client = FakeSupabaseClient()
    client.table("water_users").insert_error = APIError(
        {"code": "23505", "message": "duplicate key value", "details": "", "hint": ""}
    )

    with pytest.raises(PersistenceConflictError):
        SupabaseUserRecordStore(client).create(UserRecord(user_id="42", created_at=NOW))


def test_create_other_errors_are_persistence_errors() -> None:
    client = FakeSupabaseClient()
    client.table("water_users").insert_error = APIError(
        {"code": "42501", "message": "permission denied", "details": "", "hint": ""}
    )
    store = SupabaseUserRecordStore(client)

    with pytest.raises(PersistenceError) as excinfo:
        store.create(UserRecord(user_id="42", created_at=NOW))

    assert not isinstance(excinfo.value, PersistenceConflictError)


def test_create_without_returned_row_is_persistence_error() -> None:
    client = FakeSupabaseClient()

    with pytest.raises(PersistenceError):
        SupabaseUserRecordStore(client).create(UserRecord(user_id="42", created_at=NOW))


def test_save_is_conditional_on_version() -> None:
    client = FakeSupabaseClient()
    table = client.table("water_users")
    table.queue("update", [_row(version=4)])
    record = UserRecord(user_id="42", created_at=NOW, version=3)

    saved = SupabaseUserRecordStore(client).save(record)

    assert saved.version == 4
    assert ("eq", "version", 3) in table.last_filters
    assert isinstance(table.last_payload, dict)
    assert table.last_payload["version"] == 4


def test_save_without_match_is_conflict() -> None:
    client = FakeSupabaseClient()
    record = UserRecord(user_id="42", created_at=NOW, version=3)

    with pytest.raises(PersistenceConflictError):
        SupabaseUserRecordStore(client).save(record)

    assert record.version == 3


def test_save_api_error_is_persistence_error() -> None:
    client = FakeSupabaseClient()
    client.table("water_users").update_error = APIError(
        {"code": "08006", "message": "connection failure", "details": "", "hint": ""}
    )
    record = UserRecord(user_id="42", created_at=NOW, version=3)

    with pytest.raises(PersistenceError):
        SupabaseUserRecordStore(client).save(record)

    assert record.version == 3


def test_list_active_reminders_filters_due() -> None:
    client = FakeSupabaseClient()
    table = client.table("water_users")
    table.queue("select", [_row()])

    records = SupabaseUserRecordStore(client).list_active_reminders(due_at=NOW)

    assert [record.user_id for record in records] == ["42"]
    assert ("eq", "reminder_active", True) in table.last_filters
    assert ("lte", "next_reminder_at", NOW.isoformat()) in table.last_filters
