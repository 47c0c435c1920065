"""
Tests for SchemaRegistry and the legacy weight migration.

Tests cover:
1. Collection lookup and backup key set
2. Legacy weight logs converted into daily health logs
3. Migration runner idempotence
"""
import pytest
from datetime import date
from unittest.mock import patch

from girassol.constants import MEAL_SLOTS
from girassol.exceptions import StorageException
from girassol.migrations.legacy_weight_logs import (
    convert_legacy_record, convert_legacy_records, migrate_legacy_weight_logs
)
from girassol.services.schema_registry import SchemaRegistry, Migration, registry


class TestRegistryLookup:
    """Tests for collection metadata"""

    def test_backup_keys(self):
        """Should list exactly the backed-up collections in order"""
        assert registry.backup_keys() == ["habits", "todos", "journal", "health_logs", "news_cache"]

    def test_internal_keys_are_not_backed_up(self):
        for key in ("weight", "preferences", "reminder_last_fired", "schema_version"):
            assert registry.is_backup_key(key) is False

    def test_key_for(self):
        assert registry.key_for("legacy_weight") == "weight"
        assert registry.key_for("health_logs") == "health_logs"

    def test_default_for_returns_fresh_copy(self):
        """Should not share the default list between callers"""
        first = registry.default_for("habits")
        first.append("x")

        assert registry.default_for("habits") == []

    def test_latest_version(self):
        assert registry.latest_version == 1


class TestLegacyConversion:
    """Tests for mapping one legacy record"""

    def test_reverses_date_components(self, today):
        """Should turn DD/MM/YYYY into YYYY-MM-DD"""
        log = convert_legacy_record({"id": "1", "date": "25/12/2025", "weight": 80.5}, today)

        assert log["date"] == "2025-12-25"
        assert log["weight"] == 80.5
        assert log["workout"] is False
        assert log["meals"] == {slot: False for slot in MEAL_SLOTS}

    def test_unparsable_date_uses_today(self, today):
        """Should fall back to today for garbage dates"""
        for raw in ("", "ontem", "31/02/2025", None, 20251225):
            log = convert_legacy_record({"date": raw, "weight": 70}, today)
            assert log["date"] == "2026-01-30"

    def test_same_date_keeps_last(self, today):
        """Should keep the last record of a duplicated date"""
        logs = convert_legacy_records(
            [
                {"date": "02/01/2026", "weight": 81},
                {"date": "01/01/2026", "weight": 82},
                {"date": "02/01/2026", "weight": 80},
            ],
            today,
        )

        assert [log["date"] for log in logs] == ["2026-01-01", "2026-01-02"]
        assert logs[1]["weight"] == 80


class TestLegacyMigration:
    """Tests for migrate_legacy_weight_logs"""

    def test_migrates_into_empty_health_logs(self, store, today):
        legacy = [{"id": "1", "date": "25/12/2025", "weight": 80.5}]
        store.set("weight", legacy)

        assert migrate_legacy_weight_logs(store, today) is True

        logs = store.get("health_logs")
        assert logs == [{
            "date": "2025-12-25",
            "weight": 80.5,
            "workout": False,
            "meals": {slot: False for slot in MEAL_SLOTS},
        }]
        assert store.get("weight") == legacy

    def test_skips_when_health_logs_present(self, store, today):
        """Should never touch an existing health log collection"""
        existing = [{"date": "2026-01-01", "workout": True, "meals": {}}]
        store.set("health_logs", existing)
        store.set("weight", [{"date": "25/12/2025", "weight": 80}])

        assert migrate_legacy_weight_logs(store, today) is False
        assert store.get("health_logs") == existing

    def test_skips_without_legacy_data(self, store, today):
        assert migrate_legacy_weight_logs(store, today) is False
        assert store.get("health_logs") is None

    def test_second_run_changes_nothing(self, store, today):
        store.set("weight", [{"date": "25/12/2025", "weight": 80}])
        migrate_legacy_weight_logs(store, today)
        first = store.get("health_logs")

        assert migrate_legacy_weight_logs(store, date(2027, 1, 1)) is False
        assert store.get("health_logs") == first


class TestRunMigrations:
    """Tests for the versioned migration runner"""

    def test_applies_pending_and_records_version(self, store, today):
        store.set("weight", [{"date": "01/01/2026", "weight": 75}])

        applied = registry.run_migrations(store, today)

        assert applied == ["legacy_weight_to_health_logs"]
        assert store.get("schema_version") == 1
        assert store.get("health_logs")[0]["date"] == "2026-01-01"

    def test_second_run_is_noop(self, store, today):
        store.set("weight", [{"date": "01/01/2026", "weight": 75}])
        registry.run_migrations(store, today)
        store.set("health_logs", [])

        assert registry.run_migrations(store, today) == []
        assert store.get("health_logs") == []

    def test_records_version_when_nothing_to_migrate(self, store, today):
        assert registry.run_migrations(store, today) == []
        assert store.get("schema_version") == 1

    def test_runs_migrations_in_version_order(self, store, today):
        calls = []

        def record(name):
            def apply(s, d):
                calls.append(name)
                return True
            return apply

        custom = SchemaRegistry(migrations=[
            Migration(2, "second", record("second")),
            Migration(1, "first", record("first")),
        ])

        assert custom.run_migrations(store, today) == ["first", "second"]
        assert calls == ["first", "second"]
        assert store.get("schema_version") == 2

    def test_non_integer_version_treated_as_zero(self, store, today):
        store.set("schema_version", "v1")

        registry.run_migrations(store, today)

        assert store.get("schema_version") == 1


def refusing(store, refused_key):
    """Wrap store.set so writes to one key report failure"""
    real_set = store.set

    def set_value(key, value):
        return False if key == refused_key else real_set(key, value)

    return patch.object(store, "set", side_effect=set_value)


class TestFailedMigrations:
    """Tests for migrations whose writes do not persist"""

    def test_legacy_migration_raises_when_write_fails(self, store, today):
        store.set("weight", [{"date": "25/12/2025", "weight": 80}])

        with refusing(store, "health_logs"):
            with pytest.raises(StorageException):
                migrate_legacy_weight_logs(store, today)

    def test_version_not_recorded_after_failure(self, store, today):
        """Should leave the schema version unstamped so the next start retries"""
        store.set("weight", [{"date": "25/12/2025", "weight": 80}])

        with refusing(store, "health_logs"):
            assert registry.run_migrations(store, today) == []

        assert store.get("schema_version") is None
        assert store.get("health_logs") is None

        assert registry.run_migrations(store, today) == ["legacy_weight_to_health_logs"]
        assert store.get("schema_version") == 1
        assert store.get("health_logs")[0]["date"] == "2025-12-25"

    def test_later_migrations_wait_for_failed_one(self, store, today):
        calls = []

        def failing(s, d):
            raise StorageException("write", "habits", "disk full")

        def second(s, d):
            calls.append("second")
            return True

        custom = SchemaRegistry(migrations=[Migration(1, "first", failing), Migration(2, "second", second)])

        assert custom.run_migrations(store, today) == []
        assert calls == []
        assert store.get("schema_version") is None

    def test_version_write_failure_stops_runner(self, store, today):
        calls = []

        def record(name):
            def apply(s, d):
                calls.append(name)
                return False
            return apply

        custom = SchemaRegistry(migrations=[Migration(1, "first", record("first")), Migration(2, "second", record("second"))])

        with refusing(store, "schema_version"):
            custom.run_migrations(store, today)

        assert calls == ["first"]
