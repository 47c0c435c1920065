"""
Schema registry.
Single table of every persisted key plus the ordered list of versioned
migrations run once at startup.
"""
import copy
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List

from girassol.constants import (
    KEY_HABITS, KEY_TODOS, KEY_JOURNAL, KEY_HEALTH_LOGS, KEY_NEWS_CACHE,
    KEY_LEGACY_WEIGHT, KEY_PREFERENCES, KEY_REMINDER_LAST_FIRED,
    KEY_SCHEMA_VERSION
)
from girassol.exceptions import StorageException
from girassol.migrations.legacy_weight_logs import migrate_legacy_weight_logs

logger = logging.getLogger("girassol.migrations")


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    key: str
    default: Any
    backed_up: bool


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    apply: Callable[[Any, date], bool]


COLLECTIONS: List[CollectionSpec] = [
    CollectionSpec("habits", KEY_HABITS, [], backed_up=True),
    CollectionSpec("todos", KEY_TODOS, [], backed_up=True),
    CollectionSpec("journal", KEY_JOURNAL, [], backed_up=True),
    CollectionSpec("health_logs", KEY_HEALTH_LOGS, [], backed_up=True),
    CollectionSpec("news_cache", KEY_NEWS_CACHE, None, backed_up=True),
    CollectionSpec("legacy_weight", KEY_LEGACY_WEIGHT, [], backed_up=False),
    CollectionSpec("preferences", KEY_PREFERENCES, None, backed_up=False),
    CollectionSpec("reminder_last_fired", KEY_REMINDER_LAST_FIRED, None, backed_up=False),
    CollectionSpec("schema_version", KEY_SCHEMA_VERSION, 0, backed_up=False),
]

MIGRATIONS: List[Migration] = [
    Migration(1, "legacy_weight_to_health_logs", migrate_legacy_weight_logs),
]


class SchemaRegistry:
    """Lookup of collection keys and runner for schema migrations"""

    def __init__(
        self,
        collections: List[CollectionSpec] = None,
        migrations: List[Migration] = None
    ):
        self.collections = collections if collections is not None else COLLECTIONS
        self.migrations = sorted(
            migrations if migrations is not None else MIGRATIONS,
            key=lambda m: m.version
        )
        self._by_name: Dict[str, CollectionSpec] = {c.name: c for c in self.collections}

    def key_for(self, name: str) -> str:
        """Get storage key of a named collection"""
        return self._by_name[name].key

    def default_for(self, name: str) -> Any:
        """Get a fresh copy of a collection's empty value"""
        return copy.deepcopy(self._by_name[name].default)

    def backup_keys(self) -> List[str]:
        """Keys included in export/import/clear, in registry order"""
        return [c.key for c in self.collections if c.backed_up]

    def is_backup_key(self, key: str) -> bool:
        return key in self.backup_keys()

    @property
    def latest_version(self) -> int:
        return self.migrations[-1].version if self.migrations else 0

    def run_migrations(self, store, today: date) -> List[str]:
        """
        Apply every migration newer than the stored schema version.

        Each migration guards itself, so running this twice never changes
        data on the second run. A migration returning False was skipped and
        still advances the version; one raising StorageException failed, so
        the version stays put and the remaining migrations wait for the next
        start.

        Args:
            store: KeyValueStore
            today: Reference date passed to migrations

        Returns:
            Names of migrations that changed data
        """
        current_version = store.get(KEY_SCHEMA_VERSION, 0)
        if not isinstance(current_version, int):
            logger.warning(f"Unexpected schema version {current_version!r}, assuming 0")
            current_version = 0

        applied = []
        stalled = False
        for migration in self.migrations:
            if migration.version <= current_version:
                continue

            logger.info(f"Running migration {migration.version}: {migration.name}")
            try:
                changed = migration.apply(store, today)
            except StorageException as e:
                logger.error(f"✗ Migration {migration.version} failed, will retry on next start: {e}")
                stalled = True
                break

            if changed:
                applied.append(migration.name)
            if not store.set(KEY_SCHEMA_VERSION, migration.version):
                logger.error(f"✗ Could not record schema version {migration.version}")
                stalled = True
                break

        if applied:
            logger.info(f"✓ Migrations applied: {', '.join(applied)}")
        elif not stalled:
            logger.info("✓ Schema is up to date - no migrations needed")
        return applied


registry = SchemaRegistry()
