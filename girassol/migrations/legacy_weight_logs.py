"""
Migration: move the legacy weight log into the unified daily health logs.

The legacy collection stored {id, date: "DD/MM/YYYY", weight}. Each record
becomes a DailyLog with no workout and no meals. Runs only while the
health_logs collection is empty; the legacy collection is left untouched.
"""
import logging
from datetime import date
from typing import List

from girassol.constants import KEY_HEALTH_LOGS, KEY_LEGACY_WEIGHT, MEAL_SLOTS
from girassol.exceptions import DateParseException, StorageException
from girassol.services.date_service import DateService

logger = logging.getLogger("girassol.migrations")


def empty_meals() -> dict:
    return {slot: False for slot in MEAL_SLOTS}


def convert_legacy_record(record: dict, today: date) -> dict:
    """Map one legacy weight record onto the daily log format"""
    raw_date = record.get("date") if isinstance(record, dict) else None
    try:
        log_date = DateService.parse_legacy_date(raw_date)
    except DateParseException as e:
        logger.warning(f"{e}; using {today.isoformat()}")
        log_date = today.isoformat()

    log = {
        "date": log_date,
        "workout": False,
        "meals": empty_meals(),
    }
    weight = record.get("weight") if isinstance(record, dict) else None
    if weight is not None:
        log["weight"] = weight
    return log


def convert_legacy_records(records: list, today: date) -> List[dict]:
    """
    Convert the whole legacy collection.

    Records that land on the same date keep the last one, so the result
    holds at most one log per day, sorted ascending by date.
    """
    by_date = {}
    for record in records:
        log = convert_legacy_record(record, today)
        by_date[log["date"]] = log
    return [by_date[key] for key in sorted(by_date)]


def migrate_legacy_weight_logs(store, today: date) -> bool:
    """
    Install converted legacy weight logs as the health_logs collection.

    Args:
        store: KeyValueStore
        today: Date used for legacy dates that cannot be parsed

    Returns:
        True if logs were migrated, False if the step was skipped

    Raises:
        StorageException: If the migrated logs could not be written
    """
    current_logs = store.get(KEY_HEALTH_LOGS, [])
    if current_logs:
        logger.info("Health logs already present - legacy migration skipped")
        return False

    legacy_logs = store.get(KEY_LEGACY_WEIGHT, [])
    if not isinstance(legacy_logs, list) or not legacy_logs:
        return False

    migrated = convert_legacy_records(legacy_logs, today)
    if not store.set(KEY_HEALTH_LOGS, migrated):
        raise StorageException("write", KEY_HEALTH_LOGS, "could not persist migrated health logs")

    logger.info(f"✓ Migrated {len(migrated)} legacy weight log(s) into health logs")
    return True
