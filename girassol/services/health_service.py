"""
Daily health log service.
One log per calendar day (weight, workout, meals); saving upserts by date.
"""
import logging
from datetime import date
from typing import List, Optional

from pydantic import ValidationError

from girassol.constants import KEY_HEALTH_LOGS
from girassol.exceptions import DailyLogNotFoundException, ValidationException
from girassol.schemas import DailyLog

logger = logging.getLogger("girassol.health")


class HealthService:
    """Service for daily health logs"""

    def __init__(self, store):
        self.store = store

    def list_logs(self) -> List[DailyLog]:
        """Get all logs sorted ascending by date"""
        return sorted(self._load(), key=lambda log: log.date)

    def get_log(self, log_date: str) -> DailyLog:
        """
        Get the log of a day.

        Returns:
            Stored log, or a blank log for that date when none exists
        """
        log_date = self._check_date(log_date)
        for log in self._load():
            if log.date == log_date:
                return log
        return DailyLog(date=log_date)

    def save_log(self, log: DailyLog) -> List[DailyLog]:
        """
        Insert or replace the log of log.date.

        Returns:
            Full collection after the upsert, sorted ascending by date
        """
        logs = [existing for existing in self._load() if existing.date != log.date]
        logs.append(log)
        logs.sort(key=lambda item: item.date)
        self._save(logs)
        return logs

    def delete_log(self, log_date: str) -> None:
        log_date = self._check_date(log_date)
        logs = self._load()
        remaining = [log for log in logs if log.date != log_date]
        if len(remaining) == len(logs):
            raise DailyLogNotFoundException(log_date)
        self._save(remaining)

    def weight_series(self, limit: Optional[int] = None) -> List[dict]:
        """Get {date, weight} points of logs that recorded a weight, oldest first"""
        points = [
            {"date": log.date, "weight": log.weight}
            for log in self.list_logs()
            if log.weight is not None
        ]
        if limit is not None:
            points = points[-limit:] if limit > 0 else []
        return points

    def _check_date(self, log_date: str) -> str:
        try:
            return date.fromisoformat(log_date).isoformat()
        except (TypeError, ValueError):
            raise ValidationException("date", f"{log_date!r} is not YYYY-MM-DD")

    def _load(self) -> List[DailyLog]:
        logs = []
        for raw in self.store.get_list(KEY_HEALTH_LOGS):
            try:
                logs.append(DailyLog.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping invalid health log record: {e}")
        return logs

    def _save(self, logs: List[DailyLog]) -> None:
        self.store.set(KEY_HEALTH_LOGS, [log.to_storage() for log in logs])
