"""
Daily reminder service.
Polled by the scheduler; fires at most once per calendar day once the
configured reminder time has passed.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from girassol.constants import KEY_REMINDER_LAST_FIRED
from girassol.exceptions import InvalidTimeFormatException
from girassol.schemas import Preferences
from girassol.services.date_service import DateService
from girassol.services.preferences_service import PreferencesService

logger = logging.getLogger("girassol.reminders")

REMINDER_TITLE = "Girassol"
REMINDER_BODY = "Hora de registrar seu dia! Hábitos, diário e saúde esperam por você."


def log_notifier(title: str, body: str) -> None:
    """Default notifier: the host has no display capability, so log it"""
    logger.info(f"Reminder: {title} - {body}")


class ReminderService:
    """Service deciding when the daily reminder fires"""

    def __init__(self, store, notifier: Optional[Callable[[str, str], None]] = None):
        self.store = store
        self.notifier = notifier or log_notifier
        self.preferences_service = PreferencesService(store)

    def should_fire(self, now: datetime, preferences: Preferences) -> bool:
        if not preferences.notifications:
            return False

        try:
            if not DateService.is_time_reached(now, preferences.notification_time):
                return False
        except InvalidTimeFormatException as e:
            logger.warning(f"Reminder skipped: {e}")
            return False

        last_fired = self.store.get(KEY_REMINDER_LAST_FIRED, None)
        return last_fired != DateService.to_iso_date(now)

    def check_and_fire(self, now: Optional[datetime] = None) -> bool:
        """
        Fire the reminder if it is due.

        The fire date is stored before notifying so a failing notifier
        cannot cause repeated reminders on the same day.

        Returns:
            True if the reminder fired
        """
        now = now or datetime.now()
        preferences = self.preferences_service.get_preferences()
        if not self.should_fire(now, preferences):
            return False

        if not self.store.set(KEY_REMINDER_LAST_FIRED, DateService.to_iso_date(now)):
            logger.error("Could not record reminder date - reminder not sent")
            return False

        try:
            self.notifier(REMINDER_TITLE, REMINDER_BODY)
        except Exception as e:
            logger.error(f"Notifier failed: {e}")
        return True
