"""
Preferences service.
Reminder and sound settings stored outside the backup set.
"""
import logging

from pydantic import ValidationError

from girassol.constants import KEY_PREFERENCES
from girassol.schemas import Preferences, PreferencesUpdate

logger = logging.getLogger("girassol.preferences")


class PreferencesService:
    """Service for user preferences"""

    def __init__(self, store):
        self.store = store

    def get_preferences(self) -> Preferences:
        """Get preferences (defaults when missing or unreadable)"""
        raw = self.store.get(KEY_PREFERENCES, None)
        if raw is None:
            return Preferences()
        try:
            return Preferences.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Invalid preferences, using defaults: {e}")
            return Preferences()

    def update_preferences(self, update: PreferencesUpdate) -> Preferences:
        """Apply the fields set in update and persist the result"""
        preferences = self.get_preferences()
        for key, value in update.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(preferences, key, value)
        self.store.set(KEY_PREFERENCES, preferences.to_storage())
        return preferences
