"""
Key-value storage service.
JSON documents stored by key. Every operation fails soft: read problems
return the caller's fallback, write problems are logged and reported as False.
"""
import json
import logging
from typing import Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from girassol.exceptions import StorageException
from girassol.repositories.storage_repository import StorageRepository

logger = logging.getLogger("girassol.storage")


class KeyValueStore:
    """Persistent JSON key-value store backed by the storage_entries table"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = StorageRepository()

    def get(self, key: str, fallback: Any = None) -> Any:
        """
        Load and decode the value stored under key.

        Args:
            key: Storage key
            fallback: Value returned when the key is missing or unreadable

        Returns:
            Decoded JSON value, or fallback
        """
        try:
            return self._read(key)
        except KeyError:
            logger.debug(f"Key '{key}' not found, using fallback")
            return fallback
        except StorageException as e:
            logger.error(f"Error loading {key}: {e}")
            return fallback

    def get_list(self, key: str) -> List[Any]:
        """
        Load a collection stored as a JSON array.

        Imports write values verbatim, so anything other than a list
        (including null) is treated as an empty collection.
        """
        value = self.get(key, [])
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning(f"Expected a list under '{key}', got {type(value).__name__} - treating as empty")
            return []
        return value

    def set(self, key: str, value: Any) -> bool:
        """
        Encode value as JSON and persist it under key.

        Returns:
            True if the value was written, False otherwise
        """
        try:
            self._write(key, value)
            return True
        except StorageException as e:
            logger.error(f"Error saving {key}: {e}")
            return False

    def remove(self, key: str) -> None:
        """Delete key; missing keys are ignored"""
        try:
            self.repo.delete(self.db, key)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error removing {key}: {e}")

    def keys(self) -> List[str]:
        """List stored keys"""
        try:
            return self.repo.get_keys(self.db)
        except SQLAlchemyError as e:
            logger.error(f"Error listing keys: {e}")
            return []

    def _read(self, key: str) -> Any:
        try:
            entry = self.repo.get_by_key(self.db, key)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageException("read", key, str(e)) from e

        if entry is None:
            raise KeyError(key)

        try:
            return json.loads(entry.value)
        except (TypeError, ValueError) as e:
            raise StorageException("read", key, f"corrupt JSON ({e})") from e

    def _write(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageException("write", key, f"not serializable ({e})") from e

        try:
            self.repo.save(self.db, key, encoded)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageException("write", key, str(e)) from e
