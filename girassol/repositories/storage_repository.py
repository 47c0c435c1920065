"""
Storage repository - Data access layer for StorageEntry model.
Handles all database queries on the key-value table.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from girassol.models import StorageEntry


class StorageRepository:
    """Repository for StorageEntry data access"""

    @staticmethod
    def get_by_key(db: Session, key: str) -> Optional[StorageEntry]:
        """Get raw entry for a key"""
        return db.query(StorageEntry).filter(StorageEntry.key == key).first()

    @staticmethod
    def get_keys(db: Session) -> List[str]:
        """Get all stored keys"""
        return [row.key for row in db.query(StorageEntry.key).order_by(StorageEntry.key).all()]

    @staticmethod
    def save(db: Session, key: str, value: str) -> StorageEntry:
        """
        Insert or replace the encoded value for a key.

        Args:
            db: Database session
            key: Storage key
            value: JSON-encoded document

        Returns:
            Persisted entry
        """
        entry = db.query(StorageEntry).filter(StorageEntry.key == key).first()
        if entry:
            entry.value = value
        else:
            entry = StorageEntry(key=key, value=value)
            db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def delete(db: Session, key: str) -> bool:
        """Delete entry if present"""
        entry = db.query(StorageEntry).filter(StorageEntry.key == key).first()
        if not entry:
            return False
        db.delete(entry)
        db.commit()
        return True
