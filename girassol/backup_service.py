"""
Backup service for the key-value store.
Handles export/import/clear of the backed-up collections and JSON backup
files on local disk.
"""
import os
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from girassol.constants import (
    DEFAULT_BACKUP_DIRECTORY_PROD, DEFAULT_BACKUP_DIRECTORY_DEV,
    BACKUP_KEEP_LOCAL_COUNT, BACKUP_FILENAME_PREFIX
)
from girassol.exceptions import InvalidBackupException, BackupException
from girassol.services.schema_registry import SchemaRegistry, registry as default_registry

logger = logging.getLogger("girassol.backup")

# Backup directory
BACKUP_DIR = os.getenv("GIRASSOL_BACKUP_DIR", DEFAULT_BACKUP_DIRECTORY_PROD)

# Try to create backup directory
try:
    Path(BACKUP_DIR).mkdir(parents=True, exist_ok=True)
except OSError:
    # Fallback to local directory
    BACKUP_DIR = DEFAULT_BACKUP_DIRECTORY_DEV


@dataclass
class ImportResult:
    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


@dataclass
class BackupFile:
    filename: str
    filepath: str
    size_bytes: int
    backup_type: str
    created_at: datetime


class BackupCodec:
    """Snapshot and restore of every backed-up collection"""

    def __init__(self, store, schema: Optional[SchemaRegistry] = None):
        self.store = store
        self.schema = schema or default_registry

    def export_all(self) -> str:
        """
        Serialize every backed-up collection into one JSON document.

        Missing collections are written as null, never omitted.

        Returns:
            Pretty-printed JSON object keyed by storage key
        """
        data = {key: self.store.get(key, None) for key in self.schema.backup_keys()}
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_document(self, document: str) -> ImportResult:
        """
        Restore collections from an exported document.

        Recognized keys are written verbatim, unknown keys are skipped.
        The document is parsed before anything is written.

        Raises:
            InvalidBackupException: If the document does not parse or holds
                no recognized key
            BackupException: If recognized keys exist but none could be
                written to the store
        """
        try:
            data = json.loads(document)
        except (TypeError, ValueError) as e:
            raise InvalidBackupException(f"not valid JSON ({e})")

        if not isinstance(data, dict):
            raise InvalidBackupException("top level must be an object")

        result = ImportResult()
        for key, value in data.items():
            if not self.schema.is_backup_key(key):
                result.skipped.append(key)
            elif self.store.set(key, value):
                result.written.append(key)
            else:
                result.failed.append(key)

        if result.skipped:
            logger.info(f"Import skipped unknown keys: {', '.join(result.skipped)}")
        if result.failed:
            logger.error(f"✗ Import could not write: {', '.join(result.failed)}")

        if not result.written:
            if result.failed:
                raise BackupException(f"no collection could be written ({', '.join(result.failed)})")
            raise InvalidBackupException("no recognized collections")

        logger.info(f"✓ Imported collections: {', '.join(result.written)}")
        return result

    def import_all(self, document: str) -> bool:
        """
        Restore collections from an exported document.

        Returns:
            True if at least one recognized key was written, False otherwise
        """
        try:
            self.import_document(document)
            return True
        except (InvalidBackupException, BackupException) as e:
            logger.error(f"Import failed: {e}")
            return False

    def clear_all(self) -> None:
        """Remove every backed-up collection"""
        for key in self.schema.backup_keys():
            self.store.remove(key)
        logger.info("All backed-up collections cleared")


def get_backup_filepath(backup_type: str = "auto", backup_dir: str = None) -> tuple[str, str]:
    """Generate backup filename and full path"""
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S-%f")
    filename = f"{BACKUP_FILENAME_PREFIX}_{backup_type}_{timestamp}.json"
    filepath = os.path.join(backup_dir or BACKUP_DIR, filename)
    return filename, filepath


def create_local_backup(
    store,
    backup_type: str = "auto",
    backup_dir: str = None,
    keep_count: int = BACKUP_KEEP_LOCAL_COUNT
) -> Optional[BackupFile]:
    """
    Write the export document to a timestamped file.

    Args:
        store: KeyValueStore to export
        backup_type: "auto" or "manual"
        backup_dir: Target directory (defaults to BACKUP_DIR)
        keep_count: Number of newest backups kept after writing

    Returns:
        BackupFile if successful, None otherwise
    """
    backup_dir = backup_dir or BACKUP_DIR
    try:
        Path(backup_dir).mkdir(parents=True, exist_ok=True)
        filename, filepath = get_backup_filepath(backup_type, backup_dir)

        logger.info(f"Creating backup: {filename}")
        document = BackupCodec(store).export_all()
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(document)

        backup = _describe(Path(filepath))
        logger.info(f"✓ Backup created: {filename} ({backup.size_bytes} bytes)")

        cleanup_old_backups(keep_count, backup_dir)
        return backup

    except OSError as e:
        logger.error(f"✗ Backup failed: {e}")
        return None


def cleanup_old_backups(keep_count: int = BACKUP_KEEP_LOCAL_COUNT, backup_dir: str = None) -> int:
    """Remove old local backups keeping only the last N"""
    removed = 0
    for i, backup in enumerate(get_all_backups(backup_dir=backup_dir, limit=None)):
        if i < keep_count:
            continue
        try:
            os.remove(backup.filepath)
            removed += 1
            logger.info(f"Deleted old backup file: {backup.filename}")
        except OSError as e:
            logger.error(f"Failed to delete backup file {backup.filename}: {e}")
    return removed


def get_all_backups(backup_dir: str = None, limit: Optional[int] = 50) -> List[BackupFile]:
    """Get all backups ordered by creation date (newest first)"""
    directory = Path(backup_dir or BACKUP_DIR)
    if not directory.exists():
        return []

    backups = [
        _describe(path)
        for path in directory.glob(f"{BACKUP_FILENAME_PREFIX}_*.json")
        if path.is_file()
    ]
    backups.sort(key=lambda b: (b.created_at, b.filename), reverse=True)
    return backups if limit is None else backups[:limit]


def get_backup_path(filename: str, backup_dir: str = None) -> Path:
    """
    Resolve a backup filename inside the backup directory.

    Raises:
        BackupException: If the name escapes the directory or does not exist
    """
    directory = Path(backup_dir or BACKUP_DIR).resolve()
    path = (directory / filename).resolve()
    if path.parent != directory or not path.name.startswith(BACKUP_FILENAME_PREFIX):
        raise BackupException(f"invalid backup name {filename!r}")
    if not path.is_file():
        raise BackupException(f"backup {filename!r} not found")
    return path


def read_backup(filename: str, backup_dir: str = None) -> str:
    """Read a backup document"""
    return get_backup_path(filename, backup_dir).read_text(encoding="utf-8")


def delete_backup(filename: str, backup_dir: str = None) -> bool:
    """Delete a backup file"""
    try:
        path = get_backup_path(filename, backup_dir)
        os.remove(path)
    except (BackupException, OSError) as e:
        logger.error(f"Failed to delete backup: {e}")
        return False

    logger.info(f"Deleted backup: {filename}")
    return True


def _describe(path: Path) -> BackupFile:
    # girassol_backup_<type>_<timestamp>.json
    stem = path.stem[len(BACKUP_FILENAME_PREFIX) + 1:]
    backup_type, _, timestamp = stem.partition("_")
    try:
        created_at = datetime.strptime(timestamp, "%Y-%m-%d_%H-%M-%S-%f")
    except ValueError:
        created_at = datetime.fromtimestamp(path.stat().st_mtime)
    return BackupFile(
        filename=path.name,
        filepath=str(path),
        size_bytes=path.stat().st_size,
        backup_type=backup_type or "manual",
        created_at=created_at,
    )
