#!/usr/bin/env python3
"""
Run pending Girassol data migrations against an existing database.
The server runs them on startup too; use this to upgrade a copied database
offline or to inspect what changed.
"""

import os
import shutil
import sys
from datetime import date
from pathlib import Path

DB_PATH = "/var/lib/girassol/girassol.db"


def migrate_database(db_path):
    """Apply every migration newer than the stored schema version"""
    print(f"Migrating database: {db_path}")

    # The engine is built at import time from this variable
    os.environ["GIRASSOL_DATABASE_URL"] = f"sqlite:///{db_path}"

    from girassol.database import SessionLocal
    from girassol.services.schema_registry import registry
    from girassol.services.storage_service import KeyValueStore

    db = SessionLocal()
    try:
        store = KeyValueStore(db)
        print(f"Stored keys: {store.keys()}")
        print(f"Schema version: {store.get('schema_version', 0)} (latest: {registry.latest_version})")

        applied = registry.run_migrations(store, date.today())
        if applied:
            print(f"\nApplied {len(applied)} migrations:")
            for name in applied:
                print(f"  - {name}")
            print("\n✓ Migration completed successfully!")
        else:
            print("\n✓ Database is already up to date!")

        print(f"\nFinal keys: {store.keys()}")
    finally:
        db.close()


if __name__ == "__main__":
    db_path = sys.argv[1] if len(sys.argv) > 1 else DB_PATH

    if not Path(db_path).exists():
        print(f"Error: Database file not found: {db_path}")
        print(f"\nUsage: python3 migrate_db.py [path_to_database]")
        print(f"Default path: {DB_PATH}")
        sys.exit(1)

    # Backup database
    backup_path = Path(db_path).with_suffix('.db.backup')
    print(f"Creating backup: {backup_path}")
    shutil.copy2(db_path, backup_path)

    try:
        migrate_database(db_path)
    except Exception as e:
        print(f"\n✗ Migration failed: {e}")
        print(f"Your original database is backed up at: {backup_path}")
        sys.exit(1)
