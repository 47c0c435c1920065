"""
Database engine and session factory.
"""
import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from girassol.constants import DEFAULT_DB_DIRECTORY_PROD, DB_FILE

DB_DIR = os.getenv("GIRASSOL_DB_DIR", DEFAULT_DB_DIRECTORY_PROD)

try:
    Path(DB_DIR).mkdir(parents=True, exist_ok=True)
    DB_PATH = Path(DB_DIR) / DB_FILE
except OSError:
    # Fallback to local directory
    DB_PATH = Path(".") / DB_FILE

DATABASE_URL = os.getenv("GIRASSOL_DATABASE_URL", f"sqlite:///{DB_PATH}")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
