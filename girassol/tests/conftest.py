"""
Shared fixtures: in-memory database, key-value store, fixed clock and a
fake chat completion client.
"""
import os
import tempfile

# Keep the app's module-level paths out of /var during tests
_TEST_ROOT = tempfile.mkdtemp(prefix="girassol-tests-")
os.environ.setdefault("GIRASSOL_DB_DIR", _TEST_ROOT)
os.environ.setdefault("GIRASSOL_BACKUP_DIR", os.path.join(_TEST_ROOT, "backups"))
os.environ.setdefault("GIRASSOL_LOG_DIR", os.path.join(_TEST_ROOT, "logs"))
os.environ.setdefault("GIRASSOL_AUTO_BACKUP", "0")
os.environ.setdefault("GIRASSOL_AI_API_KEY", "")

import pytest
from datetime import date, datetime
from types import SimpleNamespace

from openai import OpenAIError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from girassol.database import Base
from girassol import models  # noqa: F401
from girassol.services.ai_service import AIService
from girassol.services.storage_service import KeyValueStore


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db_session):
    return KeyValueStore(db_session)


@pytest.fixture
def today():
    return date(2026, 1, 30)


@pytest.fixture
def now():
    return datetime(2026, 1, 30, 10, 0, 0)


class FakeCompletions:
    """Stands in for client.chat.completions; records every request"""

    def __init__(self, content="", annotations=None, error=None):
        self.content = content
        self.annotations = annotations or []
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content, annotations=self.annotations)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def make_ai_service():
    """Build an AIService whose client answers with the given content"""
    def factory(content="", annotations=None, error=None):
        completions = FakeCompletions(content, annotations, error)
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        return AIService(client=client, model="test-model")
    return factory


@pytest.fixture
def failing_ai_service(make_ai_service):
    return make_ai_service(error=OpenAIError("boom"))


@pytest.fixture
def backup_dir(tmp_path):
    directory = tmp_path / "backups"
    directory.mkdir()
    return str(directory)
