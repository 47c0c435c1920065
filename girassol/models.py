from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime
from girassol.database import Base


class StorageEntry(Base):
    __tablename__ = "storage_entries"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)  # JSON-encoded document
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
