"""SQLAlchemy ORM model backing the key-value store"""

from sqlalchemy import Column, DateTime, JSON, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class KeyValueEntry(Base):
    """One JSON document per storage key"""

    __tablename__ = "kv_entry"

    key = Column(Text, primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
