"""
SQLAlchemy models for the Leafs result tracker.
"""

from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func

from .database import Base


class KeyValueEntry(Base):
    """
    One string value in a logical namespace.

    Namespaces used: ``poll-state`` (scalar strings) and ``game-results``
    (JSON records keyed by game id).
    """

    __tablename__ = "kv_entries"

    namespace = Column(String(50), primary_key=True)
    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<KeyValueEntry(namespace={self.namespace}, key={self.key})>"
