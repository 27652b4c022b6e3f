# duka/models/documents.py

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, String
from sqlalchemy.sql import func

from duka.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(32), primary_key=True)

    collection = Column(String(64), nullable=False, index=True)

    data = Column(JSON, nullable=False, default=dict)

    # Microsecond precision keeps insertion order stable within a second
    created_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_documents_collection_created", "collection", "created_at"),
    )
