"""
Database models for research jobs ("projects") and their media
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    DateTime,
    Text,
    JSON,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    topic = Column(Text, nullable=False)
    slug = Column(String(80), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="processing")
    started_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at = Column(DateTime(timezone=True))
    video_count = Column(Integer, nullable=False, default=0)
    image_count = Column(Integer, nullable=False, default=0)
    news_count = Column(Integer, nullable=False, default=0)
    newspaper_count = Column(Integer, nullable=False, default=0)
    error_message = Column(Text)

    media = relationship("MediaItem", back_populates="project", cascade="all, delete-orphan")


class MediaItem(Base):
    __tablename__ = "media"
    __table_args__ = (
        UniqueConstraint("project_id", "canonical_url", name="uq_media_project_url"),
        Index("idx_media_project_type", "project_id", "type"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False)
    title = Column(Text)
    source = Column(String(100))
    source_url = Column(Text, nullable=False)
    canonical_url = Column(String(2048), nullable=False)
    tier = Column(Integer, nullable=False)
    license = Column(String(32), nullable=False, default="unknown")
    relevance_score = Column(Float)
    thumbnail_url = Column(Text)
    published_date = Column(DateTime(timezone=True))
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    project = relationship("Project", back_populates="media")
