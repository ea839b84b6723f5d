"""
SQLAlchemy-backed :class:`MediaStore` (``projects`` and ``media`` tables).
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Mapping, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from mediamind.core.exceptions import StorageError
from mediamind.database.connection import create_session_factory
from mediamind.database.models import MediaItem, Project
from mediamind.models.base import License, MediaType, SourceTier
from mediamind.models.job import Job, JobStatus
from mediamind.models.media import CanonicalRecord
from mediamind.services.media_store import MediaStore

logger = structlog.get_logger(__name__)

_COUNT_COLUMNS = {
    MediaType.VIDEO: "video_count",
    MediaType.IMAGE: "image_count",
    MediaType.NEWS: "news_count",
    MediaType.NEWSPAPER: "newspaper_count",
}


def _project_to_job(row: Project) -> Job:
    return Job(
        id=row.id,
        topic=row.topic,
        slug=row.slug,
        status=JobStatus(row.status),
        created_at=row.started_at,
        completed_at=row.completed_at,
        counts={mt: int(getattr(row, col) or 0) for mt, col in _COUNT_COLUMNS.items()},
        error_message=row.error_message,
    )


def _item_to_record(row: MediaItem) -> CanonicalRecord:
    meta = row.meta or {}
    return CanonicalRecord(
        url=row.source_url,
        canonical_url=row.canonical_url,
        title=row.title or "",
        source_name=row.source or "",
        media_type=MediaType(row.type),
        tier=SourceTier(row.tier),
        license=License(row.license),
        snippet=meta.get("snippet"),
        thumbnail_url=row.thumbnail_url,
        published_date=row.published_date,
        duration_seconds=meta.get("duration_seconds"),
        width=meta.get("width"),
        height=meta.get("height"),
        relevance_score=row.relevance_score,
    )


class SQLMediaStore(MediaStore):
    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    async def create_job(self, job: Job) -> None:
        try:
            async with self._session_factory() as session:
                session.add(
                    Project(
                        id=job.id,
                        topic=job.topic,
                        slug=job.slug,
                        status=job.status.value,
                        started_at=job.created_at,
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"create_job failed: {exc}") from exc

    async def insert_media_record(self, job_id: str, record: CanonicalRecord) -> None:
        try:
            async with self._session_factory() as session:
                session.add(
                    MediaItem(
                        project_id=job_id,
                        type=record.media_type.value,
                        title=record.title,
                        source=record.source_name,
                        source_url=record.url,
                        canonical_url=record.canonical_url,
                        tier=int(record.tier),
                        license=record.license.value,
                        relevance_score=record.relevance_score,
                        thumbnail_url=record.thumbnail_url,
                        published_date=record.published_date,
                        meta={
                            "snippet": record.snippet,
                            "duration_seconds": record.duration_seconds,
                            "width": record.width,
                            "height": record.height,
                        },
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"insert_media_record failed: {exc}") from exc

    async def update_job_status(
        self,
        job_id: str,
        status: JobStatus,
        counts: Mapping[MediaType, int],
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> None:
        try:
            async with self._session_factory() as session:
                row = await session.get(Project, job_id)
                if row is None:
                    raise StorageError(f"unknown job {job_id}")
                row.status = status.value
                row.error_message = error_message
                row.completed_at = completed_at
                for mt, col in _COUNT_COLUMNS.items():
                    setattr(row, col, int(counts.get(mt, 0)))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"update_job_status failed: {exc}") from exc

    async def get_job(self, job_id: str) -> Optional[Job]:
        async with self._session_factory() as session:
            row = await session.get(Project, job_id)
            return _project_to_job(row) if row else None

    async def list_media(self, job_id: str) -> List[CanonicalRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(MediaItem)
                .where(MediaItem.project_id == job_id)
                .order_by(MediaItem.type, MediaItem.tier, MediaItem.created_at)
            )
            return [_item_to_record(row) for row in result.scalars().all()]

    async def close(self) -> None:
        await self.engine.dispose()
