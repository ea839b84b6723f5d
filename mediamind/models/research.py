"""
Research request/response Pydantic models
"""

from typing import Optional, Dict, List, Any
from pydantic import BaseModel, Field

from mediamind.core import config
from mediamind.models.base import MediaType


class ResearchOptions(BaseModel):
    max_videos: int = Field(default=config.DEFAULT_MAX_VIDEOS, ge=0, le=1000)
    max_images: int = Field(default=config.DEFAULT_MAX_IMAGES, ge=0, le=1000)
    max_news: int = Field(default=config.DEFAULT_MAX_NEWS, ge=0, le=1000)
    max_newspapers: int = Field(default=config.DEFAULT_MAX_NEWSPAPERS, ge=0, le=1000)
    media_types: Optional[List[MediaType]] = None

    def limit_for(self, media_type: MediaType) -> int:
        return {
            MediaType.VIDEO: self.max_videos,
            MediaType.IMAGE: self.max_images,
            MediaType.NEWS: self.max_news,
            MediaType.NEWSPAPER: self.max_newspapers,
        }[media_type]

    def requested_types(self) -> List[MediaType]:
        """Media types to run; a cap of 0 skips the type."""
        types = dict.fromkeys(self.media_types or list(MediaType))
        return [mt for mt in types if self.limit_for(mt) > 0]


class ResearchRequest(BaseModel):
    topic: str = Field(..., min_length=2, max_length=300)
    options: ResearchOptions = Field(default_factory=ResearchOptions)


class JobCreatedResponse(BaseModel):
    success: bool = True
    job_id: str
    slug: str
    topic: str
    status: str


class CancelResponse(BaseModel):
    success: bool = True
    job_id: str
    message: str = "Cancellation requested"


class JobStatusResponse(BaseModel):
    job_id: str
    topic: str
    slug: str
    status: str
    counts: Dict[str, int]
    error_message: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    media: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
