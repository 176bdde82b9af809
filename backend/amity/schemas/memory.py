from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from amity.core.config import MAX_CAPTION_LENGTH


class MemoryKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    NOTE = "note"
    CAROUSEL = "carousel"


class MediaItem(BaseModel):
    id: str
    memory_id: str
    url: str
    is_video: bool = False
    order: int = Field(ge=0)


class Memory(BaseModel):
    id: str
    kind: MemoryKind
    caption: str | None = None
    event_date: datetime
    location: str | None = None
    access_code: str
    created_by: str | None = None
    like_count: int = Field(default=0, ge=0)
    viewer_has_liked: bool = False
    primary_media_url: str | None = None
    media_items: list[MediaItem] = Field(default_factory=list)


class LikeState(BaseModel):
    count: int = Field(default=0, ge=0)
    viewer_has_liked: bool = False


class MediaItemInput(BaseModel):
    id: str | None = None
    url: str = Field(min_length=1)
    is_video: bool = False


class MemoryCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), min_length=1, max_length=64)
    kind: MemoryKind = MemoryKind.PHOTO
    caption: str | None = Field(default=None, max_length=MAX_CAPTION_LENGTH)
    event_date: datetime
    location: str | None = Field(default=None, max_length=255)
    access_code: str = Field(min_length=1, max_length=16)
    primary_media_url: str | None = None
    media_items: list[MediaItemInput] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_media_shape(self) -> "MemoryCreate":
        if self.kind == MemoryKind.NOTE:
            if self.primary_media_url or self.media_items:
                raise ValueError("A note cannot carry media")
        elif self.kind == MemoryKind.CAROUSEL:
            if not self.media_items:
                raise ValueError("A carousel needs at least one media item")
        elif not self.primary_media_url:
            raise ValueError(f"A {self.kind.value} needs a media url")
        return self


class MemoryUpdate(BaseModel):
    """Partial edit. Only fields explicitly sent are written; an explicit null clears."""

    caption: str | None = Field(default=None, max_length=MAX_CAPTION_LENGTH)
    event_date: datetime | None = None
    location: str | None = Field(default=None, max_length=255)
    primary_media_url: str | None = None

    @model_validator(mode="after")
    def event_date_not_cleared(self) -> "MemoryUpdate":
        if "event_date" in self.model_fields_set and self.event_date is None:
            raise ValueError("event_date cannot be cleared")
        return self
