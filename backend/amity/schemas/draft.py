from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DraftMediaItem(BaseModel):
    model_config = _CAMEL

    id: str | None = None
    url: str
    is_video: bool = False
    order: int | None = None


class DraftMemory(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    kind: str | None = None
    caption: str | None = None
    event_date: datetime | None = None
    location: str | None = None
    access_code: str | None = None
    primary_media_url: str | None = None


class Draft(BaseModel):
    model_config = _CAMEL

    id: str = Field(min_length=1)
    memory: DraftMemory = Field(default_factory=DraftMemory)
    board_id: str | None = None
    media_items: list[DraftMediaItem] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_blob(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @field_validator("last_updated")
    @classmethod
    def last_updated_as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
