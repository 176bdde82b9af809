from __future__ import annotations

import re

from pydantic import BaseModel, Field, model_validator

from amity.core.config import ACCESS_CODE_LENGTH, MAX_BOARD_NAME_LENGTH
from amity.core.errors import ValidationFailed

_BOARD_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-_]+$")
_SHARE_CODE_PATTERN = re.compile(rf"^[A-Z0-9]{{{ACCESS_CODE_LENGTH}}}$")


class Board(BaseModel):
    id: str
    name: str
    access_code: str
    share_code: str
    owner_id: str
    member_ids: set[str] = Field(default_factory=set)

    @model_validator(mode="after")
    def owner_is_member(self) -> "Board":
        self.member_ids.add(self.owner_id)
        return self


class BoardOperationResult(BaseModel):
    success: bool
    message: str
    new_name: str | None = None
    board: Board | None = None
    board_deleted: bool = False


def sanitize_board_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailed("Board name cannot be empty")
    if len(cleaned) > MAX_BOARD_NAME_LENGTH:
        raise ValidationFailed(f"Board name must be {MAX_BOARD_NAME_LENGTH} characters or fewer")
    if not _BOARD_NAME_PATTERN.match(cleaned):
        raise ValidationFailed("Board name can only contain letters, numbers, spaces, hyphens and underscores")
    return cleaned


def normalize_share_code(code: str | None) -> str:
    normalized = (code or "").strip().upper()
    if not _SHARE_CODE_PATTERN.match(normalized):
        raise ValidationFailed(f"Please enter a valid {ACCESS_CODE_LENGTH}-character share code")
    return normalized
