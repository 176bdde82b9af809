from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from amity.api.auth import get_viewer_id, require_viewer_id
from amity.api.deps import get_board_repository, respond
from amity.core.errors import capture
from amity.schemas.board import Board
from amity.services.boards import BoardRepository

router = APIRouter(prefix="/boards", tags=["boards"])


class CreateBoardPayload(BaseModel):
    name: str


class JoinBoardPayload(BaseModel):
    share_code: str


class RenameBoardPayload(BaseModel):
    name: str


@router.get("", response_model=list[Board])
async def list_boards(
    viewer_id: str = Depends(require_viewer_id),
    repository: BoardRepository = Depends(get_board_repository),
):
    return await repository.list_for_user(viewer_id)


@router.get("/share/{share_code}", response_model=Board | None)
async def preview_board(
    share_code: str,
    viewer_id: str = Depends(require_viewer_id),
    repository: BoardRepository = Depends(get_board_repository),
):
    return await repository.get_by_share_code(share_code)


@router.post("")
async def create_board(
    payload: CreateBoardPayload,
    viewer_id: str | None = Depends(get_viewer_id),
    repository: BoardRepository = Depends(get_board_repository),
):
    return respond(await capture(repository.create(payload.name, viewer_id), "create_board"))


@router.post("/join")
async def join_board(
    payload: JoinBoardPayload,
    viewer_id: str | None = Depends(get_viewer_id),
    repository: BoardRepository = Depends(get_board_repository),
):
    return respond(await capture(repository.join_by_share_code(payload.share_code, viewer_id), "join_board"))


@router.patch("/{board_id}")
async def rename_board(
    board_id: str,
    payload: RenameBoardPayload,
    viewer_id: str | None = Depends(get_viewer_id),
    repository: BoardRepository = Depends(get_board_repository),
):
    return respond(await capture(repository.rename(board_id, payload.name, viewer_id), "rename_board"))


@router.delete("/{board_id}/members/me")
async def leave_board(
    board_id: str,
    viewer_id: str | None = Depends(get_viewer_id),
    repository: BoardRepository = Depends(get_board_repository),
):
    return respond(await capture(repository.remove_member(board_id, viewer_id), "leave_board"))
