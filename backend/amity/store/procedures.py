"""
Named multi-statement operations executed inside one transaction.

Each procedure receives an open session whose transaction is committed by
the caller, so a procedure either applies completely or not at all.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from amity.core.errors import NotFound
from amity.models.board import Board, BoardMember
from amity.models.memory import Memory, MemoryLike

logger = logging.getLogger(__name__)


async def _is_member(session: AsyncSession, board: Board, user_id: str | None) -> bool:
    if not user_id:
        return False
    if board.owner_id == user_id:
        return True
    result = await session.execute(
        select(BoardMember.user_id).where(BoardMember.board_id == board.id, BoardMember.user_id == user_id)
    )
    return result.scalar_one_or_none() is not None


async def create_board_with_owner(
    session: AsyncSession,
    board_id: str,
    name: str,
    owner_id: str,
    access_code: str,
    share_code: str,
) -> str:
    existing = await session.get(Board, board_id)
    if existing is not None:
        return existing.id

    session.add(Board(id=board_id, name=name, owner_id=owner_id, access_code=access_code, share_code=share_code))
    await session.flush()
    session.add(BoardMember(board_id=board_id, user_id=owner_id))
    await session.flush()
    logger.info("board created board_id=%s owner_id=%s", board_id, owner_id)
    return board_id


async def rename_board(session: AsyncSession, board_id: str, name: str, user_id: str | None) -> dict:
    new_name = (name or "").strip()
    if not new_name:
        return {"success": False, "message": "Board name cannot be empty"}
    if not user_id:
        return {"success": False, "message": "User not authenticated"}

    result = await session.execute(select(Board).where(Board.id == board_id).with_for_update())
    board = result.scalar_one_or_none()
    if board is None or not await _is_member(session, board, user_id):
        return {"success": False, "message": "Board not found or access denied"}

    board.name = new_name
    await session.flush()
    return {"success": True, "message": "Board renamed successfully", "new_name": new_name}


async def get_board_by_share_code(session: AsyncSession, share_code: str) -> dict:
    code = (share_code or "").strip().upper()
    if not code:
        return {"success": False, "message": "Share code is required"}
    result = await session.execute(select(Board.id).where(Board.share_code == code))
    board_id = result.scalar_one_or_none()
    if board_id is None:
        return {"success": False, "message": "Board not found with this share code"}
    return {"success": True, "board_id": board_id}


async def add_member_by_share_code(session: AsyncSession, share_code: str, user_id: str) -> dict:
    code = (share_code or "").strip().upper()
    if not code:
        return {"success": False, "message": "Share code is required"}

    result = await session.execute(select(Board).where(Board.share_code == code).with_for_update())
    board = result.scalar_one_or_none()
    if board is None:
        return {"success": False, "message": "Board not found with this share code"}

    payload = {"success": True, "board_id": board.id, "board_name": board.name}
    if board.owner_id == user_id:
        return {**payload, "message": f'You\'re the owner of "{board.name}"'}
    if await _is_member(session, board, user_id):
        return {**payload, "message": f'You\'re already a member of "{board.name}"'}

    session.add(BoardMember(board_id=board.id, user_id=user_id))
    await session.flush()
    return {**payload, "message": f'Successfully joined "{board.name}"'}


async def remove_member(session: AsyncSession, board_id: str, user_id: str) -> dict:
    result = await session.execute(select(Board).where(Board.id == board_id).with_for_update())
    board = result.scalar_one_or_none()
    if board is None:
        return {"success": False, "message": "Board not found"}
    if not await _is_member(session, board, user_id):
        return {"success": False, "message": "You are not a member of this board"}

    await session.execute(
        delete(BoardMember).where(BoardMember.board_id == board.id, BoardMember.user_id == user_id)
    )
    remaining_result = await session.execute(
        select(BoardMember.user_id)
        .where(BoardMember.board_id == board.id)
        .order_by(BoardMember.created_at.asc(), BoardMember.user_id.asc())
    )
    remaining = [member for member in remaining_result.scalars().all() if member != user_id]
    if board.owner_id != user_id and board.owner_id not in remaining:
        remaining.insert(0, board.owner_id)

    if not remaining:
        await session.execute(delete(Memory).where(Memory.access_code == board.access_code))
        await session.delete(board)
        await session.flush()
        logger.info("board deleted after last member left board_id=%s", board_id)
        return {"success": True, "message": "Board deleted successfully as last member left", "board_deleted": True}

    if board.owner_id == user_id:
        board.owner_id = remaining[0]
        await session.flush()
        return {
            "success": True,
            "message": "Left board and transferred ownership",
            "new_owner_id": remaining[0],
        }

    await session.flush()
    return {"success": True, "message": "Successfully removed from board"}


async def _like_state(session: AsyncSession, memory_id: str, user_id: str | None) -> dict:
    count_result = await session.execute(
        select(func.count()).select_from(MemoryLike).where(MemoryLike.memory_id == memory_id)
    )
    count = int(count_result.scalar_one() or 0)
    liked = False
    if user_id:
        liked_result = await session.execute(
            select(MemoryLike.user_id).where(MemoryLike.memory_id == memory_id, MemoryLike.user_id == user_id)
        )
        liked = liked_result.scalar_one_or_none() is not None
    return {"count": count, "viewer_has_liked": liked}


async def toggle_like(session: AsyncSession, memory_id: str, user_id: str) -> dict:
    result = await session.execute(select(Memory).where(Memory.id == memory_id).with_for_update())
    memory = result.scalar_one_or_none()
    if memory is None:
        raise NotFound()

    board_result = await session.execute(select(Board).where(Board.access_code == memory.access_code))
    board = board_result.scalar_one_or_none()
    if board is None or not await _is_member(session, board, user_id):
        raise NotFound()

    existing = await session.get(MemoryLike, (memory_id, user_id))
    if existing is None:
        session.add(MemoryLike(memory_id=memory_id, user_id=user_id))
    else:
        await session.delete(existing)
    await session.flush()

    state = await _like_state(session, memory_id, user_id)
    memory.likes = state["count"]
    await session.flush()
    return state


async def get_memory_like_status(session: AsyncSession, memory_id: str, user_id: str | None = None) -> dict:
    memory = await session.get(Memory, memory_id)
    if memory is None:
        raise NotFound()
    return await _like_state(session, memory_id, user_id)


PROCEDURES: dict[str, Callable[..., Awaitable[Any]]] = {
    "create_board_with_owner": create_board_with_owner,
    "rename_board": rename_board,
    "get_board_by_share_code": get_board_by_share_code,
    "add_member_by_share_code": add_member_by_share_code,
    "remove_member": remove_member,
    "toggle_like": toggle_like,
    "get_memory_like_status": get_memory_like_status,
}
