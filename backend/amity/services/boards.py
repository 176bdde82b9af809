from __future__ import annotations

import logging
import secrets
import string
import uuid

from sqlalchemy.exc import IntegrityError

from amity.core.config import ACCESS_CODE_LENGTH, BOARD_LIST_LIMIT
from amity.core.errors import NotAuthenticated, NotFound
from amity.schemas.board import Board, BoardOperationResult, normalize_share_code, sanitize_board_name
from amity.services import record_mapper
from amity.services.retry import RetryExecutor
from amity.store.remote import RemoteStore, desc, eq, in_

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_COLLISION_ATTEMPTS = 3


def generate_code(length: int = ACCESS_CODE_LENGTH) -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


class BoardRepository:
    def __init__(self, store: RemoteStore, retry: RetryExecutor | None = None):
        self._store = store
        self._retry = retry or RetryExecutor()

    async def _load(self, board_ids: list[str]) -> list[Board]:
        if not board_ids:
            return []
        rows = await self._store.select(
            "boards", [in_("id", board_ids)], order=[desc("created_at")], limit=BOARD_LIST_LIMIT
        )
        members = await self._store.select("board_members", [in_("board_id", board_ids)])
        member_ids: dict[str, set[str]] = {}
        for member in members:
            member_ids.setdefault(member["board_id"], set()).add(member["user_id"])
        return [record_mapper.to_board(row, member_ids.get(row["id"], ())) for row in rows]

    async def list_for_user(self, user_id: str) -> list[Board]:
        async def load() -> list[Board]:
            owned = await self._store.select("boards", [eq("owner_id", user_id)])
            joined = await self._store.select("board_members", [eq("user_id", user_id)])
            board_ids = list(dict.fromkeys([row["id"] for row in owned] + [row["board_id"] for row in joined]))
            return await self._load(board_ids)

        return await self._retry.run(load, label=f"list_boards user_id={user_id}")

    async def access_codes_for_user(self, user_id: str) -> list[str]:
        return [board.access_code for board in await self.list_for_user(user_id)]

    async def get(self, board_id: str) -> Board:
        boards = await self._retry.run(lambda: self._load([board_id]), label=f"get_board id={board_id}")
        if not boards:
            raise NotFound()
        return boards[0]

    async def get_by_share_code(self, share_code: str) -> Board | None:
        """Invite preview; None when no board carries the code."""
        code = normalize_share_code(share_code)
        result = await self._retry.run(
            lambda: self._store.rpc("get_board_by_share_code", {"share_code": code}),
            label=f"get_board_by_share_code code={code}",
        )
        if not result.get("success"):
            return None
        boards = await self._retry.run(
            lambda: self._load([result["board_id"]]), label=f"get_board id={result['board_id']}"
        )
        return boards[0] if boards else None

    async def create(self, name: str, owner_id: str | None) -> Board:
        if not owner_id:
            raise NotAuthenticated()
        board_name = sanitize_board_name(name)
        board_id = str(uuid.uuid4())

        for attempt in range(1, _CODE_COLLISION_ATTEMPTS + 1):
            params = {
                "board_id": board_id,
                "name": board_name,
                "owner_id": owner_id,
                "access_code": generate_code(),
                "share_code": generate_code(),
            }
            try:
                # The procedure is a no-op for an existing board_id, so retrying it is safe.
                await self._retry.run(
                    lambda: self._store.rpc("create_board_with_owner", params),
                    label=f"create_board id={board_id}",
                )
                break
            except IntegrityError:
                if attempt == _CODE_COLLISION_ATTEMPTS:
                    raise
                logger.warning("board code collision board_id=%s attempt=%s", board_id, attempt)

        return await self.get(board_id)

    async def join_by_share_code(self, share_code: str, user_id: str | None) -> BoardOperationResult:
        if not user_id:
            raise NotAuthenticated()
        code = normalize_share_code(share_code)
        result = await self._retry.run(
            lambda: self._store.rpc("add_member_by_share_code", {"share_code": code, "user_id": user_id}),
            label=f"join_board code={code}",
        )
        board = await self.get(result["board_id"]) if result.get("success") else None
        return BoardOperationResult(success=bool(result.get("success")), message=result["message"], board=board)

    async def rename(self, board_id: str, new_name: str, user_id: str | None) -> BoardOperationResult:
        if not user_id:
            raise NotAuthenticated()
        board_name = sanitize_board_name(new_name)
        result = await self._retry.run(
            lambda: self._store.rpc("rename_board", {"board_id": board_id, "name": board_name, "user_id": user_id}),
            label=f"rename_board id={board_id}",
        )
        return BoardOperationResult(
            success=bool(result.get("success")),
            message=result["message"],
            new_name=result.get("new_name"),
        )

    async def remove_member(self, board_id: str, user_id: str | None) -> BoardOperationResult:
        if not user_id:
            raise NotAuthenticated()
        result = await self._retry.run(
            lambda: self._store.rpc("remove_member", {"board_id": board_id, "user_id": user_id}),
            max_attempts=1,
            label=f"remove_member id={board_id}",
        )
        # Older deployments of the procedure answer with a bare boolean.
        if isinstance(result, bool):
            message = "Successfully removed from board" if result else "You are not a member of this board"
            return BoardOperationResult(success=result, message=message)
        return BoardOperationResult(
            success=bool(result.get("success")),
            message=result["message"],
            board_deleted=bool(result.get("board_deleted")),
        )
