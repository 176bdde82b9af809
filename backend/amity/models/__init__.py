from amity.models.board import Board, BoardMember
from amity.models.draft import MemoryDraft
from amity.models.memory import Memory, MemoryLike, MemoryMediaItem

__all__ = [
    "Memory",
    "MemoryMediaItem",
    "MemoryLike",
    "Board",
    "BoardMember",
    "MemoryDraft",
]
