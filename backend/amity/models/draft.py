from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.sql import func

from amity.core.database import Base


class MemoryDraft(Base):
    __tablename__ = "memory_drafts"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    board_id = Column(String(64), nullable=True)
    content = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
