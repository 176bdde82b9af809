import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from amity.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Memory(Base):
    __tablename__ = "memories"
    __table_args__ = (Index("ix_memories_access_code_event_date", "access_code", "event_date"),)

    id = Column(String(64), primary_key=True, default=_new_id)
    access_code = Column(String(16), nullable=False, index=True)
    # Legacy rows predate the discriminator and only carry is_video.
    memory_type = Column(String(16), nullable=True)
    is_video = Column(Boolean, nullable=True)
    media_url = Column(Text, nullable=True)
    caption = Column(Text, nullable=True)
    event_date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=True)
    created_by = Column(String(64), nullable=True, index=True)
    likes = Column(Integer, nullable=True)
    moderation_status = Column(String(16), nullable=False, default="approved", server_default="approved")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    media_items = relationship("MemoryMediaItem", back_populates="memory", cascade="all, delete-orphan")


class MemoryMediaItem(Base):
    __tablename__ = "memory_media_items"

    id = Column(String(64), primary_key=True, default=_new_id)
    memory_id = Column(String(64), ForeignKey("memories.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(Text, nullable=False)
    is_video = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    memory = relationship("Memory", back_populates="media_items")


class MemoryLike(Base):
    __tablename__ = "memory_likes"

    memory_id = Column(String(64), ForeignKey("memories.id", ondelete="CASCADE"), primary_key=True, nullable=False)
    user_id = Column(String(64), primary_key=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
