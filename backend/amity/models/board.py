import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from amity.core.database import Base


class Board(Base):
    __tablename__ = "boards"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    owner_id = Column(String(64), nullable=False, index=True)
    access_code = Column(String(16), nullable=False, unique=True)
    share_code = Column(String(16), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    members = relationship("BoardMember", back_populates="board", cascade="all, delete-orphan")


class BoardMember(Base):
    __tablename__ = "board_members"

    board_id = Column(String(64), ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True, nullable=False)
    user_id = Column(String(64), primary_key=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    board = relationship("Board", back_populates="members")
