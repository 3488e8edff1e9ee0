from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

class BoardColumn(Base):
    """
    보드 안의 컬럼(예: 'To Do', 'Done')입니다.
    order_index는 보드 안에서 0부터 시작하는 표시 순서입니다.
    """
    __tablename__ = "columns"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    board_id = Column(Integer, ForeignKey("boards.id"), nullable=False, index=True)
    board = relationship("Board", back_populates="columns")
    issues = relationship("Issue", back_populates="column", cascade="all, delete-orphan")
