from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

class Project(Base):
    """
    보드, 컬럼, 이슈가 속하는 최상위 작업 공간입니다.
    소유자는 owner_id 하나뿐이며, 소유자는 멤버십 행을 가지지 않습니다.
    그 외 사용자의 접근 권한은 ProjectMember 행으로 부여됩니다.
    """
    __tablename__ = "projects"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    owner = relationship("User", back_populates="owned_projects")

    boards = relationship("Board", back_populates="project", cascade="all, delete-orphan", order_by="Board.created_at")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")
