import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

class IssueType(str, enum.Enum):
    BUG = "BUG"
    FEATURE = "FEATURE"
    TASK = "TASK"
    STORY = "STORY"
    EPIC = "EPIC"

class IssuePriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

class IssueStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"

class Issue(Base):
    """
    컬럼에 놓인 작업 단위입니다.
    reporter는 생성자로 고정되고, assignee는 프로젝트 역할과 무관하게 아무 사용자나 지정할 수 있습니다.
    """
    __tablename__ = "issues"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(String)
    type = Column(Enum(IssueType), nullable=False, default=IssueType.TASK)
    priority = Column(Enum(IssuePriority), nullable=False, default=IssuePriority.MEDIUM)
    status = Column(Enum(IssueStatus), nullable=False, default=IssueStatus.TODO)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    column_id = Column(Integer, ForeignKey("columns.id"), nullable=False, index=True)
    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assignee_id = Column(Integer, ForeignKey("users.id"))

    column = relationship("BoardColumn", back_populates="issues")
    reporter = relationship("User", foreign_keys=[reporter_id])
    assignee = relationship("User", foreign_keys=[assignee_id])
