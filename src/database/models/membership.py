from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from src.rbac.roles import Role
from ..database import Base

class ProjectMember(Base):
    """
    (프로젝트, 사용자) -> 역할 관계를 저장하는 멤버십 모델입니다.
    한 사용자는 한 프로젝트에 최대 하나의 멤버십 행만 가질 수 있습니다.
    """
    __tablename__ = "project_members"
    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    role = Column(Enum(Role), nullable=False, default=Role.VIEWER)
    joined_at = Column(DateTime, server_default=func.now())

    project = relationship("Project", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_member"),)
