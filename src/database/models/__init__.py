from .user import User
from .project import Project
from .membership import ProjectMember
from .board import Board
from .column import BoardColumn
from .issue import Issue, IssueType, IssuePriority, IssueStatus
