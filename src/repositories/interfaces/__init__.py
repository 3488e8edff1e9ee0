from .user import IUserRepository
from .project import IProjectRepository
from .board import IBoardRepository, BoardChain
from .column import IColumnRepository, ColumnChain
from .issue import IIssueRepository, IssueChain
