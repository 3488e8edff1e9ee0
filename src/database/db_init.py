import logging

from sqlalchemy.exc import SQLAlchemyError

from .database import engine, SessionLocal, Base
from .models import *
from src.rbac.roles import Role
from src.services.identity_service import hash_password

logger = logging.getLogger(__name__)

DEMO_PASSWORD = 'password123'


def initialize_db(seed: bool = True):
    """
    DB와 테이블을 생성하고, 데모 데이터를 삽입합니다.
    SQLAlchemy 모델을 사용하여 모든 작업을 수행합니다.
    """
    logger.info("DB 초기화 중 (%s)...", engine.url)

    # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
    Base.metadata.create_all(bind=engine)
    logger.info("테이블 생성 완료.")

    if not seed:
        return

    db = SessionLocal()
    try:
        # 기본 데이터가 이미 있는지 확인
        if db.query(User).first():
            logger.info("기본 데이터가 이미 존재합니다. 초기화를 건너뜁니다.")
            return

        logger.info("데모 데이터 삽입 중...")

        # Users
        users = {}
        for username in ('owner', 'admin', 'developer', 'viewer'):
            users[username] = User(
                email=f'{username}@example.com',
                username=username,
                first_name=username.capitalize(),
                last_name='Demo',
                password_hash=hash_password(DEMO_PASSWORD),
            )
            db.add(users[username])

        # 변경사항을 커밋하여 각 객체의 id를 할당받습니다.
        db.commit()

        # Project (소유자는 멤버십 행 없이 owner_id로만 표현됩니다)
        project = Project(name='Demo Project', description='Sample project', owner_id=users['owner'].id)
        db.add(project)
        db.commit()

        for username, role in (('admin', Role.ADMIN), ('developer', Role.DEVELOPER), ('viewer', Role.VIEWER)):
            db.add(ProjectMember(project_id=project.id, user_id=users[username].id, role=role))

        # Board + 기본 컬럼
        board = Board(name='Main Board', description='Default board', project_id=project.id)
        for index, name in enumerate(('To Do', 'In Progress', 'Done')):
            board.columns.append(BoardColumn(name=name, order_index=index))
        db.add(board)
        db.commit()

        db.add(Issue(
            title='Set up the repository',
            type=IssueType.TASK,
            priority=IssuePriority.HIGH,
            status=IssueStatus.TODO,
            column_id=board.columns[0].id,
            reporter_id=users['owner'].id,
            assignee_id=users['developer'].id,
        ))
        db.commit()
        logger.info("DB 초기화 및 데모 데이터 삽입 완료.")

    except SQLAlchemyError:
        logger.exception("데모 데이터 삽입 중 오류 발생")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == '__main__':
    from src.config import settings
    logging.basicConfig(level=settings.log_level)
    initialize_db()
