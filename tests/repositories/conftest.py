# tests/repositories/conftest.py
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.database.database import Base
from src.database import models  # noqa: F401  모델을 메타데이터에 등록합니다.


@pytest.fixture
def db_session():
    """테스트마다 비어 있는 인메모리 SQLite DB에 연결된 세션을 만듭니다."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
