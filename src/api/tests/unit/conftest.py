import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock
from sqlalchemy.orm import Session

from src.api.main import app
from src.common.database.db_connector import get_db


@pytest.fixture
def mock_db_session():
    """SQLAlchemy Session의 Mock 객체를 생성합니다."""
    return MagicMock(spec=Session)


@pytest.fixture
def client(mock_db_session):
    """DB 의존성이 Mock으로 대체된 TestClient (lifespan 미실행)"""
    def override_get_db():
        yield mock_db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    # 테스트 종료 후 오버라이드 복원
    app.dependency_overrides = {}
