import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.common.database.db_connector import Base
from src.common.models import User, Token, TokenCall, TokenCallStatus
from src.common.services.price_history_service import PriceHistoryProvider

# 테스트 기준 시각 (naive UTC)
NOW = datetime(2024, 1, 10, 12, 0, 0)


# 실제 모델 메타데이터로 인메모리 SQLite 스키마를 만듭니다.
@pytest.fixture(scope='function')
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def user(db_session):
    user = User(id=1, username="alice", telegram_id=111)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def token(db_session):
    token = Token(mint_address="So11111111111111111111111111111111111111112", name="Wrapped SOL", symbol="SOL")
    db_session.add(token)
    db_session.commit()
    return token


@pytest.fixture
def make_call(db_session, user, token):
    """TokenCall 을 저장하고 돌려주는 팩토리"""
    def _make_call(**kwargs):
        values = dict(
            user_id=user.id,
            token_id=token.mint_address,
            reference_price=1.0,
            target_price=2.0,
            call_timestamp=NOW - timedelta(days=2),
            target_date=NOW - timedelta(days=1),
            status=TokenCallStatus.PENDING,
        )
        values.update(kwargs)
        call = TokenCall(**values)
        db_session.add(call)
        db_session.commit()
        return call
    return _make_call


@pytest.fixture
def mock_provider():
    provider = AsyncMock(spec=PriceHistoryProvider)
    provider.get_price_history.return_value = []
    provider.get_token_overview.return_value = None
    return provider


@pytest.fixture
def mock_redis_client():
    redis_client = AsyncMock()
    redis_client.publish = AsyncMock()
    return redis_client


@pytest.fixture
def now():
    return NOW
