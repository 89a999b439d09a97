"""
User 모델 정의 파일입니다.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, func, BigInteger
from sqlalchemy.orm import relationship
from src.common.database.db_connector import Base


class User(Base):
    """
    app_users 테이블과 매핑되는 User 모델 클래스입니다.

    계정 생성과 인증은 별도 서비스에서 처리하며, 이 테이블은 토큰 콜/배지/알림의
    소유자를 식별하는 용도로만 사용됩니다.

    Attributes:
        id (Integer): 사용자의 고유 ID.
        username (String): 사용자 이름.
        display_name (String): 화면 표시 이름.
        telegram_id (BigInteger): 텔레그램 사용자 ID (알림 전송용).
        is_active (Boolean): 계정 활성 상태.
        created_at (DateTime): 계정 생성 시간.
        updated_at (DateTime): 계정 정보 마지막 수정 시간.
        token_calls (relationship): 사용자가 등록한 토큰 콜 목록.
    """
    __tablename__ = 'app_users'

    id = Column(Integer, primary_key=True)
    username = Column(String(50), unique=True, nullable=False)
    display_name = Column(String(100), nullable=True)
    telegram_id = Column(BigInteger, unique=True, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    token_calls = relationship("TokenCall", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
