import enum

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, Index, func
from sqlalchemy.orm import relationship
from src.common.database.db_connector import Base


class TokenCallStatus(str, enum.Enum):
    PENDING = "PENDING"
    VERIFIED_SUCCESS = "VERIFIED_SUCCESS"
    VERIFIED_FAIL = "VERIFIED_FAIL"
    ERROR = "ERROR"


class TokenCall(Base):
    """
    사용자의 가격 예측(토큰 콜) 한 건.

    reference_price ~ target_date 까지는 생성 시 고정되며, 검증 결과 컬럼들은
    검증 잡이 처리하기 전까지 NULL 입니다. status 는 PENDING 에서 한 번만 종료 상태로 바뀝니다.
    """
    __tablename__ = 'token_calls'
    __table_args__ = (
        Index('ix_token_calls_status_target_date', 'status', 'target_date'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('app_users.id'), nullable=False, index=True)
    token_id = Column(String(64), ForeignKey('tokens.mint_address'), nullable=False, index=True)

    reference_price = Column(Float, nullable=False)
    target_price = Column(Float, nullable=False)
    reference_supply = Column(Float, nullable=True)  # 시가총액 표시용 유통량 스냅샷
    call_timestamp = Column(DateTime, nullable=False)
    target_date = Column(DateTime, nullable=False)

    status = Column(Enum(TokenCallStatus, name='token_call_status', native_enum=False, length=20),
                    default=TokenCallStatus.PENDING, nullable=False)
    peak_price_during_period = Column(Float, nullable=True)
    final_price_at_target_date = Column(Float, nullable=True)
    target_hit_timestamp = Column(DateTime, nullable=True)
    time_to_hit_ratio = Column(Float, nullable=True)
    verification_timestamp = Column(DateTime, nullable=True)
    verification_attempts = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="token_calls")
    token = relationship("Token", back_populates="token_calls")

    @property
    def multiplier(self):
        if not self.reference_price:
            return None
        return self.target_price / self.reference_price

    def __repr__(self):
        return f"<TokenCall(id={self.id}, user_id={self.user_id}, token_id='{self.token_id}', status={self.status})>"
