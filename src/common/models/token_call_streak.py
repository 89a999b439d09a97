from sqlalchemy import Column, Integer, DateTime, ForeignKey, func
from src.common.database.db_connector import Base


class UserTokenCallStreak(Base):
    __tablename__ = 'user_token_call_streaks'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('app_users.id'), unique=True, nullable=False, index=True)
    current_success_streak = Column(Integer, default=0, nullable=False)
    longest_success_streak = Column(Integer, default=0, nullable=False)
    last_verified_call_timestamp = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
