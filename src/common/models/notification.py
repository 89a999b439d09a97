import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum, Index, func
from src.common.database.db_connector import Base


class NotificationType(str, enum.Enum):
    TOKEN_CALL_VERIFIED = "TOKEN_CALL_VERIFIED"
    BADGE_EARNED = "BADGE_EARNED"


class Notification(Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        Index('ix_notifications_user_read_created', 'user_id', 'is_read', 'created_at'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('app_users.id', ondelete='CASCADE'), nullable=False)
    type = Column(Enum(NotificationType, name='notification_type', native_enum=False, length=30), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    related_entity_id = Column(String(64), nullable=True)
    related_entity_type = Column(String(30), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
