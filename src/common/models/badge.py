import enum

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint, func
from sqlalchemy.orm import relationship
from src.common.database.db_connector import Base


class BadgeCategory(str, enum.Enum):
    TOKEN_CALL = "TOKEN_CALL"


class BadgeRequirement(str, enum.Enum):
    TOKEN_CALL_SUCCESS_COUNT = "TOKEN_CALL_SUCCESS_COUNT"
    TOKEN_CALL_SUCCESS_STREAK = "TOKEN_CALL_SUCCESS_STREAK"
    TOKEN_CALL_EARLY_HIT = "TOKEN_CALL_EARLY_HIT"
    TOKEN_CALL_MULTIPLIER = "TOKEN_CALL_MULTIPLIER"


class Badge(Base):
    __tablename__ = 'badges'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(255), nullable=True)
    category = Column(Enum(BadgeCategory, name='badge_category', native_enum=False, length=30),
                      default=BadgeCategory.TOKEN_CALL, nullable=False)
    requirement = Column(Enum(BadgeRequirement, name='badge_requirement', native_enum=False, length=50),
                         nullable=False)
    threshold_value = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)


class UserBadge(Base):
    __tablename__ = 'user_badges'
    __table_args__ = (
        UniqueConstraint('user_id', 'badge_id', name='uq_user_badges_user_badge'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('app_users.id'), nullable=False, index=True)
    badge_id = Column(Integer, ForeignKey('badges.id'), nullable=False)
    earned_at = Column(DateTime, default=func.now(), nullable=False)

    badge = relationship("Badge")
