from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from src.common.models.badge import BadgeCategory, BadgeRequirement


class BadgeRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: BadgeCategory
    requirement: BadgeRequirement
    threshold_value: float

    model_config = ConfigDict(from_attributes=True)


class UserBadgeRead(BaseModel):
    badge: BadgeRead
    earned_at: datetime

    model_config = ConfigDict(from_attributes=True)
