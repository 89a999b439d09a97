from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from src.common.models.notification import NotificationType


class NotificationRead(BaseModel):
    id: int
    user_id: int
    type: NotificationType
    message: str
    is_read: bool
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
