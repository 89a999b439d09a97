from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
import logging

from src.common.database.db_connector import get_db
from src.common.schemas.notification import NotificationRead
from src.common.services.notify_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

def get_notification_service():
    return NotificationService()

@router.get("/{user_id}", response_model=List[NotificationRead], summary="사용자 알림 목록")
def get_notifications(
    user_id: int,
    unread_only: bool = False,
    limit: int = 50,
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service)
):
    return notification_service.get_notifications(db, user_id, unread_only=unread_only, limit=limit)

@router.post("/{notification_id}/read", response_model=NotificationRead, summary="알림 읽음 처리")
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service)
):
    return notification_service.mark_as_read(db, notification_id)
