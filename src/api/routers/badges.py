from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from src.common.database.db_connector import get_db
from src.common.schemas.badge import BadgeRead, UserBadgeRead
from src.common.services.badge_service import BadgeService

router = APIRouter(prefix="/badges", tags=["badges"])

def get_badge_service():
    return BadgeService()

@router.get("/users/{user_id}", response_model=List[UserBadgeRead], summary="사용자가 획득한 배지")
def get_user_badges(user_id: int, db: Session = Depends(get_db), badge_service: BadgeService = Depends(get_badge_service)):
    return badge_service.get_user_badges(db, user_id)

@router.get("/users/{user_id}/available", response_model=List[BadgeRead], summary="아직 획득하지 않은 배지")
def get_available_badges(user_id: int, db: Session = Depends(get_db), badge_service: BadgeService = Depends(get_badge_service)):
    return badge_service.get_available_badges(db, user_id)
