from sqlalchemy.orm import Session
from src.common.models.user import User
import logging

logger = logging.getLogger(__name__)

class UserService:
    def get_user_by_id(self, db: Session, user_id: int):
        logger.debug(f"get_user_by_id 호출: user_id={user_id}")
        return db.query(User).filter(User.id == user_id).first()

