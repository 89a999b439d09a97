import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from src.common.models.token_call import TokenCallStatus
from src.common.models.token_call_streak import UserTokenCallStreak
from src.common.services.event_bus import TokenCallVerifiedEvent

logger = logging.getLogger(__name__)


class TokenCallStreakService:
    """사용자별 연속 성공 콜(스트릭) 집계를 관리합니다."""

    def get_streak(self, db: Session, user_id: int) -> Optional[UserTokenCallStreak]:
        return db.query(UserTokenCallStreak).filter(UserTokenCallStreak.user_id == user_id).first()

    def update_streak(self, db: Session, user_id: int, status: TokenCallStatus,
                      verification_timestamp: datetime) -> Optional[UserTokenCallStreak]:
        """
        검증 결과 하나를 사용자의 스트릭에 반영합니다.

        저장된 마지막 검증 시각보다 이후인 결과만 반영하므로 같은 결과를 두 번 적용하거나
        순서가 뒤바뀐 결과를 적용해도 스트릭은 변하지 않습니다.

        Returns:
            Optional[UserTokenCallStreak]: 반영된 스트릭. 반영하지 않았으면 None.
        """
        if status not in (TokenCallStatus.VERIFIED_SUCCESS, TokenCallStatus.VERIFIED_FAIL):
            logger.debug(f"스트릭 대상이 아닌 상태입니다: user_id={user_id}, status={status}")
            return None

        logger.debug(f"토큰 콜 스트릭 갱신: user_id={user_id}, status={status}")

        streak = self.get_streak(db, user_id)
        if not streak:
            streak = UserTokenCallStreak(
                user_id=user_id,
                current_success_streak=0,
                longest_success_streak=0,
                last_verified_call_timestamp=None,
            )

        if streak.last_verified_call_timestamp and verification_timestamp <= streak.last_verified_call_timestamp:
            logger.info(
                f"이미 반영된 검증 시각 이후의 결과가 아니므로 스트릭 갱신을 건너뜁니다: user_id={user_id}, "
                f"incoming={verification_timestamp}, stored={streak.last_verified_call_timestamp}"
            )
            return None

        if status == TokenCallStatus.VERIFIED_SUCCESS:
            streak.current_success_streak += 1
            if streak.current_success_streak > streak.longest_success_streak:
                streak.longest_success_streak = streak.current_success_streak
        else:
            streak.current_success_streak = 0

        streak.last_verified_call_timestamp = verification_timestamp

        try:
            db.add(streak)
            db.commit()
            db.refresh(streak)
        except Exception as e:
            db.rollback()
            raise e
        return streak

    async def handle_call_verified(self, db: Session, event: TokenCallVerifiedEvent) -> None:
        self.update_streak(db, event.user_id, event.status, event.verification_timestamp)
