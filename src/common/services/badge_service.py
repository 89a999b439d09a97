import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from src.common.models.badge import Badge, UserBadge, BadgeCategory, BadgeRequirement
from src.common.models.notification import NotificationType
from src.common.models.token_call import TokenCall, TokenCallStatus
from src.common.models.token_call_streak import UserTokenCallStreak
from src.common.services.event_bus import TokenCallVerifiedEvent
from src.common.services.notify_service import NotificationService
from src.common.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class BadgeService:
    """토큰 콜 성공 결과를 바탕으로 업적 배지를 지급합니다."""

    def __init__(self, notification_service: Optional[NotificationService] = None):
        self.notification_service = notification_service or NotificationService()

    def get_user_badges(self, db: Session, user_id: int) -> List[UserBadge]:
        return db.query(UserBadge).filter(UserBadge.user_id == user_id).all()

    def get_available_badges(self, db: Session, user_id: int) -> List[Badge]:
        """활성화된 토큰 콜 배지 중 아직 받지 않은 배지 목록"""
        owned_ids = [ub.badge_id for ub in self.get_user_badges(db, user_id)]
        query = db.query(Badge).filter(Badge.is_active == True, Badge.category == BadgeCategory.TOKEN_CALL)
        if owned_ids:
            query = query.filter(Badge.id.notin_(owned_ids))
        return query.order_by(Badge.id).all()

    def is_eligible(self, db: Session, user_id: int, badge: Badge, call: TokenCall) -> bool:
        if badge.requirement == BadgeRequirement.TOKEN_CALL_SUCCESS_COUNT:
            success_count = db.query(TokenCall).filter(
                TokenCall.user_id == user_id,
                TokenCall.status == TokenCallStatus.VERIFIED_SUCCESS
            ).count()
            return success_count >= badge.threshold_value

        if badge.requirement == BadgeRequirement.TOKEN_CALL_SUCCESS_STREAK:
            streak = db.query(UserTokenCallStreak).filter(UserTokenCallStreak.user_id == user_id).first()
            return streak is not None and streak.current_success_streak >= badge.threshold_value

        if badge.requirement == BadgeRequirement.TOKEN_CALL_EARLY_HIT:
            # threshold_value 는 전체 기간 대비 비율 (0.1 = 기간의 10% 안에 적중)
            return call.time_to_hit_ratio is not None and call.time_to_hit_ratio <= badge.threshold_value

        if badge.requirement == BadgeRequirement.TOKEN_CALL_MULTIPLIER:
            multiplier = call.multiplier
            return multiplier is not None and multiplier >= badge.threshold_value

        logger.warning(f"알 수 없는 배지 조건: {badge.requirement} (badge={badge.name})")
        return False

    async def check_token_call_success_badges(self, db: Session, user_id: int, call: TokenCall,
                                              redis_client=None) -> List[UserBadge]:
        """
        적중한 토큰 콜 하나에 대해 새로 획득한 배지를 지급합니다.

        배지 하나의 조건 확인이 실패해도 나머지 배지는 계속 확인합니다.

        Returns:
            List[UserBadge]: 이번에 새로 지급된 배지 목록
        """
        if call.status != TokenCallStatus.VERIFIED_SUCCESS:
            return []

        awarded: List[UserBadge] = []
        for badge in self.get_available_badges(db, user_id):
            badge_name = badge.name
            try:
                if not self.is_eligible(db, user_id, badge, call):
                    continue

                user_badge = UserBadge(user_id=user_id, badge_id=badge.id, earned_at=utcnow())
                db.add(user_badge)
                db.commit()
                db.refresh(user_badge)
                awarded.append(user_badge)
                logger.info(f"배지 지급: user_id={user_id}, badge={badge.name}, call_id={call.id}")
            except Exception as e:
                db.rollback()
                logger.error(f"배지 조건 확인 중 오류: user_id={user_id}, badge={badge_name}, error={e}", exc_info=True)
                continue

            try:
                await self.notification_service.notify_user(
                    db, redis_client, user_id, NotificationType.BADGE_EARNED,
                    f"🏅 새 배지를 획득했습니다: {badge.name}",
                    related_entity_id=str(badge.id), related_entity_type="badge",
                )
            except Exception as e:
                logger.error(f"배지 알림 생성 실패: user_id={user_id}, badge={badge_name}, error={e}", exc_info=True)

        return awarded

    async def handle_call_verified(self, db: Session, redis_client, event: TokenCallVerifiedEvent) -> None:
        if event.status != TokenCallStatus.VERIFIED_SUCCESS:
            return
        await self.check_token_call_success_badges(db, event.user_id, event.call, redis_client=redis_client)
