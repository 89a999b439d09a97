import json
import logging
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from src.common.models.notification import Notification, NotificationType
from src.common.models.token_call import TokenCallStatus
from src.common.models.user import User
from src.common.services.event_bus import TokenCallVerifiedEvent
from .notification.channel import NotificationChannel
from .notification.telegram_channel import TelegramChannel

logger = logging.getLogger(__name__)

NOTIFICATION_CHANNEL = "notifications"


class NotificationService:
    """인앱 알림 저장과 외부 채널(텔레그램) 전송을 관리하는 클래스입니다."""

    def __init__(self, channels: Optional[List[NotificationChannel]] = None):
        if channels is None:
            channels = [TelegramChannel()]
        self.channels: Dict[str, NotificationChannel] = {channel.name: channel for channel in channels}

    async def send_message(self, recipient: str, message: str, channel_name: str = 'telegram', **kwargs) -> bool:
        """
        지정된 채널로 메시지를 전송합니다.

        Args:
            recipient (str): 수신자 식별자
            message (str): 메시지 내용
            channel_name (str): 채널 이름 ('telegram')
            **kwargs: 채널별 추가 옵션

        Returns:
            bool: 전송 성공 여부
        """
        channel = self.channels.get(channel_name)
        if not channel:
            logger.error(f"Unknown notification channel: {channel_name}")
            return False
        if not channel.is_configured:
            logger.warning(f"설정되지 않은 알림 채널입니다: {channel_name}")
            return False

        return await channel.send(recipient, message, **kwargs)

    def create_notification(self, db: Session, user_id: int, notification_type: NotificationType, message: str,
                            related_entity_id: Optional[str] = None,
                            related_entity_type: Optional[str] = None) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            message=message,
            related_entity_id=related_entity_id,
            related_entity_type=related_entity_type,
        )
        try:
            db.add(notification)
            db.commit()
            db.refresh(notification)
        except Exception as e:
            db.rollback()
            raise e
        return notification

    def get_notifications(self, db: Session, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    def mark_as_read(self, db: Session, notification_id: int) -> Notification:
        notification = db.query(Notification).filter(Notification.id == notification_id).first()
        if not notification:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

        notification.is_read = True
        try:
            db.add(notification)
            db.commit()
            db.refresh(notification)
        except Exception as e:
            db.rollback()
            raise e
        return notification

    async def publish_notification(self, redis_client, chat_id: Optional[int], text: str) -> bool:
        """메시지를 Redis 'notifications' 채널에 게시합니다. 워커의 리스너가 텔레그램으로 전달합니다."""
        if not redis_client or not chat_id:
            return False
        try:
            await redis_client.publish(NOTIFICATION_CHANNEL, json.dumps({"chat_id": chat_id, "text": text}, ensure_ascii=False))
            logger.info(f"Published message to chat_id: {chat_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to publish message: {e}", exc_info=True)
            return False

    async def notify_user(self, db: Session, redis_client, user_id: int, notification_type: NotificationType,
                          message: str, related_entity_id: Optional[str] = None,
                          related_entity_type: Optional[str] = None) -> Notification:
        """인앱 알림을 저장하고, 텔레그램이 연결된 사용자라면 Redis 로도 게시합니다."""
        notification = self.create_notification(
            db, user_id, notification_type, message,
            related_entity_id=related_entity_id,
            related_entity_type=related_entity_type,
        )
        user = db.query(User).filter(User.id == user_id).first()
        if user and user.telegram_id:
            await self.publish_notification(redis_client, user.telegram_id, message)
        return notification

    async def handle_call_verified(self, db: Session, redis_client, event: TokenCallVerifiedEvent) -> None:
        call = event.call
        if event.status == TokenCallStatus.VERIFIED_SUCCESS:
            message = (
                f"🎯 토큰 콜 적중! {call.token_id} 목표가 {call.target_price} 에 도달했습니다.\n"
                f"최고가: {call.peak_price_during_period}"
            )
        elif event.status == TokenCallStatus.VERIFIED_FAIL:
            message = (
                f"❌ 토큰 콜 실패: {call.token_id} 목표가 {call.target_price} 에 도달하지 못했습니다.\n"
                f"기간 내 최고가: {call.peak_price_during_period}"
            )
        else:
            return

        await self.notify_user(
            db, redis_client, event.user_id, NotificationType.TOKEN_CALL_VERIFIED, message,
            related_entity_id=str(call.id), related_entity_type="token_call",
        )


# 싱글톤 인스턴스
notification_service = NotificationService()

async def send_telegram_message(chat_id: int, text: str):
    """텔레그램 메시지를 전송합니다."""
    return await notification_service.send_message(str(chat_id), text, channel_name='telegram')
