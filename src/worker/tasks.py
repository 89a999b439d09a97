import asyncio
import json
import logging
from datetime import datetime
from functools import partial, wraps
from typing import Optional

import redis.asyncio as redis

from src.common.config.settings import settings
from src.common.database.db_connector import get_db
from src.common.services.badge_service import BadgeService
from src.common.services.event_bus import EventBus, TOKEN_CALL_VERIFIED
from src.common.services.notify_service import NotificationService
from src.common.services.price_history_service import PriceHistoryProvider, build_price_history_provider
from src.common.services.token_call_streak_service import TokenCallStreakService
from src.common.services.token_call_verification_service import TokenCallVerificationService
from src.worker.job_lock import build_job_lock

# 로깅 설정
logger = logging.getLogger(__name__)

VERIFY_TOKEN_CALLS_JOB_NAME = "토큰 콜 검증"

# 프로세스 전역 잠금: 실행 중에 다시 트리거되면 큐에 쌓지 않고 건너뜀
verification_lock = build_job_lock("verify_token_calls")


async def _publish_message(redis_client, chat_id, text):
    """메시지를 Redis에 게시합니다."""
    if not chat_id:
        return
    try:
        await redis_client.publish("notifications", json.dumps({"chat_id": chat_id, "text": text}, ensure_ascii=False))
        logger.info(f"Published message to chat_id: {chat_id}")
    except Exception as e:
        logger.error(f"Failed to publish message: {e}", exc_info=True)


async def _publish_completion_message(redis_client, chat_id, job_name, success, start_time, details=""):
    """작업 완료 메시지를 Redis에 게시합니다."""
    if not chat_id:
        return

    duration = (datetime.now() - start_time).total_seconds()
    status_icon = "✅" if success else "❌"
    status_text = "성공" if success else "실패"

    message = (
        f"{status_icon} **{job_name}** 작업 완료\n"
        f"• **결과:** {status_text}\n"
        f"• **소요 시간:** {duration:.2f}초"
    )
    if details:
        message += f"\n{details}"

    await _publish_message(redis_client, chat_id, message)


def _rollback_on_error(db, handler):
    """핸들러가 실패하면 공유 세션을 롤백한 뒤 예외를 그대로 전달합니다."""
    @wraps(handler)
    async def wrapper(event):
        try:
            await handler(event)
        except Exception:
            db.rollback()
            raise
    return wrapper


def build_verification_service(db, redis_client,
                               price_history_provider: Optional[PriceHistoryProvider] = None) -> TokenCallVerificationService:
    """검증 서비스와 검증 완료 이벤트 구독자(스트릭 → 배지 → 알림)를 구성합니다."""
    event_bus = EventBus()
    notification_service = NotificationService()
    streak_service = TokenCallStreakService()
    badge_service = BadgeService(notification_service)

    subscribers = [
        partial(streak_service.handle_call_verified, db),
        partial(badge_service.handle_call_verified, db, redis_client),
        partial(notification_service.handle_call_verified, db, redis_client),
    ]
    for handler in subscribers:
        event_bus.subscribe(TOKEN_CALL_VERIFIED, _rollback_on_error(db, handler))

    return TokenCallVerificationService(
        price_history_provider or build_price_history_provider(),
        event_bus=event_bus,
    )


async def _run_verification_batch() -> dict:
    """DB 세션과 Redis 연결을 열고 검증 배치를 한 번 실행합니다."""
    db_gen = get_db()
    db = next(db_gen)
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        service = build_verification_service(db, redis_client)
        return await service.verify_pending_calls(db)
    finally:
        next(db_gen, None)
        try:
            await redis_client.aclose()
        except Exception as e:
            logger.warning(f"Redis 연결 종료 실패: {e}")


async def verify_token_calls_task(chat_id: int = None) -> Optional[dict]:
    """[Job] 목표일이 지난 토큰 콜 검증 작업"""
    job_name = VERIFY_TOKEN_CALLS_JOB_NAME

    try:
        acquired = await verification_lock.acquire()
    except Exception as e:
        logger.error(f"[Job] {job_name} 잠금 획득 중 오류: {e}", exc_info=True)
        return None

    if not acquired:
        logger.warning(f"[Job] {job_name} 작업이 이미 실행 중입니다. 이번 실행은 건너뜁니다.")
        return None

    start_time = datetime.now()
    logger.info(f"[Job] {job_name} 시작.")

    summary = None
    success = False

    try:
        # 동기 DB 작업은 별도 스레드의 이벤트 루프에서 실행 (워커 루프는 API/리스너 전용)
        summary = await asyncio.to_thread(asyncio.run, _run_verification_batch())
        success = True
        logger.info(f"[Job] {job_name} 성공.")
    except Exception as e:
        logger.error(f"[Job] {job_name} 중 오류: {e}", exc_info=True)
    finally:
        if chat_id:
            details = ""
            if summary:
                details = (
                    f"- **대상:** {summary['total']}건\n"
                    f"- **적중:** {summary['success']}건\n"
                    f"- **실패:** {summary['fail']}건\n"
                    f"- **오류:** {summary['error']}건\n"
                    f"- **데이터 없음:** {summary['no_data']}건"
                )
            redis_client = redis.from_url(settings.redis_url, decode_responses=True)
            await _publish_completion_message(redis_client, chat_id, job_name, success, start_time, details)
            try:
                await redis_client.aclose()
            except Exception as e:
                logger.warning(f"Redis 연결 종료 실패: {e}")
        try:
            await verification_lock.release()
        except Exception as e:
            logger.error(f"[Job] {job_name} 잠금 해제 실패: {e}", exc_info=True)
        logger.info(f"[Job] {job_name} 종료.")

    return summary
