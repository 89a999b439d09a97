"""
토큰 콜 검증 서비스

목표일이 지난 PENDING 토큰 콜을 가격 이력과 대조해 VERIFIED_SUCCESS / VERIFIED_FAIL 로 확정합니다.
가격 이력 조회 실패는 해당 콜만 ERROR 로 처리하고 배치는 계속 진행합니다.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from src.common.config.settings import settings
from src.common.models.token_call import TokenCall, TokenCallStatus
from src.common.services.event_bus import EventBus, TokenCallVerifiedEvent, TOKEN_CALL_VERIFIED
from src.common.services.price_history_service import PricePoint, PriceHistoryProvider
from src.common.utils.exceptions import PriceHistoryError, PriceHistoryRateLimitError
from src.common.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"
OUTCOME_ERROR = "error"
OUTCOME_NO_DATA = "no_data"
OUTCOME_SKIPPED = "skipped"


@dataclass
class PriceEvaluation:
    peak_price: float
    final_price: Optional[float]
    target_hit_timestamp: Optional[datetime]


def evaluate_price_history(target_price: float, points: List[PricePoint]) -> PriceEvaluation:
    """
    시간순 가격 샘플을 한 번 훑어 최고가, 마지막 가격, 최초 목표가 도달 시각을 구합니다.
    """
    peak_price = 0.0
    final_price = points[-1].value if points else None
    target_hit_timestamp = None

    for point in points:
        if point.value > peak_price:
            peak_price = point.value
        if target_hit_timestamp is None and point.value >= target_price:
            target_hit_timestamp = point.timestamp

    return PriceEvaluation(peak_price=peak_price, final_price=final_price, target_hit_timestamp=target_hit_timestamp)


def calculate_time_to_hit_ratio(call_timestamp: datetime, target_date: datetime, target_hit_timestamp: datetime) -> float:
    """콜 전체 기간 중 목표가 도달까지 걸린 시간의 비율 (0 ~ 1)"""
    call_duration = (target_date - call_timestamp).total_seconds()
    time_to_hit = (target_hit_timestamp - call_timestamp).total_seconds()

    if call_duration > 0:
        return min(1.0, max(0.0, time_to_hit) / call_duration)
    # 기간이 0 인 경우
    return 1.0 if time_to_hit > 0 else 0.0


class TokenCallVerificationService:
    def __init__(self, price_history_provider: PriceHistoryProvider, event_bus: Optional[EventBus] = None,
                 resolution: Optional[str] = None, error_retry_limit: Optional[int] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.price_history_provider = price_history_provider
        self.event_bus = event_bus or EventBus()
        self.resolution = resolution or settings.PRICE_HISTORY_RESOLUTION
        self.error_retry_limit = settings.TOKEN_CALL_ERROR_RETRY_LIMIT if error_retry_limit is None else error_retry_limit
        self.clock = clock or utcnow

    def _is_verifiable(self, call: TokenCall) -> bool:
        if call.status == TokenCallStatus.PENDING:
            return True
        return (
            call.status == TokenCallStatus.ERROR
            and self.error_retry_limit > 0
            and (call.verification_attempts or 0) < self.error_retry_limit
        )

    def get_due_calls(self, db: Session, now: Optional[datetime] = None) -> List[TokenCall]:
        """목표일이 지난 검증 대상 콜을 목표일이 오래된 순으로 조회합니다."""
        now = now or self.clock()
        status_condition = TokenCall.status == TokenCallStatus.PENDING
        if self.error_retry_limit > 0:
            status_condition = or_(
                status_condition,
                and_(
                    TokenCall.status == TokenCallStatus.ERROR,
                    TokenCall.verification_attempts < self.error_retry_limit,
                ),
            )
        return db.query(TokenCall).filter(
            status_condition,
            TokenCall.target_date <= now
        ).order_by(TokenCall.target_date.asc(), TokenCall.id.asc()).all()

    async def verify_pending_calls(self, db: Session) -> Dict[str, int]:
        """
        검증 대상 콜을 순서대로 하나씩 처리합니다.

        한 콜의 처리 중 발생한 예외는 해당 콜을 ERROR 로 표시하고 다음 콜로 넘어갑니다.
        대상 조회 자체의 실패는 호출자에게 전파됩니다.

        Returns:
            Dict[str, int]: 결과별 처리 건수
        """
        summary = {
            "total": 0,
            OUTCOME_SUCCESS: 0,
            OUTCOME_FAIL: 0,
            OUTCOME_ERROR: 0,
            OUTCOME_NO_DATA: 0,
            OUTCOME_SKIPPED: 0,
        }

        due_calls = self.get_due_calls(db)
        if not due_calls:
            logger.info("검증할 토큰 콜이 없습니다.")
            return summary

        summary["total"] = len(due_calls)
        logger.info(f"검증 대상 토큰 콜 {len(due_calls)}건 발견.")

        for call in due_calls:
            call_id = call.id
            try:
                outcome = await self.verify_single_call(db, call)
            except Exception as e:
                logger.error(f"토큰 콜 {call_id} 검증 실패: {e}", exc_info=True)
                self._mark_error(db, call)
                outcome = OUTCOME_ERROR
            summary[outcome] += 1

        logger.info(f"토큰 콜 검증 완료: {summary}")
        return summary

    def _mark_error(self, db: Session, call: TokenCall) -> None:
        call_id = call.id
        try:
            db.rollback()
            call.status = TokenCallStatus.ERROR
            call.verification_timestamp = self.clock()
            call.verification_attempts = (call.verification_attempts or 0) + 1
            db.add(call)
            db.commit()
        except Exception as save_error:
            db.rollback()
            logger.error(f"토큰 콜 {call_id} ERROR 상태 저장 실패: {save_error}", exc_info=True)

    async def _fetch_price_history(self, call: TokenCall) -> List[PricePoint]:
        try:
            return await self.price_history_provider.get_price_history(
                call.token_id,
                call.call_timestamp,
                call.target_date,
                self.resolution,
            )
        except PriceHistoryRateLimitError as e:
            logger.warning(f"가격 이력 조회 중 요청 한도 초과: call={call.id}, token={call.token_id}, error={e}")
            raise
        except PriceHistoryError as e:
            logger.error(f"가격 이력 제공자 오류: call={call.id}, token={call.token_id}, error={e}")
            raise
        except Exception as e:
            logger.error(f"가격 이력 조회 중 알 수 없는 오류: call={call.id}, token={call.token_id}", exc_info=True)
            raise PriceHistoryError(f"Unknown price history error: {e}") from e

    async def verify_single_call(self, db: Session, call: TokenCall) -> str:
        """
        목표일이 지난 콜 하나의 결과를 확정합니다.

        Returns:
            str: 'success', 'fail', 'no_data', 'skipped' 중 하나
        """
        if not self._is_verifiable(call):
            logger.info(f"이미 확정된 토큰 콜입니다. 건너뜁니다: call={call.id}, status={call.status}")
            return OUTCOME_SKIPPED

        logger.info(f"토큰 콜 {call.id} 검증 시작 (token={call.token_id})")

        # 1. 가격 이력 조회
        points = await self._fetch_price_history(call)

        # 2. 데이터가 없으면 상태를 유지하고 다음 실행에서 재시도
        if not points:
            logger.warning(f"토큰 콜 {call.id} 의 가격 이력이 없습니다. 다음 실행에서 재시도합니다.")
            call.verification_timestamp = self.clock()
            try:
                db.add(call)
                db.commit()
            except Exception as e:
                db.rollback()
                raise e
            return OUTCOME_NO_DATA

        # 3. 가격 이력 분석
        evaluation = evaluate_price_history(call.target_price, points)
        verification_timestamp = self.clock()

        call.peak_price_during_period = evaluation.peak_price
        call.final_price_at_target_date = evaluation.final_price
        call.verification_timestamp = verification_timestamp

        if evaluation.target_hit_timestamp is not None and evaluation.peak_price >= call.target_price:
            call.status = TokenCallStatus.VERIFIED_SUCCESS
            call.target_hit_timestamp = evaluation.target_hit_timestamp
            call.time_to_hit_ratio = calculate_time_to_hit_ratio(
                call.call_timestamp, call.target_date, evaluation.target_hit_timestamp
            )
            outcome = OUTCOME_SUCCESS
        else:
            call.status = TokenCallStatus.VERIFIED_FAIL
            call.target_hit_timestamp = None
            call.time_to_hit_ratio = None
            outcome = OUTCOME_FAIL

        # 4. 검증 결과 저장
        try:
            db.add(call)
            db.commit()
            db.refresh(call)
        except Exception as e:
            db.rollback()
            raise e
        logger.debug(f"토큰 콜 {call.id} 검증 결과 저장: status={call.status}")

        # 5. 스트릭/배지/알림 구독자에게 전달 (구독자 오류는 결과에 영향 없음)
        await self.event_bus.publish(
            TOKEN_CALL_VERIFIED,
            TokenCallVerifiedEvent(
                call=call,
                user_id=call.user_id,
                status=call.status,
                verification_timestamp=verification_timestamp,
            ),
        )
        return outcome
