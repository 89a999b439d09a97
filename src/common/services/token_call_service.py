import logging
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import func, case
from sqlalchemy.orm import Session

from src.common.config.settings import settings
from src.common.models.token import Token
from src.common.models.token_call import TokenCall, TokenCallStatus
from src.common.models.token_call_streak import UserTokenCallStreak
from src.common.models.user import User
from src.common.schemas.token_call import TokenCallCreate
from src.common.services.price_history_service import (
    PricePoint, PriceHistoryProvider, build_price_history_provider,
)
from src.common.utils.exceptions import PriceHistoryError, PriceHistoryRateLimitError
from src.common.utils.time_utils import add_timeframe, to_naive_utc, utcnow

logger = logging.getLogger(__name__)


class TokenCallService:
    def __init__(self, price_history_provider: Optional[PriceHistoryProvider] = None):
        self.price_history_provider = price_history_provider or build_price_history_provider()

    def get_call(self, db: Session, call_id: int) -> TokenCall:
        call = db.query(TokenCall).filter(TokenCall.id == call_id).first()
        if not call:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token call not found")
        return call

    def get_pending_call(self, db: Session, user_id: int, token_id: str) -> Optional[TokenCall]:
        return db.query(TokenCall).filter(
            TokenCall.user_id == user_id,
            TokenCall.token_id == token_id,
            TokenCall.status == TokenCallStatus.PENDING
        ).first()

    async def _get_reference_market_data(self, token_id: str) -> dict:
        try:
            overview = await self.price_history_provider.get_token_overview(token_id)
        except PriceHistoryRateLimitError:
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                                detail="가격 제공자 요청 한도를 초과했습니다. 잠시 후 다시 시도해주세요.")
        except PriceHistoryError as e:
            logger.error(f"현재 가격 조회 실패: token={token_id}, error={e}")
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                                detail="토큰의 현재 가격을 가져올 수 없습니다.")

        if not overview or not overview.get("price") or overview["price"] <= 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail="토큰의 현재 가격 정보가 없어 콜을 생성할 수 없습니다.")
        return overview

    async def create_call(self, db: Session, call_data: TokenCallCreate) -> TokenCall:
        """
        새 토큰 콜을 생성합니다.

        기준 가격과 유통량은 생성 시점에 가격 제공자로부터 가져옵니다.
        """
        if not db.query(User).filter(User.id == call_data.user_id).first():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if not db.query(Token).filter(Token.mint_address == call_data.token_id).first():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token not found")

        if self.get_pending_call(db, call_data.user_id, call_data.token_id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT,
                                detail="이미 해당 토큰에 대한 진행 중인 콜이 있습니다.")

        now = utcnow()
        if call_data.timeframe_duration:
            target_date = add_timeframe(now, call_data.timeframe_duration)
        else:
            target_date = to_naive_utc(call_data.target_date)

        if target_date is None or target_date <= now:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="목표일은 현재 시각 이후여야 합니다.")

        overview = await self._get_reference_market_data(call_data.token_id)
        reference_price = overview["price"]

        if call_data.target_price <= reference_price:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail="목표 가격은 현재 가격보다 높아야 합니다.")
        if call_data.target_price > reference_price * settings.TOKEN_CALL_MAX_MULTIPLIER:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                                detail=f"목표 가격은 현재 가격의 {settings.TOKEN_CALL_MAX_MULTIPLIER:g}배를 넘을 수 없습니다.")

        supply = overview.get("circulating_supply")
        db_call = TokenCall(
            user_id=call_data.user_id,
            token_id=call_data.token_id,
            reference_price=reference_price,
            target_price=call_data.target_price,
            reference_supply=float(supply) if supply is not None else None,
            call_timestamp=now,
            target_date=target_date,
            status=TokenCallStatus.PENDING,
        )
        try:
            db.add(db_call)
            db.commit()
            db.refresh(db_call)
        except Exception as e:
            db.rollback()
            raise e
        logger.info(f"토큰 콜 생성: id={db_call.id}, user_id={db_call.user_id}, token={db_call.token_id}, target={db_call.target_price}")
        return db_call

    def _paginate(self, query, page: int, page_size: int) -> Tuple[List[TokenCall], int]:
        total_count = query.count()
        offset = (page - 1) * page_size
        items = query.order_by(TokenCall.call_timestamp.desc(), TokenCall.id.desc()).offset(offset).limit(page_size).all()
        return items, total_count

    def list_user_calls(self, db: Session, user_id: int, page: int = 1, page_size: int = 10,
                        status_filter: Optional[TokenCallStatus] = None,
                        token_id: Optional[str] = None) -> Tuple[List[TokenCall], int]:
        logger.debug(f"list_user_calls 호출: user_id={user_id}, page={page}, status={status_filter}, token_id={token_id}")
        query = db.query(TokenCall).filter(TokenCall.user_id == user_id)
        if status_filter:
            query = query.filter(TokenCall.status == status_filter)
        if token_id:
            query = query.filter(TokenCall.token_id == token_id)
        return self._paginate(query, page, page_size)

    def list_token_calls(self, db: Session, token_id: str, page: int = 1, page_size: int = 10,
                         status_filter: Optional[TokenCallStatus] = None) -> Tuple[List[TokenCall], int]:
        logger.debug(f"list_token_calls 호출: token_id={token_id}, page={page}, status={status_filter}")
        query = db.query(TokenCall).filter(TokenCall.token_id == token_id)
        if status_filter:
            query = query.filter(TokenCall.status == status_filter)
        return self._paginate(query, page, page_size)

    async def get_call_price_history(self, db: Session, call_id: int) -> List[PricePoint]:
        """콜 기간의 가격 이력. 아직 목표일이 오지 않은 콜은 현재 시각까지만 조회합니다."""
        call = self.get_call(db, call_id)
        end_time = min(call.target_date, utcnow())
        if end_time <= call.call_timestamp:
            return []

        try:
            return await self.price_history_provider.get_price_history(
                call.token_id, call.call_timestamp, end_time, settings.PRICE_HISTORY_RESOLUTION
            )
        except PriceHistoryRateLimitError:
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                                detail="가격 제공자 요청 한도를 초과했습니다. 잠시 후 다시 시도해주세요.")
        except PriceHistoryError as e:
            logger.error(f"콜 가격 이력 조회 실패: call={call_id}, error={e}")
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="가격 이력을 가져올 수 없습니다.")

    def get_user_stats(self, db: Session, user_id: int) -> dict:
        counts = dict(
            db.query(TokenCall.status, func.count(TokenCall.id))
            .filter(TokenCall.user_id == user_id)
            .group_by(TokenCall.status)
            .all()
        )
        successful = counts.get(TokenCallStatus.VERIFIED_SUCCESS, 0)
        failed = counts.get(TokenCallStatus.VERIFIED_FAIL, 0)
        verified = successful + failed

        average_ratio = db.query(func.avg(TokenCall.time_to_hit_ratio)).filter(
            TokenCall.user_id == user_id,
            TokenCall.status == TokenCallStatus.VERIFIED_SUCCESS
        ).scalar()

        streak = db.query(UserTokenCallStreak).filter(UserTokenCallStreak.user_id == user_id).first()

        return {
            "user_id": user_id,
            "total_calls": sum(counts.values()),
            "pending_calls": counts.get(TokenCallStatus.PENDING, 0),
            "successful_calls": successful,
            "failed_calls": failed,
            "error_calls": counts.get(TokenCallStatus.ERROR, 0),
            "success_rate": (successful / verified) if verified else None,
            "average_time_to_hit_ratio": float(average_ratio) if average_ratio is not None else None,
            "current_success_streak": streak.current_success_streak if streak else 0,
            "longest_success_streak": streak.longest_success_streak if streak else 0,
        }

    def get_leaderboard(self, db: Session, limit: int = 20) -> List[dict]:
        """적중 콜 수 기준 사용자 순위 (동률이면 적중률, 사용자 ID 순)"""
        success_count = func.sum(case((TokenCall.status == TokenCallStatus.VERIFIED_SUCCESS, 1), else_=0))
        verified_count = func.count(TokenCall.id)

        rows = db.query(User.id, User.username, success_count.label("successful"), verified_count.label("verified"))\
            .join(TokenCall, TokenCall.user_id == User.id)\
            .filter(TokenCall.status.in_([TokenCallStatus.VERIFIED_SUCCESS, TokenCallStatus.VERIFIED_FAIL]))\
            .group_by(User.id, User.username)\
            .all()

        entries = []
        for row in rows:
            successful = int(row.successful or 0)
            verified = int(row.verified or 0)
            if successful == 0:
                continue
            entries.append({
                "user_id": row.id,
                "username": row.username,
                "successful_calls": successful,
                "total_verified_calls": verified,
                "success_rate": successful / verified if verified else 0.0,
            })

        entries.sort(key=lambda e: (-e["successful_calls"], -e["success_rate"], e["user_id"]))
        return [dict(entry, rank=index + 1) for index, entry in enumerate(entries[:limit])]
