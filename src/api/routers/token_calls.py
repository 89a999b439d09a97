from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from src.common.database.db_connector import get_db
from src.common.models.token_call import TokenCallStatus
from src.common.schemas.token_call import (
    TokenCallCreate, TokenCallRead, TokenCallListResponse, PriceHistoryItem, PriceHistoryResponse,
    UserTokenCallStats, LeaderboardEntry,
)
from src.common.services.token_call_service import TokenCallService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/token-calls", tags=["token-calls"])

def get_token_call_service():
    return TokenCallService()


@router.post("", response_model=TokenCallRead, status_code=201,
             summary="토큰 콜 생성",
             description="토큰의 목표 가격과 기한(timeframe_duration 또는 target_date)을 지정해 새 콜을 생성합니다. 기준 가격은 생성 시점의 시세입니다.")
async def create_token_call(
    call: TokenCallCreate,
    db: Session = Depends(get_db),
    token_call_service: TokenCallService = Depends(get_token_call_service)
):
    logger.debug(f"create_token_call: {call.model_dump()}")
    return await token_call_service.create_call(db, call)


# 고정 경로는 /{call_id} 보다 먼저 선언해야 합니다.
@router.get("/leaderboard", response_model=List[LeaderboardEntry], summary="토큰 콜 리더보드")
def get_leaderboard(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    token_call_service: TokenCallService = Depends(get_token_call_service)
):
    return token_call_service.get_leaderboard(db, limit=limit)


@router.get("/users/{user_id}", response_model=TokenCallListResponse, summary="사용자별 토큰 콜 목록")
def get_user_token_calls(
    user_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: Optional[TokenCallStatus] = None,
    token_id: Optional[str] = None,
    db: Session = Depends(get_db),
    token_call_service: TokenCallService = Depends(get_token_call_service)
):
    items, total_count = token_call_service.list_user_calls(
        db, user_id, page=page, page_size=page_size, status_filter=status, token_id=token_id
    )
    return {"items": items, "total_count": total_count, "page": page, "page_size": page_size}


@router.get("/users/{user_id}/stats", response_model=UserTokenCallStats, summary="사용자 토큰 콜 통계")
def get_user_token_call_stats(
    user_id: int,
    db: Session = Depends(get_db),
    token_call_service: TokenCallService = Depends(get_token_call_service)
):
    return token_call_service.get_user_stats(db, user_id)


@router.get("/tokens/{token_id}", response_model=TokenCallListResponse, summary="토큰별 콜 목록")
def get_token_calls_for_token(
    token_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    status: Optional[TokenCallStatus] = None,
    db: Session = Depends(get_db),
    token_call_service: TokenCallService = Depends(get_token_call_service)
):
    items, total_count = token_call_service.list_token_calls(
        db, token_id, page=page, page_size=page_size, status_filter=status
    )
    return {"items": items, "total_count": total_count, "page": page, "page_size": page_size}


@router.get("/{call_id}", response_model=TokenCallRead, summary="토큰 콜 조회")
def get_token_call(
    call_id: int,
    db: Session = Depends(get_db),
    token_call_service: TokenCallService = Depends(get_token_call_service)
):
    return token_call_service.get_call(db, call_id)


@router.get("/{call_id}/price-history", response_model=PriceHistoryResponse, summary="토큰 콜 기간 가격 이력")
async def get_token_call_price_history(
    call_id: int,
    db: Session = Depends(get_db),
    token_call_service: TokenCallService = Depends(get_token_call_service)
):
    points = await token_call_service.get_call_price_history(db, call_id)
    return {"items": [PriceHistoryItem(unixTime=p.unix_time, value=p.value) for p in points]}
