from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from src.common.database.db_connector import get_db
from src.common.models.watchlist import TokenWatchlist
from src.common.schemas.watchlist import WatchlistItem, WatchlistResponse
from src.common.services.user_service import UserService
from src.common.services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/watchlist", tags=["watchlist"])

def get_user_service():
    return UserService()

def get_token_service():
    return TokenService()

@router.post("/add")
def add_to_watchlist(item: WatchlistItem, db: Session = Depends(get_db), user_service: UserService = Depends(get_user_service), token_service: TokenService = Depends(get_token_service)):
    logger.debug(f"관심 토큰 추가 시도: user_id={item.user_id}, token_id={item.token_id}")
    if not user_service.get_user_by_id(db, item.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    if not token_service.get_token(db, item.token_id):
        raise HTTPException(status_code=404, detail="Token not found")

    exists = db.query(TokenWatchlist).filter(TokenWatchlist.user_id == item.user_id, TokenWatchlist.token_id == item.token_id).first()
    if exists:
        logger.info(f"관심 토큰 이미 존재: user_id={item.user_id}, token_id={item.token_id}")
        return {"message": "이미 관심 목록에 있는 토큰입니다."}
    try:
        db.add(TokenWatchlist(user_id=item.user_id, token_id=item.token_id))
        db.commit()
        logger.info(f"관심 토큰 추가 성공: user_id={item.user_id}, token_id={item.token_id}")
        return {"message": "토큰이 관심 목록에 추가되었습니다."}
    except Exception as e:
        db.rollback()
        logger.error(f"관심 토큰 추가 실패: user_id={item.user_id}, token_id={item.token_id}, error={e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"관심 토큰 추가 실패: {e}")

@router.get("/get/{user_id}", response_model=WatchlistResponse)
def get_watchlist(user_id: int, db: Session = Depends(get_db), user_service: UserService = Depends(get_user_service)):
    if not user_service.get_user_by_id(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    rows = db.query(TokenWatchlist).filter(TokenWatchlist.user_id == user_id).order_by(TokenWatchlist.created_at).all()
    logger.debug(f"관심 토큰 조회 성공: user_id={user_id}, {len(rows)}개")
    return {"watchlist": [row.token_id for row in rows]}

@router.post("/remove")
def remove_from_watchlist(item: WatchlistItem, db: Session = Depends(get_db), user_service: UserService = Depends(get_user_service)):
    if not user_service.get_user_by_id(db, item.user_id):
        raise HTTPException(status_code=404, detail="User not found")

    row = db.query(TokenWatchlist).filter(TokenWatchlist.user_id == item.user_id, TokenWatchlist.token_id == item.token_id).first()
    if not row:
        logger.info(f"관심 목록에 없는 토큰: user_id={item.user_id}, token_id={item.token_id}")
        return {"message": "관심 목록에 없는 토큰입니다."}
    try:
        db.delete(row)
        db.commit()
        logger.info(f"관심 토큰 제거 성공: user_id={item.user_id}, token_id={item.token_id}")
        return {"message": "토큰이 관심 목록에서 제거되었습니다."}
    except Exception as e:
        db.rollback()
        logger.error(f"관심 토큰 제거 실패: user_id={item.user_id}, token_id={item.token_id}, error={e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"관심 토큰 제거 실패: {e}")
