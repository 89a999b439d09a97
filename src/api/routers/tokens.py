from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from src.common.database.db_connector import get_db
from src.common.schemas.token import TokenRead
from src.common.services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tokens", tags=["tokens"])

def get_token_service():
    return TokenService()

@router.get("/search", response_model=List[TokenRead], summary="토큰 검색")
def search_tokens(
    query: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service)
):
    return token_service.search_tokens(db, query, limit=limit)

@router.get("/{mint_address}", response_model=TokenRead, summary="토큰 조회")
def get_token(
    mint_address: str,
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service)
):
    token = token_service.get_token(db, mint_address)
    if not token:
        logger.debug(f"토큰 없음: {mint_address}")
        raise HTTPException(status_code=404, detail="Token not found")
    return token
