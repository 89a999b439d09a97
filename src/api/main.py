from fastapi import FastAPI
from contextlib import asynccontextmanager
from datetime import datetime
import logging

from src.api.routers import token_calls, tokens, watchlist, notification, badges
from src.common.database.db_connector import Base, engine
from src.common.utils.logging_config import setup_logging
import src.common.models  # noqa: F401 (테이블 메타데이터 등록)

# 로깅 설정
setup_logging("app.log")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure tables are created for all environments
    logger.info("API 서비스 시작: 테이블 생성 확인")
    Base.metadata.create_all(bind=engine)
    yield
    logger.info("API 서비스 종료")

app = FastAPI(title="Token Call API", lifespan=lifespan)

# --- Routers ---
app.include_router(token_calls.router, prefix="/api/v1")
app.include_router(tokens.router, prefix="/api/v1")
app.include_router(watchlist.router, prefix="/api/v1")
app.include_router(notification.router, prefix="/api/v1")
app.include_router(badges.router, prefix="/api/v1")

# --- Basic Endpoints ---
@app.get("/")
def read_root():
    return {"message": "API 서비스 정상 동작"}

@app.get("/health")
def health_check():
    """헬스체크 엔드포인트"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat()
    }
