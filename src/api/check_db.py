import logging
from sqlalchemy.orm import Session
from sqlalchemy import text
from tenacity import retry, stop_after_attempt, wait_fixed

from src.common.database.db_connector import SessionLocal

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 5 minutes
wait_seconds = 1

@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before_sleep=lambda retry_state: logger.info(
        f"DB 연결 재시도 중... 시도 #{retry_state.attempt_number}"
    ),
)
def check_db() -> None:
    db: Session = SessionLocal()
    try:
        # DB가 응답하는지 확인
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"DB 연결 확인 실패: {e}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    logger.info("서비스 초기화 시작")
    check_db()
    logger.info("서비스 초기화 완료")
