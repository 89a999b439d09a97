"""애플리케이션 전역 설정 모듈입니다."""
import os
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# APP_ENV 환경 변수에 따라 적절한 .env 파일 로드
APP_ENV = os.getenv("APP_ENV", "development")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=f".env.{APP_ENV}",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "development"

    # 로깅 설정
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FORMAT: str = "text"  # 'text' or 'json'

    # 데이터베이스 설정
    DATABASE_URL: Optional[str] = None
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "memehub"

    # Redis 설정
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # 텔레그램 설정
    TELEGRAM_BOT_TOKEN: Optional[str] = None

    # 가격 이력 제공자 (Birdeye)
    BIRDEYE_API_KEY: str = ""
    BIRDEYE_BASE_URL: str = "https://public-api.birdeye.so"
    BIRDEYE_CHAIN: str = "solana"
    PRICE_HISTORY_RESOLUTION: str = "1H"
    PRICE_HISTORY_REQUESTS_PER_MINUTE: int = 60

    # 토큰 콜 검증 잡
    VERIFICATION_INTERVAL_MINUTES: int = 60
    VERIFICATION_LOCK_BACKEND: str = "local"  # 'local' or 'redis'
    VERIFICATION_LOCK_TTL_SECONDS: int = 3600
    TOKEN_CALL_ERROR_RETRY_LIMIT: int = 0

    # 토큰 콜 생성
    TOKEN_CALL_MAX_MULTIPLIER: float = 10000.0

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def redis_url(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
