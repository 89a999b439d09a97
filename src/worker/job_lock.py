"""
검증 잡의 동시 실행을 막는 잠금 구현.

LocalJobLock 은 프로세스 하나에서만 유효합니다. 워커를 여러 인스턴스로 띄우는 경우
VERIFICATION_LOCK_BACKEND=redis 로 RedisJobLock(임대 키)을 사용해야 합니다.
"""
import logging
import uuid
from abc import ABC, abstractmethod

import redis.asyncio as redis

from src.common.config.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class JobLock(ABC):
    @abstractmethod
    async def acquire(self) -> bool:
        """잠금을 얻으면 True, 이미 다른 실행이 잡고 있으면 False"""
        pass

    @abstractmethod
    async def release(self) -> None:
        pass


class LocalJobLock(JobLock):
    def __init__(self):
        self.is_running = False

    async def acquire(self) -> bool:
        if self.is_running:
            return False
        self.is_running = True
        return True

    async def release(self) -> None:
        self.is_running = False


# 소유자 토큰이 일치할 때만 삭제
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class RedisJobLock(JobLock):
    def __init__(self, redis_client, key: str, ttl_seconds: int = 3600):
        self.redis_client = redis_client
        self.key = key
        self.ttl_seconds = ttl_seconds
        self._token = None

    async def acquire(self) -> bool:
        token = uuid.uuid4().hex
        acquired = await self.redis_client.set(self.key, token, nx=True, ex=self.ttl_seconds)
        if acquired:
            self._token = token
            return True
        return False

    async def release(self) -> None:
        if self._token is None:
            return
        try:
            await self.redis_client.eval(_RELEASE_SCRIPT, 1, self.key, self._token)
        finally:
            self._token = None


def build_job_lock(name: str, settings: Settings = None) -> JobLock:
    settings = settings or default_settings
    if settings.VERIFICATION_LOCK_BACKEND == "redis":
        logger.info(f"Redis 잠금 사용: {name} ({settings.redis_url})")
        redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        return RedisJobLock(redis_client, key=f"locks:{name}", ttl_seconds=settings.VERIFICATION_LOCK_TTL_SECONDS)
    return LocalJobLock()
