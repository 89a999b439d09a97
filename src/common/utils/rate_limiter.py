import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class AsyncRateLimiter:
    """
    토큰 버킷 방식의 비동기 레이트 리미터입니다.

    requests_per_minute 비율로 토큰이 채워지며, 버킷 용량(burst)만큼만 연속 요청을 허용합니다.
    requests_per_minute 가 0 이하이면 대기하지 않습니다.
    """

    def __init__(self, requests_per_minute: int = 60, burst: int = 1, clock=time.monotonic):
        self._clock = clock
        self._rate = requests_per_minute / 60.0  # 초당 토큰 수
        self._capacity = max(1, burst)
        self._tokens = float(self._capacity)
        self._updated_at = self._clock()
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._rate > 0

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._updated_at
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._updated_at = now

    async def acquire(self) -> None:
        """토큰 하나를 얻을 때까지 대기합니다."""
        if not self.enabled:
            return

        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                wait_seconds = (1 - self._tokens) / self._rate
                logger.debug(f"레이트 리밋 대기: {wait_seconds:.2f}초")
                await asyncio.sleep(wait_seconds)
