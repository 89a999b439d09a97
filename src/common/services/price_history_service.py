import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import httpx

from src.common.config.settings import settings
from src.common.utils.exceptions import PriceHistoryError, PriceHistoryRateLimitError
from src.common.utils.rate_limiter import AsyncRateLimiter
from src.common.utils.time_utils import from_unix, to_unix

logger = logging.getLogger(__name__)


@dataclass
class PricePoint:
    unix_time: int
    value: float

    @property
    def timestamp(self) -> datetime:
        return from_unix(self.unix_time)


class PriceHistoryProvider(ABC):
    """토큰 가격 이력 제공자를 위한 추상 기본 클래스입니다."""

    @abstractmethod
    async def get_price_history(self, token_id: str, start_time: datetime, end_time: datetime,
                                resolution: str = "1H") -> List[PricePoint]:
        """
        기간 내 가격 샘플을 시간순으로 반환합니다.

        Raises:
            PriceHistoryRateLimitError: 요청 한도 초과
            PriceHistoryError: 그 외 제공자 오류
        """
        pass

    async def get_token_overview(self, token_id: str) -> Optional[dict]:
        """현재 가격과 유통량. 지원하지 않는 제공자는 None 을 반환합니다."""
        return None


class BirdeyePriceHistoryProvider(PriceHistoryProvider):
    """Birdeye 공개 API 기반 가격 이력 제공자입니다."""

    def __init__(self, api_key: str = None, base_url: str = None, chain: str = None):
        self.api_key = api_key if api_key is not None else settings.BIRDEYE_API_KEY
        self.base_url = base_url or settings.BIRDEYE_BASE_URL
        self.chain = chain or settings.BIRDEYE_CHAIN

    def _get_client(self) -> httpx.AsyncClient:
        # 네트워크 오류 발생 시 최대 3번 재시도
        transport = httpx.AsyncHTTPTransport(retries=3)
        headers = {"X-API-KEY": self.api_key, "x-chain": self.chain, "accept": "application/json"}
        return httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=10.0, headers=headers)

    async def _get(self, path: str, params: dict, token_id: str) -> dict:
        async with self._get_client() as client:
            try:
                response = await client.get(path, params=params)
            except httpx.HTTPError as e:
                raise PriceHistoryError(f"Failed to fetch price data from Birdeye: {e}") from e

        if response.status_code == 429:
            logger.error(f"Birdeye API 요청 한도 초과 (429): token={token_id}")
            raise PriceHistoryRateLimitError()

        if response.status_code >= 400:
            try:
                error_message = response.json().get("message") or response.reason_phrase
            except ValueError:
                error_message = response.reason_phrase
            logger.error(f"Birdeye API 오류 ({response.status_code}): {error_message} for {token_id}")
            raise PriceHistoryError(f"Failed to fetch price data from Birdeye: {error_message}",
                                    status_code=response.status_code)

        return response.json()

    async def get_price_history(self, token_id: str, start_time: datetime, end_time: datetime,
                                resolution: str = "1H") -> List[PricePoint]:
        time_from = to_unix(start_time)
        time_to = to_unix(end_time)

        if time_from >= time_to:
            logger.warning(f"잘못된 가격 이력 조회 구간: time_from {time_from} >= time_to {time_to}")
            return []

        params = {
            "address": token_id,
            "address_type": "token",
            "type": resolution,
            "time_from": time_from,
            "time_to": time_to,
        }
        data = await self._get("/defi/history_price", params, token_id)

        items = (data.get("data") or {}).get("items")
        if not items:
            logger.warning(f"Birdeye 응답에 가격 이력이 없습니다: {token_id}")
            return []

        points = [PricePoint(unix_time=int(item["unixTime"]), value=float(item["value"])) for item in items]
        points.sort(key=lambda p: p.unix_time)
        return points

    async def get_token_overview(self, token_id: str) -> Optional[dict]:
        data = await self._get("/defi/token_overview", {"address": token_id}, token_id)
        overview = data.get("data")
        if not overview or overview.get("price") is None:
            logger.warning(f"Birdeye 응답에 토큰 정보가 없습니다: {token_id}")
            return None
        return {
            "price": float(overview["price"]),
            "circulating_supply": overview.get("circulatingSupply"),
            "symbol": overview.get("symbol"),
            "name": overview.get("name"),
        }


class RateLimitedPriceHistoryProvider(PriceHistoryProvider):
    """모든 요청 전에 레이트 리미터를 거치도록 감싼 제공자입니다."""

    def __init__(self, provider: PriceHistoryProvider, limiter: AsyncRateLimiter):
        self.provider = provider
        self.limiter = limiter

    async def get_price_history(self, token_id: str, start_time: datetime, end_time: datetime,
                                resolution: str = "1H") -> List[PricePoint]:
        await self.limiter.acquire()
        return await self.provider.get_price_history(token_id, start_time, end_time, resolution)

    async def get_token_overview(self, token_id: str) -> Optional[dict]:
        await self.limiter.acquire()
        return await self.provider.get_token_overview(token_id)


def build_price_history_provider() -> PriceHistoryProvider:
    """설정값으로 레이트 리밋이 적용된 Birdeye 제공자를 생성합니다."""
    limiter = AsyncRateLimiter(requests_per_minute=settings.PRICE_HISTORY_REQUESTS_PER_MINUTE)
    return RateLimitedPriceHistoryProvider(BirdeyePriceHistoryProvider(), limiter)
