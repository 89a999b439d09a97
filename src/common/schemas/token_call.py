from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime

from src.common.models.token_call import TokenCallStatus
from src.common.utils.time_utils import TIMEFRAME_OPTIONS


class TokenCallCreate(BaseModel):
    user_id: int
    token_id: str
    target_price: float = Field(..., gt=0)
    timeframe_duration: Optional[str] = None  # '15m' ~ '1y'
    target_date: Optional[datetime] = None

    @field_validator('timeframe_duration')
    @classmethod
    def validate_timeframe(cls, v):
        if v is not None and v not in TIMEFRAME_OPTIONS:
            raise ValueError(f"timeframe_duration must be one of {list(TIMEFRAME_OPTIONS)}")
        return v

    @model_validator(mode='after')
    def check_deadline(self):
        if self.timeframe_duration is None and self.target_date is None:
            raise ValueError("timeframe_duration 또는 target_date 중 하나는 반드시 설정해야 합니다.")
        return self


class TokenCallRead(BaseModel):
    id: int
    user_id: int
    token_id: str
    reference_price: float
    target_price: float
    reference_supply: Optional[float] = None
    call_timestamp: datetime
    target_date: datetime
    status: TokenCallStatus
    peak_price_during_period: Optional[float] = None
    final_price_at_target_date: Optional[float] = None
    target_hit_timestamp: Optional[datetime] = None
    time_to_hit_ratio: Optional[float] = None
    verification_timestamp: Optional[datetime] = None
    multiplier: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class TokenCallListResponse(BaseModel):
    items: List[TokenCallRead]
    total_count: int
    page: int
    page_size: int


class PriceHistoryItem(BaseModel):
    unixTime: int
    value: float


class PriceHistoryResponse(BaseModel):
    items: List[PriceHistoryItem]


class TokenCallStreakRead(BaseModel):
    user_id: int
    current_success_streak: int
    longest_success_streak: int
    last_verified_call_timestamp: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserTokenCallStats(BaseModel):
    user_id: int
    total_calls: int
    pending_calls: int
    successful_calls: int
    failed_calls: int
    error_calls: int
    success_rate: Optional[float] = None
    average_time_to_hit_ratio: Optional[float] = None
    current_success_streak: int = 0
    longest_success_streak: int = 0


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str
    successful_calls: int
    total_verified_calls: int
    success_rate: float
