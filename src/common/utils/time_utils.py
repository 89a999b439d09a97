"""
시간 관련 유틸리티 모듈입니다.

DB에는 timezone 정보가 없는 UTC 기준 datetime을 저장합니다.
"""
from datetime import datetime, timezone, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

# 토큰 콜 생성 시 선택 가능한 기간 프리셋
TIMEFRAME_OPTIONS = {
    '15m': '15 Minutes',
    '30m': '30 Minutes',
    '1h': '1 Hour',
    '3h': '3 Hours',
    '6h': '6 Hours',
    '12h': '12 Hours',
    '1d': '1 Day',
    '3d': '3 Days',
    '1w': '1 Week',
    '2w': '2 Weeks',
    '1M': '1 Month',
    '3M': '3 Months',
    '6M': '6 Months',
    '1y': '1 Year',
}


def utcnow() -> datetime:
    """현재 UTC 시각을 naive datetime으로 반환합니다."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """aware datetime은 UTC로 변환 후 tzinfo를 제거합니다. naive 값은 UTC로 간주합니다."""
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def to_unix(dt: datetime) -> int:
    return int(to_naive_utc(dt).replace(tzinfo=timezone.utc).timestamp())


def from_unix(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)


def add_timeframe(start: datetime, timeframe: str) -> Optional[datetime]:
    """
    '15m', '1h', '1M', '1y' 형식의 기간 문자열을 start에 더한 시각을 반환합니다.

    Args:
        start (datetime): 기준 시각
        timeframe (str): TIMEFRAME_OPTIONS 의 키

    Returns:
        Optional[datetime]: 알 수 없는 형식이면 None
    """
    if timeframe not in TIMEFRAME_OPTIONS:
        return None

    value = int(timeframe[:-1])
    unit = timeframe[-1]

    if unit == 'm':
        return start + timedelta(minutes=value)
    if unit == 'h':
        return start + timedelta(hours=value)
    if unit == 'd':
        return start + timedelta(days=value)
    if unit == 'w':
        return start + timedelta(weeks=value)
    if unit == 'M':
        return start + relativedelta(months=value)
    if unit == 'y':
        return start + relativedelta(years=value)
    return None
