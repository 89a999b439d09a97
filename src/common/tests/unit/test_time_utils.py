import pytest
from datetime import datetime, timezone, timedelta

from src.common.utils.time_utils import (
    TIMEFRAME_OPTIONS, add_timeframe, from_unix, to_naive_utc, to_unix, utcnow,
)

START = datetime(2024, 1, 31, 12, 0, 0)


@pytest.mark.parametrize("timeframe, expected", [
    ("15m", START + timedelta(minutes=15)),
    ("12h", START + timedelta(hours=12)),
    ("3d", START + timedelta(days=3)),
    ("2w", START + timedelta(weeks=2)),
    ("1M", datetime(2024, 2, 29, 12, 0, 0)),
    ("1y", datetime(2025, 1, 31, 12, 0, 0)),
])
def test_add_timeframe(timeframe, expected):
    assert add_timeframe(START, timeframe) == expected


def test_add_timeframe_unknown():
    assert add_timeframe(START, "5y") is None


def test_every_timeframe_option_is_supported():
    for timeframe in TIMEFRAME_OPTIONS:
        assert add_timeframe(START, timeframe) > START


def test_to_naive_utc_converts_aware_datetimes():
    aware = datetime(2024, 1, 1, 9, 0, 0, tzinfo=timezone(timedelta(hours=9)))
    assert to_naive_utc(aware) == datetime(2024, 1, 1, 0, 0, 0)
    assert to_naive_utc(START) == START


def test_unix_conversion():
    assert to_unix(datetime(1970, 1, 2)) == 86400
    assert from_unix(86400) == datetime(1970, 1, 2)


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None
