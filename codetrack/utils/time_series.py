"""
Fixed-window time series helpers for admin charts.

Everything here is pure: the window end is always passed in explicitly.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Tuple, Union

from codetrack.data_models.stats import SeriesPoint, WindowSpec

DAY = 'day'
MONTH = 'month'

TIMEFRAMES = {
    'weekly': (7, DAY),
    'monthly': (3, MONTH),
    'yearly': (12, MONTH),
}


def window_for(timeframe: str, end: date) -> WindowSpec:
    """WindowSpec for a named timeframe; raises ValueError if unknown."""
    if timeframe not in TIMEFRAMES:
        raise ValueError(f"Unknown timeframe: {timeframe}")
    length, unit = TIMEFRAMES[timeframe]
    return WindowSpec(end=end, length=length, unit=unit)


def _month_shift(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def bucket_key(moment: Union[date, datetime], unit: str) -> str:
    if unit == DAY:
        return moment.strftime('%Y-%m-%d')
    if unit == MONTH:
        return moment.strftime('%Y-%m')
    raise ValueError(f"Unknown bucket unit: {unit}")


def window_buckets(window: WindowSpec) -> List[str]:
    """Bucket keys of the window, oldest first, ending with ``window.end``."""
    if window.length < 1:
        return []
    if window.unit == DAY:
        return [
            bucket_key(window.end - timedelta(days=offset), DAY)
            for offset in range(window.length - 1, -1, -1)
        ]
    if window.unit == MONTH:
        keys = []
        for offset in range(window.length - 1, -1, -1):
            year, month = _month_shift(window.end.year, window.end.month, -offset)
            keys.append(f"{year:04d}-{month:02d}")
        return keys
    raise ValueError(f"Unknown bucket unit: {window.unit}")


def window_start(window: WindowSpec) -> datetime:
    """Midnight at the start of the oldest bucket."""
    if window.unit == DAY:
        start = window.end - timedelta(days=window.length - 1)
    else:
        year, month = _month_shift(window.end.year, window.end.month, -(window.length - 1))
        start = date(year, month, 1)
    return datetime(start.year, start.month, start.day)


def bucketize(events: Iterable[Tuple[datetime, int]], unit: str) -> Dict[str, int]:
    """Sum (timestamp, value) pairs into sparse buckets."""
    totals: Dict[str, int] = {}
    for moment, value in events:
        if moment is None:
            continue
        key = bucket_key(moment, unit)
        totals[key] = totals.get(key, 0) + (value or 0)
    return totals


def expand_to_fixed_window(raw_series: Mapping[str, int], window: WindowSpec) -> List[SeriesPoint]:
    """Dense series over the window: missing buckets are zero, out-of-window keys dropped."""
    return [SeriesPoint(bucket=key, value=int(raw_series.get(key, 0))) for key in window_buckets(window)]
