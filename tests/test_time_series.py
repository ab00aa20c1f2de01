from datetime import date, datetime

import pytest

from codetrack.data_models.stats import SeriesPoint, WindowSpec
from codetrack.utils.time_series import (
    bucketize, expand_to_fixed_window, window_buckets, window_for, window_start
)


def test_weekly_window_has_seven_daily_buckets():
    window = window_for('weekly', date(2025, 3, 10))
    assert window_buckets(window) == [
        '2025-03-04', '2025-03-05', '2025-03-06', '2025-03-07',
        '2025-03-08', '2025-03-09', '2025-03-10',
    ]
    assert window_start(window) == datetime(2025, 3, 4)


def test_monthly_window_crosses_year_boundary():
    window = window_for('monthly', date(2025, 1, 15))
    assert window_buckets(window) == ['2024-11', '2024-12', '2025-01']
    assert window_start(window) == datetime(2024, 11, 1)


def test_yearly_window_has_twelve_months():
    buckets = window_buckets(window_for('yearly', date(2025, 3, 1)))
    assert len(buckets) == 12
    assert buckets[0] == '2024-04'
    assert buckets[-1] == '2025-03'


def test_unknown_timeframe():
    with pytest.raises(ValueError):
        window_for('daily', date(2025, 3, 1))


def test_expand_zero_fills_and_drops_outside_keys():
    window = WindowSpec(end=date(2025, 3, 3), length=3, unit='day')
    raw = {'2025-03-02': 7, '2025-02-01': 99}
    assert expand_to_fixed_window(raw, window) == [
        SeriesPoint('2025-03-01', 0),
        SeriesPoint('2025-03-02', 7),
        SeriesPoint('2025-03-03', 0),
    ]


def test_bucketize_sums_per_bucket():
    events = [
        (datetime(2025, 3, 1, 8), 5),
        (datetime(2025, 3, 1, 20), 3),
        (datetime(2025, 4, 2), 1),
        (None, 50),
    ]
    assert bucketize(events, 'month') == {'2025-03': 8, '2025-04': 1}
