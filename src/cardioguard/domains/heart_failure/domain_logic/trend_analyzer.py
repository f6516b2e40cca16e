"""Longitudinal metric trends for the trends view.

Aggregates stored samples into per-day means and summarises direction
and volatility over a 7, 30 or 90 day period.
"""

from __future__ import annotations

import logging
import statistics
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from cardioguard.domains.heart_failure.domain_logic.metric_evaluators import finite_values
from cardioguard.domains.heart_failure.domain_logic.models import MetricSample, MetricType

if TYPE_CHECKING:
    from cardioguard.domains.heart_failure.connectors import HeartDataProvider

logger = logging.getLogger(__name__)

TREND_PERIODS = (7, 30, 90)

# Relative change between halves below which a series counts as stable
_STABLE_BAND = 0.03


def aggregate_by_day(samples: list[MetricSample]) -> list[tuple[date, float]]:
    """Mean value per calendar day, ascending by day."""
    by_day: dict[date, list[float]] = {}
    for s in samples:
        vals = finite_values([s])
        if vals:
            by_day.setdefault(s.timestamp.date(), []).append(vals[0])
    return [(day, sum(v) / len(v)) for day, v in sorted(by_day.items())]


class TrendAnalyzer:
    """Computes per-metric trends from a health data provider.

    Usage::

        analyzer = TrendAnalyzer(provider)
        series = analyzer.daily_series(MetricType.WEIGHT_KG, days=30)
        trend = analyzer.compute_metric_trend(MetricType.HEART_RATE, days=7)
    """

    def __init__(self, provider: HeartDataProvider) -> None:
        self._provider = provider

    def daily_series(
        self,
        metric_type: MetricType,
        *,
        days: int = 7,
        as_of: datetime | None = None,
    ) -> list[tuple[date, float]]:
        """Per-day means for the trailing ``days`` (7, 30 or 90)."""
        if days not in TREND_PERIODS:
            raise ValueError(f"days must be one of {TREND_PERIODS}, got {days}")
        end = as_of or datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        samples = self._provider.fetch_metrics(metric_type, start, end)
        return aggregate_by_day(samples)

    def compute_metric_trend(
        self,
        metric_type: MetricType,
        *,
        days: int = 7,
        as_of: datetime | None = None,
        series: list[tuple[date, float]] | None = None,
    ) -> dict[str, Any]:
        """Trend statistics for one metric.

        Pass ``series`` (from :meth:`daily_series`) to summarise data that
        has already been fetched.

        Returns:
            Dict with: metric, current, mean, median, min, max, std_dev,
            direction, volatility, data_points (or status ``no_data``).
        """
        if series is None:
            series = self.daily_series(metric_type, days=days, as_of=as_of)
        if not series:
            return {"metric": metric_type.value, "data_points": 0, "status": "no_data"}

        values = [v for _, v in series]
        current = values[-1]

        # Direction: older half vs newer half of the daily means
        if len(values) >= 4:
            mid = len(values) // 2
            older = statistics.mean(values[:mid])
            newer = statistics.mean(values[mid:])
            direction = _direction(older, newer)
        elif len(values) >= 2:
            direction = _direction(values[0], current)
        else:
            direction = "insufficient_data"

        mean_val = statistics.mean(values)
        std_val = statistics.stdev(values) if len(values) > 1 else 0.0
        volatility = std_val / mean_val if mean_val > 0 else 0.0

        return {
            "metric": metric_type.value,
            "unit": metric_type.default_unit,
            "period_days": days,
            "current": round(current, 2),
            "mean": round(mean_val, 2),
            "median": round(statistics.median(values), 2),
            "min": round(min(values), 2),
            "max": round(max(values), 2),
            "std_dev": round(std_val, 2),
            "direction": direction,
            "volatility": round(volatility, 4),
            "data_points": len(values),
        }


def _direction(older: float, newer: float) -> str:
    if older == 0:
        return "stable" if newer == 0 else "increasing"
    change = (newer - older) / abs(older)
    if change > _STABLE_BAND:
        return "increasing"
    if change < -_STABLE_BAND:
        return "decreasing"
    return "stable"
