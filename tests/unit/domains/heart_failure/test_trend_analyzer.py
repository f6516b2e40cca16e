"""Tests for the TrendAnalyzer: per-day metric trends."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from conftest import AS_OF, daily_samples, sample

from cardioguard.domains.heart_failure.connectors.repository_provider import (
    RepositoryHeartDataProvider,
)
from cardioguard.domains.heart_failure.domain_logic.models import MetricType
from cardioguard.domains.heart_failure.domain_logic.trend_analyzer import (
    TrendAnalyzer,
    aggregate_by_day,
)


@pytest.fixture
def analyzer(heart_repository):
    return TrendAnalyzer(RepositoryHeartDataProvider(heart_repository))


class TestAggregateByDay:
    def test_daily_means(self):
        samples = [
            sample(MetricType.HEART_RATE, 60, hours_ago=1),
            sample(MetricType.HEART_RATE, 80, hours_ago=2),
            sample(MetricType.HEART_RATE, 70, hours_ago=25),
        ]
        assert aggregate_by_day(samples) == [(date(2026, 3, 9), 70.0), (date(2026, 3, 10), 70.0)]


class TestDailySeries:
    def test_invalid_period(self, analyzer):
        with pytest.raises(ValueError, match="days must be one of"):
            analyzer.daily_series(MetricType.WEIGHT_KG, days=14, as_of=AS_OF)

    def test_series_is_ascending(self, analyzer, heart_repository):
        heart_repository.save_metrics(daily_samples(MetricType.WEIGHT_KG, [80, 81, 82]))
        series = analyzer.daily_series(MetricType.WEIGHT_KG, days=7, as_of=AS_OF)
        assert [d for d, _ in series] == [AS_OF.date() - timedelta(days=i) for i in (2, 1, 0)]
        assert [v for _, v in series] == [80, 81, 82]


class TestComputeMetricTrend:
    def test_no_data(self, analyzer):
        result = analyzer.compute_metric_trend(MetricType.HRV, days=7, as_of=AS_OF)
        assert result["data_points"] == 0
        assert result["status"] == "no_data"

    def test_single_point(self, analyzer, heart_repository):
        heart_repository.save_metric(sample(MetricType.HRV, 42, hours_ago=1))
        result = analyzer.compute_metric_trend(MetricType.HRV, days=7, as_of=AS_OF)
        assert result["data_points"] == 1
        assert result["current"] == 42
        assert result["direction"] == "insufficient_data"

    def test_increasing_weight(self, analyzer, heart_repository):
        heart_repository.save_metrics(daily_samples(MetricType.WEIGHT_KG, [78, 78, 79, 80, 81, 82]))
        result = analyzer.compute_metric_trend(MetricType.WEIGHT_KG, days=7, as_of=AS_OF)
        assert result["direction"] == "increasing"
        assert result["current"] == 82
        assert result["min"] == 78
        assert result["unit"] == "kg"

    def test_decreasing_steps(self, analyzer, heart_repository):
        heart_repository.save_metrics(daily_samples(MetricType.STEPS, [8000, 8000, 7000, 4000, 3000, 3000]))
        result = analyzer.compute_metric_trend(MetricType.STEPS, days=7, as_of=AS_OF)
        assert result["direction"] == "decreasing"

    def test_stable_heart_rate(self, analyzer, heart_repository):
        heart_repository.save_metrics(daily_samples(MetricType.HEART_RATE, [70, 71, 70, 71, 70, 71]))
        result = analyzer.compute_metric_trend(MetricType.HEART_RATE, days=7, as_of=AS_OF)
        assert result["direction"] == "stable"
        assert result["volatility"] < 0.05

    def test_period_excludes_older_samples(self, analyzer, heart_repository):
        heart_repository.save_metrics(daily_samples(MetricType.WEIGHT_KG, [70] * 20 + [80] * 5))
        result = analyzer.compute_metric_trend(MetricType.WEIGHT_KG, days=7, as_of=AS_OF)
        assert result["data_points"] == 7
        result_30 = analyzer.compute_metric_trend(MetricType.WEIGHT_KG, days=30, as_of=AS_OF)
        assert result_30["data_points"] == 25


class TestPrefetchedSeries:
    def test_uses_given_series_without_fetching(self):
        class _NoFetchProvider:
            def fetch_metrics(self, *args):
                raise AssertionError("provider should not be queried")

        series = [(AS_OF.date() - timedelta(days=i), 80.0 + 5 * i) for i in range(3, -1, -1)]
        result = TrendAnalyzer(_NoFetchProvider()).compute_metric_trend(
            MetricType.WEIGHT_KG, days=7, series=series
        )
        assert result["data_points"] == 4
        assert result["current"] == 80.0
        assert result["direction"] == "decreasing"
