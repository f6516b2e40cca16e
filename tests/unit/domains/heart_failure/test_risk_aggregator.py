"""Tests for weighted risk aggregation."""

from __future__ import annotations

import pytest
from conftest import AS_OF, make_profile, sample

from cardioguard.domains.heart_failure.domain_logic.models import (
    Contribution,
    HeartFailureType,
    MetricSnapshot,
    MetricType,
    RiskLevel,
    SymptomEntry,
)
from cardioguard.domains.heart_failure.domain_logic.risk_aggregator import (
    aggregate,
    collect_contributions,
    compute_risk,
)


def _hr_snapshot(values: list[float]) -> MetricSnapshot:
    return MetricSnapshot.build([
        sample(MetricType.HEART_RATE, v, hours_ago=len(values) - i) for i, v in enumerate(values)
    ])


class TestAggregate:
    def test_heart_rate_only_scenario(self):
        result = aggregate([Contribution("heartRate", 55.0, 0.15, True)])
        assert result.score == pytest.approx(55.0)
        assert result.level == RiskLevel.YELLOW

    def test_zero_weight_sum(self):
        result = aggregate([])
        assert result.score == 0.0
        assert result.level == RiskLevel.GREEN
        assert result.weight_sum == 0.0

    def test_zero_contributions_dilute(self):
        result = aggregate([
            Contribution("heartRate", 55.0, 0.15, True),
            Contribution("hrv", 0.0, 0.15, False, {"fallback": "insufficient_hrv_data"}),
        ])
        assert result.score == pytest.approx(27.5)
        assert result.data_completeness_ratio == pytest.approx(0.5)


class TestComputeRisk:
    def test_absent_profile(self):
        result = compute_risk(_hr_snapshot([130] * 5), None, AS_OF)
        assert result.score == 0.0
        assert result.level == RiskLevel.GREEN
        assert result.weight_sum == 0.0
        assert result.contributions == ()

    def test_empty_snapshot_is_green(self):
        result = compute_risk(MetricSnapshot(), make_profile(), AS_OF)
        assert result.score == 0.0
        assert result.level == RiskLevel.GREEN
        # 5 HFrEF metrics + symptoms + medication flag
        assert result.weight_sum == pytest.approx(5 * 0.15 + 0.35 + 0.1)

    def test_terms_follow_priority_list(self):
        profile = make_profile(heart_failure_type=HeartFailureType.HFPEF)
        names = [c.name for c in collect_contributions(MetricSnapshot(), profile, AS_OF)]
        assert names == ["steps", "heartRate", "sleep", "symptoms", "medication_flag"]

    def test_idempotent(self):
        snap = MetricSnapshot.build(
            [sample(MetricType.HEART_RATE, 90, hours_ago=h) for h in range(1, 6)],
            [SymptomEntry(date=AS_OF.date(), fatigue_level=3)],
        )
        profile = make_profile()
        first = compute_risk(snap, profile, AS_OF)
        second = compute_risk(snap, profile, AS_OF)
        assert (first.score, first.level) == (second.score, second.level)

    def test_monotonic_in_heart_rate(self):
        profile = make_profile()
        scores = [compute_risk(_hr_snapshot([avg] * 5), profile, AS_OF).score for avg in (70, 77, 85, 140)]
        assert scores == sorted(scores)
        assert scores[-1] > scores[0]

    def test_digoxin_adds_both_terms(self):
        profile = make_profile(medication_ids=frozenset({"digoxin"}))
        terms = {c.name: c for c in collect_contributions(_hr_snapshot([45] * 5), profile, AS_OF)}
        assert terms["heartRate"].score == 70.0
        assert terms["medication_flag"].score == 40.0
        result = aggregate(list(terms.values()))
        assert result.score == pytest.approx((70 * 0.15 + 40 * 0.1) / 1.2)

    def test_samples_outside_window_ignored(self):
        snap = MetricSnapshot.build([sample(MetricType.HEART_RATE, 150, hours_ago=24 * 9)])
        result = compute_risk(snap, make_profile(), AS_OF)
        assert result.score == 0.0

    def test_completeness_ratio(self):
        snap = MetricSnapshot.build(
            [sample(MetricType.HEART_RATE, 70, hours_ago=1)],
            [SymptomEntry(date=AS_OF.date())],
        )
        result = compute_risk(snap, make_profile(), AS_OF)
        # heart rate + symptoms + medication flag have data
        assert result.data_completeness_ratio == pytest.approx((0.15 + 0.35 + 0.1) / 1.2)

    def test_as_dict(self):
        result = compute_risk(_hr_snapshot([90] * 5), make_profile(), AS_OF)
        data = result.as_dict()
        assert data["level"] == result.level.value
        assert data["contributions"][0]["name"] == "heartRate"
