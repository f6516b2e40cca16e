"""Tests for heart-failure value objects: levels, snapshots, symptom entries."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from conftest import AS_OF, sample

from cardioguard.domains.heart_failure.domain_logic.models import (
    AlertKind,
    HeartFailureType,
    MetricSnapshot,
    MetricType,
    RiskLevel,
    ShortnessOfBreath,
    SymptomEntry,
    UserProfile,
    start_of_day,
    trailing_window_start,
)


class TestRiskLevel:
    @pytest.mark.parametrize("score,expected", [
        (0.0, RiskLevel.GREEN),
        (39.999, RiskLevel.GREEN),
        (40.0, RiskLevel.YELLOW),
        (69.999, RiskLevel.YELLOW),
        (70.0, RiskLevel.RED),
        (100.0, RiskLevel.RED),
    ])
    def test_step_function_boundaries(self, score, expected):
        assert RiskLevel.from_score(score) == expected

    def test_labels(self):
        assert RiskLevel.GREEN.label == "Stable"
        assert RiskLevel.YELLOW.label == "Monitor"
        assert RiskLevel.RED.label == "Contact cardiologist"
        assert RiskLevel.RED.short_message == "Urgent alert sent"


class TestAlertKind:
    def test_parse_known(self):
        assert AlertKind.parse("Weight gain") == AlertKind.WEIGHT_GAIN

    def test_parse_unknown_falls_back_to_other(self):
        assert AlertKind.parse("Something new") == AlertKind.OTHER
        assert AlertKind.parse(None) == AlertKind.OTHER


class TestPriorityMetrics:
    def test_every_type_has_heart_rate(self):
        for hf_type in HeartFailureType:
            assert MetricType.HEART_RATE in hf_type.priority_metrics

    def test_hfref_scores_hrv_and_weight(self):
        metrics = HeartFailureType.HFREF.priority_metrics
        assert MetricType.HRV in metrics
        assert MetricType.WEIGHT_KG in metrics

    def test_irregular_rhythm_is_never_scored(self):
        for hf_type in HeartFailureType:
            assert MetricType.IRREGULAR_RHYTHM_EVENT not in hf_type.priority_metrics


class TestSymptomEntry:
    def test_fatigue_clamped(self):
        assert SymptomEntry(date=AS_OF.date(), fatigue_level=9).fatigue_level == 5
        assert SymptomEntry(date=AS_OF.date(), fatigue_level=0).fatigue_level == 1

    def test_composite_score_property(self):
        entry = SymptomEntry(date=AS_OF.date(), shortness_of_breath=ShortnessOfBreath.MILD)
        assert entry.composite_score == 15.0


class TestUserProfile:
    def test_medication_ids_become_frozenset(self):
        profile = UserProfile(medication_ids=["digoxin", "digoxin"])
        assert profile.medication_ids == frozenset({"digoxin"})


class TestMetricSnapshot:
    def test_build_sorts_samples(self):
        later = sample(MetricType.HEART_RATE, 70, hours_ago=1)
        earlier = sample(MetricType.HEART_RATE, 60, hours_ago=5)
        snap = MetricSnapshot.build([later, earlier])
        assert [s.value for s in snap.samples] == [60, 70]

    def test_build_keeps_last_symptom_entry_per_day(self):
        day = AS_OF.date()
        first = SymptomEntry(date=day, fatigue_level=2)
        second = SymptomEntry(date=day, fatigue_level=4)
        snap = MetricSnapshot.build(symptom_entries=[first, second])
        assert len(snap.symptom_entries) == 1
        assert snap.symptom_for(day).fatigue_level == 4

    def test_samples_of_bounds_are_inclusive(self):
        s = sample(MetricType.STEPS, 100, hours_ago=2)
        snap = MetricSnapshot.build([s])
        assert snap.samples_of(MetricType.STEPS, s.timestamp, s.timestamp) == [s]
        assert snap.samples_of(MetricType.HEART_RATE) == []

    def test_symptoms_between(self):
        day = AS_OF.date()
        entries = [SymptomEntry(date=day - timedelta(days=i)) for i in range(10)]
        snap = MetricSnapshot.build(symptom_entries=entries)
        window = snap.symptoms_between(day - timedelta(days=6), day)
        assert len(window) == 7
        assert window[0].date == date(2026, 3, 4)

    def test_latest(self):
        old = sample(MetricType.HEART_RATE, 60, hours_ago=3)
        new = sample(MetricType.HEART_RATE, 65, hours_ago=0.2)
        snap = MetricSnapshot.build([old, new])
        assert snap.latest(MetricType.HEART_RATE, not_before=AS_OF - timedelta(hours=1), end=AS_OF) == new
        assert snap.latest(MetricType.HRV, not_before=AS_OF - timedelta(hours=1), end=AS_OF) is None


class TestWindows:
    def test_start_of_day_keeps_timezone(self):
        midnight = start_of_day(AS_OF)
        assert midnight.hour == 0
        assert midnight.tzinfo == AS_OF.tzinfo

    def test_trailing_window_start(self):
        assert trailing_window_start(AS_OF, 7) == start_of_day(AS_OF) - timedelta(days=7)
