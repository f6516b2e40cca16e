"""Mock heart data for development and testing.

The generated patient is stable: readings sit near their baselines with
small deterministic noise, so a monitoring cycle over this data scores
green and fires no alerts.
"""

from __future__ import annotations

import random
from datetime import datetime, time, timedelta, timezone

from cardioguard.domains.heart_failure.domain_logic.models import (
    ActivityLevel,
    HeartFailureType,
    MetricSample,
    MetricType,
    SymptomEntry,
    UserProfile,
    start_of_day,
)

MOCK_DAYS = 30


def get_mock_profile() -> UserProfile:
    """Return a mock onboarding profile."""
    return UserProfile(
        heart_failure_type=HeartFailureType.HFREF,
        medication_ids=frozenset({"lisinopril"}),
        baseline_resting_hr=70.0,
        baseline_weight_kg=78.0,
        activity_level=ActivityLevel.LIGHT,
        age=64,
        has_hypertension=True,
    )


def generate_mock_samples(end: datetime, *, days: int = MOCK_DAYS, seed: int = 7) -> list[MetricSample]:
    """Return ``days`` of samples ending at ``end``, oldest first."""
    rng = random.Random(seed)
    first_day = start_of_day(end) - timedelta(days=days - 1)
    samples: list[MetricSample] = []

    for offset in range(days):
        day = first_day + timedelta(days=offset)

        # Heart rate every two hours
        for hour in range(0, 24, 2):
            samples.append(MetricSample(
                day + timedelta(hours=hour), MetricType.HEART_RATE,
                round(68 + rng.uniform(-2.0, 2.0), 1), "bpm",
            ))

        samples.append(MetricSample(
            day + timedelta(hours=7), MetricType.WEIGHT_KG, round(78.0 + rng.uniform(-0.2, 0.2), 2), "kg",
        ))
        samples.append(MetricSample(
            day + timedelta(hours=7, minutes=30), MetricType.SLEEP_HOURS, round(7.2 + rng.uniform(-0.3, 0.3), 2), "hr",
        ))
        samples.append(MetricSample(
            day + timedelta(hours=8), MetricType.HRV, round(45 + rng.uniform(-3.0, 3.0), 1), "ms",
        ))
        samples.append(MetricSample(
            day + timedelta(hours=8), MetricType.RESPIRATORY_RATE, round(15 + rng.uniform(-0.5, 0.5), 1), "/min",
        ))
        samples.append(MetricSample(
            day + timedelta(hours=20), MetricType.STEPS, float(6000 + rng.randint(-300, 300)), "count",
        ))

    samples.sort(key=lambda s: s.timestamp)
    return [s for s in samples if s.timestamp <= end]


def generate_mock_symptoms(end: datetime, *, days: int = MOCK_DAYS) -> list[SymptomEntry]:
    """Return one symptom-free check-in per day."""
    last_day = end.date()
    return [SymptomEntry(date=last_day - timedelta(days=offset)) for offset in range(days - 1, -1, -1)]


class MockHeartDataProvider:
    """Serves generated data anchored at ``anchor``. Always available."""

    def __init__(self, anchor: datetime | None = None, profile: UserProfile | None = None) -> None:
        if anchor is None:
            now = datetime.now(timezone.utc)
            anchor = datetime.combine(now.date(), time(now.hour), tzinfo=timezone.utc)
        self._anchor = anchor
        self._profile = profile or get_mock_profile()
        self._samples = generate_mock_samples(anchor)
        self._symptoms = generate_mock_symptoms(anchor)

    def fetch_metrics(
        self,
        metric_type: MetricType | None,
        start: datetime,
        end: datetime,
    ) -> list[MetricSample]:
        return [
            s for s in self._samples
            if start <= s.timestamp <= end
            and (metric_type is None or s.metric_type == metric_type)
        ]

    def fetch_symptom_entries(self, start: datetime, end: datetime) -> list[SymptomEntry]:
        return [e for e in self._symptoms if start.date() <= e.date <= end.date()]

    def load_profile(self) -> UserProfile | None:
        return self._profile

    @property
    def data_source(self) -> str:
        return "mock"
