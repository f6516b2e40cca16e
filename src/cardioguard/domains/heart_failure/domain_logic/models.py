"""Heart-failure monitoring value objects and domain constants.

Everything in this module is immutable. The scoring and alerting engine
only ever reads these records; callers build a fresh ``MetricSnapshot``
for each evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable


# ---------------------------------------------------------------------------
# Enumerations (values are the strings used on the sync wire)
# ---------------------------------------------------------------------------

class MetricType(str, Enum):
    """Sample-backed physiological metrics."""

    HEART_RATE = "heartRate"
    HRV = "hrv"
    RESPIRATORY_RATE = "respiratoryRate"
    STEPS = "steps"
    SLEEP_HOURS = "sleep"
    WEIGHT_KG = "weight"
    IRREGULAR_RHYTHM_EVENT = "irregularRhythm"

    @property
    def default_unit(self) -> str:
        return DEFAULT_UNITS[self]


DEFAULT_UNITS: dict[MetricType, str] = {
    MetricType.HEART_RATE: "bpm",
    MetricType.HRV: "ms",
    MetricType.RESPIRATORY_RATE: "/min",
    MetricType.STEPS: "count",
    MetricType.SLEEP_HOURS: "hr",
    MetricType.WEIGHT_KG: "kg",
    MetricType.IRREGULAR_RHYTHM_EVENT: "count",
}


class ShortnessOfBreath(str, Enum):
    NONE = "None"
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"


class SleepQuality(str, Enum):
    GOOD = "Good"
    DISTURBED = "Disturbed"
    COULD_NOT_LIE_FLAT = "Couldn't lie flat"


class ActivityLevel(str, Enum):
    SEDENTARY = "Sedentary"
    LIGHT = "Light"
    MODERATE = "Moderate"
    ACTIVE = "Active"


class HeartFailureType(str, Enum):
    """Heart-failure subtype; drives which metrics are scored."""

    HFREF = "HFrEF"
    HFPEF = "HFpEF"
    RIGHT_SIDED = "Right-sided"
    LEFT_SIDED = "Left-sided"
    AT_RISK = "At Risk / Undiagnosed"

    @property
    def priority_metrics(self) -> tuple[MetricType, ...]:
        return PRIORITY_METRICS[self]


# Symptom and edema priorities are carried by the symptom term, which is
# always part of the aggregate, so only sample-backed metrics appear here.
PRIORITY_METRICS: dict[HeartFailureType, tuple[MetricType, ...]] = {
    HeartFailureType.HFREF: (
        MetricType.HEART_RATE,
        MetricType.HRV,
        MetricType.RESPIRATORY_RATE,
        MetricType.WEIGHT_KG,
        MetricType.SLEEP_HOURS,
    ),
    HeartFailureType.HFPEF: (
        MetricType.STEPS,
        MetricType.HEART_RATE,
        MetricType.SLEEP_HOURS,
    ),
    HeartFailureType.RIGHT_SIDED: (
        MetricType.WEIGHT_KG,
        MetricType.STEPS,
        MetricType.HEART_RATE,
    ),
    HeartFailureType.LEFT_SIDED: (
        MetricType.RESPIRATORY_RATE,
        MetricType.HEART_RATE,
        MetricType.SLEEP_HOURS,
    ),
    HeartFailureType.AT_RISK: (
        MetricType.HEART_RATE,
        MetricType.HRV,
        MetricType.WEIGHT_KG,
        MetricType.STEPS,
        MetricType.SLEEP_HOURS,
    ),
}


class AlertKind(str, Enum):
    RED_RISK_SCORE = "Red risk score"
    BRADYCARDIA = "Bradycardia"
    TACHYCARDIA = "Tachycardia"
    WEIGHT_GAIN = "Weight gain"
    IRREGULAR_RHYTHM = "Irregular heart rhythm"
    DECLINING_ACTIVITY = "Declining activity"
    HRV_DECLINE = "HRV decline"
    ELEVATED_RESPIRATORY_OR_HR = "Elevated respiratory rate"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> AlertKind:
        """Decode a stored/wire value; anything unknown becomes ``OTHER``."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class RiskLevel(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @classmethod
    def from_score(cls, score: float) -> RiskLevel:
        """Closed-open bands: [0, 40) green, [40, 70) yellow, [70, 100] red."""
        if score < YELLOW_THRESHOLD:
            return cls.GREEN
        if score < RED_THRESHOLD:
            return cls.YELLOW
        return cls.RED

    @property
    def label(self) -> str:
        return _LEVEL_LABELS[self][0]

    @property
    def short_message(self) -> str:
        return _LEVEL_LABELS[self][1]


YELLOW_THRESHOLD = 40.0
RED_THRESHOLD = 70.0

_LEVEL_LABELS: dict[RiskLevel, tuple[str, str]] = {
    RiskLevel.GREEN: ("Stable", "No action needed"),
    RiskLevel.YELLOW: ("Monitor", "Lifestyle tips shown"),
    RiskLevel.RED: ("Contact cardiologist", "Urgent alert sent"),
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MetricSample:
    """One reading from the acquisition layer."""

    timestamp: datetime
    metric_type: MetricType
    value: float
    unit: str = ""


@dataclass(frozen=True)
class SymptomEntry:
    """Daily symptom check-in. At most one per calendar day."""

    date: date
    shortness_of_breath: ShortnessOfBreath = ShortnessOfBreath.NONE
    fatigue_level: int = 1  # 1-5
    ankle_swelling: bool = False
    dizziness_or_palpitations: bool = False
    sleep_quality: SleepQuality = SleepQuality.GOOD

    def __post_init__(self) -> None:
        object.__setattr__(self, "fatigue_level", min(5, max(1, int(self.fatigue_level))))

    @property
    def composite_score(self) -> float:
        """Single-day symptom composite 0-100 (higher = worse)."""
        from cardioguard.domains.heart_failure.domain_logic.symptom_evaluator import (
            composite_score,
        )

        return composite_score(self)


@dataclass(frozen=True)
class UserProfile:
    """Onboarding profile: HF type, medications, baselines, conditions."""

    heart_failure_type: HeartFailureType = HeartFailureType.AT_RISK
    medication_ids: frozenset[str] = frozenset()
    baseline_resting_hr: float | None = None
    baseline_weight_kg: float | None = None
    activity_level: ActivityLevel = ActivityLevel.MODERATE
    age: int | None = None
    has_ckd: bool = False
    has_diabetes: bool = False
    has_hypertension: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.medication_ids, frozenset):
            object.__setattr__(self, "medication_ids", frozenset(self.medication_ids))


@dataclass(frozen=True)
class AlertEvent:
    """A fired alert rule."""

    kind: AlertKind
    title: str
    message: str
    is_high_urgency: bool
    evaluated_at: datetime


@dataclass(frozen=True)
class Contribution:
    """One weighted term of the risk aggregate."""

    name: str
    score: float
    weight: float
    has_data: bool
    details: dict = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class RiskResult:
    """Aggregate risk score and its classification."""

    score: float
    level: RiskLevel
    weight_sum: float = 0.0
    data_completeness_ratio: float = 0.0
    contributions: tuple[Contribution, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 2),
            "level": self.level.value,
            "label": self.level.label,
            "weight_sum": round(self.weight_sum, 4),
            "data_completeness_ratio": round(self.data_completeness_ratio, 4),
            "contributions": [
                {
                    "name": c.name,
                    "score": c.score,
                    "weight": c.weight,
                    "has_data": c.has_data,
                    "details": c.details,
                }
                for c in self.contributions
            ],
        }


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def start_of_day(moment: datetime) -> datetime:
    """Midnight of ``moment``'s calendar day, keeping its tzinfo."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass(frozen=True)
class MetricSnapshot:
    """Immutable, time-ordered slice of metrics and symptom entries.

    Build with :meth:`build`, which sorts samples chronologically and
    collapses symptom entries to one per day (last one wins).
    """

    samples: tuple[MetricSample, ...] = ()
    symptom_entries: tuple[SymptomEntry, ...] = ()

    @classmethod
    def build(
        cls,
        samples: Iterable[MetricSample] = (),
        symptom_entries: Iterable[SymptomEntry] = (),
    ) -> MetricSnapshot:
        ordered = sorted(samples, key=lambda s: s.timestamp)
        by_day: dict[date, SymptomEntry] = {}
        for entry in symptom_entries:
            by_day[entry.date] = entry
        return cls(
            samples=tuple(ordered),
            symptom_entries=tuple(by_day[d] for d in sorted(by_day)),
        )

    def samples_of(
        self,
        metric_type: MetricType,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[MetricSample]:
        """Samples of one type with ``start <= timestamp <= end`` (bounds optional)."""
        return [
            s for s in self.samples
            if s.metric_type == metric_type
            and (start is None or s.timestamp >= start)
            and (end is None or s.timestamp <= end)
        ]

    def symptom_for(self, day: date) -> SymptomEntry | None:
        for entry in self.symptom_entries:
            if entry.date == day:
                return entry
        return None

    def symptoms_between(self, first_day: date, last_day: date) -> list[SymptomEntry]:
        return [e for e in self.symptom_entries if first_day <= e.date <= last_day]

    def latest(self, metric_type: MetricType, *, not_before: datetime, end: datetime) -> MetricSample | None:
        window = self.samples_of(metric_type, not_before, end)
        return window[-1] if window else None


def trailing_window_start(as_of: datetime, days: int) -> datetime:
    """Start of a trailing window measured from midnight of ``as_of``."""
    return start_of_day(as_of) - timedelta(days=days)
