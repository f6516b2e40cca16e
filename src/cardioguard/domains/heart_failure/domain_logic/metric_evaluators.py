"""Deterministic per-metric deviation evaluators.

Each evaluator takes the samples of one metric type inside the trailing
7-day window plus the profile, the active medication effects and the
as-of moment, and returns:
    (contribution: float, weight: float, details: dict)

Contributions are in [0, 100]. Missing or insufficient data yields a
zero contribution and a ``"fallback"`` entry in details; the weight is
still returned so the aggregate is diluted exactly as before.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Callable

from cardioguard.domains.heart_failure.domain_logic.medications import MedicationEffect
from cardioguard.domains.heart_failure.domain_logic.models import (
    MetricSample,
    MetricType,
    UserProfile,
)

Evaluation = tuple[float, float, dict]
MetricEvaluator = Callable[
    [list[MetricSample], UserProfile, frozenset[MedicationEffect], datetime],
    Evaluation,
]

METRIC_WEIGHT = 0.15
MEDICATION_FLAG_WEIGHT = 0.1

DEFAULT_BASELINE_HR = 72.0
BETA_BLOCKER_HR_FACTOR = 0.85
BASELINE_RESPIRATORY_RATE = 16.0
LOW_SLEEP_HOURS = 4.5
BRADYCARDIA_BPM = 50.0
MIN_ACTIVE_STEPS = 500.0
STEP_DECLINE_RATIO = 0.70


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def finite_values(samples: list[MetricSample]) -> list[float]:
    """Finite sample values in order; malformed readings are dropped."""
    out = []
    for s in samples:
        try:
            v = float(s.value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(v):
            out.append(v)
    return out


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def weight_threshold(effects: frozenset[MedicationEffect]) -> tuple[float, int]:
    """Weight-gain threshold (kg) and period (days); tighter on diuretics."""
    if MedicationEffect.DIURETIC in effects:
        return 1.5, 2
    return 2.0, 3


def weight_gain(samples: list[MetricSample], period_start: datetime) -> float | None:
    """Last minus first weight among samples at or after ``period_start``."""
    in_period = sorted(
        (s for s in samples if s.timestamp >= period_start),
        key=lambda s: s.timestamp,
    )
    values = finite_values(in_period)
    if not values:
        return None
    return values[-1] - values[0]


def daily_step_totals(samples: list[MetricSample]) -> OrderedDict[date, float]:
    """Step totals per calendar day, ascending by day."""
    totals: dict[date, float] = {}
    for s in samples:
        vals = finite_values([s])
        if not vals:
            continue
        day = s.timestamp.date()
        totals[day] = totals.get(day, 0.0) + vals[0]
    return OrderedDict(sorted(totals.items()))


def step_decline(samples: list[MetricSample]) -> tuple[float, float] | None:
    """(earliest 3-day mean, latest 3-day mean) when 7+ days are present."""
    daily = list(daily_step_totals(samples).values())
    if len(daily) < 7:
        return None
    return sum(daily[:3]) / 3, sum(daily[-3:]) / 3


# ---------------------------------------------------------------------------
# Evaluators
# ---------------------------------------------------------------------------

def evaluate_heart_rate(
    samples: list[MetricSample],
    profile: UserProfile,
    effects: frozenset[MedicationEffect],
    as_of: datetime,
) -> Evaluation:
    """Mean of the last 20 readings against the (beta-blocker adjusted) baseline."""
    baseline = profile.baseline_resting_hr if profile.baseline_resting_hr is not None else DEFAULT_BASELINE_HR
    adjusted = baseline * BETA_BLOCKER_HR_FACTOR if MedicationEffect.BETA_BLOCKER in effects else baseline

    avg = _mean(finite_values(samples)[-20:])
    if avg is None:
        return 0.0, METRIC_WEIGHT, {"fallback": "no_heart_rate_data"}

    details = {"avg_bpm": round(avg, 2), "adjusted_baseline": round(adjusted, 2)}
    if avg > adjusted * 1.15:
        return 55.0, METRIC_WEIGHT, details
    if avg > adjusted * 1.05:
        return 25.0, METRIC_WEIGHT, details
    if MedicationEffect.DIGOXIN in effects and avg < BRADYCARDIA_BPM:
        details["digoxin_bradycardia"] = True
        return 70.0, METRIC_WEIGHT, details
    return 0.0, METRIC_WEIGHT, details


def evaluate_hrv(
    samples: list[MetricSample],
    profile: UserProfile,
    effects: frozenset[MedicationEffect],
    as_of: datetime,
) -> Evaluation:
    """>20% decline between the older and newer halves of the last 30 readings."""
    recent = finite_values(samples)[-30:]
    if len(recent) < 5:
        return 0.0, METRIC_WEIGHT, {"fallback": "insufficient_hrv_data", "readings": len(recent)}

    half = len(recent) // 2
    first = sum(recent[:half]) / half
    second = sum(recent[-half:]) / half
    details = {"first_half_ms": round(first, 2), "second_half_ms": round(second, 2)}
    if first > 0 and second < first * 0.80:
        return 50.0, METRIC_WEIGHT, details
    return 0.0, METRIC_WEIGHT, details


def evaluate_respiratory_rate(
    samples: list[MetricSample],
    profile: UserProfile,
    effects: frozenset[MedicationEffect],
    as_of: datetime,
) -> Evaluation:
    avg = _mean(finite_values(samples))
    if avg is None:
        return 0.0, METRIC_WEIGHT, {"fallback": "no_respiratory_data"}
    details = {"avg_per_min": round(avg, 2)}
    if avg > BASELINE_RESPIRATORY_RATE * 1.10:
        return 40.0, METRIC_WEIGHT, details
    return 0.0, METRIC_WEIGHT, details


def evaluate_weight(
    samples: list[MetricSample],
    profile: UserProfile,
    effects: frozenset[MedicationEffect],
    as_of: datetime,
) -> Evaluation:
    """Short-term gain suggesting fluid retention."""
    threshold_kg, days = weight_threshold(effects)
    gain = weight_gain(samples, as_of - timedelta(days=days))
    if gain is None:
        return 0.0, METRIC_WEIGHT, {"fallback": "no_weight_data"}

    details = {"gain_kg": round(gain, 2), "threshold_kg": threshold_kg, "period_days": days}
    if gain >= threshold_kg:
        return 65.0, METRIC_WEIGHT, details
    if gain >= threshold_kg * 0.7:
        return 30.0, METRIC_WEIGHT, details
    return 0.0, METRIC_WEIGHT, details


def evaluate_steps(
    samples: list[MetricSample],
    profile: UserProfile,
    effects: frozenset[MedicationEffect],
    as_of: datetime,
) -> Evaluation:
    """>30% drop between the earliest and latest three days of the week."""
    decline = step_decline(samples)
    if decline is None:
        return 0.0, METRIC_WEIGHT, {"fallback": "insufficient_step_days"}

    first_avg, last_avg = decline
    details = {"first_avg": round(first_avg, 1), "last_avg": round(last_avg, 1)}
    if first_avg > MIN_ACTIVE_STEPS and last_avg < first_avg * STEP_DECLINE_RATIO:
        return 45.0, METRIC_WEIGHT, details
    return 0.0, METRIC_WEIGHT, details


def evaluate_sleep(
    samples: list[MetricSample],
    profile: UserProfile,
    effects: frozenset[MedicationEffect],
    as_of: datetime,
) -> Evaluation:
    avg = _mean(finite_values(samples)[-7:])
    if avg is None:
        return 0.0, METRIC_WEIGHT, {"fallback": "no_sleep_data"}
    details = {"avg_hours": round(avg, 2)}
    if avg < LOW_SLEEP_HOURS:
        return 25.0, METRIC_WEIGHT, details
    return 0.0, METRIC_WEIGHT, details


METRIC_EVALUATORS: dict[MetricType, MetricEvaluator] = {
    MetricType.HEART_RATE: evaluate_heart_rate,
    MetricType.HRV: evaluate_hrv,
    MetricType.RESPIRATORY_RATE: evaluate_respiratory_rate,
    MetricType.WEIGHT_KG: evaluate_weight,
    MetricType.STEPS: evaluate_steps,
    MetricType.SLEEP_HOURS: evaluate_sleep,
}


# ---------------------------------------------------------------------------
# Medication flag
# ---------------------------------------------------------------------------

def evaluate_medication_flag(
    heart_rate_samples: list[MetricSample],
    effects: frozenset[MedicationEffect],
    as_of: datetime,
) -> Evaluation:
    """Digoxin with a sub-50 BPM mean over the last 24 hours.

    Additive with the digoxin branch of :func:`evaluate_heart_rate`.
    """
    if MedicationEffect.DIGOXIN not in effects:
        return 0.0, MEDICATION_FLAG_WEIGHT, {"digoxin": False}

    since = as_of - timedelta(days=1)
    last_day = [s for s in heart_rate_samples if since <= s.timestamp <= as_of]
    avg = _mean(finite_values(last_day)[-10:])
    if avg is None:
        return 0.0, MEDICATION_FLAG_WEIGHT, {"fallback": "no_recent_heart_rate"}

    details = {"avg_bpm_24h": round(avg, 2)}
    if avg < BRADYCARDIA_BPM:
        details["digoxin_bradycardia"] = True
        return 40.0, MEDICATION_FLAG_WEIGHT, details
    return 0.0, MEDICATION_FLAG_WEIGHT, details
