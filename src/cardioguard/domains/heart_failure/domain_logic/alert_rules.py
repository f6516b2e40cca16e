"""Alert rule evaluation.

Each rule is an independent predicate over the risk score, the latest
heart-rate reading and the metric snapshot. Rules are evaluated in a
fixed order and each fires at most once per call. The evaluator has no
state and no side effects; persisting and notifying are left to the
caller.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from cardioguard.domains.heart_failure.domain_logic.medications import resolve_effects
from cardioguard.domains.heart_failure.domain_logic.metric_evaluators import (
    BRADYCARDIA_BPM,
    MIN_ACTIVE_STEPS,
    STEP_DECLINE_RATIO,
    finite_values,
    step_decline,
    weight_gain,
    weight_threshold,
)
from cardioguard.domains.heart_failure.domain_logic.models import (
    RED_THRESHOLD,
    AlertEvent,
    AlertKind,
    HeartFailureType,
    MetricSnapshot,
    MetricType,
    UserProfile,
    start_of_day,
)

TACHYCARDIA_BPM = 120.0
HFREF_HR_ELEVATION = 1.15
LIVE_READING_MAX_AGE = timedelta(minutes=30)


def _event(kind: AlertKind, title: str, message: str, as_of: datetime, *, urgent: bool = False) -> AlertEvent:
    return AlertEvent(kind=kind, title=title, message=message, is_high_urgency=urgent, evaluated_at=as_of)


def latest_heart_rate_from(
    snapshot: MetricSnapshot,
    as_of: datetime,
    max_age: timedelta = LIVE_READING_MAX_AGE,
) -> float | None:
    """Most recent heart-rate value no older than ``max_age`` before ``as_of``."""
    sample = snapshot.latest(MetricType.HEART_RATE, not_before=as_of - max_age, end=as_of)
    if sample is None:
        return None
    values = finite_values([sample])
    return values[0] if values else None


def evaluate_alerts(
    risk_score: float,
    latest_heart_rate: float | None,
    snapshot: MetricSnapshot,
    profile: UserProfile | None,
    as_of: datetime,
) -> list[AlertEvent]:
    """Return every alert whose condition holds at ``as_of``.

    Args:
        risk_score: Aggregate score from the risk aggregator.
        latest_heart_rate: Live single reading; when None the latest
            snapshot reading from the last 30 minutes is used.
        snapshot: Trailing window of at least 7 days.
        profile: User profile; no alerts are produced without one.
        as_of: Evaluation moment.
    """
    if profile is None:
        return []

    alerts: list[AlertEvent] = []
    day_start = start_of_day(as_of)
    three_days_ago = day_start - timedelta(days=3)
    seven_days_ago = day_start - timedelta(days=7)
    effects = resolve_effects(profile.medication_ids)

    # 1. Red risk score
    if risk_score >= RED_THRESHOLD:
        alerts.append(_event(
            AlertKind.RED_RISK_SCORE,
            "High risk score",
            "Your risk score is in the red zone. Please contact your cardiologist.",
            as_of,
            urgent=True,
        ))

    # 2. Bradycardia / tachycardia (low checked first)
    hr = latest_heart_rate if latest_heart_rate is not None else latest_heart_rate_from(snapshot, as_of)
    if hr is not None:
        if hr < BRADYCARDIA_BPM:
            alerts.append(_event(
                AlertKind.BRADYCARDIA,
                "Low heart rate",
                "Your heart rate is below 50 BPM. If you take Digoxin, this may be significant. "
                "Contact your care team if you feel unwell.",
                as_of,
            ))
        elif hr > TACHYCARDIA_BPM:
            alerts.append(_event(
                AlertKind.TACHYCARDIA,
                "Elevated heart rate",
                "Your resting heart rate has been elevated above 120 BPM. Reduce physical exertion "
                "and monitor symptoms. Contact your cardiologist if it persists.",
                as_of,
            ))

    # 3. Weight gain
    threshold_kg, days = weight_threshold(effects)
    weights = snapshot.samples_of(MetricType.WEIGHT_KG, three_days_ago, as_of)
    gain = weight_gain(weights, as_of - timedelta(days=days))
    if gain is not None and gain >= threshold_kg:
        alerts.append(_event(
            AlertKind.WEIGHT_GAIN,
            "Weight gain",
            f"Your weight has increased {gain:.1f} kg over {days} days. This may indicate fluid "
            "retention. Please contact your cardiologist.",
            as_of,
        ))

    # 4. Irregular rhythm today
    day_end = day_start + timedelta(days=1)
    rhythm_events = snapshot.samples_of(MetricType.IRREGULAR_RHYTHM_EVENT, start=day_start)
    if any(s.timestamp < day_end for s in rhythm_events):
        alerts.append(_event(
            AlertKind.IRREGULAR_RHYTHM,
            "Irregular heart rhythm",
            "An irregular heart rhythm event was detected. Please discuss with your cardiologist.",
            as_of,
        ))

    # 5. Declining activity over the week
    decline = step_decline(snapshot.samples_of(MetricType.STEPS, seven_days_ago, as_of))
    if decline is not None:
        first_avg, last_avg = decline
        if first_avg > MIN_ACTIVE_STEPS and last_avg < first_avg * STEP_DECLINE_RATIO:
            alerts.append(_event(
                AlertKind.DECLINING_ACTIVITY,
                "Declining activity",
                "Your step count has declined over the past week. Try to stay active within your "
                "limits and report any new symptoms to your care team.",
                as_of,
            ))

    # 6. HFrEF: heart rate above baseline across three days
    if profile.heart_failure_type == HeartFailureType.HFREF and profile.baseline_resting_hr is not None:
        hr_samples = snapshot.samples_of(MetricType.HEART_RATE, three_days_ago, as_of)
        days_covered = {s.timestamp.date() for s in hr_samples}
        if len(days_covered) >= 3:
            recent = finite_values(hr_samples)[-50:]
            avg = sum(recent) / len(recent) if recent else 0.0
            if avg > profile.baseline_resting_hr * HFREF_HR_ELEVATION:
                alerts.append(_event(
                    AlertKind.ELEVATED_RESPIRATORY_OR_HR,
                    "Elevated heart rate",
                    "Your resting heart rate has been elevated above your baseline for several days. "
                    "Reduce physical exertion and monitor symptoms.",
                    as_of,
                ))

    return alerts
