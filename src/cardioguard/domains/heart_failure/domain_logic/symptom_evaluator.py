"""Symptom composite: today's check-in plus multi-day escalation."""

from __future__ import annotations

from datetime import date, timedelta

from cardioguard.domains.heart_failure.domain_logic.models import (
    HeartFailureType,
    MetricSnapshot,
    ShortnessOfBreath,
    SleepQuality,
    SymptomEntry,
    UserProfile,
)

SYMPTOM_WEIGHT = 0.35

SOB_SCORES: dict[ShortnessOfBreath, float] = {
    ShortnessOfBreath.NONE: 0.0,
    ShortnessOfBreath.MILD: 15.0,
    ShortnessOfBreath.MODERATE: 35.0,
    ShortnessOfBreath.SEVERE: 55.0,
}

SLEEP_SCORES: dict[SleepQuality, float] = {
    SleepQuality.GOOD: 0.0,
    SleepQuality.DISTURBED: 3.0,
    SleepQuality.COULD_NOT_LIE_FLAT: 7.0,
}

ESCALATION_DAYS = 7
PERSISTENT_SYMPTOM_DAYS = 3
PERSISTENT_SYMPTOM_BONUS = 20.0
EDEMA_DAYS = 2
EDEMA_BONUS = 25.0


def composite_score(entry: SymptomEntry) -> float:
    """Single-day composite, capped at 100."""
    score = (
        SOB_SCORES[entry.shortness_of_breath]
        + (entry.fatigue_level - 1) / 4.0 * 25
        + (10.0 if entry.ankle_swelling else 0.0)
        + (5.0 if entry.dizziness_or_palpitations else 0.0)
        + SLEEP_SCORES[entry.sleep_quality]
    )
    return min(100.0, score)


def _is_burdened(entry: SymptomEntry) -> bool:
    return entry.shortness_of_breath != ShortnessOfBreath.NONE or entry.fatigue_level >= 4


def evaluate_symptoms(
    snapshot: MetricSnapshot,
    profile: UserProfile,
    as_of_day: date,
) -> tuple[float, float, dict]:
    """Return (composite, weight, details) for the as-of day.

    Escalations look at the seven calendar days ending on ``as_of_day``:
    three or more days with breathlessness or heavy fatigue add 20, and
    for right-sided failure two or more days of ankle swelling add 25.
    """
    entry = snapshot.symptom_for(as_of_day)
    if entry is None:
        return 0.0, SYMPTOM_WEIGHT, {"fallback": "no_symptom_entry_today"}

    score = composite_score(entry)
    details: dict = {"base_composite": round(score, 2)}

    window = snapshot.symptoms_between(as_of_day - timedelta(days=ESCALATION_DAYS - 1), as_of_day)
    burdened_days = sum(1 for e in window if _is_burdened(e))
    details["burdened_days"] = burdened_days
    if burdened_days >= PERSISTENT_SYMPTOM_DAYS:
        score += PERSISTENT_SYMPTOM_BONUS

    if profile.heart_failure_type == HeartFailureType.RIGHT_SIDED:
        edema_days = sum(1 for e in window if e.ankle_swelling)
        details["edema_days"] = edema_days
        if edema_days >= EDEMA_DAYS:
            score += EDEMA_BONUS

    return min(100.0, score), SYMPTOM_WEIGHT, details
