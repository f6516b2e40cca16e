"""Weighted risk aggregation: per-term contributions -> 0-100 score + level.

The aggregate is a weighted mean over the heart-failure type's priority
metrics, the symptom composite and the medication flag. Terms without
usable data still count toward the weight sum, so ``data_completeness_ratio``
is reported alongside the score.

All computation is deterministic and side-effect free.
"""

from __future__ import annotations

from datetime import datetime

from cardioguard.domains.heart_failure.domain_logic.medications import resolve_effects
from cardioguard.domains.heart_failure.domain_logic.metric_evaluators import (
    METRIC_EVALUATORS,
    evaluate_medication_flag,
)
from cardioguard.domains.heart_failure.domain_logic.models import (
    Contribution,
    MetricSnapshot,
    MetricType,
    RiskLevel,
    RiskResult,
    UserProfile,
    trailing_window_start,
)
from cardioguard.domains.heart_failure.domain_logic.symptom_evaluator import (
    evaluate_symptoms,
)

METRIC_WINDOW_DAYS = 7


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def classify(score: float) -> RiskLevel:
    return RiskLevel.from_score(score)


def collect_contributions(
    snapshot: MetricSnapshot,
    profile: UserProfile,
    as_of: datetime,
) -> list[Contribution]:
    """Evaluate every included term for ``profile`` at ``as_of``."""
    effects = resolve_effects(profile.medication_ids)
    window_start = trailing_window_start(as_of, METRIC_WINDOW_DAYS)
    terms: list[Contribution] = []

    for metric in profile.heart_failure_type.priority_metrics:
        evaluator = METRIC_EVALUATORS.get(metric)
        if evaluator is None:
            continue
        samples = snapshot.samples_of(metric, window_start, as_of)
        score, weight, details = evaluator(samples, profile, effects, as_of)
        terms.append(Contribution(metric.value, score, weight, "fallback" not in details, details))

    score, weight, details = evaluate_symptoms(snapshot, profile, as_of.date())
    terms.append(Contribution("symptoms", score, weight, "fallback" not in details, details))

    hr_samples = snapshot.samples_of(MetricType.HEART_RATE, window_start, as_of)
    score, weight, details = evaluate_medication_flag(hr_samples, effects, as_of)
    terms.append(Contribution("medication_flag", score, weight, "fallback" not in details, details))

    return terms


def compute_risk(
    snapshot: MetricSnapshot,
    profile: UserProfile | None,
    as_of: datetime,
) -> RiskResult:
    """Compute the decompensation risk score for ``as_of``.

    An absent profile yields the degenerate result (0, green, weight 0).
    """
    if profile is None:
        return RiskResult(score=0.0, level=RiskLevel.GREEN)
    return aggregate(collect_contributions(snapshot, profile, as_of))


def aggregate(terms: list[Contribution]) -> RiskResult:
    """Weighted mean of ``terms``, clamped to [0, 100]."""
    total = sum(t.score * t.weight for t in terms)
    weight_sum = sum(t.weight for t in terms)

    if weight_sum <= 0:
        return RiskResult(score=0.0, level=RiskLevel.GREEN, contributions=tuple(terms))

    score = _clamp(total / weight_sum)
    covered = sum(t.weight for t in terms if t.has_data)
    return RiskResult(
        score=score,
        level=classify(score),
        weight_sum=weight_sum,
        data_completeness_ratio=covered / weight_sum,
        contributions=tuple(terms),
    )
