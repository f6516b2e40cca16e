"""Cross-device sync wire format.

The sync payload is a flat JSON object::

    {
      "deviceId": "...", "syncCode": "...",
      "profile": {...},
      "metrics": [{"date": ISO-8601, "metricType": ..., "value": ..., "unit": ...}],
      "symptoms": [...], "alerts": [...],
      "liveHR": 71.0, "liveHRV": 42.0, "riskScore": 23.5, "riskLevel": "green"
    }

Optional keys are omitted when empty. Decoding is lenient for list items
(malformed metrics/symptoms/alerts are skipped with a warning) and strict
for the envelope (``deviceId`` is required).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable

from cardioguard.domains.heart_failure.domain_logic.models import (
    ActivityLevel,
    AlertEvent,
    AlertKind,
    HeartFailureType,
    MetricSample,
    MetricType,
    RiskLevel,
    RiskResult,
    ShortnessOfBreath,
    SleepQuality,
    SymptomEntry,
    UserProfile,
)

logger = logging.getLogger(__name__)

DEFAULT_METRIC_LIMIT = 500


class SyncPayloadError(ValueError):
    """Raised when a sync payload envelope is invalid."""


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse ISO-8601 (``Z`` accepted). Naive values are taken as UTC."""
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO-8601 string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_day(value: str) -> date:
    """Calendar day from ``YYYY-MM-DD`` or a full ISO timestamp (its own day)."""
    if not isinstance(value, str):
        raise ValueError(f"Expected a date string, got {type(value).__name__}")
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def _opt_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def encode_metric(sample: MetricSample) -> dict[str, Any]:
    return {
        "date": format_timestamp(sample.timestamp),
        "metricType": sample.metric_type.value,
        "value": sample.value,
        "unit": sample.unit,
    }


def decode_metric(item: Any) -> MetricSample:
    """Decode one metric payload.

    Raises:
        SyncPayloadError: If the item is not a valid metric payload.
    """
    if not isinstance(item, dict):
        raise SyncPayloadError("metric must be an object")
    try:
        metric_type = MetricType(item.get("metricType"))
        timestamp = parse_timestamp(item["date"])
    except (KeyError, TypeError, ValueError) as exc:
        raise SyncPayloadError(f"invalid metric: {exc}") from exc
    value = _opt_float(item.get("value"))
    if value is None:
        raise SyncPayloadError("metric value must be a finite number")
    unit = item.get("unit") or metric_type.default_unit
    return MetricSample(timestamp=timestamp, metric_type=metric_type, value=value, unit=str(unit))


def encode_metrics(samples: Iterable[MetricSample], limit: int = DEFAULT_METRIC_LIMIT) -> list[dict[str, Any]]:
    """Encode the most recent ``limit`` samples, preserving order."""
    items = list(samples)
    if limit > 0:
        items = items[-limit:]
    return [encode_metric(s) for s in items]


def decode_metrics(items: Iterable[Any] | None) -> list[MetricSample]:
    samples = []
    for item in items or []:
        try:
            samples.append(decode_metric(item))
        except SyncPayloadError as exc:
            logger.warning("Skipping malformed metric payload: %s", exc)
    return samples


# ---------------------------------------------------------------------------
# Symptoms
# ---------------------------------------------------------------------------

def encode_symptom(entry: SymptomEntry) -> dict[str, Any]:
    return {
        "date": entry.date.isoformat(),
        "shortnessOfBreath": entry.shortness_of_breath.value,
        "fatigueLevel": entry.fatigue_level,
        "ankleSwelling": entry.ankle_swelling,
        "dizzinessOrPalpitations": entry.dizziness_or_palpitations,
        "sleepQuality": entry.sleep_quality.value,
    }


def decode_symptom(item: Any) -> SymptomEntry:
    if not isinstance(item, dict):
        raise SyncPayloadError("symptom entry must be an object")
    try:
        return SymptomEntry(
            date=parse_day(item["date"]),
            shortness_of_breath=ShortnessOfBreath(item.get("shortnessOfBreath", ShortnessOfBreath.NONE.value)),
            fatigue_level=int(item.get("fatigueLevel", 1)),
            ankle_swelling=bool(item.get("ankleSwelling", False)),
            dizziness_or_palpitations=bool(item.get("dizzinessOrPalpitations", False)),
            sleep_quality=SleepQuality(item.get("sleepQuality", SleepQuality.GOOD.value)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise SyncPayloadError(f"invalid symptom entry: {exc}") from exc


def decode_symptoms(items: Iterable[Any] | None) -> list[SymptomEntry]:
    entries = []
    for item in items or []:
        try:
            entries.append(decode_symptom(item))
        except SyncPayloadError as exc:
            logger.warning("Skipping malformed symptom payload: %s", exc)
    return entries


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

def encode_profile(profile: UserProfile) -> dict[str, Any]:
    return {
        "heartFailureType": profile.heart_failure_type.value,
        "medicationIds": sorted(profile.medication_ids),
        "baselineRestingHR": profile.baseline_resting_hr,
        "baselineWeightKg": profile.baseline_weight_kg,
        "activityLevel": profile.activity_level.value,
        "age": profile.age,
        "hasCKD": profile.has_ckd,
        "hasDiabetes": profile.has_diabetes,
        "hasHypertension": profile.has_hypertension,
    }


def decode_profile(item: Any) -> UserProfile:
    if not isinstance(item, dict):
        raise SyncPayloadError("profile must be an object")
    try:
        age = item.get("age")
        return UserProfile(
            heart_failure_type=HeartFailureType(item.get("heartFailureType", HeartFailureType.AT_RISK.value)),
            medication_ids=frozenset(str(m) for m in item.get("medicationIds") or []),
            baseline_resting_hr=_opt_float(item.get("baselineRestingHR")),
            baseline_weight_kg=_opt_float(item.get("baselineWeightKg")),
            activity_level=ActivityLevel(item.get("activityLevel", ActivityLevel.MODERATE.value)),
            age=int(age) if age is not None else None,
            has_ckd=bool(item.get("hasCKD", False)),
            has_diabetes=bool(item.get("hasDiabetes", False)),
            has_hypertension=bool(item.get("hasHypertension", False)),
        )
    except (TypeError, ValueError) as exc:
        raise SyncPayloadError(f"invalid profile: {exc}") from exc


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

def encode_alert(event: AlertEvent) -> dict[str, Any]:
    return {
        "date": format_timestamp(event.evaluated_at),
        "kind": event.kind.value,
        "title": event.title,
        "message": event.message,
        "wasRedRisk": event.is_high_urgency,
    }


def decode_alert(item: Any) -> AlertEvent:
    if not isinstance(item, dict):
        raise SyncPayloadError("alert must be an object")
    try:
        return AlertEvent(
            kind=AlertKind.parse(item.get("kind")),
            title=str(item.get("title", "")),
            message=str(item.get("message", "")),
            is_high_urgency=bool(item.get("wasRedRisk", False)),
            evaluated_at=parse_timestamp(item["date"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise SyncPayloadError(f"invalid alert: {exc}") from exc


def decode_alerts(items: Iterable[Any] | None) -> list[AlertEvent]:
    alerts = []
    for item in items or []:
        try:
            alerts.append(decode_alert(item))
        except SyncPayloadError as exc:
            logger.warning("Skipping malformed alert payload: %s", exc)
    return alerts


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SyncPayload:
    """Decoded sync envelope."""

    device_id: str
    sync_code: str | None = None
    profile: UserProfile | None = None
    metrics: tuple[MetricSample, ...] = ()
    symptoms: tuple[SymptomEntry, ...] = ()
    alerts: tuple[AlertEvent, ...] = ()
    live_hr: float | None = None
    live_hrv: float | None = None
    risk_score: float | None = None
    risk_level: RiskLevel | None = None

    def to_dict(self, *, metric_limit: int = DEFAULT_METRIC_LIMIT) -> dict[str, Any]:
        data: dict[str, Any] = {"deviceId": self.device_id}
        if self.sync_code:
            data["syncCode"] = self.sync_code
        if self.profile is not None:
            data["profile"] = encode_profile(self.profile)
        if self.metrics:
            data["metrics"] = encode_metrics(self.metrics, limit=metric_limit)
        if self.symptoms:
            data["symptoms"] = [encode_symptom(s) for s in self.symptoms]
        if self.alerts:
            data["alerts"] = [encode_alert(a) for a in self.alerts]
        if self.live_hr is not None:
            data["liveHR"] = self.live_hr
        if self.live_hrv is not None:
            data["liveHRV"] = self.live_hrv
        if self.risk_score is not None:
            data["riskScore"] = self.risk_score
        if self.risk_level is not None:
            data["riskLevel"] = self.risk_level.value
        return data

    @classmethod
    def from_dict(cls, data: Any) -> SyncPayload:
        """Decode a sync envelope.

        Raises:
            SyncPayloadError: If ``data`` is not an object or ``deviceId``
                is missing or not a non-empty string.
        """
        if not isinstance(data, dict):
            raise SyncPayloadError("Invalid request body")
        device_id = data.get("deviceId")
        if not isinstance(device_id, str) or not device_id.strip():
            raise SyncPayloadError("Missing or invalid deviceId")

        sync_code = data.get("syncCode")
        profile = None
        if data.get("profile") is not None:
            try:
                profile = decode_profile(data["profile"])
            except SyncPayloadError as exc:
                logger.warning("Ignoring malformed profile in sync payload: %s", exc)

        risk_level = None
        if data.get("riskLevel") is not None:
            try:
                risk_level = RiskLevel(data["riskLevel"])
            except ValueError:
                logger.warning("Ignoring unknown risk level %r", data["riskLevel"])

        return cls(
            device_id=device_id,
            sync_code=sync_code.strip() if isinstance(sync_code, str) and sync_code.strip() else None,
            profile=profile,
            metrics=tuple(decode_metrics(data.get("metrics"))),
            symptoms=tuple(decode_symptoms(data.get("symptoms"))),
            alerts=tuple(decode_alerts(data.get("alerts"))),
            live_hr=_opt_float(data.get("liveHR")),
            live_hrv=_opt_float(data.get("liveHRV")),
            risk_score=_opt_float(data.get("riskScore")),
            risk_level=risk_level,
        )


def build_sync_payload(
    *,
    device_id: str,
    profile: UserProfile | None,
    metrics: Iterable[MetricSample],
    symptoms: Iterable[SymptomEntry],
    alerts: Iterable[AlertEvent],
    risk: RiskResult,
    live_hr: float | None = None,
    live_hrv: float | None = None,
    sync_code: str | None = None,
    metric_limit: int = DEFAULT_METRIC_LIMIT,
) -> SyncPayload:
    """Assemble the payload a device pushes after a monitoring cycle."""
    recent = list(metrics)
    if metric_limit > 0:
        recent = recent[-metric_limit:]
    return SyncPayload(
        device_id=device_id,
        sync_code=sync_code,
        profile=profile,
        metrics=tuple(recent),
        symptoms=tuple(symptoms),
        alerts=tuple(alerts),
        live_hr=live_hr,
        live_hrv=live_hrv,
        risk_score=risk.score,
        risk_level=risk.level,
    )
