"""MCP tools for entering data into the CardioGuard data bank.

Covers wearable readings, the daily symptom check-in and the onboarding
profile, plus a view of recorded alert history.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from cardioguard.domains.heart_failure.domain_logic.medications import lookup_medication
from cardioguard.domains.heart_failure.domain_logic.models import (
    ActivityLevel,
    HeartFailureType,
    MetricSample,
    MetricType,
    ShortnessOfBreath,
    SleepQuality,
    SymptomEntry,
    UserProfile,
)
from cardioguard.domains.heart_failure.sync.codec import encode_profile, parse_day, parse_timestamp

if TYPE_CHECKING:
    from cardioguard.core.audit.logger import AuditLogger
    from cardioguard.core.storage.repository import HeartRepository

logger = logging.getLogger(__name__)


def register_entry_tools(
    mcp: FastMCP,
    repository: HeartRepository,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register data entry tools on the MCP server."""

    def _audit(tool_name: str, tool_input: dict) -> None:
        if audit_logger is not None:
            audit_logger.log_tool_call(tool_name=tool_name, tool_input=tool_input)

    @mcp.tool
    async def record_metric(
        ctx: Context,
        metric: str,
        value: float,
        timestamp: str = "",
        unit: str = "",
    ) -> str:
        """Record a single wearable or home measurement.

        Args:
            metric: Metric type: heartRate, hrv, respiratoryRate, steps,
                sleep, weight or irregularRhythm.
            value: Numeric reading (BPM, ms, breaths/min, count, hours, kg).
            timestamp: ISO 8601 time of the reading. Defaults to now.
            unit: Optional unit; defaults to the metric's standard unit.
        """
        try:
            metric_type = MetricType(metric)
        except ValueError:
            valid = [m.value for m in MetricType]
            return json.dumps({"status": "error", "message": f"Unknown metric {metric!r}. Valid: {valid}"})
        try:
            moment = parse_timestamp(timestamp) if timestamp else datetime.now(timezone.utc)
        except ValueError:
            return json.dumps({"status": "error", "message": f"Invalid timestamp: {timestamp!r}"})

        sample = MetricSample(
            timestamp=moment,
            metric_type=metric_type,
            value=value,
            unit=unit or metric_type.default_unit,
        )
        repository.save_metric(sample)
        _audit("record_metric", {"metric": metric, "timestamp": timestamp})
        return json.dumps({
            "status": "saved",
            "metric": metric_type.value,
            "value": value,
            "unit": sample.unit,
            "timestamp": moment.isoformat(),
        })

    @mcp.tool
    async def log_symptoms(
        ctx: Context,
        shortness_of_breath: str = "None",
        fatigue_level: int = 1,
        ankle_swelling: bool = False,
        dizziness_or_palpitations: bool = False,
        sleep_quality: str = "Good",
        entry_date: str = "",
    ) -> str:
        """Record the daily symptom check-in. A second check-in on the same day replaces the first.

        Args:
            shortness_of_breath: None, Mild, Moderate or Severe.
            fatigue_level: 1 (none) to 5 (severe).
            ankle_swelling: Swelling in ankles or legs today.
            dizziness_or_palpitations: Dizziness or palpitations today.
            sleep_quality: Good, Disturbed or "Couldn't lie flat".
            entry_date: Day of the check-in (YYYY-MM-DD). Defaults to today.
        """
        try:
            day = parse_day(entry_date) if entry_date else datetime.now(timezone.utc).date()
            entry = SymptomEntry(
                date=day,
                shortness_of_breath=ShortnessOfBreath(shortness_of_breath),
                fatigue_level=fatigue_level,
                ankle_swelling=ankle_swelling,
                dizziness_or_palpitations=dizziness_or_palpitations,
                sleep_quality=SleepQuality(sleep_quality),
            )
        except ValueError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        repository.upsert_symptom_entry(entry)
        _audit("log_symptoms", {"entry_date": day.isoformat()})
        return json.dumps({
            "status": "saved",
            "date": day.isoformat(),
            "composite_score": round(entry.composite_score, 2),
        })

    @mcp.tool
    async def update_profile(
        ctx: Context,
        heart_failure_type: str,
        medication_ids: list[str] | None = None,
        baseline_resting_hr: float | None = None,
        baseline_weight_kg: float | None = None,
        activity_level: str = "Moderate",
        age: int | None = None,
        has_ckd: bool = False,
        has_diabetes: bool = False,
        has_hypertension: bool = False,
    ) -> str:
        """Save the onboarding profile used to personalise scoring.

        Args:
            heart_failure_type: HFrEF, HFpEF, Right-sided, Left-sided or
                "At Risk / Undiagnosed".
            medication_ids: Medication identifiers, e.g. ["digoxin", "furosemide"].
            baseline_resting_hr: Usual resting heart rate in BPM.
            baseline_weight_kg: Usual dry weight in kg.
            activity_level: Sedentary, Light, Moderate or Active.
            age: Age in years.
            has_ckd: Chronic kidney disease.
            has_diabetes: Diabetes.
            has_hypertension: Hypertension.
        """
        ids = [m.strip() for m in medication_ids or [] if m and m.strip()]
        unknown = [m for m in ids if lookup_medication(m) is None]
        if unknown:
            return json.dumps({"status": "error", "message": f"Unknown medication ids: {unknown}"})
        try:
            profile = UserProfile(
                heart_failure_type=HeartFailureType(heart_failure_type),
                medication_ids=frozenset(ids),
                baseline_resting_hr=baseline_resting_hr,
                baseline_weight_kg=baseline_weight_kg,
                activity_level=ActivityLevel(activity_level),
                age=age,
                has_ckd=has_ckd,
                has_diabetes=has_diabetes,
                has_hypertension=has_hypertension,
            )
        except ValueError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        repository.save_profile(profile)
        _audit("update_profile", {"heart_failure_type": heart_failure_type})
        return json.dumps({"status": "saved", "profile": encode_profile(profile)})

    @mcp.tool
    async def alert_history(ctx: Context, limit: int = 20, since: str = "") -> str:
        """List recently fired alerts, newest first.

        Args:
            limit: Maximum number of alerts to return (default: 20).
            since: Optional ISO 8601 lower bound.
        """
        try:
            since_dt = parse_timestamp(since) if since else None
        except ValueError:
            return json.dumps({"status": "error", "message": f"Invalid since timestamp: {since!r}"})

        alerts = repository.get_alert_history(since=since_dt, limit=limit)
        _audit("alert_history", {"limit": limit, "since": since})
        return json.dumps({
            "status": "ok",
            "count": len(alerts),
            "alerts": [
                {
                    "timestamp": a.timestamp,
                    "kind": a.kind,
                    "title": a.title,
                    "message": a.message,
                    "was_red_risk": a.was_red_risk,
                }
                for a in alerts
            ],
        }, indent=2)
