"""Monitoring cycle: fetch inputs, score, evaluate alerts, hand them to a sink."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from cardioguard.core.config.settings import Settings
from cardioguard.domains.heart_failure.connectors import AlertSink, HeartDataProvider
from cardioguard.domains.heart_failure.domain_logic.alert_rules import (
    evaluate_alerts,
    latest_heart_rate_from,
)
from cardioguard.domains.heart_failure.domain_logic.models import (
    AlertEvent,
    MetricSnapshot,
    RiskLevel,
    RiskResult,
    UserProfile,
    trailing_window_start,
)
from cardioguard.domains.heart_failure.domain_logic.risk_aggregator import compute_risk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonitoringReport:
    """Outcome of one monitoring cycle."""

    evaluated_at: datetime
    risk: RiskResult
    alerts: tuple[AlertEvent, ...] = ()
    has_profile: bool = True
    latest_heart_rate: float | None = None
    sample_count: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "evaluated_at": self.evaluated_at.isoformat(),
            "has_profile": self.has_profile,
            "latest_heart_rate": self.latest_heart_rate,
            "sample_count": self.sample_count,
            "risk": self.risk.as_dict(),
            "alerts": [
                {
                    "kind": a.kind.value,
                    "title": a.title,
                    "message": a.message,
                    "high_urgency": a.is_high_urgency,
                }
                for a in self.alerts
            ],
        }


class MonitoringService:
    """Runs scoring and alerting over data from a HeartDataProvider.

    Usage::

        service = MonitoringService(provider, LoggingAlertSink(), get_settings())
        report = service.run_cycle()
        report.risk.level  # RiskLevel.GREEN
    """

    def __init__(self, provider: HeartDataProvider, sink: AlertSink, settings: Settings) -> None:
        self._provider = provider
        self._sink = sink
        self._settings = settings

    def _load(self, as_of: datetime) -> tuple[UserProfile | None, MetricSnapshot]:
        profile = self._provider.load_profile()
        if profile is None:
            return None, MetricSnapshot()
        start = trailing_window_start(as_of, self._settings.scoring_window_days)
        snapshot = MetricSnapshot.build(
            self._provider.fetch_metrics(None, start, as_of),
            self._provider.fetch_symptom_entries(start, as_of),
        )
        return profile, snapshot

    def current_risk(self, as_of: datetime | None = None) -> RiskResult:
        """Score only; no alerts are evaluated or dispatched."""
        as_of = as_of or datetime.now(timezone.utc)
        profile, snapshot = self._load(as_of)
        return compute_risk(snapshot, profile, as_of)

    def run_cycle(
        self,
        as_of: datetime | None = None,
        latest_heart_rate: float | None = None,
    ) -> MonitoringReport:
        """Score, evaluate alerts and pass each alert to the sink.

        Args:
            as_of: Evaluation moment (defaults to now, UTC).
            latest_heart_rate: Live reading; when None the newest stored
                heart-rate sample within the live-reading window is used.
        """
        as_of = as_of or datetime.now(timezone.utc)
        profile, snapshot = self._load(as_of)

        if profile is None:
            logger.info("No profile configured; skipping alert evaluation")
            return MonitoringReport(
                evaluated_at=as_of,
                risk=RiskResult(score=0.0, level=RiskLevel.GREEN),
                has_profile=False,
            )

        if latest_heart_rate is None:
            max_age = timedelta(minutes=self._settings.live_hr_max_age_minutes)
            latest_heart_rate = latest_heart_rate_from(snapshot, as_of, max_age)

        risk = compute_risk(snapshot, profile, as_of)
        alerts = evaluate_alerts(risk.score, latest_heart_rate, snapshot, profile, as_of)

        for event in alerts:
            self._deliver(event)

        logger.info(
            "Monitoring cycle: score=%.1f level=%s alerts=%d",
            risk.score,
            risk.level.value,
            len(alerts),
        )
        return MonitoringReport(
            evaluated_at=as_of,
            risk=risk,
            alerts=tuple(alerts),
            latest_heart_rate=latest_heart_rate,
            sample_count=len(snapshot.samples),
        )

    def _deliver(self, event: AlertEvent) -> None:
        try:
            self._sink.persist_alert(event)
        except Exception:
            logger.exception("Failed to persist alert %s", event.kind.value)
        try:
            self._sink.dispatch_notification(event.title, event.message)
        except Exception:
            logger.exception("Failed to dispatch notification for %s", event.kind.value)
