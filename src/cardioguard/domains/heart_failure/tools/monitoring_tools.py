"""MCP tools for risk scoring, monitoring cycles and metric trends."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from cardioguard.domains.heart_failure.domain_logic.models import MetricType
from cardioguard.domains.heart_failure.sync.codec import parse_timestamp

if TYPE_CHECKING:
    from cardioguard.core.audit.logger import AuditLogger
    from cardioguard.domains.heart_failure.domain_logic.trend_analyzer import TrendAnalyzer
    from cardioguard.domains.heart_failure.monitor import MonitoringService

logger = logging.getLogger(__name__)


def parse_as_of(value: str) -> datetime | None:
    """Optional ISO-8601 evaluation moment; empty means now.

    Raises:
        ValueError: If ``value`` is not a valid timestamp.
    """
    if not value or not value.strip():
        return None
    return parse_timestamp(value)


def register_monitoring_tools(
    mcp: FastMCP,
    service: MonitoringService,
    trend_analyzer: TrendAnalyzer,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register scoring, monitoring and trend tools on the MCP server."""

    def _audit(tool_name: str, tool_input: dict, start_time: float, status: str = "success") -> None:
        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name=tool_name,
                tool_input=tool_input,
                duration_ms=(time.monotonic() - start_time) * 1000,
                status=status,
            )

    @mcp.tool
    async def risk_score(ctx: Context, as_of: str = "") -> str:
        """Compute the current heart-failure decompensation risk score.

        Returns the 0-100 score, its green/yellow/red level, and the
        weighted contribution of each metric, symptoms and medications.

        Args:
            as_of: Optional ISO 8601 evaluation time. Defaults to now.
        """
        start_time = time.monotonic()
        try:
            moment = parse_as_of(as_of)
        except ValueError:
            return json.dumps({"status": "error", "message": f"Invalid as_of timestamp: {as_of!r}"})

        risk = service.current_risk(moment)
        _audit("risk_score", {"as_of": as_of}, start_time)
        return json.dumps({"status": "ok", **risk.as_dict()}, indent=2)

    @mcp.tool
    async def run_monitoring_cycle(
        ctx: Context,
        as_of: str = "",
        latest_heart_rate: float | None = None,
    ) -> str:
        """Run a full monitoring cycle: score, evaluate alerts, record them.

        Args:
            as_of: Optional ISO 8601 evaluation time. Defaults to now.
            latest_heart_rate: Optional live heart-rate reading in BPM.
                When omitted, the newest stored reading from the last
                30 minutes is used.
        """
        start_time = time.monotonic()
        try:
            moment = parse_as_of(as_of)
        except ValueError:
            return json.dumps({"status": "error", "message": f"Invalid as_of timestamp: {as_of!r}"})

        report = service.run_cycle(moment, latest_heart_rate)
        _audit(
            "run_monitoring_cycle",
            {"as_of": as_of, "latest_heart_rate": latest_heart_rate},
            start_time,
        )
        return json.dumps({"status": "ok", **report.as_dict()}, indent=2)

    @mcp.tool
    async def metric_trend(
        ctx: Context,
        metric: str,
        days: int = 7,
        as_of: str = "",
    ) -> str:
        """Daily trend for one metric over the last 7, 30 or 90 days.

        Args:
            metric: Metric type: heartRate, hrv, respiratoryRate, steps,
                sleep, weight or irregularRhythm.
            days: Period length; one of 7, 30, 90.
            as_of: Optional ISO 8601 end of the period. Defaults to now.
        """
        start_time = time.monotonic()
        try:
            metric_type = MetricType(metric)
        except ValueError:
            valid = [m.value for m in MetricType]
            return json.dumps({"status": "error", "message": f"Unknown metric {metric!r}. Valid: {valid}"})
        try:
            moment = parse_as_of(as_of)
            series = trend_analyzer.daily_series(metric_type, days=days, as_of=moment)
            trend = trend_analyzer.compute_metric_trend(metric_type, days=days, series=series)
        except ValueError as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        _audit("metric_trend", {"metric": metric, "days": days, "as_of": as_of}, start_time)
        return json.dumps({
            "status": trend.get("status", "ok"),
            "trend": trend,
            "daily": [{"date": day.isoformat(), "value": round(value, 2)} for day, value in series],
        }, indent=2)
