"""MCP tools for cross-device sync.

A device pushes its latest state as a sync payload; dashboards fetch it
back by device ID or by the pairing sync code. Only the most recent
payload per device is kept, encrypted in the data bank.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from cardioguard.core.storage.repository import RepositoryError
from cardioguard.domains.heart_failure.domain_logic.alert_rules import latest_heart_rate_from
from cardioguard.domains.heart_failure.domain_logic.models import (
    MetricSnapshot,
    MetricType,
    trailing_window_start,
)
from cardioguard.domains.heart_failure.sync.codec import (
    DEFAULT_METRIC_LIMIT,
    SyncPayload,
    SyncPayloadError,
    build_sync_payload,
    decode_alert,
)

if TYPE_CHECKING:
    from cardioguard.core.audit.logger import AuditLogger
    from cardioguard.core.storage.repository import HeartRepository
    from cardioguard.domains.heart_failure.monitor import MonitoringService

logger = logging.getLogger(__name__)


def register_sync_tools(
    mcp: FastMCP,
    repository: HeartRepository,
    service: MonitoringService,
    audit_logger: AuditLogger | None = None,
    *,
    metric_limit: int = DEFAULT_METRIC_LIMIT,
    window_days: int = 30,
) -> None:
    """Register sync push/fetch/export tools on the MCP server."""

    @mcp.tool
    async def sync_push(ctx: Context, payload: dict[str, Any]) -> str:
        """Store the latest sync payload for a device.

        Args:
            payload: Sync object with ``deviceId`` and optional ``syncCode``,
                ``profile``, ``metrics``, ``symptoms``, ``alerts``,
                ``liveHR``, ``liveHRV``, ``riskScore``, ``riskLevel``.
        """
        try:
            decoded = SyncPayload.from_dict(payload)
        except SyncPayloadError as exc:
            if audit_logger is not None:
                audit_logger.log_sync("", status="failure", error_type=type(exc).__name__)
            return json.dumps({"status": "error", "message": str(exc)})

        stored = repository.upsert_sync(
            decoded.device_id,
            decoded.to_dict(metric_limit=metric_limit),
            decoded.sync_code,
        )
        if audit_logger is not None:
            audit_logger.log_sync(decoded.device_id, metric_count=len(decoded.metrics))

        result: dict[str, Any] = {"status": "ok", "lastSyncedAt": stored.last_synced_at}
        if stored.sync_code:
            result["syncCode"] = stored.sync_code
        return json.dumps(result)

    @mcp.tool
    async def sync_fetch(ctx: Context, device_id: str = "", sync_code: str = "") -> str:
        """Fetch the latest synced payload by device ID or sync code.

        Args:
            device_id: Device identifier used when pushing.
            sync_code: Pairing code registered by the device.
        """
        try:
            if device_id:
                stored = repository.get_sync_by_device_id(device_id)
                missing = "No sync data for this device"
            elif sync_code:
                stored = repository.get_sync_by_sync_code(sync_code)
                missing = "No sync data for this code"
            else:
                return json.dumps({"status": "error", "message": "Provide device_id or sync_code"})
        except RepositoryError as exc:
            logger.error("Failed to read sync payload: %s", exc)
            return json.dumps({"status": "error", "message": "Stored sync payload is unreadable"})

        if stored is None:
            return json.dumps({"status": "not_found", "message": missing})
        return json.dumps({"status": "ok", "data": stored.as_response()}, indent=2)

    @mcp.tool
    async def sync_export(ctx: Context, device_id: str, sync_code: str = "") -> str:
        """Build a sync payload from this data bank, ready to push to another server.

        Includes the profile, the most recent metric samples, recent
        symptom check-ins and alerts, and the current risk score.

        Args:
            device_id: Identifier for this device.
            sync_code: Optional pairing code.
        """
        if not device_id or not device_id.strip():
            return json.dumps({"status": "error", "message": "Missing or invalid deviceId"})

        as_of = datetime.now(timezone.utc)
        risk = service.current_risk(as_of)
        start = trailing_window_start(as_of, window_days)
        metrics = repository.get_metrics(None, start, as_of)
        snapshot = MetricSnapshot.build(metrics)
        latest_hrv = snapshot.latest(MetricType.HRV, not_before=start, end=as_of)

        alerts = []
        for stored in repository.get_alert_history(since=start, limit=100):
            alerts.append(decode_alert({
                "date": stored.timestamp,
                "kind": stored.kind,
                "title": stored.title,
                "message": stored.message,
                "wasRedRisk": stored.was_red_risk,
            }))

        payload = build_sync_payload(
            device_id=device_id.strip(),
            sync_code=sync_code or None,
            profile=repository.load_profile(),
            metrics=metrics,
            symptoms=repository.get_symptom_entries(start.date(), as_of.date()),
            alerts=reversed(alerts),
            risk=risk,
            live_hr=latest_heart_rate_from(snapshot, as_of),
            live_hrv=latest_hrv.value if latest_hrv is not None else None,
            metric_limit=metric_limit,
        )
        return json.dumps({"status": "ok", "payload": payload.to_dict(metric_limit=metric_limit)}, indent=2)
