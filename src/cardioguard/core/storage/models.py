"""Row types for the data bank that have no engine-level counterpart."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class StoredAlert:
    """An alert as recorded in the alert history table."""

    id: str
    timestamp: str  # ISO 8601, when the rule fired
    kind: str
    title: str
    message: str
    was_red_risk: bool = False
    created_at: str = ""


@dataclass
class StoredSync:
    """Latest sync payload received from one device."""

    device_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    sync_code: str | None = None
    last_synced_at: str = ""

    def as_response(self) -> dict[str, Any]:
        """Payload merged with its receive time, as served to dashboards."""
        return {**self.payload, "lastSyncedAt": self.last_synced_at}
