"""Collaborator interfaces: where the engine's inputs come from and alerts go."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from cardioguard.domains.heart_failure.domain_logic.models import (
    AlertEvent,
    MetricSample,
    MetricType,
    SymptomEntry,
    UserProfile,
)


@runtime_checkable
class HeartDataProvider(Protocol):
    """Read-only access to stored measurements and the user profile.

    The monitoring service calls these without knowing whether data comes
    from the encrypted data bank, a sync payload, or a mock generator.
    """

    def fetch_metrics(
        self,
        metric_type: MetricType | None,
        start: datetime,
        end: datetime,
    ) -> list[MetricSample]:
        """Samples with ``start <= timestamp <= end``, ordered by time.

        ``metric_type=None`` returns every type.
        """
        ...

    def fetch_symptom_entries(self, start: datetime, end: datetime) -> list[SymptomEntry]:
        """Symptom check-ins whose day falls in the range (one per day)."""
        ...

    def load_profile(self) -> UserProfile | None:
        """The onboarding profile, or None when onboarding is incomplete."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the active data source: 'data_bank' or 'mock'."""
        ...


@runtime_checkable
class AlertSink(Protocol):
    """Where fired alerts are recorded and announced. Fire-and-forget."""

    def persist_alert(self, event: AlertEvent) -> None:
        ...

    def dispatch_notification(self, title: str, message: str) -> None:
        ...
