"""HeartDataProvider backed by the encrypted data bank."""

from __future__ import annotations

from datetime import datetime

from cardioguard.core.storage.repository import HeartRepository
from cardioguard.domains.heart_failure.domain_logic.models import (
    MetricSample,
    MetricType,
    SymptomEntry,
    UserProfile,
)


class RepositoryHeartDataProvider:
    """Reads metrics, check-ins and the profile from a HeartRepository."""

    def __init__(self, repository: HeartRepository) -> None:
        self._repo = repository

    def fetch_metrics(
        self,
        metric_type: MetricType | None,
        start: datetime,
        end: datetime,
    ) -> list[MetricSample]:
        return self._repo.get_metrics(metric_type, start, end)

    def fetch_symptom_entries(self, start: datetime, end: datetime) -> list[SymptomEntry]:
        return self._repo.get_symptom_entries(start.date(), end.date())

    def load_profile(self) -> UserProfile | None:
        return self._repo.load_profile()

    @property
    def data_source(self) -> str:
        return "data_bank"
