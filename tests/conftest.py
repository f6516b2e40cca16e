"""Shared test fixtures for CardioGuard tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("CARDIOGUARD_ALLOW_INSECURE_BIND", "false")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from cardioguard.domains.heart_failure.domain_logic.models import (  # noqa: E402
    HeartFailureType,
    MetricSample,
    MetricType,
    UserProfile,
)

# Fixed evaluation moment: Tuesday 2026-03-10, noon UTC
AS_OF = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_profile(**overrides) -> UserProfile:
    """Create a test profile with sensible defaults."""
    defaults = dict(
        heart_failure_type=HeartFailureType.HFREF,
        medication_ids=frozenset(),
        baseline_resting_hr=72.0,
        baseline_weight_kg=80.0,
    )
    defaults.update(overrides)
    return UserProfile(**defaults)


def sample(metric_type: MetricType, value: float, *, hours_ago: float = 0.0, at: datetime = AS_OF) -> MetricSample:
    """A sample ``hours_ago`` hours before ``at``."""
    return MetricSample(
        timestamp=at - timedelta(hours=hours_ago),
        metric_type=metric_type,
        value=value,
        unit=metric_type.default_unit,
    )


def daily_samples(metric_type: MetricType, values: list[float], *, hour: int = 10, end: datetime = AS_OF) -> list[MetricSample]:
    """One sample per day at ``hour``, the last value on ``end``'s day."""
    last_day = end.replace(hour=hour, minute=0, second=0, microsecond=0)
    n = len(values)
    return [
        MetricSample(last_day - timedelta(days=n - 1 - i), metric_type, v, metric_type.default_unit)
        for i, v in enumerate(values)
    ]


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def health_db():
    """Create an in-memory HealthDatabase for testing."""
    from cardioguard.core.storage.database import HealthDatabase

    db = HealthDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from cardioguard.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def heart_repository(health_db, field_encryptor):
    """Create a HeartRepository backed by in-memory SQLite."""
    from cardioguard.core.storage.repository import HeartRepository

    return HeartRepository(health_db, field_encryptor)


@pytest.fixture
def audit_logger(health_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from cardioguard.core.audit.logger import AuditLogger

    return AuditLogger(health_db)


class RecordingAlertSink:
    """AlertSink that keeps every delivered alert for assertions."""

    def __init__(self) -> None:
        self.events = []
        self.notifications = []

    def persist_alert(self, event) -> None:
        self.events.append(event)

    def dispatch_notification(self, title: str, message: str) -> None:
        self.notifications.append((title, message))
