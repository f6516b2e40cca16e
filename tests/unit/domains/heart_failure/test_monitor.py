"""Tests for the MonitoringService cycle."""

from __future__ import annotations

import pytest
from conftest import AS_OF, RecordingAlertSink, make_profile, sample

from cardioguard.core.config.settings import Settings
from cardioguard.domains.heart_failure.connectors.mock_data import MockHeartDataProvider
from cardioguard.domains.heart_failure.connectors.repository_provider import (
    RepositoryHeartDataProvider,
)
from cardioguard.domains.heart_failure.connectors.sinks import (
    RepositoryAlertSink,
)
from cardioguard.domains.heart_failure.domain_logic.models import (
    AlertKind,
    MetricType,
    RiskLevel,
)
from cardioguard.domains.heart_failure.monitor import MonitoringService


class _FailingSink:
    def __init__(self) -> None:
        self.dispatched = 0

    def persist_alert(self, event) -> None:
        raise RuntimeError("disk full")

    def dispatch_notification(self, title: str, message: str) -> None:
        self.dispatched += 1


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def bank_provider(heart_repository):
    return RepositoryHeartDataProvider(heart_repository)


class TestMockPatient:
    def test_stable_patient_is_green_without_alerts(self, settings):
        sink = RecordingAlertSink()
        service = MonitoringService(MockHeartDataProvider(anchor=AS_OF), sink, settings)
        report = service.run_cycle(AS_OF)
        assert report.risk.level == RiskLevel.GREEN
        assert report.alerts == ()
        assert report.has_profile is True
        assert report.sample_count > 0
        assert sink.events == []


class TestNoProfile:
    def test_no_profile_is_green(self, settings, bank_provider, heart_repository):
        heart_repository.save_metric(sample(MetricType.HEART_RATE, 140, hours_ago=0.1))
        service = MonitoringService(bank_provider, RecordingAlertSink(), settings)
        report = service.run_cycle(AS_OF)
        assert report.has_profile is False
        assert report.risk.score == 0.0
        assert report.alerts == ()


class TestAlertDelivery:
    def test_alerts_reach_the_sink(self, settings, bank_provider, heart_repository):
        heart_repository.save_profile(make_profile())
        heart_repository.save_metrics([
            sample(MetricType.WEIGHT_KG, 80.0, hours_ago=48),
            sample(MetricType.WEIGHT_KG, 82.1, hours_ago=1),
        ])
        sink = RecordingAlertSink()
        report = MonitoringService(bank_provider, sink, settings).run_cycle(AS_OF)
        assert [a.kind for a in report.alerts] == [AlertKind.WEIGHT_GAIN]
        assert [e.kind for e in sink.events] == [AlertKind.WEIGHT_GAIN]
        assert sink.notifications[0][0] == "Weight gain"

    def test_live_reading_from_stored_samples(self, settings, bank_provider, heart_repository):
        heart_repository.save_profile(make_profile())
        heart_repository.save_metric(sample(MetricType.HEART_RATE, 130, hours_ago=0.2))
        report = MonitoringService(bank_provider, RecordingAlertSink(), settings).run_cycle(AS_OF)
        assert report.latest_heart_rate == 130
        assert AlertKind.TACHYCARDIA in [a.kind for a in report.alerts]

    def test_explicit_live_reading_wins(self, settings, bank_provider, heart_repository):
        heart_repository.save_profile(make_profile())
        heart_repository.save_metric(sample(MetricType.HEART_RATE, 130, hours_ago=0.2))
        report = MonitoringService(bank_provider, RecordingAlertSink(), settings).run_cycle(AS_OF, 45.0)
        assert [a.kind for a in report.alerts] == [AlertKind.BRADYCARDIA]

    def test_sink_failures_do_not_abort(self, settings, bank_provider, heart_repository, caplog):
        heart_repository.save_profile(make_profile())
        sink = _FailingSink()
        with caplog.at_level("ERROR"):
            report = MonitoringService(bank_provider, sink, settings).run_cycle(AS_OF, 130.0)
        assert len(report.alerts) == 1
        assert sink.dispatched == 1
        assert "Failed to persist alert" in caplog.text

    def test_repository_sink_history(self, settings, bank_provider, heart_repository, audit_logger):
        heart_repository.save_profile(make_profile())
        sink = RepositoryAlertSink(heart_repository, audit_logger)
        MonitoringService(bank_provider, sink, settings).run_cycle(AS_OF, 130.0)
        history = heart_repository.get_alert_history()
        assert [h.kind for h in history] == ["Tachycardia"]


class TestCurrentRisk:
    def test_matches_cycle_score(self, settings, bank_provider, heart_repository):
        heart_repository.save_profile(make_profile())
        heart_repository.save_metrics([sample(MetricType.HEART_RATE, 90, hours_ago=h) for h in range(1, 6)])
        service = MonitoringService(bank_provider, RecordingAlertSink(), settings)
        assert service.current_risk(AS_OF) == service.run_cycle(AS_OF).risk

    def test_scoring_window_setting(self, bank_provider, heart_repository):
        heart_repository.save_profile(make_profile())
        heart_repository.save_metric(sample(MetricType.HEART_RATE, 90, hours_ago=1))
        service = MonitoringService(bank_provider, RecordingAlertSink(), Settings(scoring_window_days=7))
        report = service.run_cycle(AS_OF)
        assert report.sample_count == 1
        assert report.evaluated_at == AS_OF
        assert report.as_dict()["risk"]["level"] == report.risk.level.value

    def test_old_samples_outside_window(self, settings, bank_provider, heart_repository):
        heart_repository.save_profile(make_profile())
        heart_repository.save_metric(sample(MetricType.HEART_RATE, 90, hours_ago=24 * 45))
        report = MonitoringService(bank_provider, RecordingAlertSink(), settings).run_cycle(AS_OF)
        assert report.sample_count == 0
