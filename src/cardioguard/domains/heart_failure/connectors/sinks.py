"""AlertSink implementations."""

from __future__ import annotations

import logging

from cardioguard.core.audit.logger import AuditLogger
from cardioguard.core.storage.repository import HeartRepository
from cardioguard.domains.heart_failure.domain_logic.models import AlertEvent

logger = logging.getLogger(__name__)


class LoggingAlertSink:
    """Announces fired alerts through logging only; nothing is retained."""

    def persist_alert(self, event: AlertEvent) -> None:
        logger.info("Alert fired: %s (urgent=%s)", event.kind.value, event.is_high_urgency)

    def dispatch_notification(self, title: str, message: str) -> None:
        logger.warning("Alert notification: %s", title)


class RepositoryAlertSink:
    """Writes alerts to the alert history table.

    Notifications are emitted as log lines; the audit trail records only
    the alert kind.
    """

    def __init__(self, repository: HeartRepository, audit: AuditLogger | None = None) -> None:
        self._repo = repository
        self._audit = audit

    def persist_alert(self, event: AlertEvent) -> None:
        self._repo.save_alert(event)
        if self._audit is not None:
            self._audit.log_alert_dispatch(event.kind.value, urgent=event.is_high_urgency)

    def dispatch_notification(self, title: str, message: str) -> None:
        logger.warning("Alert notification: %s", title)
