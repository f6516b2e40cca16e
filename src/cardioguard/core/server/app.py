"""CardioGuard MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from cardioguard.core.audit.logger import AuditLogger
from cardioguard.core.config.settings import get_settings
from cardioguard.core.storage.database import HealthDatabase
from cardioguard.core.storage.encryption import EncryptionError, FieldEncryptor
from cardioguard.core.storage.repository import HeartRepository
from cardioguard.domains.heart_failure.connectors import AlertSink, HeartDataProvider
from cardioguard.domains.heart_failure.connectors.mock_data import MockHeartDataProvider
from cardioguard.domains.heart_failure.connectors.repository_provider import (
    RepositoryHeartDataProvider,
)
from cardioguard.domains.heart_failure.connectors.sinks import (
    LoggingAlertSink,
    RepositoryAlertSink,
)
from cardioguard.domains.heart_failure.domain_logic.trend_analyzer import TrendAnalyzer
from cardioguard.domains.heart_failure.monitor import MonitoringService
from cardioguard.domains.heart_failure.tools.monitoring_tools import register_monitoring_tools

logger = logging.getLogger(__name__)


def create_app(
    *,
    provider_override: HeartDataProvider | None = None,
    repository_override: HeartRepository | None = None,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the CardioGuard MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the encrypted storage layer (data bank) when a key is set
    3. Picks the heart data provider (override, data bank, or mock)
    4. Wires the monitoring service, trend analyzer and alert sink
    5. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "CardioGuard",
        instructions=(
            "CardioGuard heart-failure monitoring server. Computes a 0-100 "
            "decompensation risk score from wearable metrics, daily symptom "
            "check-ins and medications, evaluates alert rules, and stores "
            "cross-device sync payloads."
        ),
    )

    # --- Initialize encrypted storage (data bank) ---
    repository: HeartRepository | None = None
    audit_logger: AuditLogger | None = audit_logger_override
    if repository_override is not None:
        repository = repository_override
    elif settings.encryption_key:
        try:
            encryptor = FieldEncryptor(settings.encryption_key)
            health_db = HealthDatabase(settings.db_path)
            health_db.initialize()
            repository = HeartRepository(health_db, encryptor)
            if audit_logger is None:
                audit_logger = AuditLogger(health_db)
            logger.info(
                "Data bank initialized: %s (schema v%d)",
                settings.db_path,
                health_db.get_schema_version(),
            )
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing without persistence; data will not be stored")
    else:
        logger.info(
            "No ENCRYPTION_KEY configured; running without persistence. "
            "Set ENCRYPTION_KEY to enable the data bank."
        )

    # --- Heart data provider ---
    if provider_override is not None:
        provider = provider_override
    elif repository is not None:
        provider = RepositoryHeartDataProvider(repository)
    else:
        provider = MockHeartDataProvider()
        logger.info("Using mock heart data provider")

    sink: AlertSink
    if repository is not None:
        sink = RepositoryAlertSink(repository, audit_logger)
    else:
        sink = LoggingAlertSink()

    service = MonitoringService(provider, sink, settings)
    trend_analyzer = TrendAnalyzer(provider)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": "CardioGuard",
            "version": "0.1.0",
            "data_source": provider.data_source,
            "storage_enabled": repository is not None,
        }
        if repository is not None:
            status["metrics_stored"] = repository.count_metrics()
        if audit_logger is not None:
            status["audit_events"] = audit_logger.count_events()
        return status

    register_monitoring_tools(server, service, trend_analyzer, audit_logger)
    logger.info("Monitoring tools registered (data source: %s)", provider.data_source)

    # --- Register data bank tools (requires storage) ---
    if repository is not None:
        from cardioguard.domains.heart_failure.tools.entry_tools import register_entry_tools
        from cardioguard.domains.heart_failure.tools.sync_tools import register_sync_tools

        register_entry_tools(server, repository, audit_logger)
        register_sync_tools(
            server,
            repository,
            service,
            audit_logger,
            metric_limit=settings.sync_metric_limit,
            window_days=settings.scoring_window_days,
        )
        logger.info("Entry and sync tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this attribute is accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
