"""CardioGuard server entry point: ``python -m cardioguard.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from cardioguard.core.config.settings import Settings, get_settings
from cardioguard.core.server.app import create_app

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level_name: str) -> int:
    """Configure root logging once. Unknown level names fall back to INFO."""
    level = logging.getLevelName(level_name.strip().upper())
    if not isinstance(level, int):
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.warning("Unknown log level %r; using INFO", level_name)
        return logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return level


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind_allowed(settings: Settings) -> None:
    """Raise RuntimeError for a non-loopback bind unless explicitly allowed.

    The server has no auth layer, so heart data stays on the local host by default.
    """
    if _is_loopback_host(settings.cardioguard_host):
        return
    if not settings.cardioguard_allow_insecure_bind:
        raise RuntimeError(
            f"Refusing to bind CardioGuard to non-loopback host {settings.cardioguard_host!r}. "
            "Set CARDIOGUARD_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.warning("Binding to %s without authentication", settings.cardioguard_host)


def run() -> None:
    """Start the CardioGuard MCP server with Streamable HTTP transport."""
    settings = get_settings()
    configure_logging(settings.cardioguard_log_level)
    check_bind_allowed(settings)

    logger.info(
        "Starting CardioGuard on %s:%d (data bank: %s, scoring window: %d days)",
        settings.cardioguard_host,
        settings.cardioguard_port,
        "enabled" if settings.encryption_key else "disabled",
        settings.scoring_window_days,
    )
    create_app().run(
        transport="streamable-http",
        host=settings.cardioguard_host,
        port=settings.cardioguard_port,
    )


if __name__ == "__main__":
    run()
