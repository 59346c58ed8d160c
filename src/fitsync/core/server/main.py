"""FitSync server entry point: ``python -m fitsync.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from fitsync.core.config.settings import get_settings
from fitsync.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the FitSync MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.fitsync_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.fitsync_allow_insecure_bind and not _is_loopback_host(settings.fitsync_host):
        raise RuntimeError(
            "Refusing to bind FitSync server to a non-loopback host without an auth layer. "
            "Set FITSYNC_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting FitSync wellness server on %s:%d (store %s, encryption %s)",
        settings.fitsync_host,
        settings.fitsync_port,
        settings.db_path,
        "on" if settings.encryption_key else "off",
    )
    if settings.goal_scheduler_enabled:
        logger.info(
            "Daily goals recalculated every %ds, defaults %d steps / %d kcal / %.1fh sleep",
            settings.goal_scheduler_interval_seconds,
            settings.default_steps_goal,
            settings.default_calories_burned_goal,
            settings.default_sleep_hours_goal,
        )
    else:
        logger.info("Daily goal scheduler disabled (GOAL_SCHEDULER_ENABLED=false)")

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.fitsync_host,
        port=settings.fitsync_port,
    )


if __name__ == "__main__":
    run()
