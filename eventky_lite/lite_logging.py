"""
Central logging configuration for eventky_lite.

Keeps third-party libraries quiet while letting the recurrence engine modules
log at DEBUG when troubleshooting expansion results.
"""

import logging
import os
from typing import Optional

# Third-party loggers that are noisy at DEBUG
SUPPRESSED_LOGGERS: tuple[str, ...] = (
    "icalendar",
    "dateutil",
    "asyncio",
)

LITE_MODULES: tuple[str, ...] = (
    "eventky_lite",
    "eventky_lite.calendar.lite_rrule_expander",
    "eventky_lite.calendar.lite_rrule_parser",
    "eventky_lite.calendar.lite_datetime_utils",
    "eventky_lite.calendar.lite_ics_export",
    "eventky_lite.core.validation",
    "eventky_lite.config_loader",
)


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for eventky_lite.

    Args:
        debug_mode: Whether to enable debug logging for eventky_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        EVENTKY_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        EVENTKY_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("EVENTKY_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("EVENTKY_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # Don't use force=True so the colorized handler from __init__ survives
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s"))
        root_logger.addHandler(handler)

    logger_config: dict[str, int] = {name: logging.WARNING for name in SUPPRESSED_LOGGERS}

    lite_level = logging.DEBUG if final_debug else logging.INFO
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for eventky_lite modules")
    else:
        root_logger.debug("Production logging configuration applied")


def reset_logging_to_debug() -> None:
    """
    Reset all loggers to DEBUG level for troubleshooting.
    """
    logging.getLogger().setLevel(logging.DEBUG)

    for logger_name in SUPPRESSED_LOGGERS + LITE_MODULES:
        logging.getLogger(logger_name).setLevel(logging.DEBUG)

    logging.getLogger().info("All loggers reset to DEBUG level for troubleshooting")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}

    for logger_name in ("eventky_lite", "eventky_lite.calendar.lite_rrule_expander", "icalendar"):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)

    return status
