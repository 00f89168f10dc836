"""eventky_lite - recurrence engine for calendar events.

Expands RRULE/RDATE/EXDATE definitions into concrete occurrence dates, labels
rules for display and exports events as iCalendar. Imports are kept light so
the package can be inspected without pulling in the engine's dependencies.
"""

__version__ = "0.1.0"

from typing import Any, Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors the EVENTKY_DEBUG environment variable (truthy values: "1", "true",
    "yes", "on"), which forces DEBUG verbosity so expansion decisions become
    visible without changing code.
    """
    import logging
    import os
    import sys

    debug_env = os.environ.get("EVENTKY_DEBUG", "")
    if isinstance(debug_env, str) and debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        try:
            from colorlog import ColoredFormatter  # type: ignore[import-not-found]

            # HH:MM:SS  LEVEL   logger.name: message (only the level is colorized)
            fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
            log_colors = {
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            }
            formatter = ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors)
        except Exception:
            # Fall back to plain logging if colorlog isn't installed.
            fmt = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
            formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")

        handler.setFormatter(formatter)
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)
    logging.getLogger(__name__).debug("Logging initialized at level %s", logging.getLevelName(level))


def run(args: Any) -> int:
    """Run a CLI command.

    Loads configuration (file, then ``EVENTKY_*`` environment overrides,
    then command line flags) and dispatches to the selected command.

    Args:
        args: Parsed argparse namespace with a ``handler`` attribute

    Returns:
        Process exit code
    """
    import logging
    import os

    _init_logging(os.environ.get("EVENTKY_LOG_LEVEL"))

    from .config_loader import load_config
    from .lite_exceptions import LiteConfigError
    from .lite_logging import configure_lite_logging

    logger = logging.getLogger(__name__)

    try:
        config = load_config(getattr(args, "config", None))
    except LiteConfigError:
        logger.exception("Failed to load configuration")
        return 2

    configure_lite_logging(debug_mode=config.log_level == "DEBUG", force_debug=getattr(args, "debug", None) or None)

    count_mode = getattr(args, "count_mode", None)
    if count_mode:
        from .lite_models import CountMode

        config.count_mode = CountMode(count_mode)
        logger.debug("Applied command line count mode override: %s", count_mode)

    handler = getattr(args, "handler", None)
    if handler is None:
        logger.error("No command given")
        return 2
    return int(handler(args, config))
