"""eventky_lite.config_loader

Lightweight config loader for eventky_lite.

- Reads YAML (PyYAML) or JSON (by ``.json`` suffix) files.
- Applies ``EVENTKY_*`` environment overrides on top of file values.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .core.timezone_utils import is_known_timezone
from .lite_exceptions import LiteConfigError
from .lite_models import DEFAULT_MAX_COUNT, CountMode

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "eventky_lite.yaml"

# Environment variable -> config key
ENV_OVERRIDES: dict[str, str] = {
    "EVENTKY_MAX_COUNT": "max_count",
    "EVENTKY_COUNT_MODE": "count_mode",
    "EVENTKY_DEFAULT_TIMEZONE": "default_timezone",
    "EVENTKY_LOG_LEVEL": "log_level",
    "EVENTKY_MAX_STEP_ITERATIONS": "max_step_iterations",
    "EVENTKY_MAX_SCAN_ITERATIONS": "max_scan_iterations",
    "EVENTKY_MAX_PERIOD_ITERATIONS": "max_period_iterations",
}


@dataclass
class Config:
    """Typed configuration for eventky_lite.

    Fields:
        max_count: default upper bound on returned occurrences
        count_mode: how COUNT interacts with EXDATE (``strict`` or ``fill``)
        max_step_iterations: cap for the interval-stepped strategy
        max_scan_iterations: cap for the weekly day-by-day scan
        max_period_iterations: cap on months scanned by the monthly strategies
        default_timezone: zone used by display helpers when none is given
        log_level: logging level name
    """

    max_count: int = DEFAULT_MAX_COUNT
    count_mode: CountMode = CountMode.STRICT
    max_step_iterations: int = 100
    max_scan_iterations: int = 1000
    max_period_iterations: int = 1000
    default_timezone: str = "UTC"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int; values below 1 (0 for
        ``max_count``) and unknown count modes fall back to defaults with a
        warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int, minimum: int = 1) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < minimum:
                logger.warning("Config %s=%d below minimum %d; using default %d", key, value, minimum, default)
                return default
            return value

        raw_mode = data.get("count_mode", CountMode.STRICT.value)
        try:
            count_mode = CountMode(str(raw_mode).lower())
        except ValueError:
            logger.warning("Config count_mode=%r is not one of strict/fill; using strict", raw_mode)
            count_mode = CountMode.STRICT

        default_timezone = str(data.get("default_timezone") or "UTC")
        if not is_known_timezone(default_timezone):
            logger.warning("Config default_timezone=%r is not a known zone; using UTC", default_timezone)
            default_timezone = "UTC"
        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            max_count=_coerce_int("max_count", DEFAULT_MAX_COUNT, minimum=0),
            count_mode=count_mode,
            max_step_iterations=_coerce_int("max_step_iterations", 100),
            max_scan_iterations=_coerce_int("max_scan_iterations", 1000),
            max_period_iterations=_coerce_int("max_period_iterations", 1000),
            default_timezone=default_timezone,
            log_level=log_level,
        )


def build_config_from_env() -> dict[str, Any]:
    """Collect configuration overrides from ``EVENTKY_*`` environment variables."""
    cfg: dict[str, Any] = {}
    for env_key, cfg_key in ENV_OVERRIDES.items():
        value = os.environ.get(env_key)
        if value:
            cfg[cfg_key] = value
    return cfg


def _load_yaml_or_json(path: Path) -> Any:
    """Load a mapping from a YAML or JSON file."""
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        loaded = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise LiteConfigError(f"Unable to parse config file {path}: {exc}") from exc
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML/JSON file plus environment overrides.

    Args:
        path: Optional path to the config file. Defaults to ``EVENTKY_CONFIG``
              or ./eventky_lite.yaml (relative to current working dir).

    Returns:
        Config dataclass instance.

    Behavior:
    - If file is missing: defaults plus environment overrides.
    - If file exists but top-level is not a mapping: raises LiteConfigError.
    """
    p = Path(path or os.environ.get("EVENTKY_CONFIG") or Path.cwd() / DEFAULT_CONFIG_FILENAME)
    logger.debug("Attempting to load config from %s", p)

    raw: Any = {}
    if p.exists():
        raw = _load_yaml_or_json(p)
        if not isinstance(raw, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
            raise LiteConfigError("Config file must contain a mapping at top level")
        logger.info("Loaded configuration from %s", p)
    else:
        logger.debug("Config file %s not found; using defaults", p)

    merged = {**raw, **build_config_from_env()}
    cfg = Config.from_dict(merged)
    logger.debug("Configuration values: %s", cfg)
    return cfg
