"""
Configuration for OctoSwitch
============================
Runtime settings for the schedule engine and its background scheduler.
All values default from environment variables.
Sets up the logging configuration as well.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from octoswitch.domain.exceptions import ConfigurationError
from octoswitch.utils.time import time_to_minutes


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("OCTOSWITCH_ENV", "development"))
    DEBUG: bool = field(default_factory=lambda: _env_bool("OCTOSWITCH_DEBUG", False))

    # Civil clock used for "today" and the current minute
    timezone: str = field(default_factory=lambda: os.getenv("OCTOSWITCH_TIMEZONE", "Europe/London"))

    # Empty string disables the rotating file handler
    log_file: str = field(default_factory=lambda: os.getenv("OCTOSWITCH_LOG_FILE", "logs/octoswitch.log"))

    # Background scheduler
    scheduler_check_interval: int = field(
        default_factory=lambda: _env_int("OCTOSWITCH_SCHEDULER_CHECK_INTERVAL", 1)
    )
    scheduler_max_workers: int = field(default_factory=lambda: _env_int("OCTOSWITCH_SCHEDULER_MAX_WORKERS", 4))

    # Devices actuated concurrently within one tick
    actuation_max_workers: int = field(default_factory=lambda: _env_int("OCTOSWITCH_ACTUATION_MAX_WORKERS", 4))

    # Schedule log retention
    log_retention_days: int = field(default_factory=lambda: _env_int("OCTOSWITCH_LOG_RETENTION_DAYS", 30))
    log_cleanup_time: str = field(default_factory=lambda: os.getenv("OCTOSWITCH_LOG_CLEANUP_TIME", "03:00"))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for name in ("scheduler_check_interval", "scheduler_max_workers", "actuation_max_workers"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1", detail={name: getattr(self, name)})
        if self.log_retention_days < 1:
            raise ConfigurationError(
                "log_retention_days must be at least 1",
                detail={"log_retention_days": self.log_retention_days},
            )
        try:
            time_to_minutes(self.log_cleanup_time)
        except ValueError as e:
            raise ConfigurationError(
                f"log_cleanup_time must be HH:MM: {e}",
                detail={"log_cleanup_time": self.log_cleanup_time},
            ) from None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


# ==================== CONFIGURATION VALIDATION ====================


def validate_timezone(name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ConfigurationError: If the timezone is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone: {name!r}", detail={"timezone": name}) from e


def validate_config(config: AppConfig) -> list[str]:
    """
    Validate configuration and return list of warnings.

    Args:
        config: AppConfig instance

    Returns:
        List of warning messages (empty if all valid)
    """
    warnings = []

    if config.scheduler_check_interval > 10:
        warnings.append(
            f"Scheduler check interval ({config.scheduler_check_interval}s) is long. "
            "Per-minute ticks may start late. Recommended: 1-5s"
        )

    if config.actuation_max_workers > 16:
        warnings.append(
            f"Actuation workers ({config.actuation_max_workers}) is high for a handful of devices. Recommended: 2-8"
        )

    if config.is_production and config.DEBUG:
        warnings.append("DEBUG logging is enabled in production")

    return warnings


def setup_logging(debug: bool = False, log_file: str | None = "logs/octoswitch.log") -> None:
    """Setup logging configuration."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    log_level = logging.DEBUG if debug else logging.INFO

    # Root logger
    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid adding duplicates when setup_logging is called more than once
    has_console = any(getattr(h, "name", "") == "octoswitch_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "octoswitch_file" for h in root.handlers)
    added_handler = False

    # Console handler (force UTF-8 to avoid UnicodeEncodeError on Windows terminals)
    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "octoswitch_console"
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    # File handler
    if log_file and not has_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "octoswitch_file"
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    # Ensure handler levels follow the desired log level
    for handler in root.handlers:
        if getattr(handler, "name", "") in {"octoswitch_console", "octoswitch_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    import logging

    config = AppConfig()
    validate_timezone(config.timezone)

    logger = logging.getLogger("config_loader")
    for warning in validate_config(config):
        logger.warning(warning)

    return config
