"""
Configuration loading and validation.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: str = "data/budgetwatch.db"


@dataclass
class ScheduleConfig:
    """Schedule configuration."""

    timezone: str = "America/Sao_Paulo"


@dataclass
class ForecastConfig:
    """Depletion forecast thresholds, in days of runway."""

    critical_days: int = 3
    warning_days: int = 7
    no_spend_days: int = 999


@dataclass
class SyncConfig:
    """Ads balance sync configuration."""

    interval_seconds: int = 300
    max_workers: int = 5


@dataclass
class AdsPlatformConfig:
    """Ads platform API configuration."""

    provider: str = "meta"
    api_version: str = "v18.0"
    access_token: Optional[str] = None


@dataclass
class CalendarConfig:
    """Calendar reminder settings."""

    enabled: bool = True
    access_token: Optional[str] = None
    calendar_id: str = "primary"
    reminder_hour: int = 9
    duration_minutes: int = 60


@dataclass
class InsightsConfig:
    """Narrative summary settings."""

    enabled: bool = True
    api_key: Optional[str] = None
    model: str = "gemini-3-flash-preview"


@dataclass
class AdvancedConfig:
    """Advanced configuration."""

    log_level: str = "INFO"
    request_timeout_seconds: int = 10
    default_currency: str = "BRL"


@dataclass
class AppConfig:
    """Main application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    ads_platform: AdsPlatformConfig = field(default_factory=AdsPlatformConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    insights: InsightsConfig = field(default_factory=InsightsConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)

    @property
    def tz(self) -> ZoneInfo:
        """Timezone used for calendar-day boundaries."""
        return ZoneInfo(self.schedule.timezone)


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _validate_timezone(timezone: str) -> None:
    """Validate timezone string."""
    if not timezone:
        raise ConfigValidationError("Timezone cannot be empty")
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigValidationError(f"Unknown timezone: {timezone}") from e


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values."""
    # Check database path is provided
    db_config = config_dict.get("database") or {}
    db_path = db_config.get("path", DatabaseConfig.path)
    if not db_path:
        raise ConfigValidationError("Database path is required")

    if db_path != ":memory:":
        parent = Path(db_path).parent
        if parent.exists() and not os.access(parent, os.W_OK):
            raise ConfigValidationError(f"Database path not writable: {parent}")

    schedule = config_dict.get("schedule") or {}
    _validate_timezone(schedule.get("timezone", ScheduleConfig.timezone))

    forecast = config_dict.get("forecast") or {}
    critical = forecast.get("critical_days", ForecastConfig.critical_days)
    warning = forecast.get("warning_days", ForecastConfig.warning_days)
    if warning < critical:
        raise ConfigValidationError(
            f"warning_days ({warning}) must not be below critical_days ({critical})"
        )

    sync = config_dict.get("sync") or {}
    if sync.get("interval_seconds", SyncConfig.interval_seconds) <= 0:
        raise ConfigValidationError("Sync interval must be positive")


def load_config(config_path: str) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    # Substitute environment variables
    config_dict = _substitute_env_vars(raw_config)

    _validate_config(config_dict)

    # Empty strings left over from unset ${VAR}s mean "not configured"
    ads_dict = dict(config_dict.get("ads_platform") or {})
    ads_dict["access_token"] = ads_dict.get("access_token") or None
    calendar_dict = dict(config_dict.get("calendar") or {})
    calendar_dict["access_token"] = calendar_dict.get("access_token") or None
    insights_dict = dict(config_dict.get("insights") or {})
    insights_dict["api_key"] = insights_dict.get("api_key") or None

    return AppConfig(
        database=DatabaseConfig(**(config_dict.get("database") or {})),
        schedule=ScheduleConfig(**(config_dict.get("schedule") or {})),
        forecast=ForecastConfig(**(config_dict.get("forecast") or {})),
        sync=SyncConfig(**(config_dict.get("sync") or {})),
        ads_platform=AdsPlatformConfig(**ads_dict),
        calendar=CalendarConfig(**calendar_dict),
        insights=InsightsConfig(**insights_dict),
        advanced=AdvancedConfig(**(config_dict.get("advanced") or {})),
    )
