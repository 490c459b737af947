"""
Costing settings: defaults, validation and settings-file loading.

Settings live in the "costing" section of a settings.json file, one entry per
key in the form {"value": ...}. Invalid values fall back to defaults and are
clamped to valid ranges; loading never raises.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


# Default constants
DEFAULT_BURN_RATE_WINDOW_DAYS = 7
DEFAULT_EXCLUDE_ZERO_DAYS = False
DEFAULT_INCLUDE_WRITE_OFFS_IN_BURN_RATE = False
DEFAULT_AGING_THRESHOLD_DAYS = 90
DEFAULT_NO_CONSUMPTION_DAYS_CAP = 999
DEFAULT_CRITICAL_DAYS = 7
DEFAULT_HIGH_DAYS = 14
DEFAULT_EXPIRY_HORIZON_DAYS = 14
DEFAULT_LEAD_TIME_DAYS = 7
DEFAULT_SAFETY_STOCK_DAYS = 7

# Validation bounds
MIN_WINDOW_DAYS = 1
MAX_WINDOW_DAYS = 365
MAX_DAYS_CAP = 99999

SETTINGS_SECTION = "costing"


def _raw_value(section: Dict[str, Any], key: str, default: Any) -> Any:
    entry = section.get(key, default)
    if isinstance(entry, dict):
        return entry.get("value", default)
    return entry


def _int_setting(section: Dict[str, Any], key: str, default: int, low: int, high: int) -> int:
    raw = _raw_value(section, key, default)
    try:
        value = int(raw)
    except (ValueError, TypeError):
        logger.warning(f"Invalid {SETTINGS_SECTION}.{key}={raw!r}, using {default}")
        return default
    return max(low, min(high, value))


def _bool_setting(section: Dict[str, Any], key: str, default: bool) -> bool:
    raw = _raw_value(section, key, default)
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    logger.warning(f"Invalid {SETTINGS_SECTION}.{key}={raw!r}, using {default}")
    return default


@dataclass(frozen=True)
class CostingSettings:
    """Tunable policy values of the costing engine."""
    burn_rate_window_days: int = DEFAULT_BURN_RATE_WINDOW_DAYS
    exclude_zero_days: bool = DEFAULT_EXCLUDE_ZERO_DAYS
    include_write_offs_in_burn_rate: bool = DEFAULT_INCLUDE_WRITE_OFFS_IN_BURN_RATE
    aging_threshold_days: int = DEFAULT_AGING_THRESHOLD_DAYS
    no_consumption_days_cap: int = DEFAULT_NO_CONSUMPTION_DAYS_CAP
    critical_days: int = DEFAULT_CRITICAL_DAYS
    high_days: int = DEFAULT_HIGH_DAYS
    expiry_horizon_days: int = DEFAULT_EXPIRY_HORIZON_DAYS
    lead_time_days: int = DEFAULT_LEAD_TIME_DAYS
    safety_stock_days: int = DEFAULT_SAFETY_STOCK_DAYS

    @classmethod
    def from_settings(cls, settings: Optional[Dict[str, Any]]) -> "CostingSettings":
        """
        Build settings from a full settings dict (reads the "costing" section).

        Missing keys take defaults, bad values fall back to defaults, numbers
        are clamped. high_days is never below critical_days.
        """
        section = (settings or {}).get(SETTINGS_SECTION, {}) or {}

        critical_days = _int_setting(section, "critical_days", DEFAULT_CRITICAL_DAYS, 0, MAX_DAYS_CAP)
        high_days = _int_setting(section, "high_days", DEFAULT_HIGH_DAYS, 0, MAX_DAYS_CAP)

        return cls(
            burn_rate_window_days=_int_setting(
                section, "burn_rate_window_days", DEFAULT_BURN_RATE_WINDOW_DAYS, MIN_WINDOW_DAYS, MAX_WINDOW_DAYS
            ),
            exclude_zero_days=_bool_setting(section, "exclude_zero_days", DEFAULT_EXCLUDE_ZERO_DAYS),
            include_write_offs_in_burn_rate=_bool_setting(
                section, "include_write_offs_in_burn_rate", DEFAULT_INCLUDE_WRITE_OFFS_IN_BURN_RATE
            ),
            aging_threshold_days=_int_setting(
                section, "aging_threshold_days", DEFAULT_AGING_THRESHOLD_DAYS, 0, MAX_DAYS_CAP
            ),
            no_consumption_days_cap=_int_setting(
                section, "no_consumption_days_cap", DEFAULT_NO_CONSUMPTION_DAYS_CAP, 1, MAX_DAYS_CAP
            ),
            critical_days=critical_days,
            high_days=max(critical_days, high_days),
            expiry_horizon_days=_int_setting(
                section, "expiry_horizon_days", DEFAULT_EXPIRY_HORIZON_DAYS, 0, MAX_WINDOW_DAYS
            ),
            lead_time_days=_int_setting(section, "lead_time_days", DEFAULT_LEAD_TIME_DAYS, 1, MAX_WINDOW_DAYS),
            safety_stock_days=_int_setting(
                section, "safety_stock_days", DEFAULT_SAFETY_STOCK_DAYS, 0, MAX_WINDOW_DAYS
            ),
        )

    def to_settings(self) -> Dict[str, Any]:
        """Serialize back to the settings-file layout."""
        return {SETTINGS_SECTION: {key: {"value": value} for key, value in self.__dict__.items()}}


def load_settings(path: Union[str, Path]) -> CostingSettings:
    """
    Load costing settings from a JSON settings file.

    A missing or unreadable file yields the defaults.
    """
    settings_file = Path(path)
    if not settings_file.exists():
        return CostingSettings()
    try:
        with open(settings_file, "r", encoding="utf-8") as f:
            settings = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Could not read settings from {settings_file}: {e}; using defaults")
        return CostingSettings()
    if not isinstance(settings, dict):
        logger.warning(f"Settings file {settings_file} is not a JSON object; using defaults")
        return CostingSettings()
    return CostingSettings.from_settings(settings)
