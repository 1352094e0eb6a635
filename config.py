from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from adaptive_quality.defaults import (
    BATTERY_SAVER_THRESHOLD,
    CPU_USAGE_LIMIT,
    HISTORY_SIZE,
    PROBE_TIMEOUT_S,
    REEVALUATION_INTERVAL_S,
)

logger = logging.getLogger(__name__)


LOG_LEVEL = os.getenv("LOG_LEVEL", os.getenv("ENGINE_LOG_LEVEL", "INFO")).upper()


@dataclass(slots=True, frozen=True)
class EngineSettings:
    reevaluation_interval_s: float = REEVALUATION_INTERVAL_S
    history_size: int = HISTORY_SIZE
    probe_timeout_s: float = PROBE_TIMEOUT_S
    battery_saver_threshold: float = BATTERY_SAVER_THRESHOLD
    cpu_usage_limit: float = CPU_USAGE_LIMIT

    def __post_init__(self) -> None:
        if self.reevaluation_interval_s <= 0:
            raise ValueError("reevaluation_interval_s must be positive")
        if self.history_size < 1:
            raise ValueError("history_size must be at least 1")
        if self.probe_timeout_s <= 0:
            raise ValueError("probe_timeout_s must be positive")
        if not 0.0 <= self.battery_saver_threshold <= 1.0:
            raise ValueError("battery_saver_threshold must be within [0, 1]")
        if not 0.0 < self.cpu_usage_limit <= 100.0:
            raise ValueError("cpu_usage_limit must be within (0, 100]")


def _env_number(name: str, default: float, cast: type = float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Invalid value for %s=%r, using default %s", name, raw, default)
        return default


def load_settings(env_file: str | None = None) -> EngineSettings:
    """Read engine settings from the environment (and an optional .env file)."""
    load_dotenv(env_file)
    return EngineSettings(
        reevaluation_interval_s=_env_number("ENGINE_REEVALUATION_INTERVAL_S", REEVALUATION_INTERVAL_S),
        history_size=int(_env_number("ENGINE_HISTORY_SIZE", HISTORY_SIZE, int)),
        probe_timeout_s=_env_number("ENGINE_PROBE_TIMEOUT_S", PROBE_TIMEOUT_S),
        battery_saver_threshold=_env_number("ENGINE_BATTERY_SAVER_THRESHOLD", BATTERY_SAVER_THRESHOLD),
        cpu_usage_limit=_env_number("ENGINE_CPU_USAGE_LIMIT", CPU_USAGE_LIMIT),
    )
