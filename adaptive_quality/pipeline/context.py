from __future__ import annotations

from dataclasses import dataclass

from adaptive_quality.defaults import BATTERY_SAVER_THRESHOLD, CPU_USAGE_LIMIT
from adaptive_quality.model import ConditionSnapshot, DeviceProfile, UserPreferences
from adaptive_quality.rules.table import NetworkRule, PlatformRule, TierCeiling


@dataclass(slots=True, frozen=True)
class AdjustmentContext:
    """Everything one pipeline run may read. Stages never mutate it."""

    profile: DeviceProfile
    conditions: ConditionSnapshot
    preferences: UserPreferences
    network_rule: NetworkRule
    platform_rule: PlatformRule
    ceiling: TierCeiling
    stability_polyphony: int
    battery_saver_threshold: float = BATTERY_SAVER_THRESHOLD
    cpu_usage_limit: float = CPU_USAGE_LIMIT
