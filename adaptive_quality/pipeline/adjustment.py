"""AdjustmentPipeline — ordered composition of the adjustment stages.

Order is fixed: network → platform → user preference → live conditions →
hard ceiling. On the two slowest network tiers the forced-off features are
locked again right before the ceiling pass, so no intermediate stage can turn
them back on.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Protocol

from adaptive_quality.defaults import BATTERY_SAVER_THRESHOLD, CPU_USAGE_LIMIT, STABILITY_MIN_BUFFER
from adaptive_quality.model import ConditionSnapshot, DeviceProfile, PowerMode, QualityConfig, UserPreferences
from adaptive_quality.pipeline.context import AdjustmentContext
from adaptive_quality.pipeline.stage_ceiling import CeilingStage, device_ceiling, enforce_ceiling, platform_ceiling
from adaptive_quality.pipeline.stage_conditions import ConditionStage
from adaptive_quality.pipeline.stage_network import NetworkStage, lock_slow_network
from adaptive_quality.pipeline.stage_platform import PlatformStage
from adaptive_quality.pipeline.stage_preferences import PreferenceStage
from adaptive_quality.pipeline.transforms import battery_optimized
from adaptive_quality.rules.table import MINIMAL_CONFIG, RuleTable, TierCeiling

logger = logging.getLogger(__name__)


class Stage(Protocol):
    def apply(self, config: QualityConfig, ctx: AdjustmentContext) -> QualityConfig: ...


class AdjustmentPipeline:
    def __init__(
        self,
        rules: RuleTable,
        *,
        battery_saver_threshold: float = BATTERY_SAVER_THRESHOLD,
        cpu_usage_limit: float = CPU_USAGE_LIMIT,
    ) -> None:
        self.rules = rules
        self.battery_saver_threshold = battery_saver_threshold
        self.cpu_usage_limit = cpu_usage_limit
        self.network_stage = NetworkStage()
        self.platform_stage = PlatformStage()
        self.preference_stage = PreferenceStage()
        self.condition_stage = ConditionStage()
        self.ceiling_stage = CeilingStage()

    def ceiling_for(self, profile: DeviceProfile) -> TierCeiling:
        """Tier ceiling tightened by the device's own limits and its runtime."""
        ceiling = device_ceiling(self.rules.ceiling(profile.tier), profile)
        return platform_ceiling(ceiling, self.rules.platform(profile.platform), profile)

    def context_for(
        self,
        profile: DeviceProfile,
        conditions: ConditionSnapshot,
        preferences: UserPreferences,
    ) -> AdjustmentContext:
        return AdjustmentContext(
            profile=profile,
            conditions=conditions,
            preferences=preferences,
            network_rule=self.rules.network(conditions.network.effective_type),
            platform_rule=self.rules.platform(profile.platform),
            ceiling=self.ceiling_for(profile),
            stability_polyphony=self.rules.stability_polyphony(profile.tier),
            battery_saver_threshold=self.battery_saver_threshold,
            cpu_usage_limit=self.cpu_usage_limit,
        )

    def run(
        self,
        profile: DeviceProfile,
        conditions: ConditionSnapshot,
        preferences: UserPreferences,
    ) -> QualityConfig:
        ctx = self.context_for(profile, conditions, preferences)
        config = self.rules.baseline(profile.tier)
        stages: tuple[Stage, ...] = (
            self.network_stage,
            self.platform_stage,
            self.preference_stage,
            self.condition_stage,
        )
        for stage in stages:
            config = stage.apply(config, ctx)
        config = lock_slow_network(config, ctx.network_rule)
        config = self.ceiling_stage.apply(config, ctx)
        logger.debug(
            "Pipeline result: tier=%s level=%s sr=%d buf=%d poly=%d",
            profile.tier,
            config.quality_level,
            config.sample_rate,
            config.buffer_size,
            config.max_polyphony,
        )
        return config

    def recommendations(self, profile: DeviceProfile) -> dict[PowerMode, QualityConfig]:
        """One ceiling-clamped configuration per power mode for this device."""
        ceiling = self.ceiling_for(profile)
        baseline = self.rules.baseline(profile.tier)
        balanced = replace(
            baseline,
            buffer_size=max(baseline.buffer_size, STABILITY_MIN_BUFFER),
            max_polyphony=min(baseline.max_polyphony, self.rules.stability_polyphony(profile.tier)),
            enable_visualization=False,
        )
        return {
            "high-performance": enforce_ceiling(baseline, ceiling),
            "balanced": enforce_ceiling(balanced, ceiling),
            "battery-saver": enforce_ceiling(battery_optimized(baseline), ceiling),
            "ultra-low-power": enforce_ceiling(MINIMAL_CONFIG, ceiling),
        }
