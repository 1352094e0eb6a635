"""Live-condition override: battery saver, thermal reduction, CPU overload."""

from __future__ import annotations

import math
from dataclasses import replace

from adaptive_quality.defaults import (
    CPU_OVERLOAD_IMPACT_FACTOR,
    CPU_OVERLOAD_MAX_POLYPHONY,
    CPU_OVERLOAD_MAX_THROTTLE,
    CPU_OVERLOAD_MIN_BUFFER,
    THERMAL_EFFECTS_CUTOFF,
)
from adaptive_quality.model import QualityConfig
from adaptive_quality.pipeline.context import AdjustmentContext
from adaptive_quality.pipeline.transforms import battery_optimized


def thermal_reduced(config: QualityConfig, factor: float) -> QualityConfig:
    if factor <= 0:
        return config
    return replace(
        config,
        sample_rate=math.floor(config.sample_rate * (1 - factor)),
        buffer_size=math.floor(config.buffer_size * (1 + factor)),
        max_polyphony=max(math.floor(config.max_polyphony * (1 - factor)), 1),
        cpu_throttle=config.cpu_throttle * (1 - factor),
        cpu_impact=config.cpu_impact * (1 - factor),
        thermal_management=True,
        enable_effects=config.enable_effects and factor < THERMAL_EFFECTS_CUTOFF,
    )


def cpu_relieved(config: QualityConfig) -> QualityConfig:
    return replace(
        config,
        buffer_size=max(config.buffer_size, CPU_OVERLOAD_MIN_BUFFER),
        max_polyphony=min(config.max_polyphony, CPU_OVERLOAD_MAX_POLYPHONY),
        enable_visualization=False,
        cpu_throttle=min(config.cpu_throttle, CPU_OVERLOAD_MAX_THROTTLE),
        cpu_impact=config.cpu_impact * CPU_OVERLOAD_IMPACT_FACTOR,
    )


class ConditionStage:
    def apply(self, config: QualityConfig, ctx: AdjustmentContext) -> QualityConfig:
        conditions = ctx.conditions
        if conditions.battery_level < ctx.battery_saver_threshold:
            config = battery_optimized(config)
        config = thermal_reduced(config, conditions.performance_reduction)
        if conditions.avg_cpu_usage > ctx.cpu_usage_limit:
            config = cpu_relieved(config)
        return config
