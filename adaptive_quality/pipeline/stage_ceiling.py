"""Hard-ceiling enforcement. Always the last stage; idempotent."""

from __future__ import annotations

from dataclasses import replace

from adaptive_quality.defaults import NO_WORKLET_MAX_POLYPHONY, NO_WORKLET_MIN_BUFFER
from adaptive_quality.model import DeviceProfile, QualityConfig, lower_quality
from adaptive_quality.pipeline.context import AdjustmentContext
from adaptive_quality.rules.table import PlatformRule, TierCeiling
from adaptive_quality.utils.math import clamp

MIN_SAMPLE_RATE = 8000


def device_ceiling(ceiling: TierCeiling, profile: DeviceProfile) -> TierCeiling:
    """Tighten a tier ceiling with the limits this particular device reported."""
    return replace(
        ceiling,
        max_sample_rate=min(ceiling.max_sample_rate, profile.max_sample_rate),
        max_polyphony=max(min(ceiling.max_polyphony, profile.max_polyphony), 1),
        allow_visualization=ceiling.allow_visualization and profile.gpu,
        min_buffer_size=max(ceiling.min_buffer_size, profile.min_buffer_size),
    )


def platform_ceiling(ceiling: TierCeiling, rule: PlatformRule, profile: DeviceProfile) -> TierCeiling:
    """Fold runtime limits into a ceiling so the final clamp keeps them."""
    max_polyphony = ceiling.max_polyphony
    if rule.max_polyphony is not None:
        max_polyphony = min(max_polyphony, rule.max_polyphony)
    min_buffer_size = max(ceiling.min_buffer_size, rule.min_buffer_size)
    if not (rule.low_latency_worklet and profile.low_latency_worklet):
        max_polyphony = min(max_polyphony, NO_WORKLET_MAX_POLYPHONY)
        min_buffer_size = max(min_buffer_size, NO_WORKLET_MIN_BUFFER)
    return replace(
        ceiling,
        max_polyphony=max(max_polyphony, 1),
        min_buffer_size=min_buffer_size,
        allow_effects=ceiling.allow_effects and rule.supports_effects,
        allow_visualization=ceiling.allow_visualization and rule.supports_visualization,
        allow_background_processing=ceiling.allow_background_processing and rule.supports_background_processing,
    )

def enforce_ceiling(config: QualityConfig, ceiling: TierCeiling) -> QualityConfig:
    return replace(
        config,
        sample_rate=int(clamp(config.sample_rate, MIN_SAMPLE_RATE, ceiling.max_sample_rate)),
        buffer_size=max(config.buffer_size, ceiling.min_buffer_size, 1),
        bit_depth=min(config.bit_depth, ceiling.max_bit_depth),
        compression_ratio=clamp(config.compression_ratio, 0.0, 1.0),
        max_polyphony=int(clamp(config.max_polyphony, 1, ceiling.max_polyphony)),
        enable_effects=config.enable_effects and ceiling.allow_effects,
        enable_visualization=config.enable_visualization and ceiling.allow_visualization,
        background_processing=config.background_processing and ceiling.allow_background_processing,
        cpu_throttle=clamp(config.cpu_throttle, 0.0, 1.0),
        memory_limit_mb=int(clamp(config.memory_limit_mb, 1, ceiling.max_memory_mb)),
        quality_level=lower_quality(config.quality_level, ceiling.max_quality_level),
        battery_impact=clamp(config.battery_impact, 0.0, 1.0),
        cpu_impact=clamp(config.cpu_impact, 0.0, 1.0),
    )


class CeilingStage:
    def apply(self, config: QualityConfig, ctx: AdjustmentContext) -> QualityConfig:
        return enforce_ceiling(config, ctx.ceiling)
