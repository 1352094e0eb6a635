"""Reusable config transforms shared by several pipeline stages."""

from __future__ import annotations

from dataclasses import replace

from adaptive_quality.defaults import (
    BATTERY_IMPACT_FACTOR,
    BATTERY_MAX_POLYPHONY,
    BATTERY_MAX_SAMPLE_RATE,
    BATTERY_MIN_BUFFER,
)
from adaptive_quality.model import QualityConfig, quality_rank
from adaptive_quality.rules.table import TierCeiling


def battery_optimized(config: QualityConfig) -> QualityConfig:
    return replace(
        config,
        sample_rate=min(config.sample_rate, BATTERY_MAX_SAMPLE_RATE),
        buffer_size=max(config.buffer_size, BATTERY_MIN_BUFFER),
        max_polyphony=min(config.max_polyphony, BATTERY_MAX_POLYPHONY),
        enable_effects=False,
        enable_visualization=False,
        background_processing=False,
        aggressive_battery=True,
        quality_level="minimal",
        battery_impact=config.battery_impact * BATTERY_IMPACT_FACTOR,
    )


def quality_raised(config: QualityConfig, ceiling: TierCeiling) -> QualityConfig:
    """Lift the quality level to the ceiling's level; flags only where allowed."""
    level = config.quality_level
    if quality_rank(ceiling.max_quality_level) > quality_rank(level):
        level = ceiling.max_quality_level
    return replace(
        config,
        quality_level=level,
        enable_effects=config.enable_effects or ceiling.allow_effects,
        enable_visualization=config.enable_visualization or ceiling.allow_visualization,
    )
