"""User preference overlay: battery, quality and stability priorities plus overrides.

Overrides are merged last; the hard-ceiling stage re-clamps whatever they set,
so a preference can never lift a field past the device's ceiling.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from adaptive_quality.defaults import QUALITY_PREFERENCE_MIN_BATTERY, STABILITY_MIN_BUFFER
from adaptive_quality.model import QUALITY_CONFIG_FIELDS, QUALITY_RANK, QualityConfig
from adaptive_quality.pipeline.context import AdjustmentContext
from adaptive_quality.pipeline.transforms import battery_optimized, quality_raised

logger = logging.getLogger(__name__)


def merge_overrides(config: QualityConfig, overrides: dict[str, Any]) -> QualityConfig:
    """Apply field overrides, skipping unknown names and values of the wrong type."""
    accepted: dict[str, Any] = {}
    for name, value in overrides.items():
        if name not in QUALITY_CONFIG_FIELDS:
            logger.warning("Ignoring override for unknown field %r", name)
            continue
        current = getattr(config, name)
        if name == "quality_level":
            if value not in QUALITY_RANK:
                logger.warning("Ignoring invalid quality_level override %r", value)
                continue
            accepted[name] = value
            continue
        try:
            if isinstance(current, bool):
                if not isinstance(value, bool):
                    raise TypeError(f"expected bool, got {type(value).__name__}")
                accepted[name] = value
            elif isinstance(current, int):
                accepted[name] = int(value)
            else:
                accepted[name] = float(value)
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring override %s=%r: %s", name, value, exc)
    if not accepted:
        return config
    return replace(config, **accepted)


class PreferenceStage:
    def apply(self, config: QualityConfig, ctx: AdjustmentContext) -> QualityConfig:
        prefs = ctx.preferences

        if prefs.prioritize_battery:
            config = battery_optimized(config)
        elif (
            prefs.prioritize_quality
            and ctx.conditions.battery_level > QUALITY_PREFERENCE_MIN_BATTERY
            and ctx.profile.tier != "low-end"
        ):
            config = quality_raised(config, ctx.ceiling)

        if prefs.prioritize_stability:
            config = replace(
                config,
                buffer_size=max(config.buffer_size, STABILITY_MIN_BUFFER),
                max_polyphony=min(config.max_polyphony, ctx.stability_polyphony),
            )

        if prefs.overrides:
            config = merge_overrides(config, prefs.overrides)
        return config
