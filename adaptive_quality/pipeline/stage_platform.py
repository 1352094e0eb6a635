"""Platform/runtime constraints: buffer floors, concurrency ceilings, feature support."""

from __future__ import annotations

from dataclasses import replace

from adaptive_quality.defaults import NO_WORKLET_MAX_POLYPHONY, NO_WORKLET_MIN_BUFFER
from adaptive_quality.model import QualityConfig
from adaptive_quality.pipeline.context import AdjustmentContext


class PlatformStage:
    def apply(self, config: QualityConfig, ctx: AdjustmentContext) -> QualityConfig:
        rule = ctx.platform_rule
        buffer_size = max(config.buffer_size, rule.min_buffer_size)
        polyphony = config.max_polyphony
        if rule.max_polyphony is not None:
            polyphony = min(polyphony, rule.max_polyphony)

        if not (rule.low_latency_worklet and ctx.profile.low_latency_worklet):
            buffer_size = max(buffer_size, NO_WORKLET_MIN_BUFFER)
            polyphony = min(polyphony, NO_WORKLET_MAX_POLYPHONY)

        return replace(
            config,
            buffer_size=buffer_size,
            max_polyphony=polyphony,
            enable_effects=config.enable_effects and rule.supports_effects,
            enable_visualization=config.enable_visualization and rule.supports_visualization,
            background_processing=config.background_processing and rule.supports_background_processing,
        )
