"""Network adaptation: trade fidelity for bandwidth on slow connections."""

from __future__ import annotations

import math
from dataclasses import replace

from adaptive_quality.defaults import (
    NETWORK_MAX_COMPRESSION,
    NETWORK_MIN_POLYPHONY,
    NETWORK_MIN_SAMPLE_RATE,
)
from adaptive_quality.model import QualityConfig
from adaptive_quality.pipeline.context import AdjustmentContext
from adaptive_quality.rules.table import NetworkRule


def _without(config: QualityConfig, features: frozenset[str]) -> QualityConfig:
    if not features:
        return config
    return replace(config, **{name: False for name in features})


class NetworkStage:
    def apply(self, config: QualityConfig, ctx: AdjustmentContext) -> QualityConfig:
        rule = ctx.network_rule
        reduction = rule.quality_reduction
        if reduction > 0:
            config = replace(
                config,
                sample_rate=max(int(config.sample_rate * (1 - reduction)), NETWORK_MIN_SAMPLE_RATE),
                max_polyphony=max(math.floor(config.max_polyphony * (1 - reduction)), NETWORK_MIN_POLYPHONY),
            )
        if rule.compression_increase > 0:
            config = replace(
                config,
                compression_ratio=min(config.compression_ratio + rule.compression_increase, NETWORK_MAX_COMPRESSION),
            )
        return _without(config, rule.disabled_features)


def lock_slow_network(config: QualityConfig, rule: NetworkRule) -> QualityConfig:
    """Re-apply the forced-off features of the slowest network tiers."""
    if not rule.forces_features_off:
        return config
    return _without(config, rule.disabled_features)
