"""RuleTable — static baselines, ceilings and deltas.

The table is built once and never mutated: entries are frozen dataclasses
behind read-only mappings. Lookups with an unknown key return the documented
default entry instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType

from adaptive_quality.model import DeviceTier, QualityConfig, QualityLevel, quality_rank

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TierCeiling:
    max_sample_rate: int
    max_polyphony: int
    max_bit_depth: int
    allow_effects: bool
    allow_visualization: bool
    allow_background_processing: bool
    max_quality_level: QualityLevel
    max_memory_mb: int
    min_buffer_size: int = 0


@dataclass(slots=True, frozen=True)
class NetworkRule:
    quality_reduction: float
    compression_increase: float
    disabled_features: frozenset[str] = frozenset()
    forces_features_off: bool = False


@dataclass(slots=True, frozen=True)
class PlatformRule:
    min_buffer_size: int
    max_polyphony: int | None
    max_audio_contexts: int
    low_latency_worklet: bool = True
    supports_effects: bool = True
    supports_visualization: bool = True
    supports_background_processing: bool = True


_BASELINES: dict[DeviceTier, QualityConfig] = {
    "low-end": QualityConfig(
        sample_rate=22050,
        buffer_size=1024,
        bit_depth=16,
        compression_ratio=0.7,
        max_polyphony=4,
        enable_effects=False,
        enable_visualization=False,
        background_processing=False,
        cpu_throttle=0.5,
        memory_limit_mb=256,
        aggressive_battery=True,
        quality_level="low",
        battery_impact=0.3,
        cpu_impact=0.4,
    ),
    "mid-range": QualityConfig(
        sample_rate=44100,
        buffer_size=512,
        bit_depth=16,
        compression_ratio=0.8,
        max_polyphony=8,
        enable_effects=True,
        enable_visualization=False,
        background_processing=True,
        cpu_throttle=0.7,
        memory_limit_mb=512,
        aggressive_battery=False,
        quality_level="medium",
        battery_impact=0.5,
        cpu_impact=0.6,
    ),
    "high-end": QualityConfig(
        sample_rate=48000,
        buffer_size=256,
        bit_depth=24,
        compression_ratio=0.9,
        max_polyphony=16,
        enable_effects=True,
        enable_visualization=True,
        background_processing=True,
        cpu_throttle=0.8,
        memory_limit_mb=1024,
        aggressive_battery=False,
        quality_level="high",
        battery_impact=0.7,
        cpu_impact=0.7,
    ),
    "premium": QualityConfig(
        sample_rate=48000,
        buffer_size=128,
        bit_depth=24,
        compression_ratio=1.0,
        max_polyphony=32,
        enable_effects=True,
        enable_visualization=True,
        background_processing=True,
        cpu_throttle=1.0,
        memory_limit_mb=2048,
        aggressive_battery=False,
        quality_level="ultra",
        battery_impact=0.9,
        cpu_impact=0.8,
    ),
}

_CEILINGS: dict[DeviceTier, TierCeiling] = {
    "low-end": TierCeiling(22050, 4, 16, False, False, False, "low", 256),
    "mid-range": TierCeiling(44100, 8, 16, True, True, True, "high", 512),
    "high-end": TierCeiling(48000, 16, 24, True, True, True, "high", 1024),
    "premium": TierCeiling(48000, 32, 24, True, True, True, "ultra", 2048),
}

_STABILITY_POLYPHONY: dict[DeviceTier, int] = {
    "low-end": 4,
    "mid-range": 8,
    "high-end": 12,
    "premium": 24,
}

_POOR_NETWORK = NetworkRule(
    quality_reduction=0.6,
    compression_increase=0.4,
    disabled_features=frozenset({"enable_visualization", "background_processing"}),
    forces_features_off=True,
)

_NETWORK_RULES: dict[str, NetworkRule] = {
    "slow-2g": _POOR_NETWORK,
    "2g": _POOR_NETWORK,
    "3g": NetworkRule(quality_reduction=0.25, compression_increase=0.2),
    "4g": NetworkRule(quality_reduction=0.0, compression_increase=0.0),
    "wifi": NetworkRule(quality_reduction=0.0, compression_increase=0.0),
    "ethernet": NetworkRule(quality_reduction=0.0, compression_increase=0.0),
}

NO_NETWORK_DELTA = NetworkRule(quality_reduction=0.0, compression_increase=0.0)

_PLATFORM_RULES: dict[str, PlatformRule] = {
    "safari": PlatformRule(min_buffer_size=256, max_polyphony=32, max_audio_contexts=6),
    "chrome": PlatformRule(min_buffer_size=128, max_polyphony=64, max_audio_contexts=8),
    "chrome-webview": PlatformRule(min_buffer_size=128, max_polyphony=8, max_audio_contexts=8),
    "firefox": PlatformRule(min_buffer_size=128, max_polyphony=48, max_audio_contexts=10),
    "edge": PlatformRule(min_buffer_size=128, max_polyphony=64, max_audio_contexts=8),
    "native": PlatformRule(min_buffer_size=64, max_polyphony=64, max_audio_contexts=16),
}

DEFAULT_PLATFORM = PlatformRule(min_buffer_size=0, max_polyphony=None, max_audio_contexts=4)

MINIMAL_CONFIG = QualityConfig(
    sample_rate=22050,
    buffer_size=2048,
    bit_depth=16,
    compression_ratio=0.5,
    max_polyphony=2,
    enable_effects=False,
    enable_visualization=False,
    background_processing=False,
    cpu_throttle=0.3,
    memory_limit_mb=128,
    aggressive_battery=True,
    quality_level="minimal",
    battery_impact=0.1,
    cpu_impact=0.2,
    thermal_management=True,
)

SAFE_CONFIG = QualityConfig(
    sample_rate=22050,
    buffer_size=1024,
    bit_depth=16,
    compression_ratio=0.7,
    max_polyphony=4,
    enable_effects=False,
    enable_visualization=False,
    background_processing=False,
    cpu_throttle=0.5,
    memory_limit_mb=256,
    aggressive_battery=True,
    quality_level="low",
    battery_impact=0.3,
    cpu_impact=0.4,
)

SLOW_NETWORK_TIERS: frozenset[str] = frozenset({"slow-2g", "2g"})


class RuleTable:
    def __init__(
        self,
        *,
        baselines: dict[DeviceTier, QualityConfig] | None = None,
        ceilings: dict[DeviceTier, TierCeiling] | None = None,
        stability_polyphony: dict[DeviceTier, int] | None = None,
        network_rules: dict[str, NetworkRule] | None = None,
        platform_rules: dict[str, PlatformRule] | None = None,
    ) -> None:
        self.baselines = MappingProxyType(dict(baselines or _BASELINES))
        self.ceilings = MappingProxyType(dict(ceilings or _CEILINGS))
        self.stability_ceilings = MappingProxyType(dict(stability_polyphony or _STABILITY_POLYPHONY))
        self.network_rules = MappingProxyType(dict(network_rules or _NETWORK_RULES))
        self.platform_rules = MappingProxyType(dict(platform_rules or _PLATFORM_RULES))
        self._validate()

    def _validate(self) -> None:
        for tier, baseline in self.baselines.items():
            ceiling = self.ceilings.get(tier)
            if ceiling is None:
                raise ValueError(f"no ceiling defined for tier {tier!r}")
            problems: list[str] = []
            if baseline.sample_rate > ceiling.max_sample_rate:
                problems.append("sample_rate")
            if baseline.max_polyphony > ceiling.max_polyphony:
                problems.append("max_polyphony")
            if baseline.bit_depth > ceiling.max_bit_depth:
                problems.append("bit_depth")
            if baseline.enable_effects and not ceiling.allow_effects:
                problems.append("enable_effects")
            if baseline.enable_visualization and not ceiling.allow_visualization:
                problems.append("enable_visualization")
            if baseline.background_processing and not ceiling.allow_background_processing:
                problems.append("background_processing")
            if quality_rank(baseline.quality_level) > quality_rank(ceiling.max_quality_level):
                problems.append("quality_level")
            if baseline.memory_limit_mb > ceiling.max_memory_mb:
                problems.append("memory_limit_mb")
            if problems:
                raise ValueError(f"baseline for {tier!r} exceeds its ceiling: {', '.join(problems)}")

    def baseline(self, tier: str) -> QualityConfig:
        config = self.baselines.get(tier)  # type: ignore[call-overload]
        if config is None:
            logger.debug("Unknown tier %r, using mid-range baseline", tier)
            return self.baselines["mid-range"]
        return config

    def ceiling(self, tier: str) -> TierCeiling:
        ceiling = self.ceilings.get(tier)  # type: ignore[call-overload]
        if ceiling is None:
            logger.debug("Unknown tier %r, using mid-range ceiling", tier)
            return self.ceilings["mid-range"]
        return ceiling

    def stability_polyphony(self, tier: str) -> int:
        polyphony = self.stability_ceilings.get(tier)  # type: ignore[call-overload]
        if polyphony is None:
            logger.debug("Unknown tier %r, using mid-range stability ceiling", tier)
            return self.stability_ceilings["mid-range"]
        return polyphony

    def network(self, effective_type: str) -> NetworkRule:
        rule = self.network_rules.get(effective_type)
        if rule is None:
            logger.debug("Unknown network type %r, no adjustment", effective_type)
            return NO_NETWORK_DELTA
        return rule

    def platform(self, platform_tag: str) -> PlatformRule:
        rule = self.platform_rules.get(platform_tag)
        if rule is None:
            logger.debug("Unknown platform %r, using default constraints", platform_tag)
            return DEFAULT_PLATFORM
        return rule
