from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Literal


DeviceTier = Literal["low-end", "mid-range", "high-end", "premium"]

QualityLevel = Literal["minimal", "low", "medium", "high", "ultra"]

ThermalState = Literal["nominal", "fair", "serious", "critical"]

PowerMode = Literal["high-performance", "balanced", "battery-saver", "ultra-low-power"]

PerformanceMode = Literal["maximum", "balanced", "efficient", "minimal"]

TIER_ORDER: tuple[DeviceTier, ...] = ("low-end", "mid-range", "high-end", "premium")

QUALITY_RANK: dict[str, int] = {
    "minimal": 1,
    "low": 2,
    "medium": 3,
    "high": 4,
    "ultra": 5,
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def quality_rank(level: str) -> int:
    return QUALITY_RANK.get(level, 1)


def lower_quality(a: QualityLevel, b: QualityLevel) -> QualityLevel:
    return a if quality_rank(a) <= quality_rank(b) else b


@dataclass(slots=True, frozen=True)
class HardwareInfo:
    """Raw output of a hardware probe. ``None`` means the probe could not tell."""

    cpu_cores: int | None = None
    memory_gb: float | None = None
    user_agent: str = ""
    gpu: bool = False
    max_sample_rate: int | None = None
    min_buffer_size: int | None = None
    max_polyphony: int | None = None
    low_latency_worklet: bool = True


@dataclass(slots=True, frozen=True)
class DeviceProfile:
    cpu_cores: int
    memory_gb: float
    architecture: str
    gpu: bool
    platform: str
    is_tablet: bool
    low_latency_worklet: bool
    max_sample_rate: int
    min_buffer_size: int
    max_polyphony: int
    benchmark_score: float
    tier: DeviceTier
    thermal_threshold: float


@dataclass(slots=True, frozen=True)
class BatteryReading:
    level: float
    charging: bool = False


@dataclass(slots=True, frozen=True)
class NetworkReading:
    connection_type: str
    effective_type: str
    downlink_mbps: float
    rtt_ms: float
    save_data: bool = False

    @property
    def metered(self) -> bool:
        return self.save_data or self.effective_type in {"slow-2g", "2g"}


@dataclass(slots=True, frozen=True)
class PerformanceSample:
    cpu_usage: float
    latency_ms: float = 0.0
    dropouts: int = 0
    memory_mb: float = 0.0
    buffer_underruns: int = 0
    timestamp: str = field(default_factory=utc_now_iso)


@dataclass(slots=True, frozen=True)
class ConditionSnapshot:
    battery_level: float
    charging: bool
    power_mode: PowerMode
    thermal_state: ThermalState
    performance_reduction: float
    avg_cpu_usage: float
    avg_latency_ms: float
    avg_dropouts: float
    avg_memory_mb: float
    sample_count: int
    network: NetworkReading
    captured_at: str = field(default_factory=utc_now_iso)
    stale: bool = False

    @property
    def throttling_active(self) -> bool:
        return self.thermal_state in {"serious", "critical"}


@dataclass(slots=True, frozen=True)
class QualityConfig:
    sample_rate: int
    buffer_size: int
    bit_depth: int
    compression_ratio: float
    max_polyphony: int
    enable_effects: bool
    enable_visualization: bool
    background_processing: bool
    cpu_throttle: float
    memory_limit_mb: int
    aggressive_battery: bool
    quality_level: QualityLevel
    battery_impact: float
    cpu_impact: float
    thermal_management: bool = False

    def disabled_features(self) -> list[str]:
        disabled: list[str] = []
        if not self.enable_effects:
            disabled.append("effects")
        if not self.enable_visualization:
            disabled.append("visualization")
        if not self.background_processing:
            disabled.append("background_processing")
        return disabled

    def enabled_optimizations(self) -> list[str]:
        enabled: list[str] = []
        if self.aggressive_battery:
            enabled.append("aggressive_battery")
        if self.thermal_management:
            enabled.append("thermal_management")
        if self.cpu_throttle < 1.0:
            enabled.append("cpu_throttle")
        return enabled

    def performance_mode(self) -> PerformanceMode:
        rank = quality_rank(self.quality_level)
        if rank >= QUALITY_RANK["ultra"]:
            return "maximum"
        if rank >= QUALITY_RANK["medium"]:
            return "balanced"
        if rank >= QUALITY_RANK["low"]:
            return "efficient"
        return "minimal"


QUALITY_CONFIG_FIELDS: frozenset[str] = frozenset(f.name for f in fields(QualityConfig))


@dataclass(slots=True, frozen=True)
class UserPreferences:
    prioritize_battery: bool = False
    prioritize_quality: bool = True
    prioritize_stability: bool = True
    auto_scaling: bool = True
    overrides: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Reasoning:
    factors: list[str]
    influences: dict[str, float]
    explanation: str
    changes: list[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class Impact:
    battery_life_delta_min: float
    performance_delta: float
    quality_reduction: float
    stability_delta: float


@dataclass(slots=True, frozen=True)
class OptimizationDecision:
    config: QualityConfig
    reasoning: Reasoning
    impact: Impact
    confidence: float
    triggers: tuple[str, ...] = ()
    decided_at: str = field(default_factory=utc_now_iso)
    next_evaluation_at: str | None = None

    @property
    def performance_mode(self) -> PerformanceMode:
        return self.config.performance_mode()
