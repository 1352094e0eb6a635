"""Centralised algorithm defaults for the adaptive quality engine.

All tuneable numeric thresholds used by the profile builder, condition
monitor, adjustment pipeline, decision synthesizer and scheduler are
collected here so that the engine can be tuned from a single location.

Modules import these under local aliases.
"""

from __future__ import annotations

# ── DeviceProfileBuilder (adaptive_quality/device/profile_builder.py) ─
PROFILE_LOW_END_MAX_CORES: int = 2
PROFILE_LOW_END_MAX_MEMORY_GB: float = 2.0
PROFILE_PREMIUM_MIN: tuple[int, float, float] = (8, 8.0, 85.0)    # cores, GB, score
PROFILE_HIGH_END_MIN: tuple[int, float, float] = (6, 6.0, 70.0)
PROFILE_MID_RANGE_MIN: tuple[int, float, float] = (4, 4.0, 50.0)
PROFILE_DEFAULT_CORES: int = 4
PROFILE_DEFAULT_MEMORY_GB: float = 4.0
PROFILE_DEFAULT_SAMPLE_RATE: int = 44100
PROFILE_DEFAULT_BUFFER_SIZE: int = 512
PROFILE_DEFAULT_POLYPHONY: int = 8
PROFILE_MIN_ESTIMATED_POLYPHONY: int = 4
PROFILE_MAX_ESTIMATED_POLYPHONY: int = 32
THERMAL_THRESHOLD_BY_TIER: dict[str, float] = {
    "low-end": 65.0,
    "mid-range": 70.0,
    "high-end": 75.0,
    "premium": 80.0,
}
BENCHMARK_ITERATIONS: int = 50_000
BENCHMARK_MS_PENALTY: float = 2.0          # score points lost per millisecond

# ── ConditionMonitor (adaptive_quality/monitor/condition_monitor.py) ──
SAMPLE_BUFFER_SIZE: int = 100
THERMAL_WINDOW: int = 10
IMMEDIATE_CPU_PERCENT: float = 90.0
IMMEDIATE_LATENCY_MS: float = 200.0
IMMEDIATE_DROPOUTS: int = 5
IMMEDIATE_MEMORY_MB: float = 2048.0
THERMAL_CRITICAL_CPU: float = 90.0
THERMAL_SERIOUS_CPU: float = 75.0
THERMAL_FAIR_CPU: float = 60.0
THERMAL_REDUCTION: dict[str, float] = {
    "nominal": 0.0,
    "fair": 0.1,
    "serious": 0.25,
    "critical": 0.5,
}
DEFAULT_BATTERY_LEVEL: float = 0.5
DEFAULT_EFFECTIVE_TYPE: str = "4g"
DEFAULT_CONNECTION_TYPE: str = "wifi"
DEFAULT_DOWNLINK_MBPS: float = 10.0
DEFAULT_RTT_MS: float = 50.0
BATTERY_CHANGE_TRIGGER: float = 0.1
POWER_MODE_HIGH_PERFORMANCE: float = 0.7
POWER_MODE_BALANCED: float = 0.4
POWER_MODE_BATTERY_SAVER: float = 0.2

# ── Adjustment pipeline (adaptive_quality/pipeline/) ─────────────────
NETWORK_MIN_SAMPLE_RATE: int = 22050
NETWORK_MIN_POLYPHONY: int = 2
NETWORK_MAX_COMPRESSION: float = 0.8
NO_WORKLET_MIN_BUFFER: int = 512
NO_WORKLET_MAX_POLYPHONY: int = 4
QUALITY_PREFERENCE_MIN_BATTERY: float = 0.5
STABILITY_MIN_BUFFER: int = 512
THERMAL_EFFECTS_CUTOFF: float = 0.25
CPU_OVERLOAD_MIN_BUFFER: int = 512
CPU_OVERLOAD_MAX_POLYPHONY: int = 8
CPU_OVERLOAD_MAX_THROTTLE: float = 0.7
CPU_OVERLOAD_IMPACT_FACTOR: float = 0.8
BATTERY_MAX_SAMPLE_RATE: int = 22050
BATTERY_MIN_BUFFER: int = 1024
BATTERY_MAX_POLYPHONY: int = 4
BATTERY_IMPACT_FACTOR: float = 0.5
BATTERY_SAVER_THRESHOLD: float = 0.2
CPU_USAGE_LIMIT: float = 80.0

# ── DecisionSynthesizer (adaptive_quality/decision/synthesizer.py) ───
REASON_BATTERY_CRITICAL: float = 0.3
REASON_BATTERY_LOW: float = 0.5
REASON_CPU_HIGH: float = 70.0
WEIGHT_BATTERY_CRITICAL: float = 0.8
WEIGHT_BATTERY_LOW: float = 0.4
WEIGHT_THERMAL: float = 0.6
WEIGHT_PERFORMANCE: float = 0.7
WEIGHT_USER_BATTERY: float = 0.5
CONFIDENCE_MIN: float = 0.3
CONFIDENCE_MAX: float = 1.0
CONFIDENCE_NORMALISER: float = 4.0
BATTERY_LIFE_HORIZON_MIN: float = 60.0
STABILITY_PER_QUALITY_REDUCTION: float = 0.5

# ── Engine / scheduler (adaptive_quality/engine.py) ──────────────────
REEVALUATION_INTERVAL_S: float = 30.0
HISTORY_SIZE: int = 100
PROBE_TIMEOUT_S: float = 2.0
