"""End-to-end properties of the adjustment pipeline."""

import itertools

from adaptive_quality.defaults import THERMAL_REDUCTION
from adaptive_quality.model import (
    TIER_ORDER,
    ConditionSnapshot,
    DeviceProfile,
    NetworkReading,
    UserPreferences,
    quality_rank,
)
from adaptive_quality.monitor.condition_monitor import power_mode_for
from adaptive_quality.pipeline.adjustment import AdjustmentPipeline
from adaptive_quality.rules.table import PlatformRule, RuleTable

THERMAL_STATES = ("nominal", "fair", "serious", "critical")
NETWORKS = ("slow-2g", "2g", "3g", "4g", "wifi", "satellite")
BATTERY_LEVELS = (1.0, 0.9, 0.6, 0.51, 0.5, 0.4, 0.29, 0.2, 0.19, 0.1, 0.0)

PREFERENCE_SETS = [
    UserPreferences(prioritize_battery=b, prioritize_quality=q, prioritize_stability=s)
    for b, q, s in itertools.product((False, True), repeat=3)
]
GREEDY_OVERRIDES = UserPreferences(
    prioritize_quality=True,
    overrides={
        "sample_rate": 192000,
        "max_polyphony": 256,
        "enable_effects": True,
        "enable_visualization": True,
        "background_processing": True,
        "quality_level": "ultra",
        "bit_depth": 32,
    },
)


def _profile(tier, *, cores=8, memory=8.0, gpu=True, platform="chrome", worklet=True) -> DeviceProfile:
    return DeviceProfile(
        cpu_cores=cores,
        memory_gb=memory,
        architecture="x64",
        gpu=gpu,
        platform=platform,
        is_tablet=False,
        low_latency_worklet=worklet,
        max_sample_rate=48000,
        min_buffer_size=128,
        max_polyphony=32,
        benchmark_score=90.0,
        tier=tier,
        thermal_threshold=75.0,
    )


def _snapshot(battery=0.8, *, charging=False, thermal="nominal", cpu=0.0, effective_type="4g", connection="cellular"):
    return ConditionSnapshot(
        battery_level=battery,
        charging=charging,
        power_mode=power_mode_for(battery, charging),
        thermal_state=thermal,
        performance_reduction=THERMAL_REDUCTION[thermal],
        avg_cpu_usage=cpu,
        avg_latency_ms=0.0,
        avg_dropouts=0.0,
        avg_memory_mb=0.0,
        sample_count=10,
        network=NetworkReading(connection, effective_type, 10.0, 50.0),
    )


def test_config_never_exceeds_tier_ceiling():
    rules = RuleTable()
    pipeline = AdjustmentPipeline(rules)
    for tier, prefs, thermal, network, battery, charging in itertools.product(
        TIER_ORDER,
        [*PREFERENCE_SETS, GREEDY_OVERRIDES],
        THERMAL_STATES,
        NETWORKS,
        (1.0, 0.55, 0.15),
        (False, True),
    ):
        ceiling = rules.ceiling(tier)
        snapshot = _snapshot(battery, charging=charging, thermal=thermal, effective_type=network)
        config = pipeline.run(_profile(tier), snapshot, prefs)

        assert config.sample_rate <= ceiling.max_sample_rate
        assert 1 <= config.max_polyphony <= ceiling.max_polyphony
        assert config.bit_depth <= ceiling.max_bit_depth
        assert quality_rank(config.quality_level) <= quality_rank(ceiling.max_quality_level)
        assert not config.enable_effects or ceiling.allow_effects
        assert not config.enable_visualization or ceiling.allow_visualization
        assert not config.background_processing or ceiling.allow_background_processing


def test_lower_battery_never_raises_quality():
    pipeline = AdjustmentPipeline(RuleTable())
    for tier, prefs, thermal in itertools.product(TIER_ORDER, PREFERENCE_SETS, THERMAL_STATES):
        ranks = [
            quality_rank(pipeline.run(_profile(tier), _snapshot(level, thermal=thermal), prefs).quality_level)
            for level in BATTERY_LEVELS
        ]
        assert ranks == sorted(ranks, reverse=True), (tier, prefs, thermal, ranks)


def test_low_end_device_under_stress_prefers_survival_over_quality():
    pipeline = AdjustmentPipeline(RuleTable())
    profile = _profile("low-end", cores=2, memory=2.0)
    snapshot = _snapshot(0.15, thermal="serious")
    config = pipeline.run(profile, snapshot, UserPreferences(prioritize_quality=True))

    assert quality_rank(config.quality_level) <= quality_rank("low")
    assert config.enable_effects is False
    assert config.max_polyphony <= 4


def test_premium_device_with_full_battery_gets_ultra_quality():
    pipeline = AdjustmentPipeline(RuleTable())
    snapshot = _snapshot(0.9, charging=True, effective_type="wifi", connection="wifi")
    prefs = UserPreferences(prioritize_quality=True, prioritize_stability=True)
    config = pipeline.run(_profile("premium"), snapshot, prefs)

    assert config.quality_level == "ultra"
    assert config.max_polyphony >= 16
    assert config.enable_effects is True
    assert config.enable_visualization is True


def test_slowest_networks_force_visualization_and_background_off():
    pipeline = AdjustmentPipeline(RuleTable())
    for tier, prefs, effective_type in itertools.product(
        TIER_ORDER, [*PREFERENCE_SETS, GREEDY_OVERRIDES], ("slow-2g", "2g")
    ):
        config = pipeline.run(_profile(tier), _snapshot(0.95, effective_type=effective_type), prefs)
        assert config.enable_visualization is False
        assert config.background_processing is False


def test_recommendations_cover_every_power_mode_within_ceiling():
    rules = RuleTable()
    pipeline = AdjustmentPipeline(rules)
    recommendations = pipeline.recommendations(_profile("high-end"))

    assert set(recommendations) == {"high-performance", "balanced", "battery-saver", "ultra-low-power"}
    assert recommendations["high-performance"].quality_level == "high"
    assert recommendations["battery-saver"].quality_level == "minimal"
    assert recommendations["ultra-low-power"].max_polyphony == 2
    assert recommendations["balanced"].buffer_size == 512
    for config in recommendations.values():
        assert config.max_polyphony <= rules.ceiling("high-end").max_polyphony


def test_quality_preference_cannot_enable_features_the_runtime_lacks():
    rules = RuleTable(
        platform_rules={
            "chrome": PlatformRule(
                min_buffer_size=128,
                max_polyphony=64,
                max_audio_contexts=8,
                supports_effects=False,
                supports_visualization=False,
            )
        }
    )
    pipeline = AdjustmentPipeline(rules)
    greedy = UserPreferences(
        prioritize_quality=True,
        prioritize_stability=False,
        overrides={"enable_effects": True, "enable_visualization": True},
    )
    for tier in ("mid-range", "high-end", "premium"):
        config = pipeline.run(_profile(tier), _snapshot(0.9, effective_type="wifi", connection="wifi"), greedy)
        assert config.enable_effects is False
        assert config.enable_visualization is False


def test_overrides_are_reclamped_to_platform_limits():
    pipeline = AdjustmentPipeline(RuleTable())
    snapshot = _snapshot(0.9, effective_type="wifi", connection="wifi")
    overrides = UserPreferences(prioritize_stability=False, overrides={"max_polyphony": 32, "buffer_size": 64})

    webview = pipeline.run(_profile("premium", platform="chrome-webview"), snapshot, overrides)
    assert webview.max_polyphony <= 8
    assert webview.buffer_size >= 128

    safari = pipeline.run(_profile("premium", platform="safari"), snapshot, overrides)
    assert safari.buffer_size >= 256

    no_worklet = pipeline.run(_profile("premium", worklet=False), snapshot, overrides)
    assert no_worklet.buffer_size >= 512
    assert no_worklet.max_polyphony <= 4
