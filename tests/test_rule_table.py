from dataclasses import replace

import pytest

from adaptive_quality.model import TIER_ORDER, quality_rank
from adaptive_quality.rules.table import DEFAULT_PLATFORM, NO_NETWORK_DELTA, RuleTable


def test_baselines_follow_tier_order():
    rules = RuleTable()
    baselines = [rules.baseline(tier) for tier in TIER_ORDER]

    assert [b.sample_rate for b in baselines] == [22050, 44100, 48000, 48000]
    assert [b.buffer_size for b in baselines] == [1024, 512, 256, 128]
    assert [b.max_polyphony for b in baselines] == [4, 8, 16, 32]
    assert [b.quality_level for b in baselines] == ["low", "medium", "high", "ultra"]
    assert [b.enable_effects for b in baselines] == [False, True, True, True]
    assert [b.enable_visualization for b in baselines] == [False, False, True, True]


def test_premium_baseline_meets_ultra_ceiling():
    rules = RuleTable()
    premium = rules.baseline("premium")
    ceiling = rules.ceiling("premium")
    assert premium.quality_level == ceiling.max_quality_level == "ultra"
    assert premium.max_polyphony == ceiling.max_polyphony


def test_every_baseline_sits_inside_its_ceiling():
    rules = RuleTable()
    for tier in TIER_ORDER:
        baseline = rules.baseline(tier)
        ceiling = rules.ceiling(tier)
        assert baseline.sample_rate <= ceiling.max_sample_rate
        assert baseline.max_polyphony <= ceiling.max_polyphony
        assert quality_rank(baseline.quality_level) <= quality_rank(ceiling.max_quality_level)


def test_unknown_keys_return_default_entries():
    rules = RuleTable()
    assert rules.baseline("quantum") == rules.baseline("mid-range")
    assert rules.ceiling("quantum") == rules.ceiling("mid-range")
    assert rules.stability_polyphony("quantum") == rules.stability_polyphony("mid-range") == 8
    assert rules.network("5g") is NO_NETWORK_DELTA
    assert rules.platform("lynx") is DEFAULT_PLATFORM


def test_network_rules():
    rules = RuleTable()
    for slow in ("slow-2g", "2g"):
        rule = rules.network(slow)
        assert rule.quality_reduction == 0.6
        assert rule.compression_increase == 0.4
        assert rule.forces_features_off is True
        assert {"enable_visualization", "background_processing"} <= rule.disabled_features
    assert rules.network("wifi").quality_reduction == 0.0


def test_platform_rules():
    rules = RuleTable()
    assert rules.platform("safari").min_buffer_size == 256
    assert rules.platform("safari").max_audio_contexts == 6
    assert rules.platform("chrome-webview").max_polyphony == 8
    assert rules.platform("firefox").max_audio_contexts == 10
    assert DEFAULT_PLATFORM.max_audio_contexts == 4


def test_table_is_read_only():
    rules = RuleTable()
    with pytest.raises(TypeError):
        rules.baselines["premium"] = rules.baseline("low-end")  # type: ignore[index]


def test_inconsistent_baseline_is_rejected_at_construction():
    defaults = RuleTable()
    baselines = dict(defaults.baselines)
    baselines["low-end"] = replace(baselines["low-end"], max_polyphony=16, enable_effects=True)
    with pytest.raises(ValueError, match="low-end"):
        RuleTable(baselines=baselines)
