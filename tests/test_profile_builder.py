import asyncio

from adaptive_quality.device.profile_builder import (
    DEFAULT_PROFILE,
    DeviceProfileBuilder,
    classify_tier,
    estimate_polyphony,
    heuristic_score,
    parse_user_agent,
)
from adaptive_quality.model import HardwareInfo
from adaptive_quality.probes import StaticHardwareProbe

SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15"
)
CHROME_ANDROID = (
    "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
ANDROID_WEBVIEW = (
    "Mozilla/5.0 (Linux; Android 12; SM-T870; wv) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Version/4.0 Chrome/118.0.0.0 Safari/537.36"
)


class _FailingProbe:
    async def read(self) -> HardwareInfo:
        raise RuntimeError("hardware query unsupported")


class _SlowProbe:
    async def read(self) -> HardwareInfo:
        await asyncio.sleep(10)
        return HardwareInfo(cpu_cores=8, memory_gb=16)


def _raise_benchmark() -> float:
    raise RuntimeError("no timer")


def test_classify_tier_decision_table():
    assert classify_tier(2, 2.0, 99.0) == "low-end"
    assert classify_tier(8, 8.0, 85.0) == "premium"
    assert classify_tier(8, 8.0, 84.9) == "high-end"
    assert classify_tier(6, 6.0, 70.0) == "high-end"
    assert classify_tier(4, 4.0, 50.0) == "mid-range"
    assert classify_tier(4, 4.0, 49.0) == "low-end"
    assert classify_tier(3, 16.0, 95.0) == "low-end"


def test_classify_tier_ties_resolve_to_lower_tier():
    # 8 cores and a premium score but only 7.9 GB: one axis short, so high-end.
    assert classify_tier(8, 7.9, 99.0) == "high-end"
    assert classify_tier(5, 6.0, 99.0) == "mid-range"


def test_heuristic_score_and_polyphony_estimate():
    assert heuristic_score(8, 8.0) == 90.0
    assert heuristic_score(4, 4.0) == 60.0
    assert heuristic_score(2, 8.0) == 30.0

    assert estimate_polyphony(44100, 512) == 8
    assert estimate_polyphony(48000, 128) == 32
    assert estimate_polyphony(22050, 2048) == 4
    assert estimate_polyphony(44100, 0) == 4


def test_parse_user_agent_detects_platform_architecture_and_tablet():
    assert parse_user_agent(SAFARI_MAC) == ("safari", "x64", False)
    assert parse_user_agent(CHROME_ANDROID) == ("chrome", "arm64", False)
    assert parse_user_agent(ANDROID_WEBVIEW) == ("chrome-webview", "arm64", True)
    assert parse_user_agent("Linux 6.1 (x86_64) Python/3.12")[0] == "native"
    assert parse_user_agent("")[0] == "unknown"


def test_build_classifies_premium_device():
    async def scenario() -> None:
        probe = StaticHardwareProbe(HardwareInfo(cpu_cores=8, memory_gb=16.0, user_agent=SAFARI_MAC, gpu=True))
        builder = DeviceProfileBuilder(probe, benchmark=lambda: 95.0)
        profile = await builder.build()

        assert profile.tier == "premium"
        assert profile.platform == "safari"
        assert profile.gpu is True
        assert profile.thermal_threshold == 80.0
        assert profile.max_sample_rate == 44100
        assert profile.min_buffer_size == 512
        assert profile.max_polyphony == 8

    asyncio.run(scenario())


def test_build_uses_reported_audio_limits():
    async def scenario() -> None:
        info = HardwareInfo(
            cpu_cores=6,
            memory_gb=8.0,
            max_sample_rate=48000,
            min_buffer_size=128,
            max_polyphony=24,
        )
        profile = await DeviceProfileBuilder(StaticHardwareProbe(info), benchmark=lambda: 72.0).build()

        assert profile.tier == "high-end"
        assert profile.thermal_threshold == 75.0
        assert (profile.max_sample_rate, profile.min_buffer_size, profile.max_polyphony) == (48000, 128, 24)

    asyncio.run(scenario())


def test_build_low_end_ignores_benchmark_score():
    async def scenario() -> None:
        probe = StaticHardwareProbe(HardwareInfo(cpu_cores=2, memory_gb=2.0))
        profile = await DeviceProfileBuilder(probe, benchmark=lambda: 100.0).build()
        assert profile.tier == "low-end"
        assert profile.thermal_threshold == 65.0

    asyncio.run(scenario())


def test_build_falls_back_to_default_profile_on_probe_failure():
    async def scenario() -> None:
        profile = await DeviceProfileBuilder(_FailingProbe(), benchmark=lambda: 95.0).build()
        assert profile == DEFAULT_PROFILE
        assert profile.tier == "mid-range"
        assert profile.cpu_cores == 4
        assert profile.memory_gb == 4.0
        assert profile.gpu is False

    asyncio.run(scenario())


def test_build_falls_back_to_default_profile_on_timeout():
    async def scenario() -> None:
        builder = DeviceProfileBuilder(_SlowProbe(), benchmark=lambda: 95.0, timeout_s=0.01)
        assert await builder.build() == DEFAULT_PROFILE

    asyncio.run(scenario())


def test_failed_benchmark_uses_hardware_heuristic():
    async def scenario() -> None:
        probe = StaticHardwareProbe(HardwareInfo(cpu_cores=8, memory_gb=8.0))
        profile = await DeviceProfileBuilder(probe, benchmark=_raise_benchmark).build()
        assert profile.benchmark_score == 90.0
        assert profile.tier == "premium"

    asyncio.run(scenario())


def test_missing_hardware_fields_use_defaults():
    async def scenario() -> None:
        profile = await DeviceProfileBuilder(StaticHardwareProbe(HardwareInfo()), benchmark=None).build()
        assert profile.cpu_cores == 4
        assert profile.memory_gb == 4.0
        assert profile.benchmark_score == 60.0
        assert profile.tier == "mid-range"

    asyncio.run(scenario())
