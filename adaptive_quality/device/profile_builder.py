"""DeviceProfileBuilder — classifies static hardware into a DeviceTier.

The profile is built once when the engine starts and held for the session.
Probe failures and timeouts never propagate: the builder falls back to a
conservative mid-range profile and logs a warning.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from collections.abc import Callable

from adaptive_quality.defaults import (
    BENCHMARK_ITERATIONS,
    BENCHMARK_MS_PENALTY,
    PROBE_TIMEOUT_S,
    PROFILE_DEFAULT_BUFFER_SIZE as DEFAULT_BUFFER_SIZE,
    PROFILE_DEFAULT_CORES as DEFAULT_CORES,
    PROFILE_DEFAULT_MEMORY_GB as DEFAULT_MEMORY_GB,
    PROFILE_DEFAULT_POLYPHONY as DEFAULT_POLYPHONY,
    PROFILE_DEFAULT_SAMPLE_RATE as DEFAULT_SAMPLE_RATE,
    PROFILE_HIGH_END_MIN as HIGH_END_MIN,
    PROFILE_LOW_END_MAX_CORES as LOW_END_MAX_CORES,
    PROFILE_LOW_END_MAX_MEMORY_GB as LOW_END_MAX_MEMORY_GB,
    PROFILE_MAX_ESTIMATED_POLYPHONY as MAX_ESTIMATED_POLYPHONY,
    PROFILE_MID_RANGE_MIN as MID_RANGE_MIN,
    PROFILE_MIN_ESTIMATED_POLYPHONY as MIN_ESTIMATED_POLYPHONY,
    PROFILE_PREMIUM_MIN as PREMIUM_MIN,
    THERMAL_THRESHOLD_BY_TIER,
)
from adaptive_quality.model import DeviceProfile, DeviceTier, HardwareInfo
from adaptive_quality.probes import HardwareProbe
from adaptive_quality.utils.math import clamp

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = DeviceProfile(
    cpu_cores=DEFAULT_CORES,
    memory_gb=DEFAULT_MEMORY_GB,
    architecture="unknown",
    gpu=False,
    platform="unknown",
    is_tablet=False,
    low_latency_worklet=True,
    max_sample_rate=DEFAULT_SAMPLE_RATE,
    min_buffer_size=DEFAULT_BUFFER_SIZE,
    max_polyphony=DEFAULT_POLYPHONY,
    benchmark_score=60.0,
    tier="mid-range",
    thermal_threshold=THERMAL_THRESHOLD_BY_TIER["mid-range"],
)

_ARM_PATTERN = re.compile(r"arm|aarch64|iphone|ipad|android", re.IGNORECASE)
_TABLET_PATTERN = re.compile(r"ipad|tablet|(android(?!.*mobile))", re.IGNORECASE)


def classify_tier(cpu_cores: int, memory_gb: float, benchmark_score: float) -> DeviceTier:
    """Map hardware figures to a tier; a tie on any axis resolves downwards."""
    if cpu_cores <= LOW_END_MAX_CORES and memory_gb <= LOW_END_MAX_MEMORY_GB:
        return "low-end"

    table: tuple[tuple[DeviceTier, tuple[int, float, float]], ...] = (
        ("premium", PREMIUM_MIN),
        ("high-end", HIGH_END_MIN),
        ("mid-range", MID_RANGE_MIN),
    )
    for tier, (min_cores, min_memory, min_score) in table:
        if cpu_cores >= min_cores and memory_gb >= min_memory and benchmark_score >= min_score:
            return tier
    return "low-end"


def heuristic_score(cpu_cores: int, memory_gb: float) -> float:
    """Score used when the synthetic benchmark cannot run."""
    if cpu_cores >= 8 and memory_gb >= 8:
        return 90.0
    if cpu_cores >= 4 and memory_gb >= 4:
        return 60.0
    return 30.0


def estimate_polyphony(sample_rate: int, buffer_size: int) -> int:
    if buffer_size <= 0:
        return MIN_ESTIMATED_POLYPHONY
    estimated = sample_rate // buffer_size // 10
    return int(clamp(estimated, MIN_ESTIMATED_POLYPHONY, MAX_ESTIMATED_POLYPHONY))


def parse_user_agent(user_agent: str) -> tuple[str, str, bool]:
    """Return ``(platform, architecture, is_tablet)`` for a user-agent-like string."""
    ua = user_agent.lower()
    if "; wv)" in ua or " wv " in ua:
        platform_tag = "chrome-webview"
    elif "edg/" in ua:
        platform_tag = "edge"
    elif "firefox/" in ua:
        platform_tag = "firefox"
    elif "chrome/" in ua or "crios/" in ua:
        platform_tag = "chrome"
    elif "safari/" in ua:
        platform_tag = "safari"
    elif "python/" in ua:
        platform_tag = "native"
    else:
        platform_tag = "unknown"

    architecture = "arm64" if _ARM_PATTERN.search(ua) else "x64"
    is_tablet = bool(_TABLET_PATTERN.search(ua))
    return platform_tag, architecture, is_tablet


def run_cpu_benchmark(iterations: int = BENCHMARK_ITERATIONS) -> float:
    """Time a trigonometric loop and map the duration to a 0–100 score."""
    start = time.perf_counter()
    acc = 0.0
    for i in range(iterations):
        acc += math.sin(i) * math.cos(i)
    duration_ms = (time.perf_counter() - start) * 1000.0
    return clamp(100.0 - duration_ms * BENCHMARK_MS_PENALTY, 0.0, 100.0)


class DeviceProfileBuilder:
    def __init__(
        self,
        probe: HardwareProbe,
        *,
        benchmark: Callable[[], float] | None = run_cpu_benchmark,
        timeout_s: float = PROBE_TIMEOUT_S,
    ) -> None:
        self.probe = probe
        self.benchmark = benchmark
        self.timeout_s = timeout_s

    async def build(self) -> DeviceProfile:
        try:
            info = await asyncio.wait_for(self.probe.read(), timeout=self.timeout_s)
        except Exception as exc:
            logger.warning("Hardware probe failed, using default profile: %r", exc)
            return DEFAULT_PROFILE

        try:
            profile = await self._profile_from(info)
        except Exception as exc:
            logger.warning("Device classification failed, using default profile: %r", exc)
            return DEFAULT_PROFILE

        logger.info(
            "Device profile: tier=%s cores=%d memory=%.1fGB score=%.0f platform=%s",
            profile.tier,
            profile.cpu_cores,
            profile.memory_gb,
            profile.benchmark_score,
            profile.platform,
        )
        return profile

    async def _profile_from(self, info: HardwareInfo) -> DeviceProfile:
        cores = info.cpu_cores if info.cpu_cores and info.cpu_cores > 0 else DEFAULT_CORES
        memory = info.memory_gb if info.memory_gb and info.memory_gb > 0 else DEFAULT_MEMORY_GB
        score = await self._score(cores, memory)
        tier = classify_tier(cores, memory, score)

        sample_rate = info.max_sample_rate or DEFAULT_SAMPLE_RATE
        buffer_size = info.min_buffer_size or DEFAULT_BUFFER_SIZE
        polyphony = info.max_polyphony or estimate_polyphony(sample_rate, buffer_size)
        platform_tag, architecture, is_tablet = parse_user_agent(info.user_agent)

        return DeviceProfile(
            cpu_cores=cores,
            memory_gb=memory,
            architecture=architecture,
            gpu=info.gpu,
            platform=platform_tag,
            is_tablet=is_tablet,
            low_latency_worklet=info.low_latency_worklet,
            max_sample_rate=sample_rate,
            min_buffer_size=buffer_size,
            max_polyphony=polyphony,
            benchmark_score=score,
            tier=tier,
            thermal_threshold=THERMAL_THRESHOLD_BY_TIER[tier],
        )

    async def _score(self, cores: int, memory: float) -> float:
        if self.benchmark is None:
            return heuristic_score(cores, memory)
        try:
            score = await asyncio.wait_for(asyncio.to_thread(self.benchmark), timeout=self.timeout_s)
        except Exception as exc:
            logger.warning("CPU benchmark failed, using hardware heuristic: %r", exc)
            return heuristic_score(cores, memory)
        return clamp(float(score), 0.0, 100.0)
