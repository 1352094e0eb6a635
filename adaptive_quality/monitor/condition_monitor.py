"""ConditionMonitor — aggregates live telemetry into a ConditionSnapshot.

Battery and network probes are read concurrently with a timeout; a probe that
fails keeps its last known reading (or the documented default) and marks the
snapshot stale. Performance samples are pushed in and kept in a bounded ring
buffer. Samples that cross a hard limit fire the immediate-action callback.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

from adaptive_quality.defaults import (
    BATTERY_CHANGE_TRIGGER,
    DEFAULT_BATTERY_LEVEL,
    DEFAULT_CONNECTION_TYPE,
    DEFAULT_DOWNLINK_MBPS,
    DEFAULT_EFFECTIVE_TYPE,
    DEFAULT_RTT_MS,
    IMMEDIATE_CPU_PERCENT,
    IMMEDIATE_DROPOUTS,
    IMMEDIATE_LATENCY_MS,
    IMMEDIATE_MEMORY_MB,
    POWER_MODE_BALANCED,
    POWER_MODE_BATTERY_SAVER,
    POWER_MODE_HIGH_PERFORMANCE,
    PROBE_TIMEOUT_S,
    SAMPLE_BUFFER_SIZE,
    THERMAL_CRITICAL_CPU,
    THERMAL_FAIR_CPU,
    THERMAL_REDUCTION,
    THERMAL_SERIOUS_CPU,
    THERMAL_WINDOW,
)
from adaptive_quality.model import (
    BatteryReading,
    ConditionSnapshot,
    NetworkReading,
    PerformanceSample,
    PowerMode,
    ThermalState,
)
from adaptive_quality.probes import BatteryProbe, NetworkProbe, PerformanceProbe
from adaptive_quality.rules.table import SLOW_NETWORK_TIERS
from adaptive_quality.utils.math import clamp, mean

logger = logging.getLogger(__name__)

_FAILED = object()

DEFAULT_BATTERY = BatteryReading(level=DEFAULT_BATTERY_LEVEL, charging=False)
DEFAULT_NETWORK = NetworkReading(
    connection_type=DEFAULT_CONNECTION_TYPE,
    effective_type=DEFAULT_EFFECTIVE_TYPE,
    downlink_mbps=DEFAULT_DOWNLINK_MBPS,
    rtt_ms=DEFAULT_RTT_MS,
)


def thermal_state_for(avg_cpu: float) -> ThermalState:
    if avg_cpu > THERMAL_CRITICAL_CPU:
        return "critical"
    if avg_cpu > THERMAL_SERIOUS_CPU:
        return "serious"
    if avg_cpu > THERMAL_FAIR_CPU:
        return "fair"
    return "nominal"


def power_mode_for(level: float, charging: bool) -> PowerMode:
    if charging or level > POWER_MODE_HIGH_PERFORMANCE:
        return "high-performance"
    if level > POWER_MODE_BALANCED:
        return "balanced"
    if level > POWER_MODE_BATTERY_SAVER:
        return "battery-saver"
    return "ultra-low-power"


def sanitize_sample(sample: PerformanceSample) -> PerformanceSample:
    return PerformanceSample(
        cpu_usage=clamp(sample.cpu_usage, 0.0, 100.0),
        latency_ms=max(sample.latency_ms, 0.0),
        dropouts=max(sample.dropouts, 0),
        memory_mb=max(sample.memory_mb, 0.0),
        buffer_underruns=max(sample.buffer_underruns, 0),
        timestamp=sample.timestamp,
    )


def immediate_action_reason(sample: PerformanceSample) -> str | None:
    if sample.cpu_usage > IMMEDIATE_CPU_PERCENT:
        return f"cpu {sample.cpu_usage:.0f}%"
    if sample.latency_ms > IMMEDIATE_LATENCY_MS:
        return f"latency {sample.latency_ms:.0f}ms"
    if sample.dropouts > IMMEDIATE_DROPOUTS:
        return f"{sample.dropouts} dropouts"
    if sample.memory_mb > IMMEDIATE_MEMORY_MB:
        return f"memory {sample.memory_mb:.0f}MB"
    return None


class ConditionMonitor:
    def __init__(
        self,
        *,
        battery_probe: BatteryProbe | None = None,
        network_probe: NetworkProbe | None = None,
        performance_probe: PerformanceProbe | None = None,
        timeout_s: float = PROBE_TIMEOUT_S,
        sample_capacity: int = SAMPLE_BUFFER_SIZE,
        on_immediate_action: Callable[[str], None] | None = None,
    ) -> None:
        self.battery_probe = battery_probe
        self.network_probe = network_probe
        self.performance_probe = performance_probe
        self.timeout_s = timeout_s
        self.on_immediate_action = on_immediate_action
        self._samples: deque[PerformanceSample] = deque(maxlen=sample_capacity)
        self._battery: BatteryReading | None = None
        self._network: NetworkReading | None = None
        self.refresh_count = 0
        self._snapshot = self._build_snapshot(DEFAULT_BATTERY, DEFAULT_NETWORK, stale=True)

    @property
    def snapshot(self) -> ConditionSnapshot:
        """Last built snapshot. Never blocks."""
        return self._snapshot

    @property
    def samples(self) -> list[PerformanceSample]:
        return list(self._samples)

    def record_performance_sample(self, sample: PerformanceSample) -> None:
        reason = self._ingest(sample)
        if reason is not None:
            self._signal(f"performance: {reason}")

    async def refresh(self, *, notify: bool = True) -> ConditionSnapshot:
        """Read probes and swap in a new snapshot.

        With ``notify=False`` nothing is signalled: the caller is already
        evaluating and sees every reading taken here.
        """
        if self.performance_probe is not None:
            sample = await self._read(self.performance_probe.sample, "performance")
            if sample is not None and sample is not _FAILED:
                reason = self._ingest(sample)
                if notify and reason is not None:
                    self._signal(f"performance: {reason}")

        battery, network = await asyncio.gather(
            self._read(self.battery_probe.read if self.battery_probe else None, "battery"),
            self._read(self.network_probe.read if self.network_probe else None, "network"),
        )
        stale = battery is _FAILED or network is _FAILED
        if battery is _FAILED:
            battery = self._battery or DEFAULT_BATTERY
        elif battery is None:
            battery = DEFAULT_BATTERY
        else:
            battery = BatteryReading(level=clamp(battery.level, 0.0, 1.0), charging=battery.charging)
        if network is _FAILED:
            network = self._network or DEFAULT_NETWORK
        elif network is None:
            network = DEFAULT_NETWORK

        previous = self._snapshot
        snapshot = self._build_snapshot(battery, network, stale=stale)
        self._battery = battery
        self._network = network
        self._snapshot = snapshot
        self.refresh_count += 1
        if notify:
            self._check_significant_change(previous, snapshot)
        return snapshot

    def _ingest(self, sample: PerformanceSample) -> str | None:
        clean = sanitize_sample(sample)
        self._samples.append(clean)
        reason = immediate_action_reason(clean)
        if reason is not None:
            logger.info("Performance sample crossed limit: %s", reason)
        return reason

    def _build_snapshot(
        self,
        battery: BatteryReading,
        network: NetworkReading,
        *,
        stale: bool,
    ) -> ConditionSnapshot:
        samples = list(self._samples)
        recent = samples[-THERMAL_WINDOW:]
        thermal = thermal_state_for(mean([s.cpu_usage for s in recent]))
        return ConditionSnapshot(
            battery_level=battery.level,
            charging=battery.charging,
            power_mode=power_mode_for(battery.level, battery.charging),
            thermal_state=thermal,
            performance_reduction=THERMAL_REDUCTION[thermal],
            avg_cpu_usage=mean([s.cpu_usage for s in samples]),
            avg_latency_ms=mean([s.latency_ms for s in samples]),
            avg_dropouts=mean([float(s.dropouts) for s in samples]),
            avg_memory_mb=mean([s.memory_mb for s in samples]),
            sample_count=len(samples),
            network=network,
            stale=stale,
        )

    async def _read(self, reader: Callable[[], Awaitable[Any]] | None, name: str) -> Any:
        if reader is None:
            return None
        try:
            return await asyncio.wait_for(reader(), timeout=self.timeout_s)
        except Exception as exc:
            logger.warning("%s probe failed, keeping last reading: %r", name.capitalize(), exc)
            return _FAILED

    def _check_significant_change(self, previous: ConditionSnapshot, current: ConditionSnapshot) -> None:
        if self.refresh_count <= 1:
            return
        if abs(current.battery_level - previous.battery_level) > BATTERY_CHANGE_TRIGGER:
            self._signal(f"battery {previous.battery_level:.2f} -> {current.battery_level:.2f}")
        if (
            current.network.effective_type in SLOW_NETWORK_TIERS
            and previous.network.effective_type not in SLOW_NETWORK_TIERS
        ):
            self._signal(f"network degraded to {current.network.effective_type}")

    def _signal(self, reason: str) -> None:
        if self.on_immediate_action is None:
            return
        try:
            self.on_immediate_action(reason)
        except Exception as exc:
            logger.warning("Immediate-action callback failed: %s", exc)

    def clear(self) -> None:
        self._samples.clear()
        self._battery = None
        self._network = None
        self.refresh_count = 0
        self._snapshot = self._build_snapshot(DEFAULT_BATTERY, DEFAULT_NETWORK, stale=True)
