"""Probe interfaces consumed by the engine.

Every probe is an async callable object so that slow platform queries can be
bounded with ``asyncio.wait_for``. ``Static*`` probes return fixed readings
(tests, embedding hosts that already know their hardware); ``Host*`` probes
read the local machine through :mod:`psutil`.
"""

from __future__ import annotations

import asyncio
import platform
import sys
from typing import Protocol

import psutil

from adaptive_quality.model import (
    BatteryReading,
    HardwareInfo,
    NetworkReading,
    PerformanceSample,
    UserPreferences,
)


class HardwareProbe(Protocol):
    async def read(self) -> HardwareInfo: ...


class BatteryProbe(Protocol):
    async def read(self) -> BatteryReading | None: ...


class NetworkProbe(Protocol):
    async def read(self) -> NetworkReading | None: ...


class PerformanceProbe(Protocol):
    async def sample(self) -> PerformanceSample | None: ...


class PreferenceStore(Protocol):
    async def load(self) -> UserPreferences | None: ...

    async def save(self, preferences: UserPreferences) -> None: ...


# ── Static probes ────────────────────────────────────────────────


class StaticHardwareProbe:
    def __init__(self, info: HardwareInfo) -> None:
        self.info = info

    async def read(self) -> HardwareInfo:
        return self.info


class StaticBatteryProbe:
    def __init__(self, reading: BatteryReading | None = None) -> None:
        self.reading = reading

    def set(self, level: float, charging: bool = False) -> None:
        self.reading = BatteryReading(level=level, charging=charging)

    async def read(self) -> BatteryReading | None:
        return self.reading


class StaticNetworkProbe:
    def __init__(self, reading: NetworkReading | None = None) -> None:
        self.reading = reading

    async def read(self) -> NetworkReading | None:
        return self.reading


class InMemoryPreferenceStore:
    def __init__(self, preferences: UserPreferences | None = None) -> None:
        self._preferences = preferences
        self.saves = 0

    async def load(self) -> UserPreferences | None:
        return self._preferences

    async def save(self, preferences: UserPreferences) -> None:
        self._preferences = preferences
        self.saves += 1


# ── Host probes (psutil) ─────────────────────────────────────────


def _host_user_agent() -> str:
    return (
        f"{platform.system()} {platform.release()} ({platform.machine()}) "
        f"Python/{sys.version_info.major}.{sys.version_info.minor}"
    )


class HostHardwareProbe:
    """Reads core count and installed memory of the local machine."""

    async def read(self) -> HardwareInfo:
        return await asyncio.to_thread(self._read_sync)

    def _read_sync(self) -> HardwareInfo:
        cores = psutil.cpu_count(logical=True)
        memory_gb = psutil.virtual_memory().total / (1024**3)
        return HardwareInfo(
            cpu_cores=cores,
            memory_gb=round(memory_gb, 1),
            user_agent=_host_user_agent(),
            gpu=False,
        )


class HostBatteryProbe:
    """Battery level via ``psutil.sensors_battery``; ``None`` on mains-only hosts."""

    async def read(self) -> BatteryReading | None:
        battery = await asyncio.to_thread(psutil.sensors_battery)
        if battery is None:
            return None
        plugged = bool(battery.power_plugged) if battery.power_plugged is not None else False
        return BatteryReading(level=battery.percent / 100.0, charging=plugged)


class HostPerformanceProbe:
    """Samples system CPU load and this process's resident memory."""

    def __init__(self) -> None:
        self._process = psutil.Process()
        # First call primes the counter and always returns 0.0.
        psutil.cpu_percent(interval=None)

    async def sample(self) -> PerformanceSample | None:
        return await asyncio.to_thread(self._sample_sync)

    def _sample_sync(self) -> PerformanceSample:
        cpu_percent = psutil.cpu_percent(interval=None)
        memory_mb = self._process.memory_info().rss / (1024 * 1024)
        return PerformanceSample(cpu_usage=cpu_percent, memory_mb=memory_mb)
