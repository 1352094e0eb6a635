from __future__ import annotations

import logging

from config import LOG_LEVEL, EngineSettings, load_settings
from adaptive_quality.engine import AdaptiveQualityEngine
from adaptive_quality.probes import (
    BatteryProbe,
    HardwareProbe,
    HostBatteryProbe,
    HostHardwareProbe,
    HostPerformanceProbe,
    NetworkProbe,
    PerformanceProbe,
    PreferenceStore,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_engine(
    *,
    settings: EngineSettings | None = None,
    hardware_probe: HardwareProbe | None = None,
    battery_probe: BatteryProbe | None = None,
    network_probe: NetworkProbe | None = None,
    performance_probe: PerformanceProbe | None = None,
    preference_store: PreferenceStore | None = None,
    use_host_probes: bool = True,
) -> AdaptiveQualityEngine:
    """Wire an engine from environment settings; host probes fill unset slots."""
    resolved = settings or load_settings()

    if use_host_probes:
        hardware_probe = hardware_probe or HostHardwareProbe()
        battery_probe = battery_probe or HostBatteryProbe()
        if performance_probe is None:
            try:
                performance_probe = HostPerformanceProbe()
            except Exception as exc:
                logger.warning("Host performance probe unavailable, relying on pushed samples: %s", exc)
    elif hardware_probe is None:
        raise ValueError("hardware_probe is required when use_host_probes is False")

    return AdaptiveQualityEngine(
        hardware_probe,
        battery_probe=battery_probe,
        network_probe=network_probe,
        performance_probe=performance_probe,
        preference_store=preference_store,
        settings=resolved,
    )
