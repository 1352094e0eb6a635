import logging

import pytest

from config import EngineSettings
from adaptive_quality.model import HardwareInfo
from adaptive_quality.probes import HostHardwareProbe, HostPerformanceProbe, StaticHardwareProbe
from interfaces.engine_factory import build_engine, configure_logging


def test_build_engine_fills_host_probes():
    engine = build_engine(settings=EngineSettings(history_size=7))
    assert isinstance(engine.profile_builder.probe, HostHardwareProbe)
    assert isinstance(engine.monitor.performance_probe, HostPerformanceProbe)
    assert engine.history.capacity == 7


def test_build_engine_keeps_explicit_probes():
    probe = StaticHardwareProbe(HardwareInfo(cpu_cores=4, memory_gb=4.0))
    engine = build_engine(settings=EngineSettings(), hardware_probe=probe, use_host_probes=False)
    assert engine.profile_builder.probe is probe
    assert engine.monitor.battery_probe is None
    assert engine.monitor.performance_probe is None


def test_build_engine_without_hardware_probe_requires_host_probes():
    with pytest.raises(ValueError):
        build_engine(settings=EngineSettings(), use_host_probes=False)


def test_configure_logging_maps_level_names(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging("DEBUG")
    configure_logging("NOT_A_LEVEL")

    assert [call["level"] for call in calls] == [logging.DEBUG, logging.INFO]
