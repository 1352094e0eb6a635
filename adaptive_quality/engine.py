"""AdaptiveQualityEngine — owns the control loop and exposes the consumer API.

The engine is an explicit instance created by its owner (see
``interfaces/engine_factory.py``); ``dispose()`` returns it to a pristine state
so tests can build and tear down engines freely.

Usage::

    engine = build_engine()
    await engine.start()
    unsubscribe = engine.on_decision_changed(apply_to_mixer)
    config = engine.get_current_config()   # never blocks
    ...
    await engine.stop()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from config import EngineSettings
from adaptive_quality.decision.history import DecisionHistory
from adaptive_quality.decision.synthesizer import DecisionSynthesizer
from adaptive_quality.device.profile_builder import DEFAULT_PROFILE, DeviceProfileBuilder, run_cpu_benchmark
from adaptive_quality.events import DECISION_CHANGED, Event, EventBus
from adaptive_quality.model import (
    ConditionSnapshot,
    DeviceProfile,
    OptimizationDecision,
    PerformanceSample,
    PowerMode,
    QualityConfig,
    UserPreferences,
)
from adaptive_quality.monitor.condition_monitor import ConditionMonitor
from adaptive_quality.pipeline.adjustment import AdjustmentPipeline
from adaptive_quality.pipeline.stage_ceiling import enforce_ceiling
from adaptive_quality.probes import (
    BatteryProbe,
    HardwareProbe,
    NetworkProbe,
    PerformanceProbe,
    PreferenceStore,
)
from adaptive_quality.rules.table import SAFE_CONFIG, RuleTable
from adaptive_quality.scheduler.reevaluation import IMMEDIATE, ReevaluationScheduler

logger = logging.getLogger(__name__)

GATED_TRIGGERS = frozenset({"timer", IMMEDIATE})


class AdaptiveQualityEngine:
    def __init__(
        self,
        hardware_probe: HardwareProbe,
        *,
        battery_probe: BatteryProbe | None = None,
        network_probe: NetworkProbe | None = None,
        performance_probe: PerformanceProbe | None = None,
        preference_store: PreferenceStore | None = None,
        settings: EngineSettings | None = None,
        rules: RuleTable | None = None,
        benchmark: Callable[[], float] | None = run_cpu_benchmark,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.rules = rules or RuleTable()
        self.preference_store = preference_store
        self.event_bus = EventBus()
        self.profile_builder = DeviceProfileBuilder(
            hardware_probe,
            benchmark=benchmark,
            timeout_s=self.settings.probe_timeout_s,
        )
        self.monitor = ConditionMonitor(
            battery_probe=battery_probe,
            network_probe=network_probe,
            performance_probe=performance_probe,
            timeout_s=self.settings.probe_timeout_s,
            on_immediate_action=self._on_immediate_action,
        )
        self.pipeline = AdjustmentPipeline(
            self.rules,
            battery_saver_threshold=self.settings.battery_saver_threshold,
            cpu_usage_limit=self.settings.cpu_usage_limit,
        )
        self.synthesizer = DecisionSynthesizer(self.pipeline, interval_s=self.settings.reevaluation_interval_s)
        self.history = DecisionHistory(self.settings.history_size)
        self.scheduler = ReevaluationScheduler(
            self._evaluate,
            interval_s=self.settings.reevaluation_interval_s,
            accepts=self._accepts_trigger,
        )
        self._profile: DeviceProfile = DEFAULT_PROFILE
        self._preferences = UserPreferences()
        self._decision: OptimizationDecision | None = None
        self._initial_config = self._safe_config_for(DEFAULT_PROFILE)
        self._started = False

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> OptimizationDecision:
        """Profile the device, load preferences, start the timer and decide once."""
        if self._started and self._decision is not None:
            logger.warning("AdaptiveQualityEngine already started")
            return self._decision

        self._profile = await self.profile_builder.build()
        self._initial_config = self._safe_config_for(self._profile)
        self._preferences = await self._load_preferences()
        self.scheduler.start()
        self._started = True
        decision = await self.scheduler.request("startup")
        logger.info(
            "AdaptiveQualityEngine started: tier=%s level=%s",
            self._profile.tier,
            decision.config.quality_level,
        )
        return decision

    async def stop(self) -> None:
        await self.scheduler.stop()
        self._started = False
        logger.info("AdaptiveQualityEngine stopped")

    async def dispose(self) -> None:
        """Stop and forget all state: subscribers, history, samples, decision."""
        await self.stop()
        self.event_bus.clear()
        self.history.clear()
        self.monitor.clear()
        self._decision = None
        self._profile = DEFAULT_PROFILE
        self._preferences = UserPreferences()
        self._initial_config = self._safe_config_for(DEFAULT_PROFILE)

    @property
    def is_running(self) -> bool:
        return self._started

    # ── Consumer API ─────────────────────────────────────────────

    def get_current_config(self) -> QualityConfig:
        decision = self._decision
        if decision is None:
            return self._initial_config
        return decision.config

    def get_current_decision(self) -> OptimizationDecision | None:
        return self._decision

    async def force_reevaluate(self) -> OptimizationDecision:
        return await self.scheduler.request("request")

    def on_decision_changed(self, callback: Callable[[OptimizationDecision], Any]) -> Callable[[], None]:
        """Subscribe to published decisions; returns an unsubscribe callable."""

        def handler(event: Event) -> None:
            callback(event.payload["decision"])

        return self.event_bus.subscribe(DECISION_CHANGED, handler)

    def get_history(self, limit: int | None = None) -> list[OptimizationDecision]:
        return self.history.recent(limit)

    def record_performance_sample(self, sample: PerformanceSample) -> None:
        self.monitor.record_performance_sample(sample)

    async def set_user_preferences(
        self,
        preferences: UserPreferences | None = None,
        **changes: Any,
    ) -> OptimizationDecision:
        updated = preferences or self._preferences
        if changes:
            updated = replace(updated, **changes)
        self._preferences = updated
        if self.preference_store is not None:
            try:
                await self.preference_store.save(updated)
            except Exception as exc:
                logger.warning("Saving preferences failed: %s", exc)
        return await self.scheduler.request("preferences")

    def set_optimization_active(self, active: bool) -> None:
        """Enable or pause automatic (timer / telemetry driven) re-evaluation."""
        self._preferences = replace(self._preferences, auto_scaling=active)
        logger.info("Automatic re-evaluation %s", "enabled" if active else "paused")

    def get_quality_recommendations(self) -> dict[PowerMode, QualityConfig]:
        return self.pipeline.recommendations(self._profile)

    async def poll_conditions(self) -> ConditionSnapshot:
        """Refresh telemetry between cycles; significant changes trigger an immediate re-evaluation."""
        return await self.monitor.refresh()

    async def refresh_profile(self) -> DeviceProfile:
        self._profile = await self.profile_builder.build()
        self._initial_config = self._safe_config_for(self._profile)
        self.scheduler.signal("request: device profile refreshed")
        return self._profile

    @property
    def device_profile(self) -> DeviceProfile:
        return self._profile

    @property
    def preferences(self) -> UserPreferences:
        return self._preferences

    @property
    def conditions(self) -> ConditionSnapshot:
        return self.monitor.snapshot

    # ── Internals ────────────────────────────────────────────────

    def _safe_config_for(self, profile: DeviceProfile) -> QualityConfig:
        return enforce_ceiling(SAFE_CONFIG, self.pipeline.ceiling_for(profile))

    async def _load_preferences(self) -> UserPreferences:
        if self.preference_store is None:
            return self._preferences
        try:
            stored = await self.preference_store.load()
        except Exception as exc:
            logger.warning("Loading preferences failed, using defaults: %s", exc)
            return UserPreferences()
        return stored or UserPreferences()

    def _accepts_trigger(self, kind: str) -> bool:
        if kind in GATED_TRIGGERS:
            return self._preferences.auto_scaling
        return True

    def _on_immediate_action(self, reason: str) -> None:
        self.scheduler.signal(f"{IMMEDIATE}: {reason}")

    async def _evaluate(self, reasons: tuple[str, ...]) -> OptimizationDecision:
        previous = self._decision
        previous_config = previous.config if previous is not None else self._initial_config
        try:
            snapshot = await self.monitor.refresh(notify=False)
        except Exception as exc:
            logger.warning("Condition refresh failed, using stale snapshot: %s", exc)
            snapshot = self.monitor.snapshot

        try:
            decision = self.synthesizer.synthesize(
                self._profile,
                snapshot,
                self._preferences,
                previous=previous_config,
                triggers=reasons,
            )
        except Exception as exc:
            logger.error("Decision synthesis failed: %s", exc, exc_info=True)
            if previous is not None:
                return previous
            raise

        self._publish(decision)
        return decision

    def _publish(self, decision: OptimizationDecision) -> None:
        self._decision = decision
        self.history.append(decision)
        logger.info(
            "Decision published: level=%s sr=%d buf=%d poly=%d confidence=%.2f triggers=%s",
            decision.config.quality_level,
            decision.config.sample_rate,
            decision.config.buffer_size,
            decision.config.max_polyphony,
            decision.confidence,
            ",".join(decision.triggers),
        )
        self.event_bus.publish(DECISION_CHANGED, {"decision": decision})
