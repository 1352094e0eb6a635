"""DecisionSynthesizer — turns one pipeline run into an auditable decision.

Reasoning factors are evaluated independently; a category's influence is the
largest weight among its fired factors. Confidence grows with the number of
factors and the summed influence, clamped to [0.3, 1.0]. Impact is measured
against the previously published configuration.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from adaptive_quality.defaults import (
    BATTERY_LIFE_HORIZON_MIN,
    CONFIDENCE_MAX,
    CONFIDENCE_MIN,
    CONFIDENCE_NORMALISER,
    REASON_BATTERY_CRITICAL,
    REASON_BATTERY_LOW,
    REASON_CPU_HIGH,
    REEVALUATION_INTERVAL_S,
    STABILITY_PER_QUALITY_REDUCTION,
    WEIGHT_BATTERY_CRITICAL,
    WEIGHT_BATTERY_LOW,
    WEIGHT_PERFORMANCE,
    WEIGHT_THERMAL,
    WEIGHT_USER_BATTERY,
)
from adaptive_quality.model import (
    ConditionSnapshot,
    DeviceProfile,
    Impact,
    OptimizationDecision,
    QualityConfig,
    Reasoning,
    UserPreferences,
    quality_rank,
)
from adaptive_quality.pipeline.adjustment import AdjustmentPipeline
from adaptive_quality.utils.math import clamp

logger = logging.getLogger(__name__)

INFLUENCE_CATEGORIES: tuple[str, ...] = ("battery", "thermal", "performance", "user_preference")


def build_reasoning(
    conditions: ConditionSnapshot,
    preferences: UserPreferences,
    previous: QualityConfig | None,
    config: QualityConfig,
) -> Reasoning:
    factors: list[str] = []
    influences = {category: 0.0 for category in INFLUENCE_CATEGORIES}

    def fire(category: str, weight: float, description: str) -> None:
        factors.append(description)
        influences[category] = max(influences[category], weight)

    battery = conditions.battery_level
    if battery < REASON_BATTERY_CRITICAL:
        fire("battery", WEIGHT_BATTERY_CRITICAL, f"Critical battery level ({battery:.0%})")
    if battery < REASON_BATTERY_LOW:
        fire("battery", WEIGHT_BATTERY_LOW, f"Low battery level ({battery:.0%})")
    if conditions.throttling_active:
        fire("thermal", WEIGHT_THERMAL, f"Thermal throttling active ({conditions.thermal_state})")
    if conditions.avg_cpu_usage > REASON_CPU_HIGH:
        fire("performance", WEIGHT_PERFORMANCE, f"High CPU usage ({conditions.avg_cpu_usage:.1f}%)")
    if preferences.prioritize_battery:
        fire("user_preference", WEIGHT_USER_BATTERY, "User prioritizes battery life")

    explanation = "; ".join(factors) if factors else "Operating within normal parameters"
    return Reasoning(
        factors=factors,
        influences=influences,
        explanation=explanation,
        changes=describe_changes(previous, config),
    )


def confidence_for(reasoning: Reasoning) -> float:
    count_term = 0.5 * (len(reasoning.factors) / CONFIDENCE_NORMALISER)
    weight_term = 0.5 * (sum(reasoning.influences.values()) / CONFIDENCE_NORMALISER)
    return clamp(count_term + weight_term, CONFIDENCE_MIN, CONFIDENCE_MAX)


def estimate_impact(previous: QualityConfig | None, config: QualityConfig) -> Impact:
    if previous is None:
        return Impact(0.0, 0.0, 0.0, 0.0)

    battery_delta = 0.0
    if previous.battery_impact > 0:
        battery_delta = (previous.battery_impact - config.battery_impact) / previous.battery_impact * BATTERY_LIFE_HORIZON_MIN

    performance_delta = 0.0
    if previous.cpu_impact > 0:
        performance_delta = (previous.cpu_impact - config.cpu_impact) / previous.cpu_impact

    old_rank = quality_rank(previous.quality_level)
    new_rank = quality_rank(config.quality_level)
    quality_reduction = max(0.0, (old_rank - new_rank) / old_rank)
    stability_delta = STABILITY_PER_QUALITY_REDUCTION * quality_reduction if quality_reduction > 0 else 0.0

    return Impact(
        battery_life_delta_min=battery_delta,
        performance_delta=performance_delta,
        quality_reduction=quality_reduction,
        stability_delta=stability_delta,
    )


def describe_changes(previous: QualityConfig | None, config: QualityConfig) -> list[str]:
    if previous is None:
        return []
    changes: list[str] = []
    if previous.quality_level != config.quality_level:
        changes.append(f"Quality changed from {previous.quality_level} to {config.quality_level}")
    if previous.buffer_size != config.buffer_size:
        changes.append(f"Buffer size changed from {previous.buffer_size} to {config.buffer_size}")
    if previous.max_polyphony != config.max_polyphony:
        changes.append(f"Polyphony changed from {previous.max_polyphony} to {config.max_polyphony}")
    if previous.sample_rate != config.sample_rate:
        changes.append(f"Sample rate changed from {previous.sample_rate} to {config.sample_rate}")
    return changes


class DecisionSynthesizer:
    def __init__(
        self,
        pipeline: AdjustmentPipeline,
        *,
        interval_s: float = REEVALUATION_INTERVAL_S,
    ) -> None:
        self.pipeline = pipeline
        self.interval_s = interval_s

    def synthesize(
        self,
        profile: DeviceProfile,
        conditions: ConditionSnapshot,
        preferences: UserPreferences,
        previous: QualityConfig | None = None,
        triggers: tuple[str, ...] = (),
    ) -> OptimizationDecision:
        config = self.pipeline.run(profile, conditions, preferences)
        reasoning = build_reasoning(conditions, preferences, previous, config)
        now = datetime.now(timezone.utc)
        decision = OptimizationDecision(
            config=config,
            reasoning=reasoning,
            impact=estimate_impact(previous, config),
            confidence=confidence_for(reasoning),
            triggers=triggers,
            decided_at=now.isoformat(),
            next_evaluation_at=(now + timedelta(seconds=self.interval_s)).isoformat(),
        )
        logger.debug(
            "Synthesized decision: level=%s confidence=%.2f factors=%d",
            config.quality_level,
            decision.confidence,
            len(reasoning.factors),
        )
        return decision
