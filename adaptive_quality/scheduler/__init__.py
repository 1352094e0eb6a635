from __future__ import annotations

from adaptive_quality.scheduler.reevaluation import ReevaluationScheduler, SchedulerState, trigger_kind

__all__ = ["ReevaluationScheduler", "SchedulerState", "trigger_kind"]
