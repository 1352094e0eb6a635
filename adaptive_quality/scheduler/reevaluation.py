"""ReevaluationScheduler — decides *when* the engine re-evaluates.

Two trigger channels feed one evaluation function:

* **timer**: APScheduler interval job (default every 30 s).
* **signals**: fire-and-forget reasons pushed through an ``asyncio.Queue``
  (immediate-action telemetry, preference changes) and drained by a single
  worker task.

Explicit ``request()`` calls run a cycle and return its decision.

Guarantees:

- At most one evaluation is in flight (state ``idle`` / ``evaluating``).
- A trigger that arrives while evaluating only marks "re-run requested";
  any number of such triggers collapse into one extra cycle.
- A cycle started by an immediate-action signal resets the timer.
- Evaluation errors are logged; the scheduler always returns to ``idle``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Literal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from adaptive_quality.defaults import REEVALUATION_INTERVAL_S
from adaptive_quality.model import OptimizationDecision

logger = logging.getLogger(__name__)

SchedulerState = Literal["idle", "evaluating"]

TIMER_JOB_ID = "quality_reevaluation"
IMMEDIATE = "immediate"

Evaluate = Callable[[tuple[str, ...]], Awaitable[OptimizationDecision]]


def trigger_kind(reason: str) -> str:
    """``"immediate: cpu 95%"`` → ``"immediate"``."""
    return reason.partition(":")[0].strip()


class ReevaluationScheduler:
    """Serialises evaluation cycles and coalesces overlapping triggers.

    Parameters
    ----------
    evaluate:
        Coroutine function running one cycle for the given trigger reasons.
    interval_s:
        Period of the timer trigger, in seconds.
    accepts:
        Optional gate called with a trigger kind; signals whose kind it
        rejects are dropped.
    """

    def __init__(
        self,
        evaluate: Evaluate,
        *,
        interval_s: float = REEVALUATION_INTERVAL_S,
        accepts: Callable[[str], bool] | None = None,
    ) -> None:
        self._evaluate = evaluate
        self.interval_s = interval_s
        self.accepts = accepts
        self.state: SchedulerState = "idle"
        self.cycles = 0
        self._scheduler: AsyncIOScheduler | None = None
        self._queue: asyncio.Queue[str] | None = None
        self._worker: asyncio.Task | None = None
        self._rerun_requested = False
        self._pending_reasons: list[str] = []
        self._rerun_waiters: list[asyncio.Future[OptimizationDecision]] = []

    # ── Lifecycle ────────────────────────────────────────────────

    def start(self) -> None:
        if self._worker is not None and not self._worker.done():
            logger.warning("ReevaluationScheduler already running")
            return

        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._drain(), name="quality_reevaluation_worker")

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._on_timer,
            trigger=IntervalTrigger(seconds=self.interval_s),
            id=TIMER_JOB_ID,
            name="Quality re-evaluation timer",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("ReevaluationScheduler started (interval=%.1fs)", self.interval_s)

    async def stop(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        self._cancel_waiters(self._rerun_waiters)
        self._rerun_waiters = []
        self._rerun_requested = False
        self._pending_reasons = []
        logger.info("ReevaluationScheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled jobs (for diagnostics)."""
        if self._scheduler is None:
            return []
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": str(job.next_run_time),
            }
            for job in self._scheduler.get_jobs()
        ]

    def reset_timer(self) -> None:
        """Restart the interval so the next tick is a full period away."""
        if self._scheduler is None:
            return
        self._scheduler.reschedule_job(TIMER_JOB_ID, trigger=IntervalTrigger(seconds=self.interval_s))
        logger.debug("Re-evaluation timer reset")

    # ── Triggers ─────────────────────────────────────────────────

    def signal(self, reason: str) -> None:
        """Fire-and-forget trigger."""
        if self.accepts is not None and not self.accepts(trigger_kind(reason)):
            logger.debug("Trigger %r ignored", reason)
            return
        if self.state == "evaluating":
            self._mark_rerun((reason,))
            return
        if self._queue is None:
            logger.debug("Trigger %r dropped: scheduler not started", reason)
            return
        self._queue.put_nowait(reason)

    async def request(self, reason: str = "request") -> OptimizationDecision:
        """Run a cycle now (or join the coalesced re-run) and return its decision."""
        if self.state == "evaluating":
            future: asyncio.Future[OptimizationDecision] = asyncio.get_running_loop().create_future()
            self._rerun_waiters.append(future)
            self._mark_rerun((reason,))
            return await future
        return await self._run_cycle((reason,))

    async def _on_timer(self) -> None:
        self.signal("timer")

    def _mark_rerun(self, reasons: tuple[str, ...]) -> None:
        self._rerun_requested = True
        self._pending_reasons.extend(reasons)
        logger.debug("Evaluation in flight, coalescing trigger(s): %s", ", ".join(reasons))

    # ── Cycles ───────────────────────────────────────────────────

    async def _drain(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            reasons = [await queue.get()]
            while not queue.empty():
                reasons.append(queue.get_nowait())
            batch = tuple(dict.fromkeys(reasons))
            if self.state == "evaluating":
                self._mark_rerun(batch)
                continue
            try:
                await self._run_cycle(batch)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Re-evaluation cycle failed: %s", exc, exc_info=True)

    async def _run_cycle(self, reasons: tuple[str, ...]) -> OptimizationDecision:
        self.state = "evaluating"
        waiters: list[asyncio.Future[OptimizationDecision]] = []
        try:
            while True:
                try:
                    decision = await self._evaluate(reasons)
                except Exception as exc:
                    for waiter in waiters:
                        if not waiter.done():
                            waiter.set_exception(exc)
                    if not self._rerun_requested:
                        raise
                    logger.warning("Evaluation failed, running coalesced re-run: %s", exc)
                else:
                    self.cycles += 1
                    if any(trigger_kind(reason) == IMMEDIATE for reason in reasons):
                        self.reset_timer()
                    for waiter in waiters:
                        if not waiter.done():
                            waiter.set_result(decision)
                    if not self._rerun_requested:
                        return decision

                reasons = tuple(dict.fromkeys(self._pending_reasons))
                waiters = self._rerun_waiters
                self._rerun_requested = False
                self._pending_reasons = []
                self._rerun_waiters = []
        finally:
            self._cancel_waiters(waiters)
            self.state = "idle"

    @staticmethod
    def _cancel_waiters(waiters: list[asyncio.Future[OptimizationDecision]]) -> None:
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()
