from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
from uuid import uuid4
from exceptions import EmptyDayError, InitializationFailedError
from models import CycleDay, PlanState, Task
from planner import DAYS_IN_CYCLE, MAX_TASK_HOURS, date_key, generate_cycle
from progress import ProgressLedger

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


@dataclass
class SyncReport:
    start_date: date
    date_keys: List[str] = field(default_factory=list)
    attempts: int = 0


def fallback_task(day: CycleDay) -> Task:
    slug = re.sub(r"\s+", "-", day.subject.strip()).lower() or "study"
    return Task(
        id=f"auto-task-{day.day}-{slug}-{uuid4().hex[:8]}",
        subject=day.subject,
        planned_hours=max(day.total_planned_hours, MAX_TASK_HOURS),
        color=day.color,
        priority="medium",
    )


class SyncCoordinator:
    """
    Seeds the progress ledger with one entry per rotation day.

    Every pass initializes all days (initialization is idempotent), then
    checks that each expected date key holds at least one task. Failed
    passes are retried until max_attempts is used up; the attempt counter
    never resets.
    """

    def __init__(self, ledger: ProgressLedger, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.ledger = ledger
        self.max_attempts = max_attempts

    def _missing(self, keys: List[str]) -> List[str]:
        missing = []
        for key in keys:
            log = self.ledger.get_day(key)
            if log is None or not log.tasks:
                missing.append(key)
        return missing

    def _initialize_all(self, cycle: List[CycleDay], keys: List[str]) -> None:
        for day, key in zip(cycle, keys):
            payload = day.tasks if day.tasks else [fallback_task(day)]
            try:
                self.ledger.initialize_day(key, payload)
            except EmptyDayError as exc:
                logger.warning("Day %d (%s) not initialized: %s", day.day, key, exc.message)
            except OSError as exc:
                logger.warning("Day %d (%s) could not be persisted: %s", day.day, key, exc)

    def reconcile(self, cycle: List[CycleDay], start_date: date) -> SyncReport:
        keys = [date_key(start_date, i) for i in range(len(cycle))]
        report = SyncReport(start_date=start_date, date_keys=keys)
        missing = keys

        while report.attempts < self.max_attempts:
            report.attempts += 1
            logger.info("Sync attempt %d/%d for %d day(s) from %s",
                        report.attempts, self.max_attempts, len(keys), start_date.isoformat())
            self._initialize_all(cycle, keys)
            missing = self._missing(keys)
            if not missing:
                logger.info("All %d daily logs present after %d attempt(s)", len(keys), report.attempts)
                return report
            logger.warning("%d day(s) still missing daily logs: %s", len(missing), ", ".join(missing))

        logger.error("Giving up on plan initialization after %d attempt(s)", report.attempts)
        raise InitializationFailedError(missing, report.attempts)


def regenerate_plan(
    state: PlanState,
    ledger: ProgressLedger,
    start_date: date,
    coordinator: Optional[SyncCoordinator] = None,
) -> SyncReport:
    """
    Replace the plan's rotation and re-seed the ledger from start_date.

    Ledger entries of the old rotation's date range (and of the new range)
    are dropped first so the new rotation is not shadowed by stale days.
    """
    stale = {date_key(start_date, i) for i in range(DAYS_IN_CYCLE)}
    if state.cycle and state.cycle_start:
        stale.update(date_key(state.cycle_start, i) for i in range(len(state.cycle)))
    ledger.clear_days(sorted(stale))

    state.cycle = generate_cycle(
        state.subjects, state.settings.weekly_hours, state.config, state.levels,
    )
    state.cycle_start = start_date
    coordinator = coordinator or SyncCoordinator(ledger)
    return coordinator.reconcile(state.cycle, start_date)
