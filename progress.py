"""
Daily progress ledger.

The ledger is the only durable record of task state. Entries are keyed by
ISO date keys and written through to the injected store after every
mutation; a mutation is built on a copy and published only once the store
has accepted the full map.
"""
from __future__ import annotations
import logging
from collections.abc import Mapping
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Protocol
from pydantic import BaseModel, ValidationError
from exceptions import EmptyDayError, NotFoundError, TaskValidationError
from models import DailyStudyLog, StudySession, Task, DEFAULT_COLOR

logger = logging.getLogger(__name__)

MIN_PLANNED_HOURS = 0.5
_PRIORITIES = ("low", "medium", "high")


class LedgerStore(Protocol):
    def load(self) -> Dict[str, Any]: ...

    def save(self, payload: Dict[str, Any]) -> None: ...


def _clean_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def validate_task(raw: Any) -> Task:
    """Turn an incoming task payload into a fresh, unstarted Task."""
    if isinstance(raw, BaseModel):
        data = raw.model_dump()
    elif isinstance(raw, Mapping):
        data = dict(raw)
    else:
        raise TaskValidationError(f"Unsupported task payload: {raw!r}")

    task_id = str(data.get("id") or "").strip()
    if not task_id:
        raise TaskValidationError("Task without id")
    subject = _clean_text(data.get("subject"))
    if not subject:
        raise TaskValidationError("Task without subject", task_id)
    try:
        planned = float(data.get("planned_hours") or 0)
    except (TypeError, ValueError):
        planned = 0.0
    if planned <= 0:
        raise TaskValidationError("Task with non-positive planned hours", task_id)

    priority = data.get("priority")
    return Task(
        id=task_id,
        subject=subject,
        topic=_clean_text(data.get("topic")),
        subtopic=_clean_text(data.get("subtopic")),
        planned_hours=max(MIN_PLANNED_HOURS, planned),
        studied_hours=0,
        completed=False,
        color=data.get("color") or DEFAULT_COLOR,
        priority=priority if priority in _PRIORITIES else "medium",
    )


def _recompute(log: DailyStudyLog) -> None:
    log.total_planned_hours = sum(t.planned_hours for t in log.tasks)
    log.total_studied_hours = sum(t.studied_hours for t in log.tasks)
    log.completed = bool(log.tasks) and all(t.completed for t in log.tasks)


class ProgressLedger:
    def __init__(self, store: LedgerStore):
        self._store = store
        self._logs: Dict[str, DailyStudyLog] = self._load()

    def _load(self) -> Dict[str, DailyStudyLog]:
        logs: Dict[str, DailyStudyLog] = {}
        for key, value in self._store.load().items():
            try:
                logs[key] = DailyStudyLog.model_validate(value)
            except ValidationError as exc:
                logger.warning("Dropping unreadable daily log for %s: %s", key, exc)
        logger.debug("Loaded %d daily log(s)", len(logs))
        return logs

    def _persist(self, logs: Dict[str, DailyStudyLog]) -> None:
        self._store.save({key: log.model_dump(mode="json") for key, log in logs.items()})
        self._logs = logs

    def _commit(self, date_key: str, log: DailyStudyLog) -> None:
        updated = dict(self._logs)
        updated[date_key] = log.model_copy(deep=True)
        self._persist(updated)

    def _editable(self, date_key: str, task_id: str) -> tuple[DailyStudyLog, Task]:
        current = self._logs.get(date_key)
        if current is None:
            raise NotFoundError(date_key)
        log = current.model_copy(deep=True)
        for task in log.tasks:
            if task.id == task_id:
                return log, task
        raise NotFoundError(date_key, task_id)

    @property
    def logs(self) -> Dict[str, DailyStudyLog]:
        return {key: log.model_copy(deep=True) for key, log in self._logs.items()}

    def get_day(self, date_key: str) -> Optional[DailyStudyLog]:
        log = self._logs.get(date_key)
        return log.model_copy(deep=True) if log is not None else None

    def initialize_day(self, date_key: str, tasks: Optional[Iterable[Any]]) -> DailyStudyLog:
        existing = self._logs.get(date_key)
        if existing is not None and existing.tasks:
            logger.debug("Daily log for %s already has %d task(s), keeping it", date_key, len(existing.tasks))
            return existing.model_copy(deep=True)

        valid: List[Task] = []
        for raw in tasks or []:
            try:
                valid.append(validate_task(raw))
            except TaskValidationError as exc:
                logger.warning("Dropping task for %s: %s", date_key, exc.message)

        if not valid:
            raise EmptyDayError(date_key)

        log = DailyStudyLog(date=date_key, tasks=valid)
        _recompute(log)
        self._commit(date_key, log)
        logger.info("Initialized daily log for %s with %d task(s)", date_key, len(valid))
        return log

    def update_task_progress(
        self,
        date_key: str,
        task_id: str,
        studied_hours: float,
        completed: Optional[bool] = None,
    ) -> DailyStudyLog:
        log, task = self._editable(date_key, task_id)
        task.studied_hours = max(0.0, min(studied_hours, task.planned_hours))
        task.completed = completed if completed is not None else studied_hours >= task.planned_hours
        _recompute(log)
        self._commit(date_key, log)
        logger.debug(
            "Progress %s/%s: %.2fh of %.2fh, completed=%s",
            date_key, task_id, task.studied_hours, task.planned_hours, task.completed,
        )
        return log

    def toggle_task_completion(self, date_key: str, task_id: str) -> DailyStudyLog:
        log, task = self._editable(date_key, task_id)
        task.completed = not task.completed
        if task.completed:
            task.studied_hours = task.planned_hours
        _recompute(log)
        self._commit(date_key, log)
        logger.debug("Toggled %s/%s to completed=%s", date_key, task_id, task.completed)
        return log

    def update_from_session(self, session: StudySession) -> Optional[DailyStudyLog]:
        """Add a closed session's minutes to the task it was started for."""
        if not session.task_id or session.end_time is None:
            return None
        key = session.date_key or session.start_time.date().isoformat()
        log = self._logs.get(key)
        if log is None:
            raise NotFoundError(key)
        task = next((t for t in log.tasks if t.id == session.task_id), None)
        if task is None:
            raise NotFoundError(key, session.task_id)
        return self.update_task_progress(key, task.id, task.studied_hours + session.duration / 60)

    def weekly_totals(self, week_start: date) -> Dict[str, float]:
        planned = 0.0
        studied = 0.0
        for i in range(7):
            log = self._logs.get((week_start + timedelta(days=i)).isoformat())
            if log:
                planned += log.total_planned_hours
                studied += log.total_studied_hours
        return {"total_planned": planned, "total_studied": studied}

    def clear_days(self, date_keys: Iterable[str]) -> int:
        doomed = {key for key in date_keys if key in self._logs}
        if not doomed:
            return 0
        self._persist({key: log for key, log in self._logs.items() if key not in doomed})
        logger.info("Cleared %d daily log(s)", len(doomed))
        return len(doomed)
