"""
Error types raised by the planner core.

- PlannerError: base class for every expected failure
- TaskValidationError: a malformed task payload (dropped, never fatal)
- EmptyDayError: a day has no valid tasks left to record
- NotFoundError: a ledger mutation named an unknown date or task
- InitializationFailedError: ledger seeding gave up after its retry budget
- TimerStateError: an illegal session timer transition
"""
from __future__ import annotations
from typing import List, Optional


class PlannerError(Exception):
    """Base class for known planner failures.

    Catching this handles every error the core reports to its callers.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint

    def get_user_message(self) -> str:
        if self.hint:
            return f"{self.message} ({self.hint})"
        return self.message


class TaskValidationError(PlannerError):
    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


class EmptyDayError(PlannerError):
    """No valid task survived validation for a date key."""

    def __init__(self, date_key: str):
        super().__init__(
            f"No valid tasks for {date_key}",
            hint="Retry with a single fallback task for the day",
        )
        self.date_key = date_key


class NotFoundError(PlannerError):
    def __init__(self, date_key: str, task_id: Optional[str] = None):
        if task_id is None:
            message = f"No daily log found for {date_key}"
        else:
            message = f"Task {task_id} not found in daily log for {date_key}"
        super().__init__(message)
        self.date_key = date_key
        self.task_id = task_id


class InitializationFailedError(PlannerError):
    """Raised once the sync pass has used up all of its attempts."""

    def __init__(self, missing: List[str], attempts: int):
        super().__init__(
            f"Plan could not be initialized: {len(missing)} day(s) missing after {attempts} attempt(s)",
            hint="Regenerate the cycle to try again",
        )
        self.missing = list(missing)
        self.attempts = attempts


class TimerStateError(PlannerError):
    def __init__(self, message: str, state: Optional[str] = None):
        super().__init__(message)
        self.state = state
