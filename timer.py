"""
Study session timer.

A countdown state machine with three states (idle, studying, on_break).
It owns no clock thread: the host feeds it one `tick()` per elapsed second
(or `advance(n)` after measuring wall time), and every transition happens
synchronously inside those calls.
"""
from __future__ import annotations
import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4
from exceptions import NotFoundError, TimerStateError
from models import StudySession, TimerSettings
from progress import ProgressLedger

logger = logging.getLogger(__name__)

IDLE = "idle"
STUDYING = "studying"
ON_BREAK = "on_break"


class SessionTimer:
    def __init__(
        self,
        ledger: Optional[ProgressLedger] = None,
        settings: Optional[TimerSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
        history: Optional[List[StudySession]] = None,
        completed_sessions: int = 0,
    ):
        self.ledger = ledger
        self.settings = settings or TimerSettings()
        self._clock = clock
        # shared with the caller so closed sessions land in its history
        self.history: List[StudySession] = history if history is not None else []
        self.completed_sessions = completed_sessions
        self.state = IDLE
        self.mode = "study"
        self.remaining_seconds = 0
        self.running = False
        self.current_session: Optional[StudySession] = None
        self._disposed = False

    def _reset(self) -> None:
        self.state = IDLE
        self.mode = "study"
        self.remaining_seconds = 0
        self.running = False
        self.current_session = None

    def _report(self, session: StudySession) -> None:
        if not session.task_id or self.ledger is None:
            return
        try:
            self.ledger.update_from_session(session)
        except NotFoundError as exc:
            logger.warning("Session %s not recorded in ledger: %s", session.id, exc.message)

    def start(
        self,
        subject: str,
        topic: Optional[str] = None,
        subtopic: Optional[str] = None,
        task_id: Optional[str] = None,
        date_key: Optional[str] = None,
    ) -> StudySession:
        if self._disposed:
            raise TimerStateError("Timer has been disposed", self.state)
        if self.state != IDLE:
            raise TimerStateError(f"Cannot start a session while {self.state}", self.state)
        if not subject or not subject.strip():
            raise TimerStateError("A subject is required to start a session", self.state)

        self.current_session = StudySession(
            id=uuid4().hex,
            subject=subject.strip(),
            topic=topic or None,
            subtopic=subtopic or None,
            start_time=self._clock(),
            task_id=task_id,
            date_key=date_key,
        )
        self.state = STUDYING
        self.mode = "study"
        self.remaining_seconds = self.settings.study_time
        self.running = True
        logger.info("Started session %s for %s", self.current_session.id, self.current_session.subject)
        return self.current_session

    def pause(self) -> None:
        if self.state == IDLE:
            raise TimerStateError("Nothing to pause", self.state)
        self.running = False

    def resume(self) -> None:
        if self.state == IDLE:
            raise TimerStateError("Nothing to resume", self.state)
        if self._disposed:
            raise TimerStateError("Timer has been disposed", self.state)
        self.running = True

    def stop(self) -> Optional[StudySession]:
        """Cancel the current interval. Returns the closed study session, if any."""
        closed = None
        if self.state == STUDYING and self.current_session is not None:
            end = self._clock()
            elapsed = (end - self.current_session.start_time).total_seconds()
            closed = self.current_session.model_copy(update={
                "end_time": end,
                "duration": max(0, math.floor(elapsed / 60)),
                "completed": False,
            })
            self.history.append(closed)
            self._report(closed)
            logger.info("Stopped session %s after %s minute(s)", closed.id, closed.duration)
        elif self.state == ON_BREAK:
            logger.info("Break skipped")
        self._reset()
        return closed

    def tick(self) -> None:
        if self._disposed or not self.running or self.state == IDLE:
            return
        self.remaining_seconds -= 1
        if self.remaining_seconds > 0:
            return
        if self.mode == "study":
            self._finish_study()
        else:
            self._finish_break()

    def advance(self, seconds: int) -> None:
        for _ in range(max(0, int(seconds))):
            if not self.running:
                break
            self.tick()

    def _finish_study(self) -> None:
        session = self.current_session.model_copy(update={
            "end_time": self._clock(),
            "duration": self.settings.study_time / 60,
            "completed": True,
        })
        self.history.append(session)
        self._report(session)
        self.completed_sessions += 1

        long_break = self.completed_sessions % self.settings.sessions_until_long_break == 0
        self.current_session = session
        self.state = ON_BREAK
        self.mode = "break"
        self.remaining_seconds = self.settings.long_break_time if long_break else self.settings.break_time
        logger.info(
            "Session %s completed (%d so far), %s break of %ds",
            session.id, self.completed_sessions, "long" if long_break else "short", self.remaining_seconds,
        )

    def _finish_break(self) -> None:
        logger.info("Break finished")
        self._reset()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "mode": self.mode,
            "remaining_seconds": self.remaining_seconds,
            "running": self.running,
            "completed_sessions": self.completed_sessions,
            "current_session": self.current_session.model_copy() if self.current_session else None,
        }

    def dispose(self) -> None:
        self.running = False
        self._disposed = True
