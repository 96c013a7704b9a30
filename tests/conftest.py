from datetime import datetime, timedelta
from pathlib import Path

import pytest

from models import Subject, Task, Topic
from progress import ProgressLedger
from storage import MemoryStore


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def make_subject(name: str, topic: str | None = None, subtopics: list[str] | None = None) -> Subject:
    topics = []
    if topic:
        topics.append(Topic(id=f"{name}-t1", name=topic, subtopics=subtopics or []))
    return Subject(id=name.lower(), name=name, topics=topics)


def make_task(task_id: str, subject: str = "Math", hours: float = 1.0) -> Task:
    return Task(id=task_id, subject=subject, planned_hours=hours)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ledger(store) -> ProgressLedger:
    return ProgressLedger(store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def data_dir(tmp_path, monkeypatch) -> Path:
    target = tmp_path / "data"
    monkeypatch.setenv("STUDY_PLANNER_DATA_DIR", str(target))
    return target
