from __future__ import annotations
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Literal, Optional


Level = Literal["beginner", "intermediate", "advanced"]
FocusMode = Literal["balanced", "priority", "difficulty"]
Priority = Literal["low", "medium", "high"]

DEFAULT_COLOR = "#8884d8"


class Topic(BaseModel):
    id: str
    name: str
    subtopics: List[str] = Field(default_factory=list)


class Subject(BaseModel):
    id: str
    name: str
    topics: List[Topic] = Field(default_factory=list)
    weight: float = Field(default=2, ge=0)
    color: str = DEFAULT_COLOR
    priority: int = 1
    total_time: float = Field(default=0, ge=0)


class Task(BaseModel):
    id: str
    subject: str
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    planned_hours: float = Field(gt=0)
    studied_hours: float = Field(default=0, ge=0)
    completed: bool = False
    color: str = DEFAULT_COLOR
    priority: Priority = "medium"


class CycleDay(BaseModel):
    day: int = Field(ge=1, le=14)
    day_name: str
    subject: str
    topic: Optional[str] = None
    color: str = DEFAULT_COLOR
    focus: str = ""
    tasks: List[Task] = Field(default_factory=list)
    total_planned_hours: float = 0


class DailyStudyLog(BaseModel):
    date: str  # date key, YYYY-MM-DD
    tasks: List[Task] = Field(default_factory=list)
    total_planned_hours: float = 0
    total_studied_hours: float = 0
    completed: bool = False


class StudySession(BaseModel):
    id: str
    subject: str
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: float = 0  # minutes
    completed: bool = False
    task_id: Optional[str] = None
    date_key: Optional[str] = None  # ledger day the task belongs to


class CycleConfig(BaseModel):
    force_all_subjects: bool = True
    subjects_per_cycle: int = Field(default=6, ge=1, le=50)
    focus_mode: FocusMode = "balanced"
    avoid_consecutive: bool = True


class TimerSettings(BaseModel):
    # all durations in seconds
    study_time: int = Field(default=25 * 60, ge=60, le=4 * 3600)
    break_time: int = Field(default=5 * 60, ge=60, le=3600)
    long_break_time: int = Field(default=15 * 60, ge=60, le=3600)
    sessions_until_long_break: int = Field(default=4, ge=1, le=12)


class Settings(BaseModel):
    weekly_hours: float = Field(default=10, gt=0, le=112)
    preferred_start_hour: int = Field(default=18, ge=0, le=23)
    preferred_end_hour: int = Field(default=22, ge=0, le=23)
    timezone: str = "UTC"
    timer: TimerSettings = Field(default_factory=TimerSettings)


class PlanState(BaseModel):
    subjects: List[Subject] = Field(default_factory=list)
    levels: dict[str, Level] = Field(default_factory=dict)  # subject name -> level
    settings: Settings = Field(default_factory=Settings)
    config: CycleConfig = Field(default_factory=CycleConfig)
    cycle: List[CycleDay] = Field(default_factory=list)
    cycle_start: Optional[date] = None
    sessions: List[StudySession] = Field(default_factory=list)
    completed_sessions: int = 0
