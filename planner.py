from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional
from uuid import uuid4
from models import CycleConfig, CycleDay, Subject, Task, DEFAULT_COLOR

logger = logging.getLogger(__name__)

DAYS_IN_CYCLE = 14
MAX_TASKS_PER_DAY = 4
MIN_TASK_HOURS = 0.5
MAX_TASK_HOURS = 2.5
NEVER_USED = -3  # keeps day 0 from matching "used yesterday"

DAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
] * 2

_LEVEL_WEIGHTS = {"beginner": 3, "intermediate": 2, "advanced": 1}
_FOCUS_MULTIPLIERS = {"balanced": 1.0, "priority": 1.5, "difficulty": 2.0}


@dataclass
class WeightedSubject:
    subject: Subject
    weight: float
    times_used: int = 0
    last_used_day: int = NEVER_USED


def date_key(start: date, offset: int = 0) -> str:
    return (start + timedelta(days=offset)).isoformat()


def subject_weight(level: Optional[str], focus_mode: str) -> float:
    # weaker subjects get more scheduling mass
    base = _LEVEL_WEIGHTS.get(level or "", _LEVEL_WEIGHTS["intermediate"])
    return base * _FOCUS_MULTIPLIERS.get(focus_mode, 1.0)


def _task_priority(weight: float) -> str:
    if weight >= 3:
        return "high"
    if weight >= 2:
        return "medium"
    return "low"


def _task_id(day_index: int, name: str) -> str:
    slug = re.sub(r"\s+", "-", name.strip()).lower() or "subject"
    return f"day{day_index + 1}-{slug}-{uuid4().hex[:10]}"


def _task_duration(target_hours: float, hours_so_far: float, tasks_so_far: int) -> float:
    remaining = target_hours - hours_so_far
    ceiling = min(MAX_TASK_HOURS, remaining)
    spread = remaining / max(1, MAX_TASKS_PER_DAY - tasks_so_far)
    return max(MIN_TASK_HOURS, min(ceiling, spread))


def _pick_subject(candidates: List[WeightedSubject], focus_mode: str) -> WeightedSubject:
    if focus_mode == "balanced":
        best = candidates[0]
        for ws in candidates[1:]:
            if ws.times_used < best.times_used:
                best = ws
            elif ws.times_used == best.times_used and ws.weight > best.weight:
                best = ws
        return best

    # weight decayed by prior use, favours under-served heavy subjects
    best = candidates[0]
    best_score = best.weight / (best.times_used + 1)
    for ws in candidates[1:]:
        score = ws.weight / (ws.times_used + 1)
        if score > best_score:
            best, best_score = ws, score
    return best


def compose_day(
    pool: List[WeightedSubject],
    day_index: int,
    target_hours: float,
    avoid_consecutive: bool,
    focus_mode: str,
) -> List[Task]:
    """
    Greedily fill one rotation day with tasks.

    Usage counters on the pool are updated in place so later days in the
    same run see them. A day can end up short (or empty) when the pool and
    the spacing rules leave nothing to pick.
    """
    tasks: List[Task] = []
    used_today: set[str] = set()
    hours = 0.0
    attempts = 0
    max_attempts = len(pool) * 3

    while hours < target_hours and len(tasks) < MAX_TASKS_PER_DAY and attempts < max_attempts:
        attempts += 1

        candidates = []
        for ws in pool:
            if ws.subject.id in used_today:
                continue
            if avoid_consecutive and ws.last_used_day == day_index - 1:
                logger.debug("Skipping %s on day %d: used the day before", ws.subject.name, day_index + 1)
                continue
            candidates.append(ws)

        if not candidates:
            logger.debug("No subjects left for day %d", day_index + 1)
            break

        chosen = _pick_subject(candidates, focus_mode)
        duration = _task_duration(target_hours, hours, len(tasks))
        subject = chosen.subject
        first_topic = subject.topics[0] if subject.topics else None

        tasks.append(Task(
            id=_task_id(day_index, subject.name),
            subject=subject.name,
            topic=first_topic.name if first_topic else None,
            subtopic=first_topic.subtopics[0] if first_topic and first_topic.subtopics else None,
            planned_hours=round(duration, 1),
            studied_hours=0,
            completed=False,
            color=subject.color or DEFAULT_COLOR,
            priority=_task_priority(chosen.weight),
        ))

        chosen.times_used += 1
        chosen.last_used_day = day_index
        used_today.add(subject.id)
        hours += duration

    return tasks


def _summarize_day(day_index: int, tasks: List[Task]) -> CycleDay:
    total = sum(t.planned_hours for t in tasks)
    if len(tasks) == 1:
        only = tasks[0]
        label, topic = only.subject, only.topic
        focus = only.priority
    else:
        label = f"{len(tasks)} subjects"
        topic = ", ".join(t.subject for t in tasks) or None
        focus = "mixed"
    return CycleDay(
        day=day_index + 1,
        day_name=DAY_NAMES[day_index],
        subject=label,
        topic=topic,
        color=tasks[0].color if tasks else DEFAULT_COLOR,
        focus=focus,
        tasks=tasks,
        total_planned_hours=total,
    )


def generate_cycle(
    subjects: List[Subject],
    weekly_hours: float,
    config: CycleConfig,
    levels: Optional[Mapping[str, str]] = None,
) -> List[CycleDay]:
    if not subjects:
        logger.warning("No subjects provided for cycle generation")
        return []

    levels = levels or {}
    total_cycle_hours = weekly_hours * 2
    average_per_day = max(1.5, total_cycle_hours / DAYS_IN_CYCLE)
    target_hours = max(1.0, min(average_per_day, weekly_hours / 7))

    weighted = [
        WeightedSubject(subject=s, weight=subject_weight(levels.get(s.name), config.focus_mode))
        for s in subjects
    ]
    if config.force_all_subjects:
        pool = weighted
    else:
        pool = sorted(weighted, key=lambda ws: ws.weight, reverse=True)[: config.subjects_per_cycle]

    logger.info(
        "Generating %d-day cycle: %d subject(s), %.1fh/week, %.2fh target/day, mode=%s",
        DAYS_IN_CYCLE, len(pool), weekly_hours, target_hours, config.focus_mode,
    )

    cycle: List[CycleDay] = []
    for day_index in range(DAYS_IN_CYCLE):
        tasks = compose_day(pool, day_index, target_hours, config.avoid_consecutive, config.focus_mode)
        cycle.append(_summarize_day(day_index, tasks))

    empty = sum(1 for d in cycle if not d.tasks)
    if empty:
        logger.info("Cycle has %d day(s) without tasks", empty)
    return cycle


def weekly_limit_check(cycle: List[CycleDay], weekly_limit: Optional[float]) -> Dict[str, object]:
    if not cycle or not weekly_limit:
        return {"is_over_limit": False, "total_hours": 0.0, "limit": weekly_limit}
    total = sum(d.total_planned_hours for d in cycle[:7])
    return {
        "is_over_limit": total > weekly_limit,
        "total_hours": round(total, 2),
        "limit": weekly_limit,
    }
