from __future__ import annotations
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from icalendar import Calendar, Event as IcsEvent
from models import CycleDay, Settings

logger = logging.getLogger(__name__)


def _get_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, exporting in UTC", name)
        return ZoneInfo("UTC")


def cycle_to_ics(
    cycle: List[CycleDay],
    start_date: date,
    settings: Settings,
) -> Tuple[bytes, List[str]]:
    cal = Calendar()
    cal.add("PRODID", "-//Study Cycle Planner//Local//")
    cal.add("version", "2.0")
    cal.add("X-WR-CALNAME", "Study Cycle")

    warnings: List[str] = []
    tz = _get_timezone(settings.timezone)
    start_hour = settings.preferred_start_hour
    end_hour = settings.preferred_end_hour
    if end_hour <= start_hour:
        end_hour = min(23, start_hour + 1)

    for index, day in enumerate(cycle):
        d = start_date + timedelta(days=index)
        cursor = datetime.combine(d, time(hour=start_hour), tzinfo=tz)
        window_end = datetime.combine(d, time(hour=end_hour), tzinfo=tz)

        for task in day.tasks:
            minutes = max(1, int(round(task.planned_hours * 60)))
            end_time = cursor + timedelta(minutes=minutes)

            event = IcsEvent()
            event.add("uid", f"{task.id}@study-cycle-planner")
            summary = f"Study: {task.subject}"
            if task.topic:
                summary += f" ({task.topic})"
            event.add("summary", summary)
            event.add("dtstart", cursor)
            event.add("dtend", end_time)
            event.add("description", f"Day {day.day} of the cycle, {task.planned_hours:g}h planned.")
            cal.add_component(event)

            if end_time > window_end:
                warnings.append(
                    f"{task.subject} on {d.isoformat()} runs past {end_hour}:00."
                )
            cursor = end_time

    return cal.to_ical(), warnings
