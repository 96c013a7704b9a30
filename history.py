from __future__ import annotations
from typing import Dict, List
from models import StudySession


def summarize_sessions(sessions: List[StudySession]) -> Dict[str, object]:
    by_subject: Dict[str, dict] = {}
    total_minutes = 0.0
    completed = 0
    for s in sessions:
        row = by_subject.setdefault(s.subject, {
            "subject": s.subject,
            "sessions": 0,
            "completed": 0,
            "minutes": 0.0,
        })
        row["sessions"] += 1
        row["minutes"] += s.duration
        if s.completed:
            row["completed"] += 1
            completed += 1
        total_minutes += s.duration

    rows = sorted(by_subject.values(), key=lambda r: r["minutes"], reverse=True)
    for r in rows:
        r["hours"] = round(r["minutes"] / 60, 2)
    return {
        "total_sessions": len(sessions),
        "completed_sessions": completed,
        "total_minutes": total_minutes,
        "total_hours": round(total_minutes / 60, 2),
        "by_subject": rows,
    }
