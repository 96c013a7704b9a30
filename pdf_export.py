from __future__ import annotations
from datetime import date, timedelta
from io import BytesIO
from typing import List, Optional
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from models import CycleDay
from planner import date_key
from progress import ProgressLedger


def cycle_to_pdf(
    cycle: List[CycleDay],
    start_date: date,
    ledger: Optional[ProgressLedger] = None,
) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=40,
        rightMargin=40,
        topMargin=40,
        bottomMargin=40,
    )
    styles = getSampleStyleSheet()
    elems = []

    end = start_date + timedelta(days=max(0, len(cycle) - 1))
    elems.append(Paragraph(f"Study Cycle: {start_date.isoformat()} - {end.isoformat()}", styles["Title"]))
    elems.append(Spacer(1, 10))
    planned_total = sum(d.total_planned_hours for d in cycle)
    elems.append(Paragraph(
        f"Days: {len(cycle)} | Planned hours: {planned_total:.1f}",
        styles["Normal"],
    ))
    elems.append(Spacer(1, 12))

    for index, day in enumerate(cycle):
        d = start_date + timedelta(days=index)
        elems.append(Paragraph(f"Day {day.day} - {d.strftime('%A, %Y-%m-%d')}", styles["Heading3"]))

        log = ledger.get_day(date_key(start_date, index)) if ledger else None
        tasks = log.tasks if log else day.tasks
        if not tasks:
            elems.append(Paragraph("No tasks scheduled.", styles["Normal"]))
            elems.append(Spacer(1, 8))
            continue

        table_data = [["Subject", "Topic", "Planned (h)", "Studied (h)", "Done"]]
        for task in tasks:
            table_data.append([
                task.subject,
                task.topic or "",
                f"{task.planned_hours:.1f}",
                f"{task.studied_hours:.1f}",
                "Yes" if task.completed else "No",
            ])
        table_data.append([
            "Total",
            "",
            f"{sum(t.planned_hours for t in tasks):.1f}",
            f"{sum(t.studied_hours for t in tasks):.1f}",
            "",
        ])

        table = Table(table_data, hAlign="LEFT", colWidths=[130, 150, 70, 70, 40])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("BACKGROUND", (0, -1), (-1, -1), colors.whitesmoke),
            ("ALIGN", (2, 1), (3, -1), "RIGHT"),
        ]))
        elems.append(table)
        elems.append(Spacer(1, 8))

    doc.build(elems)
    return buf.getvalue()
