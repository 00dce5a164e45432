"""Completion reports: build from the store, render as text / CSV / JSON."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .date_ranges import get_range_for_period
from .models import Todo
from .serializers import iso_utc, todo_to_dict
from . import store

CSV_HEADER = ["Task ID", "Title", "Notes", "Due Date", "Completed At", "Created At"]
NO_TASKS_LINE = "No tasks were completed in this period."


@dataclass
class Report:
    period: str
    start: datetime  # aware UTC, inclusive
    end: datetime  # aware UTC, exclusive
    generated_at: datetime
    tasks: list[Todo] = field(default_factory=list)
    completed_count: int = 0


def build_report(period: str, reference: datetime | None = None) -> Report:
    start, end = get_range_for_period(period, reference)
    tasks = store.completed_in_range(
        start.replace(tzinfo=None),
        end.replace(tzinfo=None),
    )
    return Report(
        period=period,
        start=start,
        end=end,
        generated_at=datetime.now(timezone.utc),
        tasks=tasks,
        completed_count=len(tasks),
    )


def report_to_text(report: Report) -> str:
    lines = [
        f"Todo completion report ({report.period})",
        f"Range: {iso_utc(report.start)} to {iso_utc(report.end)}",
        f"Completed count: {report.completed_count}",
        "",
    ]

    if not report.tasks:
        lines.append(NO_TASKS_LINE)
        return "\n".join(lines)

    for index, task in enumerate(report.tasks, start=1):
        lines.append(f"{index}. {task.title}")
        if task.notes:
            lines.append(f"   Notes: {task.notes}")
        if task.due_date:
            lines.append(f"   Due: {task.due_date.isoformat()}")
        lines.append(f"   Completed: {iso_utc(task.completed_at) or 'n/a'}")

    return "\n".join(lines)


def report_to_csv(report: Report) -> str:
    """Metadata preamble, blank line, header, one quoted row per task."""
    buf = io.StringIO()
    plain = csv.writer(buf, lineterminator="\n")
    plain.writerow(["Period", report.period])
    plain.writerow(["Range Start", iso_utc(report.start)])
    plain.writerow(["Range End", iso_utc(report.end)])
    plain.writerow(["Completed Count", report.completed_count])
    plain.writerow([])
    plain.writerow(CSV_HEADER)

    # ints stay bare, every text field is quoted with inner quotes doubled
    quoted = csv.writer(buf, lineterminator="\n", quoting=csv.QUOTE_NONNUMERIC)
    for task in report.tasks:
        quoted.writerow([
            int(task.id),
            task.title,
            task.notes or "",
            task.due_date.isoformat() if task.due_date else "",
            iso_utc(task.completed_at) or "",
            iso_utc(task.created_at) or "",
        ])

    return buf.getvalue()


def report_to_dict(report: Report) -> dict:
    return {
        "period": report.period,
        "start": iso_utc(report.start),
        "end": iso_utc(report.end),
        "generatedAt": iso_utc(report.generated_at),
        "completedCount": report.completed_count,
        "tasks": [todo_to_dict(t) for t in report.tasks],
        "text": report_to_text(report),
    }
