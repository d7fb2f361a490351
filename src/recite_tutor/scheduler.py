"""Scheduling service contract and its local SQLite implementation.

Engines only talk to a ``SchedulingService``. ``SqliteScheduler`` is the
standalone backend: it owns the SM-2 state, due dates and the review log.
"""
import asyncio
import sqlite3
from datetime import date, datetime
from typing import Protocol

from recite_tutor.db import get_connection
from recite_tutor.errors import SchedulerError
from recite_tutor.log import get_logger
from recite_tutor.models import ContentLine, Program, ReviewEvent, Segment, WorkItem
from recite_tutor.sm2 import RecallSchedule, sm2_update

logger = get_logger(__name__)

SEGMENT_COLUMNS = "id, program_id, day_index, planned_date, page_from, page_to, completed_at"


class SchedulingService(Protocol):
    async def fetch_due_work_items(self, as_of: str, limit: int) -> list[WorkItem]: ...

    async def submit_grade(self, work_item_id: int, quality: int) -> None: ...

    async def complete_segment_and_init_schedule(self, segment_id: int) -> int: ...

    async def fetch_review_events(self, since: str | None = None) -> list[ReviewEvent]: ...

    async def fetch_pending_segments(self) -> list[Segment]: ...

    async def fetch_completed_segments(self) -> list[Segment]: ...

    async def reschedule_segment(self, segment_id: int, new_planned_date: str) -> None: ...

    async def fetch_segment(self, segment_id: int) -> Segment | None: ...

    async def fetch_segment_content(self, segment_id: int) -> list[ContentLine]: ...

    async def fetch_programs(self) -> list[Program]: ...


def _segment(row) -> Segment:
    return Segment(
        id=row["id"],
        program_id=row["program_id"],
        planned_date=row["planned_date"],
        range_start=row["page_from"],
        range_end=row["page_to"],
        completed_at=row["completed_at"],
        day_index=row["day_index"],
    )


def get_due_items(db_path: str, as_of: str, limit: int = 50) -> list[WorkItem]:
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT m.id, m.due_at, l.text, l.page_number, l.position, p.title
        FROM memorization m
        JOIN lines l ON m.line_id = l.id
        LEFT JOIN segments s ON m.segment_id = s.id
        LEFT JOIN programs p ON s.program_id = p.id
        WHERE m.due_at <= ?
        ORDER BY m.due_at ASC, m.id ASC
        LIMIT ?""",
        (as_of, limit),
    ).fetchall()
    conn.close()
    items = []
    for r in rows:
        parts = [r["title"]] if r["title"] else []
        parts.append(f"Page {r['page_number']} · Line {r['position']}")
        items.append(WorkItem(id=r["id"], due_date=r["due_at"], content=r["text"], label=" · ".join(parts)))
    return items


def record_grade(db_path: str, item_id: int, quality: int, today: date | None = None) -> str:
    """Apply SM-2 to a memorized line, log the review, return the new due date."""
    today = today or date.today()
    conn = get_connection(db_path)
    try:
        item = conn.execute("SELECT * FROM memorization WHERE id = ?", (item_id,)).fetchone()
        if item is None:
            raise SchedulerError(f"Unknown work item {item_id}")
        current = RecallSchedule(item["ease_factor"], item["interval"], item["repetitions"])
        try:
            updated = sm2_update(current, quality)
        except ValueError as exc:
            raise SchedulerError(str(exc)) from exc
        due_at = updated.due_after(today).isoformat()
        conn.execute(
            "UPDATE memorization SET ease_factor=?, interval=?, repetitions=?, due_at=? WHERE id=?",
            (updated.ease_factor, updated.interval, updated.repetitions, due_at, item_id),
        )
        conn.execute(
            "INSERT INTO review_logs (memorization_id, quality, reviewed_at) VALUES (?, ?, ?)",
            (item_id, quality, datetime.now().astimezone().isoformat()),
        )
        conn.commit()
    finally:
        conn.close()
    return due_at


def complete_segment(db_path: str, segment_id: int, today: date | None = None) -> int:
    """Mark a segment learned and schedule each of its lines. Returns lines scheduled."""
    today = today or date.today()
    conn = get_connection(db_path)
    try:
        seg = conn.execute(f"SELECT {SEGMENT_COLUMNS} FROM segments WHERE id = ?", (segment_id,)).fetchone()
        if seg is None:
            raise SchedulerError(f"Unknown segment {segment_id}")
        if seg["completed_at"] is not None:
            raise SchedulerError(f"Segment {segment_id} is already completed")
        with conn:
            conn.execute(
                "UPDATE segments SET completed_at = ? WHERE id = ?",
                (datetime.now().astimezone().isoformat(), segment_id),
            )
            cur = conn.execute(
                """INSERT OR IGNORE INTO memorization (line_id, segment_id, due_at)
                SELECT id, ?, ? FROM lines WHERE page_number BETWEEN ? AND ?""",
                (segment_id, today.isoformat(), seg["page_from"], seg["page_to"]),
            )
        return cur.rowcount
    finally:
        conn.close()


def get_review_events(db_path: str, since: str | None = None) -> list[ReviewEvent]:
    conn = get_connection(db_path)
    if since:
        rows = conn.execute(
            "SELECT reviewed_at FROM review_logs WHERE reviewed_at >= ? ORDER BY reviewed_at ASC",
            (since,),
        ).fetchall()
    else:
        rows = conn.execute("SELECT reviewed_at FROM review_logs ORDER BY reviewed_at ASC").fetchall()
    conn.close()
    return [ReviewEvent(occurred_at=r["reviewed_at"]) for r in rows]


def get_segments(db_path: str, pending: bool = True) -> list[Segment]:
    where = "completed_at IS NULL" if pending else "completed_at IS NOT NULL"
    order = "planned_date ASC, id ASC" if pending else "completed_at ASC"
    conn = get_connection(db_path)
    rows = conn.execute(f"SELECT {SEGMENT_COLUMNS} FROM segments WHERE {where} ORDER BY {order}").fetchall()
    conn.close()
    return [_segment(r) for r in rows]


def get_segment(db_path: str, segment_id: int) -> Segment | None:
    conn = get_connection(db_path)
    row = conn.execute(f"SELECT {SEGMENT_COLUMNS} FROM segments WHERE id = ?", (segment_id,)).fetchone()
    conn.close()
    return _segment(row) if row else None


def update_planned_date(db_path: str, segment_id: int, new_planned_date: str) -> None:
    date.fromisoformat(new_planned_date)
    conn = get_connection(db_path)
    cur = conn.execute(
        "UPDATE segments SET planned_date = ? WHERE id = ? AND completed_at IS NULL",
        (new_planned_date, segment_id),
    )
    conn.commit()
    conn.close()
    if cur.rowcount == 0:
        raise SchedulerError(f"No pending segment {segment_id}")


def get_segment_content(db_path: str, segment_id: int) -> list[ContentLine]:
    conn = get_connection(db_path)
    seg = conn.execute("SELECT page_from, page_to FROM segments WHERE id = ?", (segment_id,)).fetchone()
    if seg is None:
        conn.close()
        raise SchedulerError(f"Unknown segment {segment_id}")
    rows = conn.execute(
        """SELECT id, page_number, position, text FROM lines
        WHERE page_number BETWEEN ? AND ?
        ORDER BY page_number ASC, position ASC""",
        (seg["page_from"], seg["page_to"]),
    ).fetchall()
    conn.close()
    return [ContentLine(id=r["id"], page=r["page_number"], number=r["position"], text=r["text"]) for r in rows]


def get_programs(db_path: str) -> list[Program]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT id, title, created_at FROM programs ORDER BY created_at ASC, id ASC").fetchall()
    conn.close()
    return [Program(id=r["id"], title=r["title"], created_at=r["created_at"]) for r in rows]


class SqliteScheduler:
    """Asynchronous facade over the SQLite functions above."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def _run(self, func, *args):
        try:
            return await asyncio.to_thread(func, self.db_path, *args)
        except sqlite3.Error as exc:
            logger.warning("%s failed: %s", func.__name__, exc)
            raise SchedulerError(f"Storage error: {exc}") from exc
        except ValueError as exc:
            raise SchedulerError(str(exc)) from exc

    async def fetch_due_work_items(self, as_of: str, limit: int = 50) -> list[WorkItem]:
        return await self._run(get_due_items, as_of, limit)

    async def submit_grade(self, work_item_id: int, quality: int) -> None:
        await self._run(record_grade, work_item_id, quality)

    async def complete_segment_and_init_schedule(self, segment_id: int) -> int:
        return await self._run(complete_segment, segment_id)

    async def fetch_review_events(self, since: str | None = None) -> list[ReviewEvent]:
        return await self._run(get_review_events, since)

    async def fetch_pending_segments(self) -> list[Segment]:
        return await self._run(get_segments, True)

    async def fetch_completed_segments(self) -> list[Segment]:
        return await self._run(get_segments, False)

    async def reschedule_segment(self, segment_id: int, new_planned_date: str) -> None:
        await self._run(update_planned_date, segment_id, new_planned_date)

    async def fetch_segment(self, segment_id: int) -> Segment | None:
        return await self._run(get_segment, segment_id)

    async def fetch_segment_content(self, segment_id: int) -> list[ContentLine]:
        return await self._run(get_segment_content, segment_id)

    async def fetch_programs(self) -> list[Program]:
        return await self._run(get_programs)
