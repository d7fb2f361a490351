"""Learning programs: split a page range into dated daily segments."""
from datetime import date, datetime, timedelta

from recite_tutor.db import get_connection
from recite_tutor.errors import ValidationFailure


def split_range(first_page: int, last_page: int, pages_per_day: int) -> list[tuple[int, int]]:
    """Consecutive inclusive page ranges; the last one may be shorter."""
    if first_page < 1 or last_page < first_page:
        raise ValidationFailure(f"Invalid page range {first_page}-{last_page}")
    if pages_per_day < 1:
        raise ValidationFailure("Pages per day must be at least 1")
    ranges = []
    start = first_page
    while start <= last_page:
        end = min(start + pages_per_day - 1, last_page)
        ranges.append((start, end))
        start = end + 1
    return ranges


def create_program(
    db_path: str,
    title: str,
    first_page: int,
    last_page: int,
    pages_per_day: int = 1,
    start_date: date | None = None,
) -> int:
    """Create a program and its segments, one per day from ``start_date``."""
    if not title.strip():
        raise ValidationFailure("Program title is required")
    ranges = split_range(first_page, last_page, pages_per_day)
    start_date = start_date or date.today()

    conn = get_connection(db_path)
    with conn:
        cur = conn.execute(
            "INSERT INTO programs (title, created_at) VALUES (?, ?)",
            (title.strip(), datetime.now().isoformat()),
        )
        program_id = cur.lastrowid
        for day_index, (page_from, page_to) in enumerate(ranges, 1):
            planned = (start_date + timedelta(days=day_index - 1)).isoformat()
            conn.execute(
                """INSERT INTO segments (program_id, day_index, planned_date, page_from, page_to)
                VALUES (?, ?, ?, ?, ?)""",
                (program_id, day_index, planned, page_from, page_to),
            )
    conn.close()
    return program_id


def get_program_progress(db_path: str, program_id: int) -> dict:
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT COUNT(*) as total,
            SUM(CASE WHEN completed_at IS NOT NULL THEN 1 ELSE 0 END) as done
        FROM segments WHERE program_id = ?""",
        (program_id,),
    ).fetchone()
    conn.close()
    total = row["total"]
    done = row["done"] or 0
    return {
        "total": total,
        "done": done,
        "percent": round(done / total * 100) if total else 0,
    }
