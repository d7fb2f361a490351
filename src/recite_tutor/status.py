"""Late / today / next classification of planned work."""
from enum import Enum
from typing import Iterable

from recite_tutor.models import Segment


class Status(str, Enum):
    LATE = "late"
    TODAY = "today"
    NEXT = "next"


STATUS_RANK = {Status.LATE: 0, Status.TODAY: 1, Status.NEXT: 2}

STATUS_LABELS = {
    Status.LATE: "Late",
    Status.TODAY: "Today",
    Status.NEXT: "Upcoming",
}

STATUS_COLORS = {
    Status.LATE: "red",
    Status.TODAY: "green",
    Status.NEXT: "bright_black",
}


def classify(planned_date: str, today: str) -> Status:
    """Bucket a planned ``YYYY-MM-DD`` date against today's key."""
    if planned_date < today:
        return Status.LATE
    if planned_date == today:
        return Status.TODAY
    return Status.NEXT


def urgency_key(segment: Segment, today: str) -> tuple:
    return (STATUS_RANK[classify(segment.planned_date, today)], segment.planned_date, segment.id)


def sort_by_urgency(segments: Iterable[Segment], today: str) -> list[Segment]:
    """Late first, then today, then upcoming; by planned date, then id."""
    return sorted(segments, key=lambda s: urgency_key(s, today))


def most_urgent(segments: Iterable[Segment], today: str) -> Segment | None:
    ordered = sort_by_urgency(segments, today)
    return ordered[0] if ordered else None


def pick_segment_to_learn(segments: Iterable[Segment], today: str) -> Segment | None:
    """Earliest pending segment planned on or before today, by day index on ties."""
    candidates = [s for s in segments if s.pending and s.planned_date <= today]
    if not candidates:
        return None
    return min(candidates, key=lambda s: (s.planned_date, s.day_index, s.id))
