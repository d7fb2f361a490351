import asyncio
from contextlib import contextmanager
from datetime import date

import pytest

from recite_tutor.db import init_db
from recite_tutor.errors import SchedulerError
from recite_tutor.importer import store_pages
from recite_tutor.models import ContentLine, Program, ReviewEvent, Segment, WorkItem
from recite_tutor.plan import create_program


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def populated_db(tmp_db):
    """Five pages of three lines each and a one-page-per-day program starting today."""
    init_db(tmp_db)
    pages = [[f"page {p} line {n}" for n in range(1, 4)] for p in range(1, 6)]
    store_pages(tmp_db, pages, first_page=1, source="sample.txt")
    create_program(tmp_db, "Sample", 1, 5, pages_per_day=1, start_date=date.today())
    return tmp_db


class FakeCue:
    def __init__(self):
        self.ticks = 0
        self.closed = False

    def tick(self):
        self.ticks += 1


@pytest.fixture
def cue():
    return FakeCue()


@pytest.fixture
def cue_factory(cue):
    @contextmanager
    def factory():
        try:
            yield cue
        finally:
            cue.closed = True
    return factory


class FakeScheduler:
    """In-memory scheduling service with switchable failures."""

    def __init__(self, items=None, segments=None, content=None, events=None, programs=None):
        self.items: list[WorkItem] = list(items or [])
        self.segments: dict[int, Segment] = {s.id: s for s in (segments or [])}
        self.content: dict[int, list[ContentLine]] = dict(content or {})
        self.events: list[ReviewEvent] = list(events or [])
        self.programs: list[Program] = list(programs or [])
        self.fail: set[str] = set()
        self.grades: list[tuple[int, int]] = []
        self.completed: list[int] = []
        self.fetch_calls = 0
        self.gates: list[asyncio.Event] = []

    def _check(self, op):
        if op in self.fail:
            raise SchedulerError(f"{op} unavailable")

    async def fetch_due_work_items(self, as_of, limit=50):
        self.fetch_calls += 1
        if self.gates:
            await self.gates.pop(0).wait()
        self._check("fetch_due_work_items")
        due = [i for i in self.items if i.due_date <= as_of]
        return due[:limit]

    async def submit_grade(self, work_item_id, quality):
        self._check("submit_grade")
        self.grades.append((work_item_id, quality))
        self.items = [i for i in self.items if i.id != work_item_id]
        self.events.append(ReviewEvent(occurred_at=date.today().isoformat()))

    async def complete_segment_and_init_schedule(self, segment_id):
        self._check("complete_segment_and_init_schedule")
        self.completed.append(segment_id)
        seg = self.segments.pop(segment_id)
        seg.completed_at = date.today().isoformat()
        return len(self.content.get(segment_id, []))

    async def fetch_review_events(self, since=None):
        self._check("fetch_review_events")
        return list(self.events)

    async def fetch_pending_segments(self):
        self._check("fetch_pending_segments")
        return [s for s in self.segments.values() if s.completed_at is None]

    async def fetch_completed_segments(self):
        self._check("fetch_completed_segments")
        return []

    async def reschedule_segment(self, segment_id, new_planned_date):
        self._check("reschedule_segment")
        self.segments[segment_id].planned_date = new_planned_date

    async def fetch_segment(self, segment_id):
        self._check("fetch_segment")
        return self.segments.get(segment_id)

    async def fetch_segment_content(self, segment_id):
        self._check("fetch_segment_content")
        return list(self.content.get(segment_id, []))

    async def fetch_programs(self):
        self._check("fetch_programs")
        return list(self.programs)


@pytest.fixture
def fake_service():
    return FakeScheduler()


@pytest.fixture
def make_service():
    return FakeScheduler
