"""In-progress and today views over pending segments."""
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable

from recite_tutor.dates import shift_day, today_key
from recite_tutor.errors import (
    LoadFailure, NotificationQueue, SchedulerError, SubmitFailure, ValidationFailure,
)
from recite_tutor.log import get_logger
from recite_tutor.models import Segment
from recite_tutor.status import STATUS_LABELS, Status, classify, sort_by_urgency

logger = get_logger(__name__)


@dataclass(frozen=True)
class SegmentCard:
    segment: Segment
    status: Status
    label: str
    program_title: str


@dataclass(frozen=True)
class OverviewCounts:
    late: int = 0
    today: int = 0
    next: int = 0
    total: int = 0


def assemble(segments: list[Segment], today: str, titles: dict[int, str] | None = None) -> list[SegmentCard]:
    """Annotate pending segments with status and label, most urgent first."""
    titles = titles or {}
    cards = []
    for seg in sort_by_urgency((s for s in segments if s.pending), today):
        status = classify(seg.planned_date, today)
        cards.append(SegmentCard(
            segment=seg,
            status=status,
            label=STATUS_LABELS[status],
            program_title=titles.get(seg.program_id, "Program"),
        ))
    return cards


def count_statuses(cards: list[SegmentCard]) -> OverviewCounts:
    late = sum(1 for c in cards if c.status == Status.LATE)
    today = sum(1 for c in cards if c.status == Status.TODAY)
    upcoming = sum(1 for c in cards if c.status == Status.NEXT)
    return OverviewCounts(late=late, today=today, next=upcoming, total=len(cards))


class ScheduleOverview:
    def __init__(self, service, clock: Callable[[], date] = date.today):
        self._service = service
        self._clock = clock
        self._segments: list[Segment] = []
        self._titles: dict[int, str] = {}
        self.cards: list[SegmentCard] = []
        self.counts = OverviewCounts()
        self.notifications = NotificationQueue()

    @property
    def today(self) -> str:
        return today_key(self._clock())

    @property
    def priority(self) -> SegmentCard | None:
        return self.cards[0] if self.cards else None

    @property
    def today_cards(self) -> list[SegmentCard]:
        return [c for c in self.cards if c.status in (Status.LATE, Status.TODAY)]

    def _reclassify(self) -> None:
        self.cards = assemble(self._segments, self.today, self._titles)
        self.counts = count_statuses(self.cards)

    async def refresh(self) -> bool:
        try:
            programs = await self._service.fetch_programs()
            segments = await self._service.fetch_pending_segments()
        except SchedulerError as exc:
            failure = LoadFailure("fetch_pending_segments", str(exc))
            logger.warning("overview: refresh failed: %s", failure.message)
            self.notifications.error(failure)
            return False
        self._titles = {p.id: p.title for p in programs}
        self._segments = list(segments)
        self._reclassify()
        return True

    async def reschedule(self, segment_id: int, new_planned_date: str) -> bool:
        try:
            await self._service.reschedule_segment(segment_id, new_planned_date)
        except SchedulerError as exc:
            failure = SubmitFailure("reschedule_segment", str(exc))
            logger.warning("overview: reschedule of %s failed: %s", segment_id, failure.message)
            self.notifications.error(failure)
            return False
        self._segments = [
            replace(s, planned_date=new_planned_date) if s.id == segment_id else s
            for s in self._segments
        ]
        self._reclassify()
        self.notifications.success(f"Rescheduled to {new_planned_date}")
        return True

    async def postpone(self, segment_id: int, days: int) -> bool:
        return await self.reschedule(segment_id, shift_day(self._clock(), days))

    async def complete(self, segment_id: int) -> bool:
        """Drop the segment locally, complete it remotely, then refetch.

        A segment with no content lines is rejected before any change.
        """
        try:
            content = await self._service.fetch_segment_content(segment_id)
        except SchedulerError as exc:
            failure = LoadFailure("fetch_segment_content", str(exc))
            logger.warning("overview: content for %s failed: %s", segment_id, failure.message)
            self.notifications.error(failure)
            return False
        if not content:
            raise ValidationFailure(f"Segment {segment_id} has no content to learn")

        self._segments = [s for s in self._segments if s.id != segment_id]
        self._reclassify()
        try:
            await self._service.complete_segment_and_init_schedule(segment_id)
        except SchedulerError as exc:
            failure = SubmitFailure("complete_segment_and_init_schedule", str(exc))
            logger.warning("overview: completing %s failed: %s", segment_id, failure.message)
            self.notifications.error(failure)
            await self.refresh()
            return False
        self.notifications.success("Segment completed ✓")
        await self.refresh()
        return True
