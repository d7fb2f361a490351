"""Streak, heatmap and activity statistics derived from review events."""
import calendar
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterable

from recite_tutor import config
from recite_tutor.dates import DateLike, day_key, to_local_date, week_key
from recite_tutor.errors import LoadFailure, NotificationQueue, SchedulerError
from recite_tutor.log import get_logger
from recite_tutor.models import ReviewEvent

logger = get_logger(__name__)

HEATMAP_LEVELS = 5
LEVEL_COLORS = ["grey23", "khaki1", "light_goldenrod2", "gold1", "gold3"]


@dataclass(frozen=True)
class HeatmapDay:
    day: str
    count: int
    level: int


def _event_days(events: Iterable[ReviewEvent | DateLike]) -> list[str]:
    keys = []
    for event in events:
        stamp = event.occurred_at if isinstance(event, ReviewEvent) else event
        keys.append(day_key(stamp))
    return keys


def calc_streak(events: Iterable[ReviewEvent | DateLike], today: date | None = None) -> int:
    """Consecutive days with at least one event, ending today.

    The walk is bounded by the number of distinct event days, so arbitrarily
    long streaks are counted in full.
    """
    days = set(_event_days(events))
    cursor = today or date.today()
    streak = 0
    while cursor.isoformat() in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def months_before(day: date, months: int) -> date:
    """Same calendar day ``months`` months earlier, clamped to month end."""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def intensity_level(count: int, peak: int) -> int:
    """Quantize a day's count into 0..4 using quarter steps of the peak."""
    if count <= 0 or peak <= 0:
        return 0
    if count >= peak * 3 / 4:
        return 4
    if count >= peak / 2:
        return 3
    if count >= peak / 4:
        return 2
    return 1


def build_heatmap(
    events: Iterable[ReviewEvent | DateLike],
    window_months: int = config.HEATMAP_MONTHS,
    today: date | None = None,
) -> list[HeatmapDay]:
    """One entry per calendar day from ``today - window_months`` to today."""
    end = today or date.today()
    start = months_before(end, window_months)
    counts = Counter(_event_days(events))

    window = []
    cursor = start
    while cursor <= end:
        key = cursor.isoformat()
        window.append((key, counts.get(key, 0)))
        cursor += timedelta(days=1)

    peak = max((c for _, c in window), default=0)
    return [HeatmapDay(day=k, count=c, level=intensity_level(c, peak)) for k, c in window]


def heatmap_weeks(days: list[HeatmapDay]) -> list[list[HeatmapDay | None]]:
    """Lay days into Sunday-first week columns, padding the first column."""
    columns: list[list[HeatmapDay | None]] = []
    column: list[HeatmapDay | None] = []
    for entry in days:
        weekday = (to_local_date(entry.day).weekday() + 1) % 7  # Sunday = 0
        if not column:
            column.extend([None] * weekday)
        column.append(entry)
        if weekday == 6:
            columns.append(column)
            column = []
    if column:
        columns.append(column)
    return columns


def get_level_color(level: int) -> str:
    return LEVEL_COLORS[max(0, min(level, HEATMAP_LEVELS - 1))]


def reviews_per_day(events: Iterable[ReviewEvent | DateLike]) -> list[tuple[str, int]]:
    return sorted(Counter(_event_days(events)).items())


def weekly_counts(timestamps: Iterable[DateLike]) -> list[tuple[str, int]]:
    """Count timestamps per ISO week, sorted by week key."""
    return sorted(Counter(week_key(t) for t in timestamps if t).items())


def sparkline(
    events: Iterable[ReviewEvent | DateLike],
    today: date | None = None,
    days: int = config.SPARKLINE_DAYS,
) -> list[tuple[str, int]]:
    end = today or date.today()
    counts = Counter(_event_days(events))
    keys = [(end - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]
    return [(k, counts.get(k, 0)) for k in keys]


class ActivityTracker:
    """Holds the review history and the statistics derived from it.

    A failed refresh keeps the previously loaded events.
    """

    def __init__(self, service, clock: Callable[[], date] = date.today):
        self._service = service
        self._clock = clock
        self.events: list[ReviewEvent] = []
        self.completed: list[str] = []
        self.notifications = NotificationQueue()

    async def refresh(self, since: str | None = None) -> bool:
        try:
            events = await self._service.fetch_review_events(since)
            completed = await self._service.fetch_completed_segments()
        except SchedulerError as exc:
            failure = LoadFailure("fetch_review_events", str(exc))
            logger.warning("activity refresh failed: %s", failure.message)
            self.notifications.error(failure)
            return False
        self.events = list(events)
        self.completed = [s.completed_at for s in completed if s.completed_at]
        return True

    @property
    def streak(self) -> int:
        return calc_streak(self.events, self._clock())

    def heatmap(self, window_months: int = config.HEATMAP_MONTHS) -> list[HeatmapDay]:
        return build_heatmap(self.events, window_months, self._clock())

    def segments_per_week(self) -> list[tuple[str, int]]:
        return weekly_counts(self.completed)

    def sparkline(self, days: int = config.SPARKLINE_DAYS) -> list[tuple[str, int]]:
        return sparkline(self.events, self._clock(), days)
