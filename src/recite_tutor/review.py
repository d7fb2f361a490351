"""Review session: the due queue, the recall timer and quality grading.

The engine is an explicit state machine::

    LOADING -> READY | EMPTY | ERROR
    READY   -> GRADING | LOADING
    GRADING -> READY | EMPTY | LOADING
    ERROR   -> LOADING
    EMPTY   -> LOADING

Only the engine mutates its queue. Remote calls go through a
``SchedulingService``; their failures become notifications, never exceptions.
"""
import asyncio
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable

from recite_tutor import config
from recite_tutor.audio import open_cue
from recite_tutor.dates import today_key
from recite_tutor.errors import (
    InvalidTransition, LoadFailure, NotificationQueue, SchedulerError,
    SubmitFailure, ValidationFailure,
)
from recite_tutor.log import get_logger
from recite_tutor.models import WorkItem
from recite_tutor.timer import CountdownTimer

logger = get_logger(__name__)


class SessionState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    GRADING = "grading"
    ERROR = "error"
    EMPTY = "empty"


TRANSITIONS = {
    SessionState.LOADING: {SessionState.LOADING, SessionState.READY, SessionState.EMPTY, SessionState.ERROR},
    SessionState.READY: {SessionState.GRADING, SessionState.LOADING},
    SessionState.GRADING: {SessionState.READY, SessionState.EMPTY, SessionState.LOADING},
    SessionState.ERROR: {SessionState.LOADING},
    SessionState.EMPTY: {SessionState.LOADING},
}


@dataclass(frozen=True)
class GradeScale:
    name: str
    qualities: frozenset
    keys: dict = field(hash=False)
    labels: dict = field(hash=False)


THREE_POINT = GradeScale(
    name="three_point",
    qualities=frozenset({2, 3, 5}),
    keys={"1": 2, "2": 3, "3": 5},
    labels={2: "Hard", 3: "Good", 5: "Easy"},
)

FIVE_POINT = GradeScale(
    name="five_point",
    qualities=frozenset({1, 2, 3, 4, 5}),
    keys={"1": 1, "2": 2, "3": 3, "4": 4, "5": 5, "s": 2, "S": 2},
    labels={1: "Very hard", 2: "Hard", 3: "Fair", 4: "Good", 5: "Easy"},
)

SCALES = {scale.name: scale for scale in (THREE_POINT, FIVE_POINT)}

REVEAL_KEYS = {" ", "space"}


@dataclass(frozen=True)
class SessionMode:
    """Grading scale plus whether each new item starts hidden (quiz) or shown."""
    scale: GradeScale = THREE_POINT
    quiz: bool = True

    @classmethod
    def from_names(cls, scale: str, quiz: bool) -> "SessionMode":
        if scale not in SCALES:
            raise ValidationFailure(f"Unknown grading scale: {scale}")
        return cls(scale=SCALES[scale], quiz=quiz)


def feedback_label(quality: int) -> str:
    if quality <= 2:
        return "Hard"
    if quality >= 5:
        return "Easy"
    return "Good"


class ReviewQueueEngine:
    def __init__(
        self,
        service,
        mode: SessionMode = SessionMode(),
        timer_seconds: int = config.ITEM_TIMER_SECONDS,
        batch_size: int = config.REVIEW_BATCH_SIZE,
        clock: Callable[[], date] = date.today,
        cue_factory=open_cue,
        on_change: Callable[["ReviewQueueEngine", str], None] | None = None,
    ):
        self._service = service
        self.mode = mode
        self.batch_size = batch_size
        self._clock = clock
        self._cue_factory = cue_factory
        self._on_change = on_change

        self.state = SessionState.LOADING
        self.queue: list[WorkItem] = []
        self.total = 0
        self.graded = 0
        self.revealed = not mode.quiz
        self.timer = CountdownTimer(timer_seconds)
        self.notifications = NotificationQueue()
        self.error: str | None = None

        self._timer_item_id: int | None = None
        self._generation = 0
        self._inflight: asyncio.Future | None = None
        self._ticker: asyncio.Task | None = None
        self._exit_stack: ExitStack | None = None
        self._cue = None
        self._closed = False

    # --- lifecycle -------------------------------------------------------

    async def __aenter__(self) -> "ReviewQueueEngine":
        self.open()
        self._ticker = asyncio.create_task(self.run_timer())
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def open(self) -> None:
        """Acquire the audio cue for the session."""
        if self._exit_stack is None:
            self._exit_stack = ExitStack()
            self._cue = self._exit_stack.enter_context(self._cue_factory())

    async def close(self) -> None:
        """Abort in-flight work, stop the timer and release the audio cue."""
        self._closed = True
        for task in (self._ticker, self._inflight):
            if task is not None and not task.done():
                task.cancel()
        if self._ticker is not None:
            try:
                await self._ticker
            except asyncio.CancelledError:
                pass
            self._ticker = None
        if self._exit_stack is not None:
            self._exit_stack.close()
            self._exit_stack = None
            self._cue = None

    @property
    def closed(self) -> bool:
        return self._closed

    # --- derived views ---------------------------------------------------

    @property
    def current(self) -> WorkItem | None:
        return self.queue[0] if self.queue else None

    @property
    def remaining(self) -> int:
        return len(self.queue)

    @property
    def done(self) -> int:
        return max(self.total - len(self.queue), 0)

    @property
    def progress_percent(self) -> int:
        return round(self.done / self.total * 100) if self.total else 0

    @property
    def key_map(self) -> dict:
        return dict(self.mode.scale.keys)

    # --- internals -------------------------------------------------------

    def _transition(self, target: SessionState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition("review", self.state, target)
        logger.debug("review: %s -> %s", self.state.value, target.value)
        self.state = target
        self._emit("state")

    def _emit(self, event: str) -> None:
        if self._on_change is not None:
            self._on_change(self, event)

    def _tick_cue(self) -> None:
        if self._cue is not None:
            self._cue.tick()

    def _sync_head(self) -> None:
        """Reset timer and reveal state when the head item changes identity."""
        head = self.current
        head_id = head.id if head else None
        if head_id != self._timer_item_id:
            self._timer_item_id = head_id
            self.timer.reset()
            self.revealed = not self.mode.quiz
            self._emit("item")

    # --- operations ------------------------------------------------------

    async def load(self) -> SessionState:
        """Replace the queue with the items due today. A newer call supersedes."""
        if self._closed:
            return self.state
        self._generation += 1
        generation = self._generation
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._transition(SessionState.LOADING)
        self.error = None

        fetch = asyncio.ensure_future(
            self._service.fetch_due_work_items(today_key(self._clock()), self.batch_size)
        )
        self._inflight = fetch
        try:
            items = await fetch
        except asyncio.CancelledError:
            if generation != self._generation or self._closed:
                logger.debug("review: load %d superseded", generation)
                return self.state
            raise
        except SchedulerError as exc:
            if generation != self._generation or self._closed:
                return self.state
            failure = LoadFailure("fetch_due_work_items", str(exc))
            logger.warning("review: load failed: %s", failure.message)
            self.queue = []
            self.total = 0
            self.error = failure.message
            self.notifications.error(failure)
            self._sync_head()
            self._transition(SessionState.ERROR)
            return self.state

        if generation != self._generation or self._closed:
            logger.debug("review: discarding stale load %d", generation)
            return self.state

        seen = set()
        queue = []
        for item in items[: self.batch_size]:
            if item.id not in seen:
                seen.add(item.id)
                queue.append(item)
        self.queue = queue
        self.total = len(queue)
        self._timer_item_id = None
        self._sync_head()
        self._transition(SessionState.READY if queue else SessionState.EMPTY)
        return self.state

    def reveal(self) -> None:
        if self.current is None:
            return
        self.revealed = True
        self._tick_cue()
        self._emit("reveal")

    def hide(self) -> None:
        if self.current is None:
            return
        self.revealed = False
        self._emit("reveal")

    def toggle_reveal(self) -> None:
        if self.revealed:
            self.hide()
        else:
            self.reveal()

    async def grade(self, quality: int) -> bool:
        """Grade the head item. Returns True when the service accepted it."""
        if quality not in self.mode.scale.qualities:
            allowed = ", ".join(str(q) for q in sorted(self.mode.scale.qualities))
            raise ValidationFailure(f"Quality {quality} is not one of {allowed}")
        if self.state != SessionState.READY or self.current is None:
            raise ValidationFailure("There is no item to grade")

        item = self.queue.pop(0)
        self._transition(SessionState.GRADING)
        self._sync_head()
        try:
            await self._service.submit_grade(item.id, quality)
        except SchedulerError as exc:
            failure = SubmitFailure("submit_grade", str(exc))
            logger.warning("review: grade for %s failed: %s", item.id, failure.message)
            self.notifications.error(failure)
            if not self._closed:
                await self.load()
            return False

        self.graded += 1
        if self._closed:
            return True
        self.notifications.success(f"{feedback_label(quality)} ✓")
        self._tick_cue()
        if self.state == SessionState.GRADING:
            self._transition(SessionState.READY if self.queue else SessionState.EMPTY)
        return True

    async def handle_key(self, key: str, text_entry_focused: bool = False) -> bool:
        """Dispatch a keyboard shortcut. Ignored while typing in a text field."""
        if text_entry_focused:
            return False
        if key in REVEAL_KEYS:
            self.toggle_reveal()
            return True
        quality = self.mode.scale.keys.get(key)
        if quality is None or self.state != SessionState.READY:
            return False
        await self.grade(quality)
        return True

    # --- timer -----------------------------------------------------------

    def pause(self) -> None:
        self.timer.pause()
        self._emit("timer")

    def resume(self) -> None:
        self.timer.resume()
        self._emit("timer")

    def toggle_pause(self) -> None:
        if self.timer.paused:
            self.resume()
        else:
            self.pause()

    def tick(self) -> None:
        """One second of the per-item countdown; auto-reveals on expiry."""
        if self.current is None:
            return
        if self.timer.tick():
            logger.debug("review: time up for item %s", self.current.id)
            self.notifications.info("Time is up, revealing")
            self.reveal()
        self._emit("tick")

    async def run_timer(self, interval: float = 1.0) -> None:
        while not self._closed:
            await asyncio.sleep(interval)
            self.tick()
