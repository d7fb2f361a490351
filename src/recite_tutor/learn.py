"""Learning session for a single segment: load, read, mark learned."""
from contextlib import ExitStack
from datetime import date
from enum import Enum
from typing import Callable

from recite_tutor.audio import open_cue
from recite_tutor.dates import today_key
from recite_tutor.errors import (
    InvalidTransition, LoadFailure, NotificationQueue, SchedulerError,
    SubmitFailure, ValidationFailure,
)
from recite_tutor.log import get_logger
from recite_tutor.models import ContentLine, Segment
from recite_tutor.status import pick_segment_to_learn

logger = get_logger(__name__)


class SegmentState(str, Enum):
    LOADING = "loading"
    NOT_FOUND = "not_found"
    LOADED = "loaded"
    ERROR = "error"
    COMPLETING = "completing"
    COMPLETED = "completed"


TRANSITIONS = {
    SegmentState.LOADING: {SegmentState.LOADED, SegmentState.NOT_FOUND, SegmentState.ERROR},
    SegmentState.NOT_FOUND: {SegmentState.LOADING},
    SegmentState.ERROR: {SegmentState.LOADING},
    SegmentState.LOADED: {SegmentState.COMPLETING, SegmentState.LOADING},
    SegmentState.COMPLETING: {SegmentState.COMPLETED, SegmentState.LOADED},
    SegmentState.COMPLETED: {SegmentState.LOADING},
}


class SegmentSessionEngine:
    def __init__(
        self,
        service,
        clock: Callable[[], date] = date.today,
        cue_factory=open_cue,
        on_completed: Callable[[Segment], None] | None = None,
    ):
        self._service = service
        self._clock = clock
        self._cue_factory = cue_factory
        self._on_completed = on_completed
        self._exit_stack: ExitStack | None = None
        self._cue = None

        self.state = SegmentState.LOADING
        self.segment: Segment | None = None
        self.content: list[ContentLine] = []
        self.notifications = NotificationQueue()
        self.error: str | None = None

    def __enter__(self) -> "SegmentSessionEngine":
        self._exit_stack = ExitStack()
        self._cue = self._exit_stack.enter_context(self._cue_factory())
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._exit_stack is not None:
            self._exit_stack.close()
            self._exit_stack = None
            self._cue = None

    def _transition(self, target: SegmentState) -> None:
        if target != self.state and target not in TRANSITIONS[self.state]:
            raise InvalidTransition("learn", self.state, target)
        logger.debug("learn: %s -> %s", self.state.value, target.value)
        self.state = target

    @property
    def can_complete(self) -> bool:
        return self.state == SegmentState.LOADED and bool(self.content)

    async def load(self, segment_id: int | None = None) -> SegmentState:
        """Load an explicit segment, else the earliest one due by today."""
        self._transition(SegmentState.LOADING)
        self.segment = None
        self.content = []
        self.error = None
        try:
            if segment_id is not None:
                segment = await self._service.fetch_segment(segment_id)
            else:
                pending = await self._service.fetch_pending_segments()
                segment = pick_segment_to_learn(pending, today_key(self._clock()))
        except SchedulerError as exc:
            failure = LoadFailure("fetch_segment", str(exc))
            logger.warning("learn: load failed: %s", failure.message)
            self.error = failure.message
            self.notifications.error(failure)
            self._transition(SegmentState.ERROR)
            return self.state

        if segment is None:
            self._transition(SegmentState.NOT_FOUND)
            return self.state

        self.segment = segment
        try:
            self.content = list(await self._service.fetch_segment_content(segment.id))
        except SchedulerError as exc:
            # The segment stays readable; an empty content list blocks completion.
            failure = LoadFailure("fetch_segment_content", str(exc))
            logger.warning("learn: content for segment %s failed: %s", segment.id, failure.message)
            self.error = failure.message
            self.notifications.error(failure)
        self._transition(SegmentState.LOADED)
        return self.state

    async def complete(self) -> bool:
        """Mark the loaded segment learned and initialize its review schedule."""
        if self.state != SegmentState.LOADED or self.segment is None:
            raise ValidationFailure("No segment is loaded")
        if not self.content:
            raise ValidationFailure("This segment has no content to learn")

        self._transition(SegmentState.COMPLETING)
        try:
            await self._service.complete_segment_and_init_schedule(self.segment.id)
        except SchedulerError as exc:
            failure = SubmitFailure("complete_segment_and_init_schedule", str(exc))
            logger.warning("learn: completing segment %s failed: %s", self.segment.id, failure.message)
            self.notifications.error(failure)
            self._transition(SegmentState.LOADED)
            return False

        self._transition(SegmentState.COMPLETED)
        if self._cue is not None:
            self._cue.tick()
        self.notifications.success("Segment marked learned ✓")
        if self._on_completed is not None:
            self._on_completed(self.segment)
        return True
