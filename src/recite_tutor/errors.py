"""Error taxonomy and user-facing notifications."""
from dataclasses import dataclass, field
from datetime import datetime


class TutorError(Exception):
    """Base class for every error raised by the tutor."""


class SchedulerError(TutorError):
    """Raised by a scheduling service when a remote operation fails."""


class ValidationFailure(TutorError):
    """A request rejected client-side before any remote call."""


class InvalidTransition(TutorError):
    """A state machine was asked to move along an edge it does not have."""

    def __init__(self, machine: str, current, target):
        super().__init__(f"{machine}: cannot go from {current.value} to {target.value}")
        self.current = current
        self.target = target


class OperationFailure(TutorError):
    """A remote failure recorded at an operation boundary."""

    def __init__(self, operation: str, message: str):
        super().__init__(message)
        self.operation = operation
        self.message = message


class LoadFailure(OperationFailure):
    """Fetching the queue, a segment or the event history failed."""


class SubmitFailure(OperationFailure):
    """Submitting a grade, a completion or a reschedule failed."""


@dataclass
class Notification:
    kind: str  # "error", "success" or "info"
    message: str
    created_at: datetime = field(default_factory=datetime.now)
    failure: OperationFailure | None = None


class NotificationQueue:
    """Visible, dismissible messages collected by an engine."""

    def __init__(self):
        self._items: list[Notification] = []

    def __iter__(self):
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def error(self, failure: OperationFailure) -> Notification:
        note = Notification("error", failure.message, failure=failure)
        self._items.append(note)
        return note

    def success(self, message: str) -> Notification:
        note = Notification("success", message)
        self._items.append(note)
        return note

    def info(self, message: str) -> Notification:
        note = Notification("info", message)
        self._items.append(note)
        return note

    def latest(self) -> Notification | None:
        return self._items[-1] if self._items else None

    def dismiss(self, note: Notification) -> None:
        if note in self._items:
            self._items.remove(note)

    def drain(self) -> list[Notification]:
        items, self._items = self._items, []
        return items
