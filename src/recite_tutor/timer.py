"""Per-item recall countdown."""
from dataclasses import dataclass

from recite_tutor import config


@dataclass
class SessionTimerState:
    seconds_remaining: int
    paused: bool = False


class CountdownTimer:
    """Counts whole seconds down to zero and reports expiry exactly once."""

    def __init__(self, duration: int = config.ITEM_TIMER_SECONDS):
        if duration <= 0:
            raise ValueError("timer duration must be positive")
        self.duration = duration
        self.state = SessionTimerState(seconds_remaining=duration)
        self._expired = False

    @property
    def seconds_remaining(self) -> int:
        return self.state.seconds_remaining

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def percent_elapsed(self) -> int:
        return round((self.duration - self.state.seconds_remaining) / self.duration * 100)

    def reset(self) -> None:
        self.state = SessionTimerState(seconds_remaining=self.duration)
        self._expired = False

    def pause(self) -> None:
        self.state.paused = True

    def resume(self) -> None:
        self.state.paused = False

    def tick(self) -> bool:
        """Advance one second. Returns True only on the tick that reaches zero."""
        if self.state.paused or self._expired:
            return False
        self.state.seconds_remaining = max(0, self.state.seconds_remaining - 1)
        if self.state.seconds_remaining == 0:
            self._expired = True
            return True
        return False

    def display(self) -> str:
        minutes, seconds = divmod(self.state.seconds_remaining, 60)
        return f"{minutes:02d}:{seconds:02d}"
