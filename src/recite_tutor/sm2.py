"""SM-2 spacing for memorized lines."""
from dataclasses import dataclass, replace
from datetime import date, timedelta

MIN_EASE = 1.3
PASSING_QUALITY = 3


@dataclass(frozen=True)
class RecallSchedule:
    """Spacing state of one memorized line."""
    ease_factor: float = 2.5
    interval: int = 0
    repetitions: int = 0

    def due_after(self, day: date) -> date:
        return day + timedelta(days=self.interval)


def ease_delta(quality: int) -> float:
    miss = 5 - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def sm2_update(schedule: RecallSchedule, quality: int) -> RecallSchedule:
    """Next spacing after a recall graded 0 (blank) to 5 (perfect).

    A grade below 3 restarts the ladder at one day. Passing grades climb
    1, 6, then the previous interval times the old ease factor.
    """
    if not 0 <= quality <= 5:
        raise ValueError(f"quality must be between 0 and 5, got {quality}")

    ease = round(max(MIN_EASE, schedule.ease_factor + ease_delta(quality)), 2)
    if quality < PASSING_QUALITY:
        return replace(schedule, ease_factor=ease, interval=1, repetitions=0)

    if schedule.repetitions == 0:
        interval = 1
    elif schedule.repetitions == 1:
        interval = 6
    else:
        interval = round(schedule.interval * schedule.ease_factor)
    return RecallSchedule(ease_factor=ease, interval=interval, repetitions=schedule.repetitions + 1)
