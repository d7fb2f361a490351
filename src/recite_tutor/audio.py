"""Short audible cue played on reveal, grade and completion.

The device is the terminal bell of a lazily created ``rich`` console. It is
acquired as a scoped resource: the first ``open_cue()`` creates it, nested
scopes share it, and the last scope to exit releases it.
"""
from contextlib import contextmanager
from typing import Iterator

from rich.console import Console

from recite_tutor import config
from recite_tutor.log import get_logger

logger = get_logger(__name__)


class TickCue:
    def __init__(self, enabled: bool = True, console: Console | None = None):
        self.enabled = enabled
        self._console = console
        self._created = console is not None
        self._closed = False

    def _device(self) -> Console | None:
        if not self._created:
            self._created = True
            try:
                self._console = Console(stderr=True)
            except OSError as exc:
                logger.debug("audio cue unavailable: %s", exc)
                self._console = None
        return self._console

    def tick(self) -> None:
        if not self.enabled or self._closed:
            return
        device = self._device()
        if device is None or not device.is_terminal:
            return
        try:
            device.bell()
        except OSError as exc:
            logger.debug("audio cue failed, disabling: %s", exc)
            self.enabled = False

    def close(self) -> None:
        self._closed = True
        self._console = None

    @property
    def closed(self) -> bool:
        return self._closed


_shared: TickCue | None = None
_holders = 0


@contextmanager
def open_cue(enabled: bool = config.SOUND_ENABLED) -> Iterator[TickCue]:
    """Acquire the shared cue for the duration of a session."""
    global _shared, _holders
    if _shared is None:
        _shared = TickCue(enabled=enabled)
    _holders += 1
    try:
        yield _shared
    finally:
        _holders -= 1
        if _holders == 0:
            _shared.close()
            _shared = None
