"""Process-wide logging setup."""
import logging

from rich.console import Console
from rich.logging import RichHandler

from recite_tutor import config

_HANDLER_ATTACHED = False


def _resolve_level() -> int:
    return getattr(logging, config.LOG_LEVEL, logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; the first call attaches one stderr handler."""
    global _HANDLER_ATTACHED

    level = _resolve_level()
    root = logging.getLogger("recite_tutor")
    if not _HANDLER_ATTACHED:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(handler)
        _HANDLER_ATTACHED = True
    root.setLevel(level)
    return logging.getLogger(name)
