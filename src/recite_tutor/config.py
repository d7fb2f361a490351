"""Runtime configuration.

Typed constants with environment overrides. Every value has a safe default
so the tool starts without any extra configuration.
"""
import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# --- Storage ---
DB_PATH: str = os.getenv(
    "RECITE_TUTOR_DB_PATH", str(Path.home() / ".recite_tutor" / "tutor.db")
)

# --- Review session ---
ITEM_TIMER_SECONDS: int = int(os.getenv("RECITE_TUTOR_ITEM_TIMER_SECONDS", "30"))
REVIEW_BATCH_SIZE: int = int(os.getenv("RECITE_TUTOR_REVIEW_BATCH_SIZE", "50"))
SOUND_ENABLED: bool = _env_bool("RECITE_TUTOR_SOUND_ENABLED", True)

# --- Analytics ---
HEATMAP_MONTHS: int = int(os.getenv("RECITE_TUTOR_HEATMAP_MONTHS", "6"))
SPARKLINE_DAYS: int = 7

# --- Catalog ---
CATALOG_TTL_SECONDS: int = int(os.getenv("RECITE_TUTOR_CATALOG_TTL_SECONDS", str(24 * 60 * 60)))
CATALOG_URLS: tuple[str, ...] = tuple(
    url.strip()
    for url in os.getenv(
        "RECITE_TUTOR_CATALOG_URLS",
        "https://api.quran.com/api/v4/chapters,https://api.alquran.cloud/v1/surah",
    ).split(",")
    if url.strip()
)
CATALOG_FALLBACK_SIZE: int = 114
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("RECITE_TUTOR_HTTP_TIMEOUT", "10"))

# --- Import ---
LINES_PER_PAGE: int = 15

# --- Logging ---
LOG_LEVEL: str = os.getenv("RECITE_TUTOR_LOG_LEVEL", "WARNING").upper()
