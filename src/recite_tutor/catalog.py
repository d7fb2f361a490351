"""Chapter listing from a remote catalog, cached locally for a fixed time."""
import json
import time
from dataclasses import asdict, dataclass
from typing import Callable

import requests

from recite_tutor import config
from recite_tutor.db import get_connection
from recite_tutor.log import get_logger
from recite_tutor.models import Chapter

logger = get_logger(__name__)

CACHE_KEY = "chapters_v1"


@dataclass
class CacheEntry:
    fetched_at: float
    payload: list

    def is_stale(self, now: float, ttl: float = config.CATALOG_TTL_SECONDS) -> bool:
        return now - self.fetched_at > ttl


def normalize_chapters(data: dict) -> list[Chapter]:
    """Understand both the ``chapters`` and the ``data`` provider shapes."""
    if not isinstance(data, dict):
        return []
    if "chapters" in data:
        return [
            Chapter(
                id=int(c["id"]),
                name=c.get("name_simple", ""),
                native_name=c.get("name_arabic", ""),
                units=int(c["verses_count"]) if c.get("verses_count") is not None else None,
            )
            for c in data["chapters"]
        ]
    if "data" in data:
        return [
            Chapter(
                id=int(c["number"]),
                name=c.get("englishName", ""),
                native_name=c.get("name", ""),
                units=int(c["numberOfAyahs"]) if c.get("numberOfAyahs") is not None else None,
            )
            for c in data["data"]
        ]
    return []


def fetch_json(url: str) -> dict:
    response = requests.get(url, timeout=config.HTTP_TIMEOUT_SECONDS)
    response.raise_for_status()
    return response.json()


def fallback_chapters(size: int = config.CATALOG_FALLBACK_SIZE) -> list[Chapter]:
    return [Chapter(id=i, name=f"Chapter {i}") for i in range(1, size + 1)]


def load_cache(db_path: str) -> CacheEntry | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT fetched_at, payload FROM catalog_cache WHERE key = ?", (CACHE_KEY,)).fetchone()
    conn.close()
    if row is None:
        return None
    try:
        return CacheEntry(fetched_at=row["fetched_at"], payload=json.loads(row["payload"]))
    except json.JSONDecodeError:
        logger.warning("discarding unreadable catalog cache")
        return None


def save_cache(db_path: str, chapters: list[Chapter], now: float) -> None:
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO catalog_cache (key, fetched_at, payload) VALUES (?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET fetched_at=excluded.fetched_at, payload=excluded.payload""",
        (CACHE_KEY, now, json.dumps([asdict(c) for c in chapters])),
    )
    conn.commit()
    conn.close()


def get_catalog(
    db_path: str,
    urls: tuple[str, ...] = config.CATALOG_URLS,
    fetch: Callable[[str], dict] = fetch_json,
    now: float | None = None,
    ttl: float = config.CATALOG_TTL_SECONDS,
) -> list[Chapter]:
    """Fresh cache, else each source in order, else a minimal numbered list."""
    now = time.time() if now is None else now
    cached = load_cache(db_path)
    if cached is not None and cached.payload and not cached.is_stale(now, ttl):
        return [Chapter(**c) for c in cached.payload]

    for url in urls:
        try:
            chapters = normalize_chapters(fetch(url))
        except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.warning("catalog source %s failed: %s", url, exc)
            continue
        if chapters:
            save_cache(db_path, chapters, now)
            return chapters

    return fallback_chapters()
