"""Saved content storage: Postgres or file-based fallback."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from autocontent.config import get_settings
from autocontent.schemas.content_schemas import SavedContent
from autocontent.utils import ensure_aware

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    def save(self, content: SavedContent) -> SavedContent: ...
    def get(self, content_id: str) -> SavedContent | None: ...
    def list_for_user(self, user_id: str, page: int, size: int) -> tuple[list[SavedContent], int]: ...


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

_COLUMNS = tuple(SavedContent.model_fields)
_SELECT = "SELECT " + ", ".join(_COLUMNS) + " FROM ac_contents"


class PostgresContentStore:
    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        import psycopg

        conn = psycopg.connect(self._url, autocommit=True)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ac_contents (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title VARCHAR(500),
                generated_content TEXT NOT NULL,
                prompt TEXT,
                content_type VARCHAR(20),
                industry VARCHAR(100),
                target_audience VARCHAR(200),
                tone VARCHAR(50),
                language VARCHAR(10) NOT NULL DEFAULT 'vi',
                word_count INT NOT NULL DEFAULT 0,
                character_count INT NOT NULL DEFAULT 0,
                ai_provider TEXT,
                ai_model TEXT,
                tokens_used INT,
                generation_cost DOUBLE PRECISION,
                processing_time_ms BIGINT,
                job_id TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_ac_contents_user ON ac_contents (user_id, created_at DESC)"
        )
        return conn

    def save(self, content: SavedContent) -> SavedContent:
        data = content.model_dump()
        placeholders = ", ".join(["%s"] * len(_COLUMNS))
        self._conn.execute(
            f"INSERT INTO ac_contents ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            [data[c] for c in _COLUMNS],
        )
        return content

    def get(self, content_id: str) -> SavedContent | None:
        row = self._conn.execute(f"{_SELECT} WHERE id = %s", (content_id,)).fetchone()
        return SavedContent.model_validate(dict(zip(_COLUMNS, row))) if row else None

    def list_for_user(self, user_id: str, page: int, size: int) -> tuple[list[SavedContent], int]:
        total = self._conn.execute(
            "SELECT COUNT(*) FROM ac_contents WHERE user_id = %s", (user_id,)
        ).fetchone()[0]
        rows = self._conn.execute(
            f"{_SELECT} WHERE user_id = %s ORDER BY created_at DESC LIMIT %s OFFSET %s",
            (user_id, size, page * size),
        ).fetchall()
        return [SavedContent.model_validate(dict(zip(_COLUMNS, r))) for r in rows], total


# ---------------------------------------------------------------------------
# File-based implementation
# ---------------------------------------------------------------------------

class FileContentStore:
    """One JSON file per saved content item under data/contents."""

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir) / "contents"
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, content_id: str) -> Path:
        return self._dir / f"{content_id}.json"

    def save(self, content: SavedContent) -> SavedContent:
        with open(self._path(content.id), "w", encoding="utf-8") as f:
            json.dump(content.model_dump(mode="json"), f, indent=2)
        return content

    def get(self, content_id: str) -> SavedContent | None:
        path = self._path(content_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return SavedContent.model_validate(json.load(f))

    def list_for_user(self, user_id: str, page: int, size: int) -> tuple[list[SavedContent], int]:
        items = []
        for path in self._dir.glob("*.json"):
            with open(path, "r", encoding="utf-8") as f:
                item = SavedContent.model_validate(json.load(f))
            if item.user_id == user_id:
                items.append(item)
        items.sort(key=lambda c: ensure_aware(c.created_at), reverse=True)
        start = page * size
        return items[start:start + size], len(items)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: ContentStore | None = None


def get_content_store() -> ContentStore:
    """Return singleton content store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.ac_database_url:
        try:
            _store = PostgresContentStore(settings.ac_database_url)
            logger.info("Using Postgres content store")
        except Exception as e:
            logger.warning("Postgres content store failed (%s), falling back to file store", e)
            _store = FileContentStore(settings.data_dir)
    else:
        _store = FileContentStore(settings.data_dir)
    return _store
