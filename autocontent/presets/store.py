"""Preset storage: Postgres or file-based fallback."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from autocontent.config import get_settings
from autocontent.presets.models import Preset

logger = logging.getLogger(__name__)


class PresetStore(Protocol):
    def create(self, preset: Preset) -> Preset: ...
    def get(self, preset_id: str) -> Preset | None: ...
    def update(self, preset: Preset) -> None: ...
    def delete(self, preset_id: str) -> bool: ...
    def list_for_user(self, user_id: str) -> list[Preset]: ...


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

_COLUMNS = tuple(Preset.model_fields)
_JSON_COLUMNS = {"configuration", "tags"}
_SELECT = "SELECT " + ", ".join(_COLUMNS) + " FROM ac_presets"


class PostgresPresetStore:
    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        import psycopg

        conn = psycopg.connect(self._url, autocommit=True)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ac_presets (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name VARCHAR(200) NOT NULL,
                description VARCHAR(1000),
                configuration JSONB NOT NULL DEFAULT '{}',
                category VARCHAR(100),
                content_type VARCHAR(50),
                is_default BOOLEAN NOT NULL DEFAULT FALSE,
                is_favorite BOOLEAN NOT NULL DEFAULT FALSE,
                is_shared BOOLEAN NOT NULL DEFAULT FALSE,
                tags JSONB NOT NULL DEFAULT '[]',
                usage_count INT NOT NULL DEFAULT 0,
                last_used_at TIMESTAMPTZ,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_ac_presets_user ON ac_presets (user_id, created_at DESC)"
        )
        return conn

    def _values(self, preset: Preset) -> list:
        data = preset.model_dump()
        return [json.dumps(data[c]) if c in _JSON_COLUMNS else data[c] for c in _COLUMNS]

    def _row_to_preset(self, row) -> Preset:
        data = dict(zip(_COLUMNS, row))
        for col in _JSON_COLUMNS:
            if isinstance(data[col], str):
                data[col] = json.loads(data[col])
        return Preset.model_validate(data)

    def create(self, preset: Preset) -> Preset:
        placeholders = ", ".join("%s::jsonb" if c in _JSON_COLUMNS else "%s" for c in _COLUMNS)
        self._conn.execute(
            f"INSERT INTO ac_presets ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            self._values(preset),
        )
        return preset

    def get(self, preset_id: str) -> Preset | None:
        row = self._conn.execute(f"{_SELECT} WHERE id = %s", (preset_id,)).fetchone()
        return self._row_to_preset(row) if row else None

    def update(self, preset: Preset) -> None:
        assignments = ", ".join(
            f"{c} = %s::jsonb" if c in _JSON_COLUMNS else f"{c} = %s" for c in _COLUMNS[1:]
        )
        values = self._values(preset)
        self._conn.execute(
            f"UPDATE ac_presets SET {assignments} WHERE id = %s", [*values[1:], preset.id]
        )

    def delete(self, preset_id: str) -> bool:
        cur = self._conn.execute("DELETE FROM ac_presets WHERE id = %s", (preset_id,))
        return cur.rowcount > 0

    def list_for_user(self, user_id: str) -> list[Preset]:
        rows = self._conn.execute(f"{_SELECT} WHERE user_id = %s", (user_id,)).fetchall()
        return [self._row_to_preset(r) for r in rows]


# ---------------------------------------------------------------------------
# File-based implementation
# ---------------------------------------------------------------------------

class FilePresetStore:
    """All presets in presets.json (id -> preset)."""

    def __init__(self, data_dir: Path):
        self._path = Path(data_dir) / "presets.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Preset]:
        if not self._path.exists():
            return {}
        with open(self._path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return {pid: Preset.model_validate(p) for pid, p in raw.items()}

    def _save(self, presets: dict[str, Preset]) -> None:
        tmp = self._path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump({pid: p.model_dump(mode="json") for pid, p in presets.items()}, f, indent=2)
        tmp.replace(self._path)

    def create(self, preset: Preset) -> Preset:
        self.update(preset)
        return preset

    def get(self, preset_id: str) -> Preset | None:
        return self._load().get(preset_id)

    def update(self, preset: Preset) -> None:
        with self._lock:
            presets = self._load()
            presets[preset.id] = preset
            self._save(presets)

    def delete(self, preset_id: str) -> bool:
        with self._lock:
            presets = self._load()
            if presets.pop(preset_id, None) is None:
                return False
            self._save(presets)
            return True

    def list_for_user(self, user_id: str) -> list[Preset]:
        return [p for p in self._load().values() if p.user_id == user_id]


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: PresetStore | None = None


def get_preset_store() -> PresetStore:
    """Return singleton preset store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.ac_database_url:
        try:
            _store = PostgresPresetStore(settings.ac_database_url)
            logger.info("Using Postgres preset store")
        except Exception as e:
            logger.warning("Postgres preset store failed (%s), falling back to file store", e)
            _store = FilePresetStore(settings.data_dir)
    else:
        _store = FilePresetStore(settings.data_dir)
    return _store
