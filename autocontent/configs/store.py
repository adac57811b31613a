"""Option catalog and selection storage: Postgres or file-based fallback."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from autocontent.config import get_settings
from autocontent.configs.models import ConfigCategory, ConfigOption, UserConfigSelection

logger = logging.getLogger(__name__)


class ConfigStore(Protocol):
    def add_option(self, option: ConfigOption) -> ConfigOption: ...
    def update_option(self, option: ConfigOption) -> None: ...
    def get_option(self, option_id: str) -> ConfigOption | None: ...
    def list_options(self, category: ConfigCategory, active_only: bool = True) -> list[ConfigOption]: ...
    def selected_option_ids(self, user_id: str) -> set[str]: ...
    def selections_for_options(self, option_ids: list[str]) -> list[UserConfigSelection]: ...
    def add_selection(self, selection: UserConfigSelection) -> None: ...
    def remove_selection(self, user_id: str, option_id: str) -> None: ...


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

_OPTION_COLUMNS = tuple(ConfigOption.model_fields)
_SELECT_OPTION = "SELECT " + ", ".join(_OPTION_COLUMNS) + " FROM ac_config_options"


class PostgresConfigStore:
    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        import psycopg

        conn = psycopg.connect(self._url, autocommit=True)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ac_config_options (
                id TEXT PRIMARY KEY,
                category TEXT NOT NULL,
                name VARCHAR(100) NOT NULL,
                value VARCHAR(100) NOT NULL,
                label TEXT,
                display_label TEXT,
                description TEXT,
                sort_order INT NOT NULL DEFAULT 0,
                active BOOLEAN NOT NULL DEFAULT TRUE,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                UNIQUE (category, value)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ac_user_configs (
                user_id TEXT NOT NULL,
                option_id TEXT NOT NULL REFERENCES ac_config_options(id) ON DELETE CASCADE,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                PRIMARY KEY (user_id, option_id)
            )
        """)
        return conn

    def _row_to_option(self, row) -> ConfigOption:
        return ConfigOption.model_validate(dict(zip(_OPTION_COLUMNS, row)))

    def _option_values(self, option: ConfigOption) -> list:
        data = option.model_dump()
        data["category"] = option.category.value
        return [data[c] for c in _OPTION_COLUMNS]

    def add_option(self, option: ConfigOption) -> ConfigOption:
        placeholders = ", ".join(["%s"] * len(_OPTION_COLUMNS))
        self._conn.execute(
            f"INSERT INTO ac_config_options ({', '.join(_OPTION_COLUMNS)}) VALUES ({placeholders})",
            self._option_values(option),
        )
        return option

    def update_option(self, option: ConfigOption) -> None:
        assignments = ", ".join(f"{c} = %s" for c in _OPTION_COLUMNS[1:])
        values = self._option_values(option)
        self._conn.execute(
            f"UPDATE ac_config_options SET {assignments} WHERE id = %s",
            [*values[1:], option.id],
        )

    def get_option(self, option_id: str) -> ConfigOption | None:
        row = self._conn.execute(f"{_SELECT_OPTION} WHERE id = %s", (option_id,)).fetchone()
        return self._row_to_option(row) if row else None

    def list_options(self, category: ConfigCategory, active_only: bool = True) -> list[ConfigOption]:
        sql = f"{_SELECT_OPTION} WHERE category = %s"
        if active_only:
            sql += " AND active"
        rows = self._conn.execute(sql + " ORDER BY sort_order, name", (category.value,)).fetchall()
        return [self._row_to_option(r) for r in rows]

    def selected_option_ids(self, user_id: str) -> set[str]:
        rows = self._conn.execute(
            "SELECT option_id FROM ac_user_configs WHERE user_id = %s", (user_id,)
        ).fetchall()
        return {r[0] for r in rows}

    def selections_for_options(self, option_ids: list[str]) -> list[UserConfigSelection]:
        if not option_ids:
            return []
        rows = self._conn.execute(
            "SELECT user_id, option_id, created_at FROM ac_user_configs WHERE option_id = ANY(%s)",
            (option_ids,),
        ).fetchall()
        return [UserConfigSelection(user_id=r[0], option_id=r[1], created_at=r[2]) for r in rows]

    def add_selection(self, selection: UserConfigSelection) -> None:
        self._conn.execute(
            """
            INSERT INTO ac_user_configs (user_id, option_id, created_at) VALUES (%s, %s, %s)
            ON CONFLICT (user_id, option_id) DO NOTHING
            """,
            (selection.user_id, selection.option_id, selection.created_at),
        )

    def remove_selection(self, user_id: str, option_id: str) -> None:
        self._conn.execute(
            "DELETE FROM ac_user_configs WHERE user_id = %s AND option_id = %s",
            (user_id, option_id),
        )


# ---------------------------------------------------------------------------
# File-based implementation
# ---------------------------------------------------------------------------

class FileConfigStore:
    """Catalog and selections in a single configs.json."""

    def __init__(self, data_dir: Path):
        self._path = Path(data_dir) / "configs.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _load(self) -> tuple[dict[str, ConfigOption], list[UserConfigSelection]]:
        if not self._path.exists():
            return {}, []
        with open(self._path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        options = {oid: ConfigOption.model_validate(o) for oid, o in raw.get("options", {}).items()}
        selections = [UserConfigSelection.model_validate(s) for s in raw.get("selections", [])]
        return options, selections

    def _save(self, options: dict[str, ConfigOption], selections: list[UserConfigSelection]) -> None:
        data = {
            "options": {oid: o.model_dump(mode="json") for oid, o in options.items()},
            "selections": [s.model_dump(mode="json") for s in selections],
        }
        tmp = self._path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp.replace(self._path)

    def add_option(self, option: ConfigOption) -> ConfigOption:
        with self._lock:
            options, selections = self._load()
            options[option.id] = option
            self._save(options, selections)
        return option

    def update_option(self, option: ConfigOption) -> None:
        self.add_option(option)

    def get_option(self, option_id: str) -> ConfigOption | None:
        return self._load()[0].get(option_id)

    def list_options(self, category: ConfigCategory, active_only: bool = True) -> list[ConfigOption]:
        options = [
            o for o in self._load()[0].values()
            if o.category == category and (o.active or not active_only)
        ]
        return sorted(options, key=lambda o: (o.sort_order, o.name))

    def selected_option_ids(self, user_id: str) -> set[str]:
        return {s.option_id for s in self._load()[1] if s.user_id == user_id}

    def selections_for_options(self, option_ids: list[str]) -> list[UserConfigSelection]:
        wanted = set(option_ids)
        return [s for s in self._load()[1] if s.option_id in wanted]

    def add_selection(self, selection: UserConfigSelection) -> None:
        with self._lock:
            options, selections = self._load()
            if any(s.user_id == selection.user_id and s.option_id == selection.option_id for s in selections):
                return
            selections.append(selection)
            self._save(options, selections)

    def remove_selection(self, user_id: str, option_id: str) -> None:
        with self._lock:
            options, selections = self._load()
            kept = [s for s in selections if not (s.user_id == user_id and s.option_id == option_id)]
            if len(kept) != len(selections):
                self._save(options, kept)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: ConfigStore | None = None


def get_config_store() -> ConfigStore:
    """Return singleton config store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.ac_database_url:
        try:
            _store = PostgresConfigStore(settings.ac_database_url)
            logger.info("Using Postgres config store")
        except Exception as e:
            logger.warning("Postgres config store failed (%s), falling back to file store", e)
            _store = FileConfigStore(settings.data_dir)
    else:
        _store = FileConfigStore(settings.data_dir)
    return _store
