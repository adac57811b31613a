"""User account storage: Postgres or file-based fallback."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from autocontent.auth.models import User
from autocontent.config import get_settings

logger = logging.getLogger(__name__)


class UserStore(Protocol):
    def create(self, user: User) -> User: ...
    def get(self, user_id: str) -> User | None: ...
    def get_by_username(self, username: str) -> User | None: ...
    def get_by_email(self, email: str) -> User | None: ...
    def get_by_verification_token(self, token: str) -> User | None: ...
    def update(self, user: User) -> None: ...
    def list_all(self) -> list[User]: ...


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

_COLUMNS = tuple(User.model_fields)
_SELECT = "SELECT " + ", ".join(_COLUMNS) + " FROM ac_users"


class PostgresUserStore:
    """Persist users in the ac_users table."""

    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        import psycopg

        conn = psycopg.connect(self._url, autocommit=True)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ac_users (
                user_id TEXT PRIMARY KEY,
                username VARCHAR(50) NOT NULL,
                email VARCHAR(100) NOT NULL,
                password_hash TEXT NOT NULL,
                first_name TEXT,
                last_name TEXT,
                role TEXT NOT NULL DEFAULT 'USER',
                is_active BOOLEAN NOT NULL DEFAULT FALSE,
                email_verified BOOLEAN NOT NULL DEFAULT FALSE,
                email_verification_token TEXT,
                email_verification_expires_at TIMESTAMPTZ,
                failed_login_attempts INT NOT NULL DEFAULT 0,
                account_locked_until TIMESTAMPTZ,
                last_login_at TIMESTAMPTZ,
                language TEXT NOT NULL DEFAULT 'vi',
                profile_picture_url TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_ac_users_username ON ac_users (LOWER(username))"
        )
        conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_ac_users_email ON ac_users (LOWER(email))"
        )
        return conn

    def _values(self, user: User) -> list:
        data = user.model_dump()
        data["role"] = user.role.value
        return [data[c] for c in _COLUMNS]

    def create(self, user: User) -> User:
        placeholders = ", ".join(["%s"] * len(_COLUMNS))
        self._conn.execute(
            f"INSERT INTO ac_users ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            self._values(user),
        )
        return user

    def _one(self, where: str, value: str) -> User | None:
        row = self._conn.execute(f"{_SELECT} WHERE {where}", (value,)).fetchone()
        if not row:
            return None
        return User.model_validate(dict(zip(_COLUMNS, row)))

    def get(self, user_id: str) -> User | None:
        return self._one("user_id = %s", user_id)

    def get_by_username(self, username: str) -> User | None:
        return self._one("LOWER(username) = LOWER(%s)", username)

    def get_by_email(self, email: str) -> User | None:
        return self._one("LOWER(email) = LOWER(%s)", email)

    def get_by_verification_token(self, token: str) -> User | None:
        return self._one("email_verification_token = %s", token)

    def update(self, user: User) -> None:
        assignments = ", ".join(f"{c} = %s" for c in _COLUMNS[1:])
        values = self._values(user)
        self._conn.execute(
            f"UPDATE ac_users SET {assignments} WHERE user_id = %s",
            [*values[1:], user.user_id],
        )

    def list_all(self) -> list[User]:
        rows = self._conn.execute(f"{_SELECT} ORDER BY created_at").fetchall()
        return [User.model_validate(dict(zip(_COLUMNS, r))) for r in rows]


# ---------------------------------------------------------------------------
# File-based implementation
# ---------------------------------------------------------------------------

class FileUserStore:
    """All users in a single users.json (user_id -> user)."""

    def __init__(self, data_dir: Path):
        self._path = Path(data_dir) / "users.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, User]:
        if not self._path.exists():
            return {}
        with open(self._path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return {uid: User.model_validate(data) for uid, data in raw.items()}

    def _save(self, users: dict[str, User]) -> None:
        data = {uid: u.model_dump(mode="json") for uid, u in users.items()}
        tmp = self._path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
        tmp.replace(self._path)

    def create(self, user: User) -> User:
        with self._lock:
            users = self._load()
            users[user.user_id] = user
            self._save(users)
        return user

    def get(self, user_id: str) -> User | None:
        return self._load().get(user_id)

    def _find(self, predicate) -> User | None:
        return next((u for u in self._load().values() if predicate(u)), None)

    def get_by_username(self, username: str) -> User | None:
        return self._find(lambda u: u.username.lower() == username.lower())

    def get_by_email(self, email: str) -> User | None:
        return self._find(lambda u: u.email.lower() == email.lower())

    def get_by_verification_token(self, token: str) -> User | None:
        return self._find(lambda u: u.email_verification_token == token)

    def update(self, user: User) -> None:
        with self._lock:
            users = self._load()
            users[user.user_id] = user
            self._save(users)

    def list_all(self) -> list[User]:
        return sorted(self._load().values(), key=lambda u: u.created_at)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: UserStore | None = None


def get_user_store() -> UserStore:
    """Return singleton user store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.ac_database_url:
        try:
            _store = PostgresUserStore(settings.ac_database_url)
            logger.info("Using Postgres user store")
        except Exception as e:
            logger.warning("Postgres user store failed (%s), falling back to file store", e)
            _store = FileUserStore(settings.data_dir)
    else:
        _store = FileUserStore(settings.data_dir)
    return _store
