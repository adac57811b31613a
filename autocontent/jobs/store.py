"""Generation job storage: Postgres (preferred) or file-based fallback."""

from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Iterable, Protocol

from autocontent.config import get_settings
from autocontent.jobs.criteria import JobFilterCriteria, sort_jobs
from autocontent.jobs.models import (
    ACTIVE_STATUSES,
    GenerationJob,
    HourlyJobStat,
    JobPage,
    JobStatistics,
    JobStatus,
)
from autocontent.jobs.query import build_job_query
from autocontent.utils import ensure_aware, new_id

logger = logging.getLogger(__name__)


class JobStore(Protocol):
    def create(self, job: GenerationJob) -> GenerationJob: ...
    def get(self, job_id: str) -> GenerationJob | None: ...
    def get_many(self, job_ids: Iterable[str]) -> list[GenerationJob]: ...
    def update(self, job: GenerationJob) -> None: ...
    def update_if_status(self, job: GenerationJob, expected: JobStatus) -> bool: ...
    def list_jobs(self, criteria: JobFilterCriteria, page: int, size: int) -> JobPage: ...
    def statistics(self, user_id: str) -> JobStatistics: ...
    def distinct_content_types(self, user_id: str) -> list[str]: ...
    def count_active(self, user_id: str) -> int: ...
    def next_queued(self, limit: int) -> list[GenerationJob]: ...
    def expired(self, now: datetime) -> list[GenerationJob]: ...
    def timed_out(self, threshold: datetime) -> list[GenerationJob]: ...
    def queue_position(self, job_id: str) -> int: ...
    def old_job_ids(self, statuses: Iterable[JobStatus], cutoff: datetime) -> list[str]: ...
    def delete_many(self, job_ids: Iterable[str]) -> int: ...
    def hourly_statistics(self, since: datetime) -> list[HourlyJobStat]: ...


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

_COLUMNS = (
    "job_id", "user_id", "content_type", "status", "priority", "request_params",
    "result_content", "error_message", "error_details", "ai_provider", "ai_model",
    "tokens_used", "generation_cost", "processing_time_ms", "retry_count",
    "max_retries", "original_job_id", "expires_at", "metadata", "created_at",
    "started_at", "completed_at", "updated_at",
)
_JSON_COLUMNS = {"request_params", "error_details", "metadata"}
_SELECT = "SELECT " + ", ".join(_COLUMNS) + " FROM ac_generation_jobs"
_UPDATE = "UPDATE ac_generation_jobs SET " + ", ".join(
    f"{col} = %s::jsonb" if col in _JSON_COLUMNS else f"{col} = %s"
    for col in _COLUMNS[1:]
) + ", priority_rank = %s"


class PostgresJobStore:
    """Persist jobs in Postgres. Survives restarts."""

    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        import psycopg

        conn = psycopg.connect(self._url, autocommit=True)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ac_generation_jobs (
                job_id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                content_type TEXT,
                status TEXT NOT NULL,
                priority TEXT NOT NULL DEFAULT 'NORMAL',
                priority_rank INT NOT NULL DEFAULT 5,
                request_params JSONB NOT NULL DEFAULT '{}',
                result_content TEXT,
                error_message TEXT,
                error_details JSONB,
                ai_provider TEXT,
                ai_model TEXT,
                tokens_used INT,
                generation_cost DOUBLE PRECISION,
                processing_time_ms BIGINT,
                retry_count INT NOT NULL DEFAULT 0,
                max_retries INT NOT NULL DEFAULT 3,
                original_job_id TEXT,
                expires_at TIMESTAMPTZ,
                metadata JSONB NOT NULL DEFAULT '{}',
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                started_at TIMESTAMPTZ,
                completed_at TIMESTAMPTZ,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_ac_jobs_user_status_created
            ON ac_generation_jobs (user_id, status, created_at DESC)
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_ac_jobs_queue
            ON ac_generation_jobs (status, priority_rank, created_at)
        """)
        return conn

    def _values(self, job: GenerationJob) -> list:
        data = job.model_dump()
        values = []
        for col in _COLUMNS:
            value = data[col]
            if col in _JSON_COLUMNS:
                value = json.dumps(value, default=str) if value is not None else None
            elif col in ("status", "priority"):
                value = getattr(job, col).value
            values.append(value)
        return values

    def create(self, job: GenerationJob) -> GenerationJob:
        placeholders = ", ".join(
            "%s::jsonb" if col in _JSON_COLUMNS else "%s" for col in _COLUMNS
        )
        self._conn.execute(
            f"INSERT INTO ac_generation_jobs ({', '.join(_COLUMNS)}, priority_rank) "
            f"VALUES ({placeholders}, %s)",
            [*self._values(job), job.priority.rank],
        )
        return job

    def get(self, job_id: str) -> GenerationJob | None:
        row = self._conn.execute(f"{_SELECT} WHERE job_id = %s", (job_id,)).fetchone()
        if not row:
            return None
        return self._row_to_job(row)

    def get_many(self, job_ids: Iterable[str]) -> list[GenerationJob]:
        ids = list(job_ids)
        if not ids:
            return []
        rows = self._conn.execute(f"{_SELECT} WHERE job_id = ANY(%s)", (ids,)).fetchall()
        by_id = {job.job_id: job for job in (self._row_to_job(r) for r in rows)}
        return [by_id[i] for i in ids if i in by_id]

    def update(self, job: GenerationJob) -> None:
        self._conn.execute(
            f"{_UPDATE} WHERE job_id = %s",
            [*self._values(job)[1:], job.priority.rank, job.job_id],
        )

    def update_if_status(self, job: GenerationJob, expected: JobStatus) -> bool:
        """Write ``job`` only while the stored row is still in ``expected`` status."""
        cur = self._conn.execute(
            f"{_UPDATE} WHERE job_id = %s AND status = %s",
            [*self._values(job)[1:], job.priority.rank, job.job_id, expected.value],
        )
        return cur.rowcount == 1

    def list_jobs(self, criteria: JobFilterCriteria, page: int, size: int) -> JobPage:
        where, order_by, params = build_job_query(criteria)
        total = self._conn.execute(
            f"SELECT COUNT(*) FROM ac_generation_jobs {where}", params
        ).fetchone()[0]
        rows = self._conn.execute(
            f"{_SELECT} {where} {order_by} LIMIT %s OFFSET %s",
            [*params, size, page * size],
        ).fetchall()
        return JobPage(
            items=[self._row_to_job(r) for r in rows],
            page=page,
            size=size,
            total_elements=total,
        )

    def statistics(self, user_id: str) -> JobStatistics:
        row = self._conn.execute(
            """
            SELECT COUNT(*),
                   COUNT(*) FILTER (WHERE status = 'COMPLETED'),
                   COUNT(*) FILTER (WHERE status = 'FAILED'),
                   COUNT(*) FILTER (WHERE status = 'PROCESSING'),
                   COUNT(*) FILTER (WHERE status = 'QUEUED'),
                   COUNT(*) FILTER (WHERE status = 'CANCELLED'),
                   AVG(processing_time_ms),
                   COALESCE(SUM(processing_time_ms), 0),
                   COALESCE(SUM(tokens_used), 0),
                   COALESCE(SUM(generation_cost), 0)
            FROM ac_generation_jobs WHERE user_id = %s
            """,
            (user_id,),
        ).fetchone()
        return JobStatistics(
            total_jobs=row[0],
            completed_jobs=row[1],
            failed_jobs=row[2],
            processing_jobs=row[3],
            queued_jobs=row[4],
            cancelled_jobs=row[5],
            average_processing_time_ms=float(row[6]) if row[6] is not None else None,
            total_processing_time_ms=int(row[7]),
            total_tokens_used=int(row[8]),
            total_generation_cost=round(float(row[9]), 6),
        )

    def distinct_content_types(self, user_id: str) -> list[str]:
        rows = self._conn.execute(
            """
            SELECT DISTINCT content_type FROM ac_generation_jobs
            WHERE user_id = %s AND content_type IS NOT NULL
            ORDER BY content_type
            """,
            (user_id,),
        ).fetchall()
        return [r[0] for r in rows]

    def count_active(self, user_id: str) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM ac_generation_jobs WHERE user_id = %s AND status = ANY(%s)",
            (user_id, [s.value for s in ACTIVE_STATUSES]),
        ).fetchone()
        return row[0]

    def next_queued(self, limit: int) -> list[GenerationJob]:
        rows = self._conn.execute(
            f"{_SELECT} WHERE status = 'QUEUED' ORDER BY priority_rank ASC, created_at ASC LIMIT %s",
            (limit,),
        ).fetchall()
        return [self._row_to_job(r) for r in rows]

    def expired(self, now: datetime) -> list[GenerationJob]:
        rows = self._conn.execute(
            f"{_SELECT} WHERE status = ANY(%s) AND expires_at IS NOT NULL AND expires_at <= %s",
            ([s.value for s in ACTIVE_STATUSES], now),
        ).fetchall()
        return [self._row_to_job(r) for r in rows]

    def timed_out(self, threshold: datetime) -> list[GenerationJob]:
        rows = self._conn.execute(
            f"{_SELECT} WHERE status = 'PROCESSING' AND started_at <= %s",
            (threshold,),
        ).fetchall()
        return [self._row_to_job(r) for r in rows]

    def queue_position(self, job_id: str) -> int:
        job = self.get(job_id)
        if not job or job.status != JobStatus.QUEUED:
            return 0
        row = self._conn.execute(
            """
            SELECT COUNT(*) + 1 FROM ac_generation_jobs
            WHERE status = 'QUEUED'
              AND (priority_rank < %s OR (priority_rank = %s AND created_at < %s))
            """,
            (job.priority.rank, job.priority.rank, job.created_at),
        ).fetchone()
        return row[0]

    def old_job_ids(self, statuses: Iterable[JobStatus], cutoff: datetime) -> list[str]:
        rows = self._conn.execute(
            """
            SELECT job_id FROM ac_generation_jobs
            WHERE status = ANY(%s) AND completed_at IS NOT NULL AND completed_at < %s
            """,
            ([s.value for s in statuses], cutoff),
        ).fetchall()
        return [r[0] for r in rows]

    def delete_many(self, job_ids: Iterable[str]) -> int:
        ids = list(job_ids)
        if not ids:
            return 0
        cur = self._conn.execute("DELETE FROM ac_generation_jobs WHERE job_id = ANY(%s)", (ids,))
        return cur.rowcount

    def hourly_statistics(self, since: datetime) -> list[HourlyJobStat]:
        rows = self._conn.execute(
            """
            SELECT date_trunc('hour', created_at) AS hour, status, COUNT(*),
                   AVG(processing_time_ms), COALESCE(SUM(tokens_used), 0)
            FROM ac_generation_jobs
            WHERE created_at >= %s
            GROUP BY 1, 2
            ORDER BY 1 DESC, 2
            """,
            (since,),
        ).fetchall()
        return [
            HourlyJobStat(
                hour=r[0],
                status=JobStatus(r[1]),
                job_count=r[2],
                avg_processing_time_ms=float(r[3]) if r[3] is not None else None,
                total_tokens=int(r[4]),
            )
            for r in rows
        ]

    def _row_to_job(self, row) -> GenerationJob:
        data = dict(zip(_COLUMNS, row))
        for col in _JSON_COLUMNS:
            if isinstance(data[col], str):
                data[col] = json.loads(data[col])
        if data["metadata"] is None:
            data["metadata"] = {}
        return GenerationJob.model_validate(data)


# ---------------------------------------------------------------------------
# File-based implementation (fallback when no Postgres)
# ---------------------------------------------------------------------------

class FileJobStore:
    """Persist jobs as JSON files, one per job. Queries scan the directory."""

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir) / "jobs"
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _job_path(self, job_id: str) -> Path:
        return self._dir / f"{job_id}.json"

    def create(self, job: GenerationJob) -> GenerationJob:
        with self._lock:
            self._write_job(job)
        return job

    def get(self, job_id: str) -> GenerationJob | None:
        path = self._job_path(job_id)
        if not path.exists():
            return None
        return self._read_job(path)

    def get_many(self, job_ids: Iterable[str]) -> list[GenerationJob]:
        jobs = (self.get(job_id) for job_id in job_ids)
        return [job for job in jobs if job is not None]

    def update(self, job: GenerationJob) -> None:
        with self._lock:
            self._write_job(job)

    def update_if_status(self, job: GenerationJob, expected: JobStatus) -> bool:
        with self._lock:
            path = self._job_path(job.job_id)
            if not path.exists() or self._read_job(path).status != expected:
                return False
            self._write_job(job)
            return True

    def list_jobs(self, criteria: JobFilterCriteria, page: int, size: int) -> JobPage:
        matched = sort_jobs([j for j in self._all() if criteria.matches(j)], criteria)
        start = page * size
        return JobPage(
            items=matched[start:start + size],
            page=page,
            size=size,
            total_elements=len(matched),
        )

    def statistics(self, user_id: str) -> JobStatistics:
        return JobStatistics.from_jobs([j for j in self._all() if j.user_id == user_id])

    def distinct_content_types(self, user_id: str) -> list[str]:
        return sorted({j.content_type for j in self._all() if j.user_id == user_id and j.content_type})

    def count_active(self, user_id: str) -> int:
        return sum(1 for j in self._all() if j.user_id == user_id and j.status in ACTIVE_STATUSES)

    def next_queued(self, limit: int) -> list[GenerationJob]:
        return self._queued()[:limit]

    def expired(self, now: datetime) -> list[GenerationJob]:
        return [
            j for j in self._all()
            if j.status in ACTIVE_STATUSES and j.expires_at is not None
            and ensure_aware(j.expires_at) <= ensure_aware(now)
        ]

    def timed_out(self, threshold: datetime) -> list[GenerationJob]:
        return [
            j for j in self._all()
            if j.status == JobStatus.PROCESSING and j.started_at is not None
            and ensure_aware(j.started_at) <= ensure_aware(threshold)
        ]

    def queue_position(self, job_id: str) -> int:
        for position, job in enumerate(self._queued(), start=1):
            if job.job_id == job_id:
                return position
        return 0

    def old_job_ids(self, statuses: Iterable[JobStatus], cutoff: datetime) -> list[str]:
        wanted = set(statuses)
        return [
            j.job_id for j in self._all()
            if j.status in wanted and j.completed_at is not None
            and ensure_aware(j.completed_at) < ensure_aware(cutoff)
        ]

    def delete_many(self, job_ids: Iterable[str]) -> int:
        deleted = 0
        with self._lock:
            for job_id in job_ids:
                path = self._job_path(job_id)
                if path.exists():
                    path.unlink()
                    deleted += 1
        return deleted

    def hourly_statistics(self, since: datetime) -> list[HourlyJobStat]:
        buckets: dict[tuple[datetime, JobStatus], list[GenerationJob]] = defaultdict(list)
        for job in self._all():
            created = ensure_aware(job.created_at)
            if created < ensure_aware(since):
                continue
            hour = created.replace(minute=0, second=0, microsecond=0)
            buckets[(hour, job.status)].append(job)
        stats = []
        for (hour, status), jobs in buckets.items():
            times = [j.processing_time_ms for j in jobs if j.processing_time_ms is not None]
            stats.append(HourlyJobStat(
                hour=hour,
                status=status,
                job_count=len(jobs),
                avg_processing_time_ms=(sum(times) / len(times)) if times else None,
                total_tokens=sum(j.tokens_used or 0 for j in jobs),
            ))
        stats.sort(key=lambda s: (-s.hour.timestamp(), s.status.value))
        return stats

    def _queued(self) -> list[GenerationJob]:
        queued = [j for j in self._all() if j.status == JobStatus.QUEUED]
        queued.sort(key=lambda j: (j.priority.rank, ensure_aware(j.created_at)))
        return queued

    def _all(self) -> list[GenerationJob]:
        return [self._read_job(p) for p in self._dir.glob("job_*.json")]

    def _write_job(self, job: GenerationJob) -> None:
        path = self._job_path(job.job_id)
        data = job.model_dump(mode="json")
        tmp = path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
        tmp.replace(path)

    def _read_job(self, path: Path) -> GenerationJob:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return GenerationJob.model_validate(data)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: JobStore | None = None


def get_job_store() -> JobStore:
    """Return singleton job store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.ac_database_url:
        try:
            _store = PostgresJobStore(settings.ac_database_url)
            logger.info("Using Postgres job store")
        except Exception as e:
            logger.warning("Postgres job store failed (%s), falling back to file store", e)
            _store = FileJobStore(settings.data_dir)
    else:
        _store = FileJobStore(settings.data_dir)
        logger.info("Using file-based job store (AC_DATA_DIR/jobs)")
    return _store


def new_job_id() -> str:
    return new_id("job")
