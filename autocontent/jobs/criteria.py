"""Job listing filter criteria.

One criteria object drives both backends: the Postgres store turns it into a
parameterised WHERE/ORDER BY (see ``autocontent.jobs.query``), the file store
evaluates ``matches`` and ``sort_jobs`` in process. Both follow the same rules:

* user filter always applied when ``user_id`` is set
* status IN / content type IN
* inclusive ``created_after`` / ``created_before`` bounds
* case-insensitive substring search over result content, error message and
  content type (OR-ed)
* unknown sort field or direction falls back to ``created_at DESC``; rows whose
  sort key is null go last in either direction
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from autocontent.jobs.models import GenerationJob, JobStatus
from autocontent.utils import ensure_aware

logger = logging.getLogger(__name__)

DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_DIRECTION = "DESC"

# Public sort name -> job attribute / column
SORT_FIELDS: dict[str, str] = {
    "created_at": "created_at",
    "completed_at": "completed_at",
    "status": "status",
    "content_type": "content_type",
    "execution_time_ms": "processing_time_ms",
    "retry_count": "retry_count",
}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name.strip()).lower()


class JobFilterCriteria(BaseModel):
    statuses: list[JobStatus] | None = None
    content_types: list[str] | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None
    search_text: str | None = None
    sort_by: str | None = None
    sort_direction: str | None = None
    user_id: str | None = None

    # -- predicates -----------------------------------------------------------

    def has_filters(self) -> bool:
        return bool(
            self.statuses
            or self.content_types
            or self.created_after
            or self.created_before
            or self.has_text_search()
        )

    def has_only_status_filter(self) -> bool:
        return bool(self.statuses) and not (
            self.content_types or self.created_after or self.created_before or self.has_text_search()
        )

    def has_only_content_type_filter(self) -> bool:
        return bool(self.content_types) and not (
            self.statuses or self.created_after or self.created_before or self.has_text_search()
        )

    def has_text_search(self) -> bool:
        return self.search_text_for_query() is not None

    def search_text_for_query(self) -> str | None:
        """Trimmed, lower-cased search text or None when blank."""
        if self.search_text is None:
            return None
        text = self.search_text.strip().lower()
        return text or None

    # -- sorting --------------------------------------------------------------

    def is_valid_sort_field(self) -> bool:
        return self.sort_by is not None and _snake(self.sort_by) in SORT_FIELDS

    def is_valid_sort_direction(self) -> bool:
        return self.sort_direction is not None and self.sort_direction.strip().upper() in ("ASC", "DESC")

    def sort_by_or_default(self) -> str:
        if self.sort_by and self.sort_by.strip():
            return _snake(self.sort_by)
        return DEFAULT_SORT_FIELD

    def sort_direction_or_default(self) -> str:
        if self.sort_direction and self.sort_direction.strip():
            return self.sort_direction.strip().upper()
        return DEFAULT_SORT_DIRECTION

    def resolved_sort(self) -> tuple[str, Literal["ASC", "DESC"]]:
        """Whitelisted (attribute, direction); any invalid part resets both to the default."""
        field = self.sort_by_or_default()
        direction = self.sort_direction_or_default()
        if field not in SORT_FIELDS or direction not in ("ASC", "DESC"):
            if self.sort_by or self.sort_direction:
                logger.warning(
                    "Invalid sort %r %r, falling back to %s %s",
                    self.sort_by, self.sort_direction, DEFAULT_SORT_FIELD, DEFAULT_SORT_DIRECTION,
                )
            return SORT_FIELDS[DEFAULT_SORT_FIELD], DEFAULT_SORT_DIRECTION
        return SORT_FIELDS[field], direction  # type: ignore[return-value]

    # -- evaluation -----------------------------------------------------------

    def matches(self, job: GenerationJob) -> bool:
        if self.user_id is not None and job.user_id != self.user_id:
            return False
        if self.statuses and job.status not in self.statuses:
            return False
        if self.content_types and job.content_type not in self.content_types:
            return False
        created = ensure_aware(job.created_at)
        if self.created_after and created < ensure_aware(self.created_after):
            return False
        if self.created_before and created > ensure_aware(self.created_before):
            return False
        text = self.search_text_for_query()
        if text is not None:
            haystacks = (job.result_content, job.error_message, job.content_type)
            if not any(h and text in h.lower() for h in haystacks):
                return False
        return True

    def cache_key(self) -> str:
        """Stable digest of the normalised filter (user excluded, it is part of the key prefix)."""
        field, direction = self.resolved_sort()
        payload = {
            "statuses": sorted(s.value for s in self.statuses) if self.statuses else None,
            "content_types": sorted(self.content_types) if self.content_types else None,
            "after": ensure_aware(self.created_after).isoformat() if self.created_after else None,
            "before": ensure_aware(self.created_before).isoformat() if self.created_before else None,
            "search": self.search_text_for_query(),
            "sort": f"{field}:{direction}",
        }
        raw = json.dumps(payload, sort_keys=True)
        return hashlib.sha256(raw.encode()).hexdigest()[:24]

    # -- construction ---------------------------------------------------------

    @classmethod
    def from_query(
        cls,
        status: str | None = None,
        content_type: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
        search: str | None = None,
        sort_by: str | None = None,
        sort_direction: str | None = None,
    ) -> JobFilterCriteria:
        """Build criteria from raw query-string values; bad values are dropped with a warning."""
        return cls(
            statuses=_parse_statuses(status),
            content_types=_split_csv(content_type) or None,
            created_after=_parse_datetime(created_after, "createdAfter"),
            created_before=_parse_datetime(created_before, "createdBefore"),
            search_text=search.strip() if search and search.strip() else None,
            sort_by=sort_by,
            sort_direction=sort_direction,
        )


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_statuses(value: str | None) -> list[JobStatus] | None:
    parts = _split_csv(value)
    if not parts:
        return None
    try:
        return [JobStatus(p.upper()) for p in parts]
    except ValueError:
        logger.warning("Invalid status filter: %s", value)
        return None


def _parse_datetime(value: str | None, name: str) -> datetime | None:
    if not value or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(raw))
    except ValueError:
        logger.warning("Invalid %s date: %s", name, value)
        return None


def sort_jobs(jobs: list[GenerationJob], criteria: JobFilterCriteria) -> list[GenerationJob]:
    """In-process ordering with the same semantics as the SQL ORDER BY."""
    attr, direction = criteria.resolved_sort()

    def key(job: GenerationJob):
        value = getattr(job, attr)
        if isinstance(value, JobStatus):
            return value.value
        if isinstance(value, datetime):
            return ensure_aware(value)
        return value

    present = [j for j in jobs if key(j) is not None]
    missing = [j for j in jobs if key(j) is None]
    missing = sorted(missing, key=lambda j: j.job_id, reverse=direction == "DESC")
    present.sort(key=lambda j: (key(j), j.job_id), reverse=direction == "DESC")
    return present + missing
