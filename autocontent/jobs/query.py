"""Translate ``JobFilterCriteria`` into parameterised Postgres SQL fragments."""

from __future__ import annotations

from typing import Any

from autocontent.jobs.criteria import JobFilterCriteria

_SEARCH_COLUMNS = ("result_content", "error_message", "content_type")


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_where(criteria: JobFilterCriteria) -> tuple[str, list[Any]]:
    """Return (``WHERE ...`` or empty string, params) for psycopg ``%s`` placeholders."""
    clauses: list[str] = []
    params: list[Any] = []

    if criteria.user_id is not None:
        clauses.append("user_id = %s")
        params.append(criteria.user_id)
    if criteria.statuses:
        clauses.append("status = ANY(%s)")
        params.append([s.value for s in criteria.statuses])
    if criteria.content_types:
        clauses.append("content_type = ANY(%s)")
        params.append(list(criteria.content_types))
    if criteria.created_after:
        clauses.append("created_at >= %s")
        params.append(criteria.created_after)
    if criteria.created_before:
        clauses.append("created_at <= %s")
        params.append(criteria.created_before)

    text = criteria.search_text_for_query()
    if text is not None:
        pattern = f"%{_escape_like(text)}%"
        ors = [f"LOWER({col}) LIKE %s" for col in _SEARCH_COLUMNS]
        clauses.append("(" + " OR ".join(ors) + ")")
        params.extend([pattern] * len(_SEARCH_COLUMNS))

    if not clauses:
        return "", params
    return "WHERE " + " AND ".join(clauses), params


def build_order_by(criteria: JobFilterCriteria) -> str:
    """ORDER BY from the whitelisted sort column; nulls last either way."""
    column, direction = criteria.resolved_sort()
    return f"ORDER BY {column} {direction} NULLS LAST, job_id {direction}"


def build_job_query(criteria: JobFilterCriteria) -> tuple[str, str, list[Any]]:
    """Return (where, order_by, params)."""
    where, params = build_where(criteria)
    return where, build_order_by(criteria), params
