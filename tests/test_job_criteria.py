"""Tests for job filter criteria: query parsing, matching, sorting and SQL translation."""

from datetime import datetime, timedelta, timezone

from autocontent.jobs.criteria import JobFilterCriteria, sort_jobs
from autocontent.jobs.models import GenerationJob, JobStatus
from autocontent.jobs.query import build_job_query, build_order_by, build_where


def _job(job_id="job_a", **fields) -> GenerationJob:
    fields.setdefault("user_id", "u1")
    fields.setdefault("created_at", datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
    return GenerationJob(job_id=job_id, **fields)


def test_from_query_parses_csv_statuses_case_insensitively():
    criteria = JobFilterCriteria.from_query(status="failed, Completed")
    assert criteria.statuses == [JobStatus.FAILED, JobStatus.COMPLETED]
    assert criteria.has_only_status_filter()


def test_from_query_drops_whole_status_filter_on_unknown_value():
    criteria = JobFilterCriteria.from_query(status="FAILED,BOGUS")
    assert criteria.statuses is None
    assert not criteria.has_filters()


def test_from_query_content_types_and_blank_search():
    criteria = JobFilterCriteria.from_query(content_type="blog,,email ", search="   ")
    assert criteria.content_types == ["blog", "email"]
    assert criteria.search_text is None
    assert criteria.has_only_content_type_filter()
    assert not criteria.has_text_search()


def test_from_query_parses_iso_dates_with_z_suffix():
    criteria = JobFilterCriteria.from_query(created_after="2024-05-01T00:00:00Z")
    assert criteria.created_after == datetime(2024, 5, 1, tzinfo=timezone.utc)


def test_from_query_drops_invalid_date():
    criteria = JobFilterCriteria.from_query(created_before="yesterday")
    assert criteria.created_before is None


def test_search_text_is_trimmed_and_lowered():
    criteria = JobFilterCriteria(search_text="  Hello World ")
    assert criteria.search_text_for_query() == "hello world"


def test_matches_applies_every_filter():
    job = _job(status=JobStatus.FAILED, content_type="blog", error_message="Provider TIMEOUT")
    assert JobFilterCriteria(user_id="u1", statuses=[JobStatus.FAILED]).matches(job)
    assert not JobFilterCriteria(user_id="u2").matches(job)
    assert not JobFilterCriteria(statuses=[JobStatus.COMPLETED]).matches(job)
    assert not JobFilterCriteria(content_types=["email"]).matches(job)
    assert JobFilterCriteria(search_text="timeout").matches(job)
    assert JobFilterCriteria(search_text="BLO").matches(job)
    assert not JobFilterCriteria(search_text="missing").matches(job)


def test_date_bounds_are_inclusive():
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    job = _job(created_at=created)
    assert JobFilterCriteria(created_after=created, created_before=created).matches(job)
    assert not JobFilterCriteria(created_after=created + timedelta(seconds=1)).matches(job)
    assert not JobFilterCriteria(created_before=created - timedelta(seconds=1)).matches(job)


def test_naive_job_timestamps_are_treated_as_utc():
    job = _job(created_at=datetime(2024, 5, 1, 12, 0))
    assert JobFilterCriteria(created_after=datetime(2024, 5, 1, 11, 0, tzinfo=timezone.utc)).matches(job)


def test_invalid_sort_falls_back_to_created_at_desc():
    assert JobFilterCriteria(sort_by="password", sort_direction="ASC").resolved_sort() == ("created_at", "DESC")
    assert JobFilterCriteria(sort_by="status", sort_direction="sideways").resolved_sort() == ("created_at", "DESC")
    assert JobFilterCriteria().resolved_sort() == ("created_at", "DESC")


def test_camel_case_sort_fields_are_accepted():
    criteria = JobFilterCriteria(sort_by="executionTimeMs", sort_direction="asc")
    assert criteria.is_valid_sort_field()
    assert criteria.is_valid_sort_direction()
    assert criteria.resolved_sort() == ("processing_time_ms", "ASC")


def test_sort_jobs_puts_nulls_last_in_both_directions():
    fast = _job("job_fast", processing_time_ms=100)
    slow = _job("job_slow", processing_time_ms=900)
    unknown = _job("job_unknown", processing_time_ms=None)
    jobs = [unknown, slow, fast]

    asc = sort_jobs(jobs, JobFilterCriteria(sort_by="execution_time_ms", sort_direction="ASC"))
    desc = sort_jobs(jobs, JobFilterCriteria(sort_by="execution_time_ms", sort_direction="DESC"))
    assert [j.job_id for j in asc] == ["job_fast", "job_slow", "job_unknown"]
    assert [j.job_id for j in desc] == ["job_slow", "job_fast", "job_unknown"]


def test_cache_key_is_stable_and_ignores_ordering_of_values():
    a = JobFilterCriteria(statuses=[JobStatus.FAILED, JobStatus.COMPLETED], content_types=["blog", "ads"])
    b = JobFilterCriteria(statuses=[JobStatus.COMPLETED, JobStatus.FAILED], content_types=["ads", "blog"])
    c = JobFilterCriteria(statuses=[JobStatus.FAILED])
    assert a.cache_key() == b.cache_key()
    assert a.cache_key() != c.cache_key()


def test_cache_key_treats_invalid_sort_as_default():
    assert JobFilterCriteria(sort_by="nope").cache_key() == JobFilterCriteria().cache_key()


def test_build_where_without_filters_is_empty():
    where, params = build_where(JobFilterCriteria())
    assert where == ""
    assert params == []


def test_build_where_combines_filters_with_parameters():
    after = datetime(2024, 1, 1, tzinfo=timezone.utc)
    criteria = JobFilterCriteria(
        user_id="u1",
        statuses=[JobStatus.FAILED],
        content_types=["blog"],
        created_after=after,
        search_text="50%_off",
    )
    where, params = build_where(criteria)
    assert where.startswith("WHERE user_id = %s AND status = ANY(%s) AND content_type = ANY(%s)")
    assert "created_at >= %s" in where
    assert "LOWER(result_content) LIKE %s OR LOWER(error_message) LIKE %s" in where
    assert params[:4] == ["u1", ["FAILED"], ["blog"], after]
    assert params[4:] == ["%50\\%\\_off%"] * 3


def test_build_order_by_uses_whitelisted_column():
    order = build_order_by(JobFilterCriteria(sort_by="execution_time_ms", sort_direction="ASC"))
    assert order == "ORDER BY processing_time_ms ASC NULLS LAST, job_id ASC"
    injected = build_order_by(JobFilterCriteria(sort_by="created_at; DROP TABLE x"))
    assert injected == "ORDER BY created_at DESC NULLS LAST, job_id DESC"


def test_build_job_query_returns_all_parts():
    where, order_by, params = build_job_query(JobFilterCriteria(user_id="u1"))
    assert where == "WHERE user_id = %s"
    assert order_by.startswith("ORDER BY created_at DESC")
    assert params == ["u1"]
