"""Tests for log filtering, pagination and aggregation."""

from datetime import datetime, timedelta, timezone

import pytest

from api_gate.errors import StoreUnavailable
from api_gate.schemas import LogQueryFilter
from api_gate.services.analytics import LogAnalytics
from api_gate.store.request_logs import RequestLogStore
from api_gate.utils.timeutils import utc_now

from .helpers import make_entry

BASE = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def analytics(log_store):
    return LogAnalytics(log_store)


class TestLogQueryFilter:
    @pytest.mark.parametrize(
        "limit, expected",
        [(2000, 1000), (1000, 1000), (1, 1), (50, 50), (0, 100), (-5, 100)],
    )
    def test_limit_is_clamped(self, limit, expected):
        assert LogQueryFilter(limit=limit).limit == expected

    def test_default_limit(self):
        assert LogQueryFilter().limit == 100

    def test_page_derives_offset(self):
        log_filter = LogQueryFilter(limit=20, page=3, offset=7)
        assert log_filter.offset == 40

    def test_explicit_offset_without_page(self):
        assert LogQueryFilter(limit=20, offset=7).offset == 7

    def test_page_uses_clamped_limit(self):
        assert LogQueryFilter(limit=0, page=2).offset == 100


class TestListLogs:
    def test_newest_first_with_total(self, log_store, analytics):
        for minutes in range(5):
            log_store.insert(make_entry(created_at=BASE + timedelta(minutes=minutes)))

        logs, total = analytics.list_logs(LogQueryFilter(limit=2))

        assert total == 5
        assert [log.created_at for log in logs] == [
            BASE + timedelta(minutes=4),
            BASE + timedelta(minutes=3),
        ]

    def test_pagination_by_page(self, log_store, analytics):
        for minutes in range(5):
            log_store.insert(make_entry(created_at=BASE + timedelta(minutes=minutes)))

        logs, total = analytics.list_logs(LogQueryFilter(limit=2, page=3))

        assert total == 5
        assert [log.created_at for log in logs] == [BASE]

    def test_filters_are_conjunctive(self, log_store, analytics):
        log_store.insert(make_entry(method="GET", path="/hello", status_code=200))
        log_store.insert(make_entry(method="POST", path="/hello", status_code=200))
        log_store.insert(make_entry(method="GET", path="/api-keys", status_code=403))
        log_store.insert(make_entry(method="GET", path="/dashboard/logs", status_code=200))

        logs, total = analytics.list_logs(
            LogQueryFilter(method="GET", status_code=200, path="hell")
        )

        assert total == 1
        assert logs[0].method == "GET"
        assert logs[0].path == "/hello"

    def test_path_filter_is_substring_match(self, log_store, analytics):
        log_store.insert(make_entry(path="/dashboard/logs"))
        log_store.insert(make_entry(path="/dashboard/stats"))
        log_store.insert(make_entry(path="/hello"))

        _, total = analytics.list_logs(LogQueryFilter(path="dashboard"))

        assert total == 2

    def test_path_filter_escapes_wildcards(self, log_store, analytics):
        log_store.insert(make_entry(path="/files/100%"))
        log_store.insert(make_entry(path="/files/1000"))

        logs, total = analytics.list_logs(LogQueryFilter(path="100%"))

        assert total == 1
        assert logs[0].path == "/files/100%"

    def test_time_bounds_are_inclusive(self, log_store, analytics):
        for hours in range(4):
            log_store.insert(make_entry(created_at=BASE + timedelta(hours=hours)))

        _, total = analytics.list_logs(
            LogQueryFilter(
                start_date=BASE + timedelta(hours=1),
                end_date=BASE + timedelta(hours=2),
            )
        )

        assert total == 2

    def test_aware_bounds_are_converted_to_utc(self, log_store, analytics):
        log_store.insert(make_entry(created_at=BASE))
        plus_two = timezone(timedelta(hours=2))

        _, total = analytics.list_logs(
            LogQueryFilter(
                start_date=datetime(2024, 1, 1, 14, 0, 0, tzinfo=plus_two),
                end_date=datetime(2024, 1, 1, 14, 0, 0, tzinfo=plus_two),
            )
        )

        assert total == 1

    def test_total_ignores_pagination(self, log_store, analytics):
        for _ in range(7):
            log_store.insert(make_entry(status_code=500))

        logs, total = analytics.list_logs(LogQueryFilter(status_code=500, limit=3))

        assert len(logs) == 3
        assert total == 7


class TestStats:
    def test_empty_window(self, analytics):
        stats = analytics.stats(BASE, BASE + timedelta(days=1))

        assert stats.total_requests == 0
        assert stats.average_response_time_ms == 0
        assert isinstance(stats.average_response_time_ms, float)
        assert stats.status_codes == {}
        assert stats.top_paths == []
        assert stats.top_methods == []

    def test_histogram_and_average(self, log_store, analytics):
        log_store.insert(make_entry(status_code=200, response_time_ms=10))
        log_store.insert(make_entry(status_code=500, response_time_ms=25))

        stats = analytics.stats(BASE - timedelta(hours=1), BASE + timedelta(hours=1))

        assert stats.total_requests == 2
        assert stats.status_codes == {200: 1, 500: 1}
        assert stats.average_response_time_ms == pytest.approx(17.5)

    def test_rows_outside_window_are_ignored(self, log_store, analytics):
        log_store.insert(make_entry(created_at=BASE, response_time_ms=10))
        log_store.insert(make_entry(created_at=BASE + timedelta(days=2), response_time_ms=1000))

        stats = analytics.stats(BASE - timedelta(hours=1), BASE + timedelta(hours=1))

        assert stats.total_requests == 1
        assert stats.average_response_time_ms == pytest.approx(10)

    def test_top_paths_limited_to_ten(self, log_store, analytics):
        for index in range(12):
            for _ in range(index + 1):
                log_store.insert(make_entry(path=f"/p{index}"))

        stats = analytics.stats(BASE - timedelta(hours=1), BASE + timedelta(hours=1))

        assert len(stats.top_paths) == 10
        assert stats.top_paths[0].path == "/p11"
        assert stats.top_paths[0].count == 12
        counts = [item.count for item in stats.top_paths]
        assert counts == sorted(counts, reverse=True)

    def test_methods_ranked_by_count(self, log_store, analytics):
        for method, times in [("GET", 3), ("POST", 5), ("DELETE", 1)]:
            for _ in range(times):
                log_store.insert(make_entry(method=method))

        stats = analytics.stats(BASE - timedelta(hours=1), BASE + timedelta(hours=1))

        assert [(m.method, m.count) for m in stats.top_methods] == [
            ("POST", 5),
            ("GET", 3),
            ("DELETE", 1),
        ]

    def test_default_window_is_trailing_seven_days(self, log_store, analytics):
        now = utc_now()
        log_store.insert(make_entry(created_at=now - timedelta(days=1)))
        log_store.insert(make_entry(created_at=now - timedelta(days=8)))

        stats = analytics.stats()

        assert stats.total_requests == 1
        assert stats.end_date - stats.start_date == timedelta(days=7)

    def test_store_failure_propagates(self, broken_session_factory):
        analytics = LogAnalytics(RequestLogStore(broken_session_factory))

        with pytest.raises(StoreUnavailable):
            analytics.stats()
