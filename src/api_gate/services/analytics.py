from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..schemas import LogQueryFilter, LogStatsSnapshot, RequestLogRecord
from ..store.request_logs import RequestLogStore
from ..utils.timeutils import to_naive_utc, utc_now


class LogAnalytics:
    """Read-only queries over the request log."""

    def __init__(self, store: RequestLogStore, default_window_days: int = 7):
        self.store = store
        self.default_window = timedelta(days=default_window_days)

    def list_logs(self, log_filter: LogQueryFilter) -> Tuple[List[RequestLogRecord], int]:
        """One page of matching logs, newest first, plus the total match count."""
        return self.store.query(log_filter)

    def stats(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> LogStatsSnapshot:
        """Aggregate statistics for ``[start_date, end_date]``.

        A missing start defaults to ``now - 7 days`` and a missing end to now.
        """
        now = utc_now()
        start = to_naive_utc(start_date) if start_date else now - self.default_window
        end = to_naive_utc(end_date) if end_date else now

        return LogStatsSnapshot(
            **self.store.aggregate(start, end),
            start_date=start,
            end_date=end,
        )
