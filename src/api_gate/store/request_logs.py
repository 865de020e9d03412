import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..errors import StoreTimeout, StoreUnavailable
from ..models.request_log import RequestLog
from ..schemas import TOP_PATHS_LIMIT, LogQueryFilter, RequestLogEntry, RequestLogRecord
from ..utils.timeutils import to_naive_utc


def build_log_conditions(log_filter: LogQueryFilter) -> List[Any]:
    """Translate a filter into SQLAlchemy WHERE clauses.

    Every present field adds one conjunct; absent fields add nothing.
    """
    conditions = []

    if log_filter.method:
        conditions.append(RequestLog.method == log_filter.method)

    if log_filter.status_code:
        conditions.append(RequestLog.status_code == log_filter.status_code)

    if log_filter.path:
        conditions.append(RequestLog.path.contains(log_filter.path, autoescape=True))

    if log_filter.start_date is not None:
        conditions.append(RequestLog.created_at >= to_naive_utc(log_filter.start_date))

    if log_filter.end_date is not None:
        conditions.append(RequestLog.created_at <= to_naive_utc(log_filter.end_date))

    return conditions


class RequestLogStore:
    """Append-only storage and read-side queries for request logs."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def insert(self, entry: RequestLogEntry, deadline: Optional[float] = None) -> int:
        """Persist one log entry and return its id.

        ``deadline`` is a ``time.monotonic()`` value. An insert that reaches
        its commit after the deadline is rolled back and raises StoreTimeout,
        so an abandoned entry is never written late.
        """
        if deadline is not None and time.monotonic() >= deadline:
            raise StoreTimeout("Request log write deadline already passed")

        try:
            with self.session_factory() as db:
                if deadline is not None and db.get_bind().dialect.name == "postgresql":
                    remaining_ms = max(1, int((deadline - time.monotonic()) * 1000))
                    db.execute(text(f"SET LOCAL statement_timeout = {remaining_ms}"))

                row = RequestLog(**entry.model_dump())
                db.add(row)
                db.flush()

                if deadline is not None and time.monotonic() >= deadline:
                    db.rollback()
                    raise StoreTimeout("Request log write ran past its deadline")

                db.commit()
                return row.id
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to write request log: {e}") from e

    def query(self, log_filter: LogQueryFilter) -> Tuple[List[RequestLogRecord], int]:
        """Return one page of matching logs (newest first) and the total match count."""
        conditions = build_log_conditions(log_filter)

        try:
            with self.session_factory() as db:
                total = db.execute(
                    select(func.count(RequestLog.id)).where(*conditions)
                ).scalar_one()

                rows = db.execute(
                    select(RequestLog)
                    .where(*conditions)
                    .order_by(RequestLog.created_at.desc(), RequestLog.id.desc())
                    .limit(log_filter.limit)
                    .offset(log_filter.offset)
                ).scalars()

                return [RequestLogRecord.model_validate(row) for row in rows], total
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to query request logs: {e}") from e

    def aggregate(self, start: datetime, end: datetime) -> Dict[str, Any]:
        """Grouped counts over an inclusive time window, computed in the database."""
        window = (RequestLog.created_at >= start, RequestLog.created_at <= end)
        occurrences = func.count(RequestLog.id).label("occurrences")

        try:
            with self.session_factory() as db:
                total, avg_response_time = db.execute(
                    select(
                        func.count(RequestLog.id),
                        func.coalesce(func.avg(RequestLog.response_time_ms), 0),
                    ).where(*window)
                ).one()

                status_rows = db.execute(
                    select(RequestLog.status_code, occurrences)
                    .where(*window)
                    .group_by(RequestLog.status_code)
                    .order_by(occurrences.desc(), RequestLog.status_code)
                ).all()

                path_rows = db.execute(
                    select(RequestLog.path, occurrences)
                    .where(*window)
                    .group_by(RequestLog.path)
                    .order_by(occurrences.desc(), RequestLog.path)
                    .limit(TOP_PATHS_LIMIT)
                ).all()

                method_rows = db.execute(
                    select(RequestLog.method, occurrences)
                    .where(*window)
                    .group_by(RequestLog.method)
                    .order_by(occurrences.desc(), RequestLog.method)
                ).all()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to aggregate request logs: {e}") from e

        return {
            "total_requests": total or 0,
            "average_response_time_ms": float(avg_response_time or 0),
            "status_codes": {row.status_code: row.occurrences for row in status_rows},
            "top_paths": [{"path": row.path, "count": row.occurrences} for row in path_rows],
            "top_methods": [
                {"method": row.method, "count": row.occurrences} for row in method_rows
            ],
        }
