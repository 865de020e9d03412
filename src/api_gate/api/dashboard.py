"""Dashboard API routes for browsing request logs and statistics."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from ..errors import InternalError, InvalidQuery, StoreError
from ..schemas import (
    DashboardOverview,
    LogListResponse,
    LogQueryFilter,
    LogStatsSnapshot,
)
from ..services.analytics import LogAnalytics
from ..utils.logging import get_logger
from ..utils.timeutils import parse_timestamp
from .dependencies import get_log_analytics

logger = get_logger(__name__)
router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

OVERVIEW_LOG_LIMIT = 50


def _parse_date(name: str, value: Optional[str]) -> Optional[datetime]:
    try:
        return parse_timestamp(value)
    except ValueError:
        raise InvalidQuery(f"Invalid {name} format")


@router.get("", response_model=DashboardOverview)
def dashboard_overview(analytics: LogAnalytics = Depends(get_log_analytics)):
    """Default-window statistics plus the most recent requests."""
    try:
        stats = analytics.stats()
        logs, total = analytics.list_logs(LogQueryFilter(limit=OVERVIEW_LOG_LIMIT))
    except StoreError as e:
        logger.error("dashboard.overview_failed", error=str(e))
        raise InternalError("Failed to load dashboard") from e

    return DashboardOverview(stats=stats, recent_logs=logs, total=total)


@router.get("/logs", response_model=LogListResponse)
def get_logs(
    limit: int = 0,
    offset: int = 0,
    page: int = 0,
    method: Optional[str] = None,
    status_code: Optional[int] = None,
    path: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    analytics: LogAnalytics = Depends(get_log_analytics),
):
    """Filtered, paginated request logs, newest first."""
    log_filter = LogQueryFilter(
        method=method or None,
        status_code=status_code,
        path=path or None,
        start_date=_parse_date("start_date", start_date),
        end_date=_parse_date("end_date", end_date),
        limit=limit,
        offset=offset,
        page=page,
    )

    try:
        logs, total = analytics.list_logs(log_filter)
    except StoreError as e:
        logger.error("dashboard.logs_failed", error=str(e))
        raise InternalError("Failed to retrieve logs") from e

    return LogListResponse(
        logs=logs,
        total=total,
        limit=log_filter.limit,
        offset=log_filter.offset,
        page=log_filter.page,
    )


@router.get("/stats", response_model=LogStatsSnapshot)
def get_stats(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    analytics: LogAnalytics = Depends(get_log_analytics),
):
    """Aggregate statistics. Defaults to the trailing 7 days."""
    start = _parse_date("start_date", start_date)
    end = _parse_date("end_date", end_date)

    try:
        return analytics.stats(start, end)
    except StoreError as e:
        logger.error("dashboard.stats_failed", error=str(e))
        raise InternalError("Failed to retrieve statistics") from e
