from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional, Dict, Any
from datetime import datetime

DEFAULT_LOG_LIMIT = 100
MAX_LOG_LIMIT = 1000
TOP_PATHS_LIMIT = 10


# =============================================================================
# API Key Schemas
# =============================================================================


class APIKeyRequest(BaseModel):
    """Request to create new API key."""

    name: str = Field(..., min_length=1, description="Friendly name for the API key")


class APIKeyRecord(BaseModel):
    """Stored API key, detached from the database session."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    name: str
    active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None


class APIKeyCreatedResponse(BaseModel):
    """API key creation response. The only time the full key is returned."""

    key: str
    name: str
    created_at: datetime


class APIKeyInfo(BaseModel):
    """API key information (key masked)."""

    id: int
    key: str
    name: str
    active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None


# =============================================================================
# Browser Auth Schemas
# =============================================================================


class SetAuthCookieRequest(BaseModel):
    """Request to store an API key in the browser cookie."""

    api_key: str = Field(..., min_length=1, description="API key to remember")


class AuthCookieResponse(BaseModel):
    success: bool
    message: str


# =============================================================================
# Request Log Schemas
# =============================================================================


class RequestLogEntry(BaseModel):
    """Outcome of one completed request, ready to be persisted."""

    method: str
    path: str
    query_params: str = ""
    status_code: int
    ip_address: str = ""
    user_agent: str = ""
    api_key: str = ""
    response_time_ms: int = Field(0, ge=0)
    created_at: datetime


class RequestLogRecord(RequestLogEntry):
    """Stored request log."""

    model_config = ConfigDict(from_attributes=True)

    id: int


class LogQueryFilter(BaseModel):
    """Filter and pagination for log retrieval.

    Limits outside ``[1, 1000]`` are normalized: zero or negative falls back
    to the default of 100, anything above 1000 is capped. A positive ``page``
    overrides ``offset``.
    """

    method: Optional[str] = None
    status_code: Optional[int] = None
    path: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = DEFAULT_LOG_LIMIT
    offset: int = 0
    page: int = 0

    @model_validator(mode="after")
    def _normalize_pagination(self):
        if self.limit <= 0:
            self.limit = DEFAULT_LOG_LIMIT
        elif self.limit > MAX_LOG_LIMIT:
            self.limit = MAX_LOG_LIMIT

        if self.page > 0:
            self.offset = (self.page - 1) * self.limit
        elif self.offset < 0:
            self.offset = 0
        return self


class LogListResponse(BaseModel):
    logs: List[RequestLogRecord]
    total: int
    limit: int
    offset: int
    page: int


# =============================================================================
# Stats Schemas
# =============================================================================


class PathCount(BaseModel):
    path: str
    count: int


class MethodCount(BaseModel):
    method: str
    count: int


class LogStatsSnapshot(BaseModel):
    """Aggregated request statistics over a time window."""

    total_requests: int = 0
    average_response_time_ms: float = 0.0
    status_codes: Dict[int, int] = Field(default_factory=dict)
    top_paths: List[PathCount] = Field(default_factory=list)
    top_methods: List[MethodCount] = Field(default_factory=list)
    start_date: datetime
    end_date: datetime


class DashboardOverview(BaseModel):
    stats: LogStatsSnapshot
    recent_logs: List[RequestLogRecord]
    total: int


# =============================================================================
# Misc Schemas
# =============================================================================


class HelloResponse(BaseModel):
    message: str = "Hello, World!"


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: Dict[str, Any]
