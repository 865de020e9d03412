"""Key issuance, request logging and log analytics."""

from .analytics import LogAnalytics
from .api_keys import APIKeyService
from .request_logger import RequestLogMiddleware, RequestLogWriter

__all__ = ["APIKeyService", "LogAnalytics", "RequestLogMiddleware", "RequestLogWriter"]
