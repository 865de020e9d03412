"""Persistence for API keys and request logs."""

from .api_keys import APIKeyStore
from .request_logs import RequestLogStore, build_log_conditions

__all__ = ["APIKeyStore", "RequestLogStore", "build_log_conditions"]
