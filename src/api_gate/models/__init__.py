"""Database models for the API Gate service."""

from .api_key import APIKey
from .request_log import RequestLog

__all__ = ["APIKey", "RequestLog"]
