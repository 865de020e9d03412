"""Shared helpers for building log entries and waiting on the background writer."""

import time
from datetime import datetime
from typing import List

from api_gate.schemas import LogQueryFilter, RequestLogEntry, RequestLogRecord
from api_gate.store.request_logs import RequestLogStore

MASTER_KEY = "master-secret-key-for-tests"


def make_entry(**overrides) -> RequestLogEntry:
    fields = {
        "method": "GET",
        "path": "/hello",
        "query_params": "",
        "status_code": 200,
        "ip_address": "127.0.0.1",
        "user_agent": "pytest",
        "api_key": "",
        "response_time_ms": 10,
        "created_at": datetime(2024, 1, 1, 12, 0, 0),
    }
    fields.update(overrides)
    return RequestLogEntry(**fields)


def wait_for_logs(
    store: RequestLogStore, expected: int, timeout: float = 3.0
) -> List[RequestLogRecord]:
    """Poll until the background writer has persisted ``expected`` entries."""
    deadline = time.monotonic() + timeout
    logs, total = store.query(LogQueryFilter())
    while total < expected and time.monotonic() < deadline:
        time.sleep(0.05)
        logs, total = store.query(LogQueryFilter())
    return logs
