"""Asynchronous request logging.

Every completed request is turned into a ``RequestLogEntry`` by
``RequestLogMiddleware`` and handed to ``RequestLogWriter``, which persists it
from a bounded queue in the background. Logging is best-effort and at most
once: a full queue, a slow database or a failed insert drops the entry and
never affects the response.
"""

import asyncio
import time
from typing import List, Optional, Sequence
from urllib.parse import quote, unquote_plus

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..schemas import RequestLogEntry
from ..store.request_logs import RequestLogStore
from ..utils.keys import mask_api_key
from ..utils.logging import get_logger
from ..utils.timeutils import utc_now

logger = get_logger(__name__)

SKIP_PATH_PREFIXES = ("/auth", "/docs", "/redoc", "/openapi.json")
CREDENTIAL_QUERY_PARAM = "api"


class RequestLogWriter:
    """Bounded background writer for request logs.

    ``submit`` never blocks. When the queue is full, or the writer has not
    been started, the new entry is dropped and counted in ``dropped``.
    """

    def __init__(
        self,
        store: RequestLogStore,
        max_queue_size: int = 10000,
        workers: int = 2,
        write_timeout: float = 5.0,
    ):
        self.store = store
        self.max_queue_size = max_queue_size
        self.workers = max(1, workers)
        self.write_timeout = write_timeout

        self.written = 0
        self.failed = 0
        self.dropped = 0

        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Create the queue and spawn the worker tasks."""
        if self.running:
            logger.warning("request_log.writer.already_running")
            return

        self._queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._tasks = [
            asyncio.create_task(self._worker(self._queue)) for _ in range(self.workers)
        ]
        logger.info(
            "request_log.writer.started",
            workers=self.workers,
            max_queue_size=self.max_queue_size,
        )

    async def stop(self) -> None:
        """Drain what is queued (bounded by the write timeout), then stop workers."""
        if not self.running:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.write_timeout)
        except asyncio.TimeoutError:
            logger.warning("request_log.writer.drain_timeout", pending=self.pending)

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

        self._tasks = []
        self._queue = None
        logger.info(
            "request_log.writer.stopped",
            written=self.written,
            failed=self.failed,
            dropped=self.dropped,
        )

    def submit(self, entry: RequestLogEntry) -> bool:
        """Queue an entry for persistence. Returns False if it was dropped."""
        if not self.running:
            self.dropped += 1
            return False

        try:
            self._queue.put_nowait(entry)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("request_log.dropped", reason="queue_full", path=entry.path)
            return False
        return True

    async def flush(self, timeout: Optional[float] = None) -> None:
        """Wait until everything queued so far has been handled."""
        if self._queue is not None:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)

    async def _worker(self, queue: asyncio.Queue) -> None:
        while True:
            entry = await queue.get()
            try:
                await self._write(entry)
            finally:
                queue.task_done()

    async def _write(self, entry: RequestLogEntry) -> None:
        # The store rolls back any insert that reaches its commit past the deadline
        deadline = time.monotonic() + self.write_timeout
        insert = asyncio.ensure_future(
            asyncio.to_thread(self.store.insert, entry, deadline)
        )
        try:
            await asyncio.wait_for(asyncio.shield(insert), timeout=self.write_timeout)
            self.written += 1
        except asyncio.TimeoutError:
            self.failed += 1
            logger.warning(
                "request_log.write_timeout",
                path=entry.path,
                timeout=self.write_timeout,
            )
            await self._settle(insert)
        except Exception as e:
            self.failed += 1
            logger.warning("request_log.write_failed", path=entry.path, error=str(e))

    async def _settle(self, insert: asyncio.Future) -> None:
        """Wait for an abandoned insert thread so at most ``workers`` are ever busy."""
        try:
            await insert
        except Exception as e:
            logger.debug("request_log.abandoned_write_finished", error=str(e))


def client_ip(request: Request) -> str:
    """Best guess at the caller's address, honouring proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else ""


def mask_query_credential(query: str) -> str:
    """Query string with the ``api`` value masked; every other pair is left untouched."""
    pairs = []
    for pair in query.split("&"):
        name, sep, value = pair.partition("=")
        if sep and unquote_plus(name) == CREDENTIAL_QUERY_PARAM:
            value = quote(mask_api_key(unquote_plus(value)), safe=".")
        pairs.append(name + sep + value)
    return "&".join(pairs)


def build_log_entry(
    request: Request, status_code: int, elapsed_ms: int
) -> RequestLogEntry:
    """Capture the outcome of a request. The query credential is only ever recorded masked."""
    return RequestLogEntry(
        method=request.method,
        path=request.url.path,
        query_params=mask_query_credential(request.url.query),
        status_code=status_code,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
        api_key=mask_api_key(request.query_params.get(CREDENTIAL_QUERY_PARAM, "")),
        response_time_ms=max(0, elapsed_ms),
        created_at=utc_now(),
    )


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Times each request and submits its log entry after the handler finishes."""

    def __init__(
        self,
        app,
        writer: RequestLogWriter,
        skip_prefixes: Sequence[str] = SKIP_PATH_PREFIXES,
    ):
        super().__init__(app)
        self.writer = writer
        self.skip_prefixes = tuple(skip_prefixes)

    def should_log(self, path: str) -> bool:
        return not any(
            path == prefix or path.startswith(prefix + "/")
            for prefix in self.skip_prefixes
        )

    async def dispatch(self, request: Request, call_next):
        if not self.should_log(request.url.path):
            return await call_next(request)

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            try:
                self.writer.submit(build_log_entry(request, status_code, elapsed_ms))
            except Exception as e:
                logger.warning("request_log.capture_failed", error=str(e))
