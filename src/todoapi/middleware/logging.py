"""
=============================================================================
REQUEST LOGGING MIDDLEWARE
=============================================================================

Times every request and appends one line per request to a request log
file:

    [2026-10-19 14:03:27] GET /api/v1/todos (3.42ms)
    [2026-10-19 14:03:29] POST /api/v1/auth/login (121.07ms)

=============================================================================
RULES
=============================================================================

1. Timing uses time.perf_counter() (monotonic), never wall-clock time, so a
   clock adjustment mid-request cannot produce negative durations.
2. The response is returned untouched.
3. The log file is best effort. If it can't be written (read-only disk,
   missing permissions) the request still succeeds; the OSError is reported
   through the application logger instead.

The same line is also emitted at INFO on this module's logger so it shows
up in the process output next to everything else.

=============================================================================
"""

from pathlib import Path
from typing import Callable, Optional, Union
import logging
import threading
import time

from .base import Middleware, NextHandler
from ..http.request import Request
from ..http.response import Response


logger = logging.getLogger(__name__)


class LoggingMiddleware(Middleware):
    """
    Appends "[timestamp] METHOD PATH (N.NNms)" to `log_file` for each request.

    Args:
        log_file: Destination file, created with its parent directories on
                  demand. None logs through the application logger only.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        log_file: Optional[Union[str, Path]] = "logs/requests.log",
        clock: Optional[Callable[[], float]] = None,
    ):
        self.log_file = Path(log_file) if log_file else None
        self._clock = clock or time.perf_counter
        self._lock = threading.Lock()

    def handle(self, request: Request, next: NextHandler) -> Response:
        start = self._clock()
        try:
            response = next(request)
        finally:
            duration_ms = (self._clock() - start) * 1000
            line = self.format_line(request, duration_ms)
            logger.info(line)
            if self.log_file is not None:
                self._write(line)
        return response

    @staticmethod
    def format_line(request: Request, duration_ms: float) -> str:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        return f"[{timestamp}] {request.method} {request.path} ({duration_ms:.2f}ms)"

    def _write(self, line: str) -> None:
        try:
            with self._lock:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                with self.log_file.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
        except OSError as e:
            logger.warning(f"Could not write request log {self.log_file}: {e}")

    @property
    def name(self) -> str:
        return "Logging"
