"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

Logs one line per response, with timing and a correlation id, in either
Apache-style text or JSON.

=============================================================================
WHEN IS THE LINE WRITTEN?
=============================================================================

A three-argument handler cannot wrap "the rest of the chain" the way a
return-value middleware can: ``next()`` only queues the next handler and
returns immediately. So the middleware registers a send listener instead:

    ┌───────────────┐  on_send(listener)   ┌─────────────────────────┐
    │ AccessLog     │ ───────────────────► │ Response                │
    │ Middleware    │  next()              │                         │
    └───────────────┘                      │  ... handlers run ...   │
                                           │                         │
                                           │  send() ──► listener ───┼──► log line
                                           └─────────────────────────┘

A request that is never answered produces no access line.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default):
    127.0.0.1 - - [10/Jun/2024:10:55:36 +0000] "GET /users/42" 200 17 0.41ms

    JSON:
    {"request_id": "a1b2c3d4", "method": "GET", "path": "/users/42", ...}

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional

from .base import Middleware
from ..errors import ConfigurationError
from ..routing.route import Continuation


# Namespaced so it can be routed separately from library debug output:
#   logging.getLogger("routechain.access").addHandler(file_handler)
logger = logging.getLogger("routechain.access")


@dataclass
class RequestLog:
    """
    Structured access log entry.

    request_id:     Short id, also sent back as X-Request-ID
    status_code:    Final response status
    content_length: Response body size in bytes
    duration_ms:    From middleware entry to send()
    """

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status_code"] = int(self.status_code)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache combined-style line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {int(self.status_code)} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogMiddleware(Middleware):
    """
    Request logging middleware.

    Put it FIRST so every request is timed from the start and the request
    id is visible to everything downstream (``request.state["request_id"]``):

        server.use(AccessLogMiddleware(log_format="json", skip_paths=["/health"]))
        install_router(server)
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            log_format: "text" (human readable) or "json" (log aggregators).
            include_request_id: Add an X-Request-ID header to the response.
            log_level: Level the access lines are logged at.
            skip_paths: Paths never logged, e.g. health checks.
        """
        if log_format not in ("text", "json"):
            raise ConfigurationError(f"log_format must be 'text' or 'json', got {log_format!r}")

        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: Any, response: Any, next: Continuation) -> None:
        # 8 hex chars is plenty to correlate lines within one service
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        state = getattr(request, "state", None)
        if isinstance(state, dict):
            state["request_id"] = request_id

        if self.include_request_id and hasattr(response, "set_header"):
            response.set_header("X-Request-ID", request_id)

        def emit(sent_response: Any) -> None:
            if request.path in self.skip_paths:
                return
            entry = self._build_entry(request, sent_response, request_id, start_time)
            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(entry.to_dict()))
            else:
                logger.log(self.log_level, entry.to_text())

        if hasattr(response, "on_send"):
            response.on_send(emit)
        next()

    @staticmethod
    def _build_entry(request: Any, response: Any, request_id: str, start_time: float) -> RequestLog:
        query_params = getattr(request, "query_params", None)
        client_address = getattr(request, "client_address", None) or ("-", 0)
        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=str(query_params) if query_params else "",
            client_ip=client_address[0],
            user_agent=getattr(request, "user_agent", "") or "-",
            status_code=response.status,
            content_length=len(response.body),
            duration_ms=(time.perf_counter() - start_time) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )
