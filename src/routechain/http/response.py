"""
=============================================================================
IN-PROCESS RESPONSE
=============================================================================

The response object handed to every handler as its second argument.

=============================================================================
THE SENT FLAG
=============================================================================

The dispatcher's whole notion of "this request is finished" is one boolean:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      RESPONSE LIFECYCLE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Response()          sent=False   headers/status still mutable     │
    │        │                                                             │
    │        │  handler calls res.send("hi")  or  res.send_status(404)    │
    │        ▼                                                             │
    │   Response            sent=True    on_send listeners run once       │
    │        │                                                             │
    │        │  any further next() from the chain → ignored               │
    │        │  a second res.send()              → ResponseAlreadySent    │
    │        ▼                                                             │
    │   host reads status / headers / body                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Anything exposing ``sent``, ``send(body)`` and ``send_status(code)`` can be
used in place of this class; ``set_header`` is optional (the dispatcher uses
it for the ``Allow`` header on 405 when present).

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union
import json
import logging

from .status_codes import HTTPStatus, status_phrase
from ..errors import ResponseAlreadySent


logger = logging.getLogger(__name__)

# Called with the response right after it is sent
SendListener = Callable[["Response"], None]


@dataclass
class Response:
    """
    A response that is written exactly once.

    Usage inside a handler:

        def get_user(req, res, next):
            res.set_header("Cache-Control", "no-store")
            res.send({"id": req.params["id"]})     # JSON body, status 200
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    _sent: bool = field(default=False, repr=False)
    _listeners: List[SendListener] = field(default_factory=list, repr=False)

    @property
    def sent(self) -> bool:
        """True once send() or send_status() has run."""
        return self._sent

    @property
    def status_line(self) -> str:
        return f"HTTP/1.1 {int(self.status)} {status_phrase(self.status)}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "Response":
        """Set a header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def on_send(self, listener: SendListener) -> "Response":
        """
        Register a callback that runs right after the response is sent.

        Used by the access log to record status and size.
        """
        self._listeners.append(listener)
        return self

    def send(self, body: Any = b"", status: Optional[int] = None) -> "Response":
        """
        Write the response.

        ┌───────────────────┬──────────────────────────────────────────┐
        │ body type         │ stored as                                │
        ├───────────────────┼──────────────────────────────────────────┤
        │ bytes             │ as-is                                    │
        │ str               │ UTF-8, text/plain unless already set     │
        │ dict / list / ... │ JSON, application/json unless already set│
        └───────────────────┴──────────────────────────────────────────┘

        Raises:
            ResponseAlreadySent: If the response was already written.
        """
        if self._sent:
            raise ResponseAlreadySent("Response has already been sent")

        if status is not None:
            self.status = _as_status(status)

        if isinstance(body, bytes):
            self.body = body
        elif isinstance(body, str):
            self.body = body.encode("utf-8")
            self.headers.setdefault("Content-Type", "text/plain; charset=utf-8")
        else:
            self.body = json.dumps(body).encode("utf-8")
            self.headers.setdefault("Content-Type", "application/json; charset=utf-8")

        self.headers["Content-Length"] = str(len(self.body))
        self._sent = True

        for listener in self._listeners:
            listener(self)
        return self

    def send_status(self, code: int) -> "Response":
        """Send a bare status; the body is the reason phrase."""
        return self.send(status_phrase(code), status=code)


def _as_status(code: Union[int, HTTPStatus]) -> int:
    try:
        return HTTPStatus(code)
    except ValueError:
        logger.debug(f"Non-standard status code {code}")
        return int(code)
