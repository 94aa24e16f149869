"""
=============================================================================
IN-PROCESS REQUEST
=============================================================================

The request object handed to every handler as its first argument.

The router only needs three things from a request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  WHAT THE DISPATCHER TOUCHES                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   request.method   READ    "GET", "POST", ...                       │
    │   request.path     READ    "/users/42" (no query string)            │
    │   request.params   WRITE   {"id": "42"}, replaced on every          │
    │                            fresh route match                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Any object with those attributes works as a request. This dataclass is the
one the bundled ``Server`` builds; it does no socket I/O and no byte-level
parsing. ``state`` is a scratch dict handlers use to pass values down the
chain (``request.state["user"] = ...``).

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qs, urlsplit


@dataclass
class Request:
    """
    A request as seen by handlers.

    Attributes:
        method:         Upper-case HTTP verb
        path:           Request path without the query string
        headers:        Header dict with LOWERCASE keys
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        body:           Raw body bytes
        params:         Path parameters written by the router
        state:          Per-request scratch space for handlers
        client_address: (ip, port) of the caller, for logging
    """

    method: str = "GET"
    path: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    params: Any = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)
    client_address: tuple[str, int] = ("127.0.0.1", 0)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    @classmethod
    def from_target(
        cls,
        method: str,
        target: str,
        headers: Optional[Dict[str, str]] = None,
        body: Union[str, bytes] = b"",
    ) -> "Request":
        """
        Build a request from a method and a request target.

        The target may carry a query string, which is split off:

            Request.from_target("GET", "/users?page=2")
            # path="/users", query_params={"page": ["2"]}
        """
        parts = urlsplit(target)
        if isinstance(body, str):
            body = body.encode("utf-8")

        return cls(
            method=method,
            path=parts.path or "/",
            headers=dict(headers or {}),
            query_params=parse_qs(parts.query, keep_blank_values=True),
            body=body,
        )

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or default."""
        values = self.query_params.get(name, [])
        return values[0] if values else default

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")
