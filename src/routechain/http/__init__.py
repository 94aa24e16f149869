"""
=============================================================================
IN-PROCESS HTTP OBJECTS
=============================================================================

Minimal request/response objects the router is driven with:

- Request:    method, path, headers, query params, router-written params
- Response:   status, headers, body and the one-shot ``sent`` flag
- HTTPStatus: status codes with reason phrases
- HTTP_METHODS: the verbs routers know how to register

There is no socket or wire-format code here; a real server adapts its own
objects or builds these from what it parsed.

=============================================================================
"""

from .methods import ALL, HTTP_METHODS, normalize_methods
from .request import Request
from .response import Response
from .status_codes import HTTPStatus, status_phrase

__all__ = [
    "ALL",
    "HTTP_METHODS",
    "normalize_methods",
    "Request",
    "Response",
    "HTTPStatus",
    "status_phrase",
]
