"""
=============================================================================
MIDDLEWARE PACKAGE
=============================================================================

Three-argument handlers and the runner that sequences them.

    handler(request, response, next)

A route's handler chain, a host's middleware stack and a whole Router all
follow this one contract, so they compose freely:

    server.use(AccessLogMiddleware())       # host stack
    server.use(router)                      # a router is a handler
    router.get("/a", auth, show)            # a route chain

=============================================================================
DESIGN PATTERN: CHAIN OF RESPONSIBILITY
=============================================================================

- Each handler either answers (``response.send``) or passes on (``next()``)
- Any handler can abort everything with ``next(error)`` or by raising

=============================================================================
"""

from .base import ChainOutcome, Middleware, MiddlewareRunner, as_failure
from .logging import AccessLogMiddleware, RequestLog

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewareRunner",
    "ChainOutcome",
    "as_failure",

    # Built-in middleware
    "AccessLogMiddleware",
    "RequestLog",
]
