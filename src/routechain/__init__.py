"""
=============================================================================
ROUTECHAIN - PATH TEMPLATES AND CONTINUATION-DRIVEN ROUTING
=============================================================================

A small HTTP routing core:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         COMPONENTS                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   PathCompiler      "/users/:id"  →  matcher("/users/42")           │
    │                                        → {"id": "42"}               │
    │                                                                      │
    │   RouteTable        ordered (method, matcher, template, chain)      │
    │                                                                      │
    │   MiddlewareRunner  runs one chain: handler(req, res, next)         │
    │                                                                      │
    │   Dispatcher        scans the table, falls through, settles on      │
    │                     handled / 404 / 405 / pass-through / failed     │
    │                                                                      │
    │   Router            the public object tying these together          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Plus an in-process ``Server`` host, an access log middleware and a small
CLI (``python -m routechain``) for trying templates out.

=============================================================================
QUICK START
=============================================================================

    from routechain import Server, install_router

    server = Server()
    router = install_router(server)

    @router.get("/users/:id")
    def show_user(req, res, next):
        res.send({"id": req.params["id"]})

    server.request("GET", "/users/42").text      # '{"id": "42"}'

=============================================================================
"""

__version__ = "1.0.0"

from .errors import (
    ConfigurationError,
    HandlerFailure,
    InvalidHandler,
    InvalidPathDefinition,
    ResponseAlreadySent,
    RouterError,
    UnsupportedMethod,
)
from .http import ALL, HTTP_METHODS, HTTPStatus, Request, Response
from .routing import PathMatcher, Route, RouteTable, compile_path, create_pattern
from .config import RouterConfig, ServerConfig
from .middleware import AccessLogMiddleware, ChainOutcome, Middleware, MiddlewareRunner
from .routing.dispatcher import DispatchResult, Dispatcher, Outcome
from .router import Router
from .server import Server
from .integration import install_router

__all__ = [
    "__version__",
    # Errors
    "RouterError",
    "ConfigurationError",
    "InvalidPathDefinition",
    "InvalidHandler",
    "UnsupportedMethod",
    "HandlerFailure",
    "ResponseAlreadySent",
    # HTTP
    "ALL",
    "HTTP_METHODS",
    "HTTPStatus",
    "Request",
    "Response",
    # Routing
    "PathMatcher",
    "Route",
    "RouteTable",
    "compile_path",
    "create_pattern",
    "Dispatcher",
    "DispatchResult",
    "Outcome",
    "Router",
    # Middleware
    "Middleware",
    "MiddlewareRunner",
    "ChainOutcome",
    "AccessLogMiddleware",
    # Config and host
    "RouterConfig",
    "ServerConfig",
    "Server",
    "install_router",
]
