"""
=============================================================================
ROUTER ERRORS
=============================================================================

One exception hierarchy shared by the path compiler, the route table, the
dispatcher and the in-process host, so every module raises and catches the
same types.

=============================================================================
TWO KINDS OF FAILURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     WHEN ERRORS SURFACE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   REGISTRATION TIME (raised synchronously at the call site)         │
    │      router.get("/users/:id:id", handler)  → InvalidPathDefinition  │
    │      router.get("/users", "not callable")  → InvalidHandler         │
    │      router.purge("/cache", handler)       → UnsupportedMethod      │
    │                                                                      │
    │   DISPATCH TIME (never raised across the dispatch boundary)         │
    │      handler raises / calls next(err)      → HandlerFailure         │
    │                                              delivered to done(err) │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

404 and 405 are NOT exceptions here. They are terminal dispatch outcomes
that the dispatcher writes as status responses itself.

=============================================================================
ERROR CODES
=============================================================================

Every error carries a short, stable ``code`` so callers can branch without
parsing messages:

    ESSRPTH   invalid path definition
    ESSRHDLR  invalid handler
    ESSRMET   method not supported by this router
    ESSRCFG   invalid configuration
    ESSRFAIL  handler failure during dispatch
    ESSRSENT  response already sent

=============================================================================
"""

from typing import Optional


class RouterError(Exception):
    """Base for all routechain errors."""

    code = "ESSR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ConfigurationError(RouterError):
    """Raised when router or server configuration is invalid."""

    code = "ESSRCFG"


class InvalidPathDefinition(RouterError):
    """
    Raised when a path descriptor cannot be compiled.

    The descriptor must be a template string, a compiled ``re.Pattern`` or
    an existing ``PathMatcher``. A template that names the same parameter
    twice is also rejected.
    """

    code = "ESSRPTH"


class InvalidHandler(RouterError):
    """Raised at registration when a handler cannot be called as (req, res, next)."""

    code = "ESSRHDLR"


class UnsupportedMethod(RouterError):
    """
    Raised when registering a verb the router was not configured for.

    Fail-fast: this surfaces at the registration call, never later at
    dispatch time.
    """

    code = "ESSRMET"

    def __init__(self, method: str, message: Optional[str] = None):
        super().__init__(message or f"Method not supported by this router: {method}")
        self.method = method


class HandlerFailure(RouterError):
    """
    A handler raised, or passed an error to its continuation.

    The dispatcher never lets this escape. It is handed to the host's
    completion callback as a value, with the original error kept in
    ``cause`` (and ``__cause__``).
    """

    code = "ESSRFAIL"

    def __init__(
        self,
        cause: BaseException,
        template: Optional[str] = None,
        handler_name: Optional[str] = None,
    ):
        where = f" in {handler_name}" if handler_name else ""
        route = f" for route {template!r}" if template is not None else ""
        super().__init__(f"Handler failed{where}{route}: {cause}")
        self.cause = cause
        self.template = template
        self.handler_name = handler_name
        self.__cause__ = cause


class ResponseAlreadySent(RouterError):
    """Raised by the in-process Response when send() is called a second time."""

    code = "ESSRSENT"
