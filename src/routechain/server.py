"""
=============================================================================
IN-PROCESS SERVER
=============================================================================

A host for routers and middleware that runs entirely in process: no
sockets, no byte parsing. It exists so routers can be driven end to end
(from tests, the CLI, or an embedding application) with the same
three-argument middleware stack a network server would use.

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    server.request("GET", "/users/42?x=1")
        │
        ├── 1. BUILD REQUEST
        │      Request.from_target → method, path, query_params
        │
        ├── 2. VERB CHECK
        │      not in config.supported_methods → 405
        │
        ├── 3. MIDDLEWARE STACK  (MiddlewareRunner)
        │      AccessLog → router → ...
        │
        └── 4. SETTLE
               SENT       → response as written
               EXHAUSTED  → 404 (nobody answered)
               FAILED     → 500, failure logged

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HOST ARCHITECTURE                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    ┌──────────────┐    ┌──────────────────┐    ┌──────────────┐    │
    │    │ ServerConfig │    │ Middleware stack │    │   Router(s)  │    │
    │    │  (verbs,     │    │ (list of         │    │  (installed  │    │
    │    │   logging)   │    │  handlers)       │    │   via use()) │    │
    │    └──────────────┘    └──────────────────┘    └──────────────┘    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from .config import ServerConfig
from .errors import HandlerFailure
from .http.request import Request
from .http.response import Response
from .http.status_codes import HTTPStatus
from .middleware.base import ChainOutcome, MiddlewareRunner
from .routing.route import Handler, validate_handler


logger = logging.getLogger(__name__)


class Server:
    """
    In-process HTTP host.

    =========================================================================
    USAGE
    =========================================================================

        server = Server()
        server.use(AccessLogMiddleware())

        router = install_router(server)
        router.get("/users/:id", show_user)

        response = server.request("GET", "/users/42")
        response.status      # 200
        response.text        # '{"id": "42"}'

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Uses defaults if not provided.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._stack: List[Handler] = []

    # =========================================================================
    # CONFIGURATION METHODS
    # =========================================================================

    def use(self, middleware: Handler) -> "Server":
        """
        Append a three-argument handler to the stack.

        Handlers run in the order added. Returns self for chaining:

            server.use(AccessLogMiddleware()).use(router)
        """
        self._stack.append(validate_handler(middleware))
        return self

    def supported_methods(self) -> Tuple[str, ...]:
        return tuple(self.config.supported_methods)

    @property
    def stack(self) -> List[Handler]:
        return list(self._stack)

    def setup_logging(self) -> None:
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        if self.config.log_format == "json":
            fmt = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": %(message)r}'
        else:
            fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

        logging.basicConfig(level=level, format=fmt, datefmt="%Y-%m-%d %H:%M:%S")
        logging.getLogger("routechain").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def request(
        self,
        method: str,
        target: str,
        headers: Optional[Dict[str, str]] = None,
        body: Union[str, bytes] = b"",
    ) -> Response:
        """
        Run one request through the stack and return its response.

        If some handler defers its ``next()``, the returned response may
        still be unsent; it is completed when that ``next()`` is called.
        """
        return self.handle(Request.from_target(method, target, headers, body))

    def handle(self, request: Request, response: Optional[Response] = None) -> Response:
        """Run an already built request through the stack."""
        response = response if response is not None else Response()

        if request.method not in self.config.supported_methods:
            logger.debug(f"Rejecting unsupported method {request.method}")
            response.set_header("Allow", ", ".join(self.config.supported_methods))
            return response.send_status(HTTPStatus.METHOD_NOT_ALLOWED)

        def settled(outcome: ChainOutcome, failure: Optional[HandlerFailure]) -> None:
            self._finish(request, response, outcome, failure)

        MiddlewareRunner(self._stack, request, response, settled, template="<server>").start()
        return response

    def _finish(
        self,
        request: Request,
        response: Response,
        outcome: ChainOutcome,
        failure: Optional[HandlerFailure],
    ) -> None:
        if outcome is ChainOutcome.FAILED:
            cause: Any = failure.cause if failure is not None else None
            logger.error(
                f"Request failed: {request.method} {request.path} - {failure}",
                exc_info=(type(cause), cause, cause.__traceback__) if cause is not None else None,
            )
            if not response.sent:
                response.send_status(HTTPStatus.INTERNAL_SERVER_ERROR)
        elif outcome is ChainOutcome.EXHAUSTED and not response.sent:
            response.send_status(HTTPStatus.NOT_FOUND)

    def __repr__(self) -> str:
        return f"Server(methods={len(self.config.supported_methods)}, stack={len(self._stack)})"
