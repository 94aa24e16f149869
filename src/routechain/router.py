"""
=============================================================================
ROUTER
=============================================================================

The public object: owns one RouteTable and one RouterConfig, exposes the
registration surface (``get``, ``post``, ... ``all``, ``route``) and the
dispatch surface (``handler``, ``__call__``).

=============================================================================
ROUTING FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SETUP                                                              │
    │   router.get("/users/:id", load_user, show_user)                    │
    │        │  verb allowed?        → else UnsupportedMethod             │
    │        │  handlers callable?   → else InvalidHandler                │
    │        │  template compiles?   → else InvalidPathDefinition         │
    │        ▼                                                             │
    │   RouteTable.append(Route("GET", <matcher>, "/users/:id", chain))   │
    │                                                                      │
    │   REQUEST                                                            │
    │   router(request, response, next)                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   Dispatcher(table, "GET", "/users/42", ...).run()                  │
    │        │  request.params = {"id": "42"}                             │
    │        ▼                                                             │
    │   load_user → next() → show_user → response.send(...)               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTERS ARE HANDLERS
=============================================================================

A Router is itself called as ``router(request, response, next)``, so it
can be mounted in another router or in a host's middleware stack:

    api = Router(pass_through=True)
    api.get("/users", list_users)

    app = Router()
    app.all("*", api)               # api falls through when it has no match
    app.get("/health", health)

The outer ``next`` becomes the inner dispatch's completion callback. With
``pass_through`` on, an inner miss writes nothing and the outer dispatch
simply continues.

=============================================================================
INTERVIEW QUESTIONS ABOUT ROUTING
=============================================================================

Q: "Why linear matching instead of a radix tree?"
A: "Registration order is the priority rule, and templates can be raw
   regexes that a tree cannot index. For the tens of routes a typical
   service has, a linear scan over precompiled patterns is fast enough."

Q: "Why reject an unsupported verb at registration?"
A: "A route nobody can ever reach is a bug. Failing at startup surfaces
   it immediately instead of as a mysterious 405 in production."

=============================================================================
"""

from dataclasses import asdict
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union
import logging

from .config import RouterConfig
from .errors import ConfigurationError, UnsupportedMethod
from .http.methods import ALL, HTTP_METHODS, normalize_methods
from .routing.dispatcher import Completion, DispatchResult, Dispatcher
from .routing.path_parser import PathDescriptor, compile_path
from .routing.route import Handler, Route, build_chain
from .routing.table import RouteTable


logger = logging.getLogger(__name__)

# What a registration method returns when used as a decorator
Decorator = Callable[[Handler], Handler]


class Router:
    """
    Ordered route table plus configuration.

    =========================================================================
    USAGE
    =========================================================================

        router = Router()                               # defaults
        router = Router(param_format="handlebar")       # keyword overrides
        router = Router({"passThrough": True})          # dict config
        router = Router(methods=["GET", "POST"])        # restricted verbs

        router.get("/users", list_users).post("/users", create_user)

        @router.get("/users/:id")
        def show_user(req, res, next):
            res.send({"id": req.params["id"]})

    =========================================================================
    """

    def __init__(
        self,
        config: Union[RouterConfig, Mapping[str, Any], None] = None,
        methods: Optional[Any] = None,
        **options: Any,
    ):
        """
        Args:
            config: A RouterConfig, a dict of options, or None for defaults.
            methods: Verbs this router accepts (default: every known verb).
            **options: Individual option overrides, e.g. ``pass_through=True``.

        Raises:
            ConfigurationError: For unknown options or invalid values.
        """
        if config is None or isinstance(config, Mapping):
            config = RouterConfig.from_dict(config)
        elif not isinstance(config, RouterConfig):
            raise ConfigurationError(
                f"config must be a RouterConfig or a dict, got {type(config).__name__}"
            )

        if options:
            merged = asdict(config)
            merged.update(options)
            config = RouterConfig.from_dict(merged)

        self._config: RouterConfig = config
        self._methods: Tuple[str, ...] = (
            normalize_methods(methods) if methods is not None else HTTP_METHODS
        )
        self._table = RouteTable()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def methods(self) -> Tuple[str, ...]:
        """Verbs this router accepts registrations for."""
        return self._methods

    @property
    def routes(self) -> List[Route]:
        """Registered routes in match order."""
        return list(self._table)

    @property
    def table(self) -> RouteTable:
        return self._table

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def route(
        self,
        method: str,
        path: PathDescriptor,
        *handlers: Handler,
    ) -> Union["Router", Decorator]:
        """
        Register a route for a verb (or ``"ALL"``).

        With handlers, registers them and returns the router for chaining.
        Without, returns a decorator that registers the decorated function
        and hands it back unchanged.

        Checks run in this order, and nothing is registered unless all pass:

            1. verb supported          → UnsupportedMethod
            2. handlers callable       → InvalidHandler
            3. path compiles           → InvalidPathDefinition
        """
        verb = str(method).upper()
        if verb != ALL and verb not in self._methods:
            raise UnsupportedMethod(verb)

        if not handlers:
            def decorator(handler: Handler) -> Handler:
                self.route(verb, path, handler)
                return handler
            return decorator

        chain = build_chain(handlers)
        matcher = compile_path(
            path,
            param_format=self._config.param_format,
            case_sensitive=not self._config.case_insensitive,
        )
        template = path if isinstance(path, str) else getattr(path, "pattern", path)
        self._table.append(Route(verb, matcher, template, chain))
        return self

    def all(self, path: PathDescriptor, *handlers: Handler):
        """Register a route that runs for every verb."""
        return self.route(ALL, path, *handlers)

    def copy(self, path: PathDescriptor, *handlers: Handler):
        return self.route("COPY", path, *handlers)

    def delete(self, path: PathDescriptor, *handlers: Handler):
        """Register a DELETE route. Used for removing resources."""
        return self.route("DELETE", path, *handlers)

    def get(self, path: PathDescriptor, *handlers: Handler):
        """Register a GET route. Most common for reading data."""
        return self.route("GET", path, *handlers)

    def head(self, path: PathDescriptor, *handlers: Handler):
        """Register a HEAD route. Like GET but returns only headers."""
        return self.route("HEAD", path, *handlers)

    def link(self, path: PathDescriptor, *handlers: Handler):
        return self.route("LINK", path, *handlers)

    def options(self, path: PathDescriptor, *handlers: Handler):
        """Register an OPTIONS route. Used for CORS preflight."""
        return self.route("OPTIONS", path, *handlers)

    def patch(self, path: PathDescriptor, *handlers: Handler):
        """Register a PATCH route. Used for partial updates."""
        return self.route("PATCH", path, *handlers)

    def post(self, path: PathDescriptor, *handlers: Handler):
        """Register a POST route. Used for creating resources."""
        return self.route("POST", path, *handlers)

    def purge(self, path: PathDescriptor, *handlers: Handler):
        """Register a PURGE route. Used by caches to evict an entry."""
        return self.route("PURGE", path, *handlers)

    def put(self, path: PathDescriptor, *handlers: Handler):
        """Register a PUT route. Used for replacing resources."""
        return self.route("PUT", path, *handlers)

    def unlink(self, path: PathDescriptor, *handlers: Handler):
        return self.route("UNLINK", path, *handlers)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def handler(self, method: str, path: str) -> Callable[..., DispatchResult]:
        """
        Bind a dispatch to a method and path.

        Returns ``run(request, response, done=None)``. Each call creates a
        fresh Dispatcher, so the returned callable can be reused.
        """
        def run(request: Any, response: Any, done: Optional[Completion] = None) -> DispatchResult:
            dispatcher = Dispatcher(
                self._table,
                method,
                path,
                request,
                response,
                done=done,
                pass_through=self._config.pass_through,
                methods=self._methods,
            )
            return dispatcher.run()
        return run

    def dispatch(
        self,
        request: Any,
        response: Any,
        done: Optional[Completion] = None,
    ) -> DispatchResult:
        """Dispatch on ``request.method`` and ``request.path``."""
        return self.handler(request.method, request.path)(request, response, done)

    def __call__(self, request: Any, response: Any, next: Optional[Completion] = None) -> None:
        self.dispatch(request, response, next)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"Router(routes={len(self._table)}, config={self._config})"
