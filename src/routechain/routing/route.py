"""Route and handler-chain definitions."""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Tuple
import inspect

from ..errors import InvalidHandler
from ..http.methods import ALL
from .path_parser import MatchResult, PathMatcher


# Handler: called as handler(request, response, next).
# next() proceeds, next(error) aborts the dispatch with that error.
Continuation = Callable[..., None]
Handler = Callable[[Any, Any, Continuation], Any]

# An immutable, validated sequence of handlers for one route
HandlerChain = Tuple[Handler, ...]


def handler_name(handler: Any) -> str:
    """Readable name for logs and error messages."""
    return getattr(handler, "__qualname__", None) or type(handler).__name__


def validate_handler(handler: Any) -> Handler:
    """
    Check that a handler can be called as ``handler(request, response, next)``.

    Signatures that cannot be introspected (some builtins and C extensions)
    are accepted as long as the object is callable.

    Raises:
        InvalidHandler: If the object is not callable or its signature
                        cannot bind three positional arguments.
    """
    if not callable(handler):
        raise InvalidHandler(
            f"Handler must be callable as (request, response, next), "
            f"got {type(handler).__name__}"
        )

    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError):
        return handler

    try:
        signature.bind(None, None, None)
    except TypeError:
        raise InvalidHandler(
            f"Handler {handler_name(handler)}{signature} cannot be called "
            f"as (request, response, next)"
        ) from None

    return handler


def build_chain(handlers: Iterable[Any]) -> HandlerChain:
    """
    Validate every handler and freeze them into a chain.

    Nothing is returned (and so nothing gets registered) unless ALL
    handlers pass.
    """
    chain = tuple(validate_handler(handler) for handler in handlers)
    if not chain:
        raise InvalidHandler("A route needs at least one handler")
    return chain


@dataclass(frozen=True)
class Route:
    """
    A registered route.

        router.get("/users/:id", load_user, show_user)

        Route(
            method="GET",                   # or "ALL"
            matcher=<PathMatcher>,          # compiled once, at registration
            template="/users/:id",          # as registered
            chain=(load_user, show_user),   # run in order
        )
    """

    method: str
    matcher: PathMatcher
    template: Any
    chain: HandlerChain

    def match(self, path: str) -> Optional[MatchResult]:
        """Run this route's matcher against a request path."""
        return self.matcher(path)

    def accepts(self, method: str) -> bool:
        """True if this route runs for the given (upper-case) verb."""
        return self.method == ALL or self.method == method

    def __repr__(self) -> str:
        names = ", ".join(handler_name(h) for h in self.chain)
        return f"Route({self.method} {self.template!r} → [{names}])"
