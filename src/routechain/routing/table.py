"""
=============================================================================
ROUTE TABLE
=============================================================================

An ordered, append-only list of routes. Registration order IS match
priority; there is no sorting, indexing or prefix tree.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ONE TABLE, ALL VERBS                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   index   method   template         chain                           │
    │   ─────   ──────   ──────────────   ─────────────────────           │
    │     0     ALL      *                [log_request]                   │
    │     1     GET      /users           [list_users]                    │
    │     2     POST     /users           [validate, create_user]         │
    │     3     GET      /users/:id       [load_user, show_user]          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Routes are NOT partitioned by verb. A scan for ``POST /users/7`` walks all
four rows, which is what lets the dispatcher tell "path matched under a
different verb" (405) from "path never matched" (404).

The table is filled during setup and only read while dispatching; each
dispatch keeps its own cursor, so one table serves any number of
in-flight requests.

=============================================================================
"""

from typing import Iterator, List, Tuple
import logging

from .path_parser import MatchResult
from .route import Route


logger = logging.getLogger(__name__)


class RouteTable:
    """Append-only, ordered route storage."""

    def __init__(self):
        self._routes: List[Route] = []

    def append(self, route: Route) -> Route:
        """Add a route at the lowest priority."""
        self._routes.append(route)
        logger.debug(f"Registered route #{len(self._routes) - 1}: {route!r}")
        return route

    def scan(self, path: str, start: int = 0) -> Iterator[Tuple[int, Route, MatchResult]]:
        """
        Yield ``(index, route, match)`` for every route whose path matches,
        starting at ``start``.

        The verb is deliberately not checked here; that decision belongs to
        the dispatcher.
        """
        for index in range(start, len(self._routes)):
            route = self._routes[index]
            match = route.match(path)
            if match is not None:
                yield index, route, match

    def allowed_methods(self, path: str) -> List[str]:
        """Sorted verbs registered for a path (``ALL`` included as-is)."""
        return sorted({route.method for _, route, _ in self.scan(path)})

    def __getitem__(self, index: int) -> Route:
        return self._routes[index]

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes)
