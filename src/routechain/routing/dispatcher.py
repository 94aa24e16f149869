"""
=============================================================================
DISPATCHER
=============================================================================

Runs ONE request through a RouteTable: scan for matching routes in
registration order, execute their chains, fall through when a chain ends
without responding, and settle on exactly one final outcome.

=============================================================================
STATE MACHINE
=============================================================================

    ┌──────────┐  path+verb match   ┌───────────┐
    │ SCANNING │ ─────────────────► │ EXECUTING │
    │ (cursor) │ ◄───────────────── │  (chain)  │
    └────┬─────┘  chain exhausted   └─────┬─────┘
         │        (fall-through)          │
         │ end of table                   ├── response sent ──► HANDLED
         ▼                                └── next(err)/raise ► FAILED
    ┌──────────────────────────────────────────────┐
    │ pass_through?          → PASS_THROUGH        │
    │ any chain executed?    → NOT_FOUND (404)     │
    │ path matched, wrong    → METHOD_NOT_ALLOWED  │
    │   verb only?             (405)               │
    │ otherwise              → NOT_FOUND (404)     │
    └──────────────────────────────────────────────┘

While scanning, each route falls in one of three buckets:

    no path match                 → skip
    path match, other verb        → remember "path matched", skip
    path match, same verb / ALL   → request.params = match  (REPLACED,
                                    never merged), run the chain

=============================================================================
EXAMPLE: FALL-THROUGH
=============================================================================

    router.get("/foo/bar", audit)           # audit calls next() only
    router.get("/foo/:p", show)             # show sends

    GET /foo/bar
      cursor 0: "/foo/bar" matches → params {} → audit → next()
      chain exhausted → resume at cursor 1
      cursor 1: "/foo/:p" matches → params {"p": "bar"} → show → send
      → HANDLED

=============================================================================
COMPLETION
=============================================================================

The host's completion callback ``done(error=None)`` fires exactly once per
dispatch, whatever the outcome. Failures are delivered as a
``HandlerFailure`` value, never raised out of the dispatcher.

=============================================================================
INTERVIEW QUESTIONS ABOUT DISPATCH
=============================================================================

Q: "Why keep every verb in one table?"
A: "So one scan can tell 'this path exists for another verb' (405) apart
   from 'no such path' (404) without a second lookup."

Q: "Why 404 and not 405 after a chain ran but never responded?"
A: "A verb-compatible route DID run, so the method was allowed. Nothing
   produced a response, which is a missing resource, not a wrong verb."

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Set
import logging

from ..errors import HandlerFailure
from ..http.methods import ALL
from ..http.status_codes import HTTPStatus
from ..middleware.base import ChainOutcome, MiddlewareRunner
from .route import Route
from .table import RouteTable


logger = logging.getLogger(__name__)

# The host's continuation: done() or done(error)
Completion = Callable[..., Any]


class Outcome(Enum):
    """Terminal states of one dispatch."""

    HANDLED = "handled"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    PASS_THROUGH = "pass_through"
    FAILED = "failed"


_OUTCOME_STATUS = {
    Outcome.NOT_FOUND: HTTPStatus.NOT_FOUND,
    Outcome.METHOD_NOT_ALLOWED: HTTPStatus.METHOD_NOT_ALLOWED,
}


@dataclass
class DispatchResult:
    """
    What happened to one request.

    ``outcome`` stays None while the dispatch is suspended waiting for a
    handler to call its ``next()`` later.
    """

    method: str
    path: str
    outcome: Optional[Outcome] = None
    error: Optional[HandlerFailure] = None
    executed: List[Any] = field(default_factory=list)   # templates, in run order

    @property
    def done(self) -> bool:
        return self.outcome is not None

    @property
    def status(self) -> Optional[int]:
        """404/405 when the dispatcher wrote the response itself."""
        return _OUTCOME_STATUS.get(self.outcome)


class Dispatcher:
    """
    One in-flight dispatch: owns its cursor, flags and result.

    Never reused. ``Router.handler()`` creates one per request, so nothing
    here is shared between concurrent requests.
    """

    def __init__(
        self,
        table: RouteTable,
        method: str,
        path: str,
        request: Any,
        response: Any,
        done: Optional[Completion] = None,
        pass_through: bool = False,
        methods: Optional[Sequence[str]] = None,
    ):
        self._table = table
        self._method = method.upper()
        self._path = path
        self._request = request
        self._response = response
        self._done = done
        self._pass_through = pass_through
        self._methods = tuple(methods) if methods is not None else None

        # ─────────────────────────────────────────────────────────────────
        # SCAN STATE
        # ─────────────────────────────────────────────────────────────────
        self._cursor = 0                        # next table index to test
        self._path_matched = False              # matched under another verb
        self._resume = False                    # scanning requested
        self._settlement: Optional[tuple] = None  # (ChainOutcome, failure)
        self._running = False                   # inside _drive()

        self.result = DispatchResult(method=self._method, path=path)

    def run(self) -> DispatchResult:
        """
        Start the dispatch.

        Returns the result object. For fully synchronous chains it is
        already final; otherwise it is completed when the pending ``next()``
        is eventually called.
        """
        logger.debug(f"Dispatching {self._method} {self._path}")

        if self._response.sent:
            self._finish(Outcome.HANDLED)
            return self.result

        self._resume = True
        self._drive()
        return self.result

    # =========================================================================
    # THE LOOP
    # =========================================================================

    def _drive(self) -> None:
        if self._running:
            return

        self._running = True
        try:
            while self.result.outcome is None:
                if self._settlement is not None:
                    outcome, failure = self._settlement
                    self._settlement = None

                    if outcome is ChainOutcome.FAILED:
                        self._finish(Outcome.FAILED, failure)
                        break
                    if outcome is ChainOutcome.SENT:
                        self._finish(Outcome.HANDLED)
                        break
                    # EXHAUSTED: fall through to the next matching route
                    self._resume = True

                if not self._resume:
                    # A chain is waiting on a deferred next()
                    break
                self._resume = False
                self._scan()
        finally:
            self._running = False

    def _scan(self) -> None:
        """Advance the cursor to the next executable route, or end the table."""
        for index, route, match in self._table.scan(self._path, self._cursor):
            if not self._accepts(route):
                self._path_matched = True
                continue

            self._cursor = index + 1
            self._request.params = match
            self.result.executed.append(route.template)

            logger.debug(f"{self._method} {self._path} → route #{index} {route.template!r}")
            runner = MiddlewareRunner(
                route.chain,
                self._request,
                self._response,
                self._on_chain_settled,
                template=route.template,
            )
            runner.start()
            return

        self._cursor = len(self._table)
        self._end_of_table()

    def _accepts(self, route: Route) -> bool:
        # ALL stands for every verb the router recognizes
        if route.method == ALL and self._methods is not None:
            return self._method in self._methods
        return route.accepts(self._method)

    def _allowed_methods(self) -> List[str]:
        """Sorted verbs the path is registered for, ALL expanded."""
        allowed: Set[str] = set()
        for verb in self._table.allowed_methods(self._path):
            if verb == ALL:
                allowed.update(self._methods or ())
            else:
                allowed.add(verb)
        return sorted(allowed)

    def _on_chain_settled(self, outcome: ChainOutcome, failure: Optional[HandlerFailure]) -> None:
        self._settlement = (outcome, failure)
        self._drive()

    def _end_of_table(self) -> None:
        if self._pass_through:
            self._finish(Outcome.PASS_THROUGH)
        elif self.result.executed:
            # Verb-compatible routes ran but none responded
            self._finish(Outcome.NOT_FOUND)
        elif self._path_matched:
            self._finish(Outcome.METHOD_NOT_ALLOWED)
        else:
            self._finish(Outcome.NOT_FOUND)

    # =========================================================================
    # COMPLETION
    # =========================================================================

    def _finish(self, outcome: Outcome, failure: Optional[HandlerFailure] = None) -> None:
        if self.result.outcome is not None:
            return
        self.result.outcome = outcome
        self.result.error = failure

        status = _OUTCOME_STATUS.get(outcome)
        if status is not None and not self._response.sent:
            if outcome is Outcome.METHOD_NOT_ALLOWED and hasattr(self._response, "set_header"):
                self._response.set_header("Allow", ", ".join(self._allowed_methods()))
            self._response.send_status(status)

        logger.debug(f"{self._method} {self._path} finished: {outcome.value}")

        if self._done is not None:
            self._done(failure)
        elif failure is not None:
            self._report_unhandled(failure)

    def _report_unhandled(self, failure: HandlerFailure) -> None:
        """No host continuation to receive the failure: log it and answer 500."""
        logger.error(
            f"Unhandled failure for {self._method} {self._path}: {failure}",
            exc_info=(type(failure.cause), failure.cause, failure.cause.__traceback__),
        )
        if not self._response.sent:
            self._response.send_status(HTTPStatus.INTERNAL_SERVER_ERROR)
