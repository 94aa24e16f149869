"""
=============================================================================
HANDLER CHAINS AND THE MIDDLEWARE RUNNER
=============================================================================

Defines the three-argument handler protocol and the runner that walks one
chain of such handlers.

=============================================================================
THE HANDLER CONTRACT
=============================================================================

Every handler (route handler, middleware, even a whole Router) is called as:

    handler(request, response, next)

and does exactly one of:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHAT A HANDLER CAN DO                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   (a) response.send(...)   → chain is finished (terminal)           │
    │                                                                      │
    │   (b) next()               → run the next handler; when the chain   │
    │                              is exhausted the ROUTER resumes        │
    │                              scanning for another matching route    │
    │                                                                      │
    │   (c) next(error)          → abort the chain AND the dispatch       │
    │                                                                      │
    │   (d) raise SomeError      → caught right here, treated exactly     │
    │                              like (c)                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Once ``response.sent`` is True every further ``next()`` from the chain is a
no-op: it neither advances nor resumes scanning.

=============================================================================
WHY A TRAMPOLINE INSTEAD OF RECURSION?
=============================================================================

The obvious implementation makes next() call the next handler directly:

    h1 → next() → h2 → next() → h3 → next() → ...      (stack grows)

A long chain (or a long fall-through across many routes) then grows the
Python stack without bound. Here next() only RECORDS the request to move
on; a loop picks it up once the current handler returns:

    ┌──────────┐   next()    ┌──────────────┐
    │ handler  │ ──────────► │ _pending=True│    (returns immediately)
    └────┬─────┘             └──────────────┘
         │ returns
         ▼
    ┌──────────────────────────────────────┐
    │ loop: pending? → call next handler   │     (constant stack depth)
    └──────────────────────────────────────┘

Consequence: code placed AFTER ``next()`` inside a handler runs BEFORE the
downstream handlers do. Use ``response.on_send`` to act on the final
response.

next() may also be called later, after the handler returned (for example
from a callback); the runner simply resumes from where it stopped. A
suspended chain whose response is sent from a callback settles as sent.

=============================================================================
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional, Sequence
import logging

from ..errors import HandlerFailure, RouterError
from ..routing.route import Continuation, Handler, handler_name


logger = logging.getLogger(__name__)


class Middleware(ABC):
    """
    Base class for class-based handlers.

    Plain functions work just as well; subclassing only buys a ``name``
    for logging and a clear place to keep configuration:

        class RequireJSON(Middleware):
            def __call__(self, request, response, next):
                if request.get_header("content-type") != "application/json":
                    response.send_status(400)
                    return
                next()
    """

    @abstractmethod
    def __call__(self, request: Any, response: Any, next: Continuation) -> None:
        """Handle the request: send a response, or call next()/next(error)."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class ChainOutcome(Enum):
    """How a chain stopped running."""

    EXHAUSTED = "exhausted"     # every handler called next()
    SENT = "sent"               # the response was sent
    FAILED = "failed"           # next(error) or a raised exception


# Receives the outcome, plus the failure when the outcome is FAILED
SettleCallback = Callable[[ChainOutcome, Optional[HandlerFailure]], None]


def as_failure(
    error: Any,
    template: Any = None,
    handler: Optional[Handler] = None,
) -> HandlerFailure:
    """
    Normalize anything passed to ``next(error)`` into a HandlerFailure.

    A HandlerFailure (e.g. bubbling out of a nested router) is kept as-is
    so the original route and handler stay visible.
    """
    if isinstance(error, HandlerFailure):
        return error
    if not isinstance(error, BaseException):
        error = RouterError(str(error))
    name = handler_name(handler) if handler is not None else None
    return HandlerFailure(error, template=template, handler_name=name)


class MiddlewareRunner:
    """
    Runs one chain of handlers for one request.

    =========================================================================
    USAGE
    =========================================================================

        def settled(outcome, failure):
            ...   # EXHAUSTED / SENT / FAILED

        runner = MiddlewareRunner([auth, load_user, show_user],
                                  request, response, settled)
        runner.start()

    ``settled`` is called exactly once. It may be called before start()
    returns (everything ran synchronously) or later (some handler called
    next() or sent the response from a callback).

    =========================================================================
    """

    def __init__(
        self,
        chain: Sequence[Handler],
        request: Any,
        response: Any,
        on_settled: SettleCallback,
        template: Any = None,
    ):
        """
        Args:
            chain: Handlers to run in order.
            request: Request passed to every handler.
            response: Response passed to every handler; its ``sent`` flag
                      is checked after each step.
            on_settled: Called once with the final ChainOutcome.
            template: Route template, used in failure messages.
        """
        self._chain = tuple(chain)
        self._request = request
        self._response = response
        self._on_settled = on_settled
        self._template = template

        self._index = 0                                 # next handler to call
        self._pending = False                           # a next() is queued
        self._failure: Optional[HandlerFailure] = None  # a next(error) is queued
        self._running = False                           # inside _drive()
        self._settled = False
        self._watching = False                          # on_send listener registered

    @property
    def settled(self) -> bool:
        return self._settled

    def start(self) -> None:
        """Invoke the first handler."""
        self._pending = True
        self._drive()

    # =========================================================================
    # CONTINUATIONS
    # =========================================================================

    def _continuation(self, handler: Handler) -> Continuation:
        """
        Build the ``next`` passed to one handler.

        Each continuation fires at most once; it closes over the handler
        only to name it in logs and failures.
        """
        called = False

        def next(error: Any = None) -> None:
            nonlocal called
            if called:
                logger.warning(f"next() called more than once by {handler_name(handler)}; ignoring")
                return
            called = True

            if self._settled:
                logger.debug(f"next() from {handler_name(handler)} after chain settled; ignoring")
                return

            # ─────────────────────────────────────────────────────────────
            # SENT FLAG WINS
            # ─────────────────────────────────────────────────────────────
            # Absorb the call. The chain is over, nothing advances.
            if self._response.sent:
                self._settle(ChainOutcome.SENT)
                return

            if error is not None:
                self._failure = as_failure(error, self._template, handler)
            else:
                self._pending = True
            self._drive()

        return next

    # =========================================================================
    # THE LOOP
    # =========================================================================

    def _drive(self) -> None:
        # Re-entrant call from inside a handler: the running loop will see
        # the queued state once that handler returns.
        if self._running:
            return

        self._running = True
        try:
            while not self._settled:
                if self._failure is not None:
                    self._settle(ChainOutcome.FAILED, self._failure)
                    break

                if not self._pending:
                    # Suspended until some handler calls its next() or
                    # the response goes out
                    self._watch_send()
                    break
                self._pending = False

                if self._index >= len(self._chain):
                    self._settle(ChainOutcome.EXHAUSTED)
                    break

                handler = self._chain[self._index]
                self._index += 1
                self._invoke(handler)

                if not self._settled and self._response.sent:
                    self._settle(ChainOutcome.SENT)
        finally:
            self._running = False

    def _invoke(self, handler: Handler) -> None:
        """Call one handler, turning a raised exception into a queued failure."""
        try:
            handler(self._request, self._response, self._continuation(handler))
        except Exception as e:
            if self._response.sent:
                # Same rule as next(error) after sending: absorbed, but logged
                logger.exception(
                    f"{handler_name(handler)} raised after the response was sent: {e}"
                )
                return
            self._pending = False
            self._failure = as_failure(e, self._template, handler)

    def _watch_send(self) -> None:
        """Settle as SENT when a suspended handler sends from a callback."""
        if self._watching or not hasattr(self._response, "on_send"):
            return
        self._watching = True

        def sent(_response: Any) -> None:
            # Inside _drive() the loop settles once the handler returns
            if not self._settled and not self._running:
                self._settle(ChainOutcome.SENT)

        self._response.on_send(sent)

    def _settle(self, outcome: ChainOutcome, failure: Optional[HandlerFailure] = None) -> None:
        if self._settled:
            return
        self._settled = True
        self._pending = False
        logger.debug(
            f"Chain for {self._template!r} settled: {outcome.value} "
            f"after {self._index}/{len(self._chain)} handlers"
        )
        self._on_settled(outcome, failure)
