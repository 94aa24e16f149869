"""
Unit tests for Router registration and dispatch.
"""

import re

import pytest

from routechain import HTTP_METHODS, Outcome, Router, RouterConfig
from routechain.errors import (
    ConfigurationError,
    HandlerFailure,
    InvalidHandler,
    InvalidPathDefinition,
    UnsupportedMethod,
)
from routechain.http import Request, Response


def send_text(text):
    """Handler factory: send a fixed body."""
    def handler(req, res, next):
        res.send(text)
    return handler


def proceed(req, res, next):
    """Handler that only calls next()."""
    next()


def run(router, method, path, done=None):
    """Dispatch a fresh request and return (result, request, response)."""
    request = Request(method=method, path=path)
    response = Response()
    result = router.handler(method, path)(request, response, done)
    return result, request, response


class TestRegistration:
    """Tests for the registration surface."""

    @pytest.mark.parametrize("verb", HTTP_METHODS)
    def test_every_verb_has_a_method(self, router, verb):
        """Each known verb registers a route under its upper-case name."""
        getattr(router, verb.lower())("/x", send_text("ok"))
        assert router.routes[0].method == verb

    def test_route_is_generic(self, router):
        """route() accepts any case and stores upper-case."""
        router.route("get", "/x", send_text("ok"))
        assert router.routes[0].method == "GET"

    def test_registration_is_chainable(self, router):
        """Registration methods return the router."""
        result = router.get("/a", send_text("a")).post("/b", send_text("b"))
        assert result is router
        assert len(router) == 2

    def test_decorator_form(self, router):
        """Without handlers, a registration method returns a decorator."""
        @router.get("/users/:id")
        def show(req, res, next):
            res.send(req.params["id"])

        assert callable(show)
        assert router.routes[0].chain == (show,)
        _, _, response = run(router, "GET", "/users/9")
        assert response.text == "9"

    def test_routes_in_registration_order(self, router):
        """routes lists what was registered, in order."""
        router.get("/b", proceed)
        router.get("/a", proceed)
        assert [r.template for r in router.routes] == ["/b", "/a"]

    def test_regex_route_template(self, router):
        """A native regex route keeps its pattern source as template."""
        router.get(re.compile(r"^foo$"), proceed)
        assert router.routes[0].template == "^foo$"

    def test_invalid_handler(self, router):
        """Non-callable handlers are rejected and nothing is registered."""
        with pytest.raises(InvalidHandler) as exc_info:
            router.get("/x", proceed, "not a function")
        assert exc_info.value.code == "ESSRHDLR"
        assert len(router) == 0

    def test_handler_with_wrong_arity(self, router):
        """A handler that cannot take (req, res, next) is rejected."""
        with pytest.raises(InvalidHandler):
            router.get("/x", lambda req: None)

    def test_handler_with_defaults_is_accepted(self, router):
        """Optional extra parameters are fine."""
        router.get("/x", lambda req, res, next, extra=None: res.send("ok"))
        assert len(router) == 1

    def test_invalid_path(self, router):
        """A path that is neither string nor regex is rejected."""
        with pytest.raises(InvalidPathDefinition) as exc_info:
            router.get(None, proceed)
        assert exc_info.value.code == "ESSRPTH"
        assert len(router) == 0

    def test_unsupported_method(self):
        """Registering a verb outside the configured set fails fast."""
        router = Router(methods=["GET"])
        router.get("/x", proceed)
        with pytest.raises(UnsupportedMethod) as exc_info:
            router.post("/x", proceed)
        assert exc_info.value.code == "ESSRMET"
        assert exc_info.value.method == "POST"

    def test_unknown_verb(self, router):
        """Verbs outside the known list are unsupported."""
        with pytest.raises(UnsupportedMethod):
            router.route("BREW", "/coffee", proceed)

    def test_verb_checked_before_handlers(self):
        """An unsupported verb is reported even if handlers are also bad."""
        router = Router(methods=["GET"])
        with pytest.raises(UnsupportedMethod):
            router.post("/x", "not a function")

    def test_all_is_always_allowed(self):
        """ALL routes register on a restricted router."""
        router = Router(methods=["GET"])
        router.all("*", proceed)
        assert router.routes[0].method == "ALL"


class TestConfiguration:
    """Tests for Router configuration handling."""

    def test_defaults(self, router):
        """Default configuration."""
        assert router.config == RouterConfig()
        assert router.methods == HTTP_METHODS

    def test_dict_config(self):
        """Dict configs accept camelCase keys."""
        router = Router({"paramFormat": "handlebar", "passThrough": True})
        assert router.config.param_format == "handlebar"
        assert router.config.pass_through

    def test_keyword_overrides(self):
        """Keyword options override the given config."""
        router = Router(RouterConfig(param_format="handlebar"), case_insensitive=False)
        assert router.config.param_format == "handlebar"
        assert router.config.case_insensitive is False

    def test_unknown_option(self):
        """Unknown options fail at construction."""
        with pytest.raises(ConfigurationError):
            Router(strict=True)

    def test_bad_config_type(self):
        """Only RouterConfig, dict or None are accepted."""
        with pytest.raises(ConfigurationError):
            Router("colon")

    def test_param_format_used_for_templates(self):
        """Templates compile with the router's token format."""
        router = Router(param_format="handlebar")
        router.get("/users/{id}", lambda req, res, next: res.send(req.params["id"]))
        _, _, response = run(router, "GET", "/users/5")
        assert response.text == "5"


class TestDispatch:
    """Tests for request dispatch."""

    def test_simple_match(self, router, done):
        """A matching route runs and the dispatch is handled."""
        router.get("/abc", send_text("hi"))
        result, _, response = run(router, "GET", "/abc", done)

        assert result.outcome is Outcome.HANDLED
        assert response.status == 200
        assert response.text == "hi"
        assert done.calls == [None]

    def test_path_params(self, router):
        """Parameters land on request.params."""
        router.get("/users/:user_id/posts/:post_id", send_text("ok"))
        _, request, _ = run(router, "GET", "/users/4/posts/8")
        assert request.params == {"user_id": "4", "post_id": "8"}

    def test_chained_handlers(self, router):
        """Handlers of one route run in order and share the request."""
        def first(req, res, next):
            req.state["num"] = "42"
            next()

        def second(req, res, next):
            res.send(req.state["num"])

        router.get("*", first, second)
        _, _, response = run(router, "GET", "/")
        assert response.text == "42"

    def test_fall_through_replaces_params(self, router):
        """A route that only calls next() falls through; params are replaced."""
        seen = []

        def audit(req, res, next):
            seen.append(dict(req.params))
            next()

        def show(req, res, next):
            seen.append(dict(req.params))
            res.send(req.params["p"])

        router.get("/foo/bar", audit)
        router.get("/foo/:p", show)
        result, request, response = run(router, "GET", "/foo/bar")

        assert seen == [{}, {"p": "bar"}]
        assert request.params == {"p": "bar"}
        assert response.text == "bar"
        assert result.executed == ["/foo/bar", "/foo/:p"]

    def test_params_are_not_merged(self, router):
        """Keys from an earlier route do not survive into the next one."""
        router.get("/:a/x", proceed)
        router.get("/:b/:c", lambda req, res, next: res.send(sorted(req.params)))
        _, request, _ = run(router, "GET", "/1/x")
        assert request.params == {"b": "1", "c": "x"}

    def test_registration_order_wins(self, router):
        """The first matching route is tried first."""
        router.get("/users/:id", send_text("param"))
        router.get("/users/me", send_text("literal"))
        _, _, response = run(router, "GET", "/users/me")
        assert response.text == "param"

    def test_all_matches_any_verb(self, router):
        """ALL routes run for every verb."""
        router.all("/any", send_text("any"))
        for verb in ("GET", "POST", "PURGE"):
            _, _, response = run(router, verb, "/any")
            assert response.text == "any"

    def test_all_limited_to_router_verbs(self):
        """ALL covers the router's verbs, not verbs it does not know."""
        router = Router(methods=["GET", "PUT"])
        router.all("/any", send_text("any"))

        result, _, response = run(router, "POST", "/any")
        assert result.outcome is Outcome.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, PUT"

    def test_native_regex_params(self, router):
        """A regex route exposes the re.Match as params."""
        router.get(re.compile(r"^foo/(\d+)$"), lambda req, res, next: res.send(req.params.group(1)))
        _, request, response = run(router, "GET", "/foo/12")
        assert isinstance(request.params, re.Match)
        assert response.text == "12"

    def test_case_insensitive_by_default(self, router):
        """/ABC matches /abc by default."""
        router.get("/abc", send_text("ok"))
        result, _, _ = run(router, "GET", "/ABC")
        assert result.outcome is Outcome.HANDLED

    def test_case_sensitive(self):
        """case_insensitive=False makes matching exact."""
        router = Router(case_insensitive=False)
        router.get("/abc", send_text("ok"))
        result, _, response = run(router, "GET", "/ABC")
        assert result.outcome is Outcome.NOT_FOUND
        assert response.status == 404

    def test_lower_case_method(self, router):
        """Dispatch upper-cases the verb."""
        router.get("/abc", send_text("ok"))
        result, _, _ = run(router, "get", "/abc")
        assert result.outcome is Outcome.HANDLED

    def test_dispatch_uses_request_fields(self, router):
        """dispatch() reads method and path from the request."""
        router.post("/items", send_text("created"))
        request, response = Request(method="POST", path="/items"), Response()
        result = router.dispatch(request, response)
        assert result.outcome is Outcome.HANDLED

    def test_handler_is_reusable(self, router):
        """One bound handler serves many requests independently."""
        router.get("/users/:id", lambda req, res, next: res.send(req.params["id"]))
        bound = router.handler("GET", "/users/3")
        for _ in range(3):
            response = Response()
            bound(Request(path="/users/3"), response)
            assert response.text == "3"


class TestTerminalOutcomes:
    """Tests for what happens at the end of the table."""

    def test_not_found(self, router, done):
        """No path match at all is a 404."""
        router.get("/abc", send_text("ok"))
        result, _, response = run(router, "GET", "/xyz", done)

        assert result.outcome is Outcome.NOT_FOUND
        assert result.status == 404
        assert response.status == 404
        assert response.text == "Not Found"
        assert done.calls == [None]

    def test_method_not_allowed(self, router, done):
        """A path registered only under other verbs is a 405."""
        router.get("/abc", send_text("ok"))
        router.put("/abc", send_text("ok"))
        result, _, response = run(router, "POST", "/abc", done)

        assert result.outcome is Outcome.METHOD_NOT_ALLOWED
        assert response.status == 405
        assert response.headers["Allow"] == "GET, PUT"
        assert done.calls == [None]

    def test_executed_chain_without_response_is_404(self, router):
        """If a compatible route ran but nobody sent, it is a 404, not 405."""
        router.get("/abc", proceed)
        router.post("/abc", send_text("ok"))
        result, _, response = run(router, "GET", "/abc")

        assert result.outcome is Outcome.NOT_FOUND
        assert response.status == 404

    def test_empty_router(self, router):
        """An empty table is a 404."""
        result, _, response = run(router, "GET", "/")
        assert result.outcome is Outcome.NOT_FOUND
        assert response.status == 404

    def test_pass_through_writes_nothing(self, done):
        """With pass_through, a miss only calls the completion callback."""
        router = Router(pass_through=True)
        router.get("/abc", send_text("ok"))
        result, _, response = run(router, "GET", "/xyz", done)

        assert result.outcome is Outcome.PASS_THROUGH
        assert not response.sent
        assert done.calls == [None]

    def test_pass_through_after_wrong_verb(self, done):
        """pass_through also covers what would have been a 405."""
        router = Router(pass_through=True)
        router.get("/abc", send_text("ok"))
        result, _, response = run(router, "POST", "/abc", done)

        assert result.outcome is Outcome.PASS_THROUGH
        assert not response.sent

    def test_already_sent_response(self, router, done):
        """A response sent before dispatch is left alone."""
        router.get("/abc", send_text("again"))
        request, response = Request(path="/abc"), Response()
        response.send("first")

        result = router.dispatch(request, response, done)
        assert result.outcome is Outcome.HANDLED
        assert response.text == "first"
        assert done.calls == [None]


class TestFailures:
    """Tests for next(error) and raised exceptions."""

    def test_next_with_error(self, router, done):
        """next(error) aborts and reaches the completion callback."""
        error = ValueError("boom")
        later = []

        router.get("/abc", lambda req, res, next: next(error), lambda req, res, next: later.append(1))
        router.get("/abc", send_text("unreachable"))
        result, _, response = run(router, "GET", "/abc", done)

        assert result.outcome is Outcome.FAILED
        assert isinstance(done.error, HandlerFailure)
        assert done.error.cause is error
        assert done.error.template == "/abc"
        assert later == []
        assert not response.sent

    def test_raise_is_a_failure(self, router, done):
        """A raised exception is delivered like next(error)."""
        def explode(req, res, next):
            raise RuntimeError("kaboom")

        router.get("/abc", explode)
        result, _, _ = run(router, "GET", "/abc", done)

        assert result.outcome is Outcome.FAILED
        assert isinstance(done.error.cause, RuntimeError)
        assert done.error.handler_name == "TestFailures.test_raise_is_a_failure.<locals>.explode"
        assert done.error.__cause__ is done.error.cause

    def test_non_exception_error_value(self, router, done):
        """Non-exception values passed to next() are wrapped."""
        router.get("/abc", lambda req, res, next: next("bad thing"))
        run(router, "GET", "/abc", done)
        assert "bad thing" in str(done.error.cause)

    def test_failure_without_done_sends_500(self, router, caplog):
        """With no completion callback, failures are logged and answered 500."""
        def explode(req, res, next):
            raise RuntimeError("kaboom")

        router.get("/abc", explode)
        result, _, response = run(router, "GET", "/abc")

        assert result.outcome is Outcome.FAILED
        assert response.status == 500
        assert "kaboom" in caplog.text

    def test_raise_after_send_is_absorbed(self, router, done):
        """An exception after sending does not change the outcome."""
        def send_then_raise(req, res, next):
            res.send("ok")
            raise RuntimeError("late")

        router.get("/abc", send_then_raise)
        result, _, response = run(router, "GET", "/abc", done)

        assert result.outcome is Outcome.HANDLED
        assert response.text == "ok"
        assert done.calls == [None]


class TestContinuations:
    """Tests for continuation semantics."""

    def test_send_then_next_does_not_advance(self, router, done):
        """After sending, next() neither runs the next handler nor falls through."""
        calls = []

        def first(req, res, next):
            res.send("first")
            next()

        router.get("/abc", first, lambda req, res, next: calls.append("second"))
        router.get("/abc", lambda req, res, next: calls.append("route 2"))
        result, _, response = run(router, "GET", "/abc", done)

        assert calls == []
        assert result.outcome is Outcome.HANDLED
        assert response.text == "first"
        assert done.calls == [None]

    def test_next_error_after_send_is_ignored(self, router, done):
        """next(error) after sending does not fail the dispatch."""
        def first(req, res, next):
            res.send("ok")
            next(ValueError("ignored"))

        router.get("/abc", first)
        result, _, _ = run(router, "GET", "/abc", done)
        assert result.outcome is Outcome.HANDLED
        assert done.calls == [None]

    def test_next_twice_is_ignored(self, router):
        """Each continuation fires at most once."""
        calls = []

        def twice(req, res, next):
            next()
            next()

        def count(req, res, next):
            calls.append(1)
            next()

        router.get("/abc", twice, count)
        run(router, "GET", "/abc")
        assert calls == [1]

    def test_deferred_next_resumes(self, router, done):
        """next() called after the handler returned resumes the dispatch."""
        pending = []

        router.get("/abc", lambda req, res, next: pending.append(next))
        router.get("/abc", send_text("later"))
        result, _, response = run(router, "GET", "/abc", done)

        assert not result.done
        assert not response.sent
        assert not done.called

        pending[0]()

        assert result.outcome is Outcome.HANDLED
        assert response.text == "later"
        assert done.calls == [None]

    def test_deferred_send_completes(self, router, done):
        """A response sent from a callback, without next(), ends the dispatch."""
        pending = []

        router.get("/abc", lambda req, res, next: pending.append(res))
        router.get("/abc", send_text("never"))
        result, _, response = run(router, "GET", "/abc", done)

        assert not result.done
        assert not done.called

        pending[0].send("late")

        assert result.outcome is Outcome.HANDLED
        assert response.text == "late"
        assert done.calls == [None]

    def test_deferred_send_in_nested_router(self, done):
        """A late send inside a mounted router completes the outer dispatch once."""
        pending = []
        inner = Router()
        inner.get("/abc", lambda req, res, next: pending.append(res))
        outer = Router()
        outer.all("*", inner)
        result, _, response = run(outer, "GET", "/abc", done)

        pending[0].send("late")

        assert result.outcome is Outcome.HANDLED
        assert done.calls == [None]

    def test_deferred_error(self, router, done):
        """A deferred next(error) fails the suspended dispatch."""
        pending = []
        router.get("/abc", lambda req, res, next: pending.append(next))
        result, _, _ = run(router, "GET", "/abc", done)

        pending[0](KeyError("late"))
        assert result.outcome is Outcome.FAILED
        assert isinstance(done.error.cause, KeyError)

    def test_code_after_next_runs_before_downstream(self, router):
        """next() only queues the next handler."""
        order = []

        def first(req, res, next):
            next()
            order.append("first after next")

        def second(req, res, next):
            order.append("second")
            res.send("ok")

        router.get("/abc", first, second)
        run(router, "GET", "/abc")
        assert order == ["first after next", "second"]

    def test_long_fall_through_does_not_recurse(self, router):
        """Thousands of fall-through routes run without growing the stack."""
        for _ in range(5000):
            router.get("*", proceed)
        router.get("*", send_text("end"))

        _, _, response = run(router, "GET", "/deep")
        assert response.text == "end"

    def test_long_chain_does_not_recurse(self, router):
        """A very long handler chain runs without growing the stack."""
        router.get("*", *([proceed] * 5000), send_text("end"))
        _, _, response = run(router, "GET", "/deep")
        assert response.text == "end"


class TestNestedRouters:
    """A Router is itself a three-argument handler."""

    def test_nested_router_handles(self):
        """An inner router can answer for the outer one."""
        api = Router()
        api.get("/api/users", send_text("users"))

        app = Router()
        app.all("/api/*", api)

        _, _, response = run(app, "GET", "/api/users")
        assert response.text == "users"

    def test_nested_pass_through_falls_back(self):
        """An inner pass-through miss lets the outer router continue."""
        api = Router(pass_through=True)
        api.get("/api/users", send_text("users"))

        app = Router()
        app.all("*", api)
        app.get("/health", send_text("healthy"))

        _, _, response = run(app, "GET", "/health")
        assert response.text == "healthy"

    def test_nested_failure_propagates(self, done):
        """A failure in the inner router fails the outer dispatch."""
        def explode(req, res, next):
            raise RuntimeError("inner")

        api = Router()
        api.get("/x", explode)
        app = Router()
        app.all("*", api)

        result, _, _ = run(app, "GET", "/x", done)
        assert result.outcome is Outcome.FAILED
        assert str(done.error.cause) == "inner"
