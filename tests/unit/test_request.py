"""
Unit tests for the in-process Request.
"""

from routechain.http import Request


class TestRequest:
    """Tests for Request."""

    def test_defaults(self):
        request = Request()
        assert request.method == "GET"
        assert request.path == "/"
        assert request.params == {}
        assert request.state == {}

    def test_method_upper_cased(self):
        assert Request(method="post").method == "POST"

    def test_headers_lower_cased(self):
        """Header names are stored lower-case."""
        request = Request(headers={"Content-Type": "application/json"})
        assert request.headers == {"content-type": "application/json"}
        assert request.get_header("CONTENT-TYPE") == "application/json"
        assert request.get_header("X-Missing", "none") == "none"

    def test_user_agent(self):
        assert Request(headers={"User-Agent": "pytest"}).user_agent == "pytest"
        assert Request().user_agent == ""


class TestFromTarget:
    """Tests for Request.from_target()."""

    def test_splits_query(self):
        """The query string is split off the path."""
        request = Request.from_target("get", "/users?page=2&tag=a&tag=b")
        assert request.method == "GET"
        assert request.path == "/users"
        assert request.query_params == {"page": ["2"], "tag": ["a", "b"]}
        assert request.get_query("page") == "2"
        assert request.get_query("missing", "x") == "x"

    def test_blank_query_values_kept(self):
        request = Request.from_target("GET", "/search?q=")
        assert request.get_query("q") == ""

    def test_path_not_decoded(self):
        """Percent escapes stay in the path."""
        assert Request.from_target("GET", "/files/a%20b").path == "/files/a%20b"

    def test_empty_path(self):
        assert Request.from_target("GET", "?x=1").path == "/"

    def test_str_body_encoded(self):
        request = Request.from_target("POST", "/", body="héllo")
        assert request.body == "héllo".encode("utf-8")

    def test_headers(self):
        request = Request.from_target("GET", "/", headers={"Accept": "text/plain"})
        assert request.get_header("accept") == "text/plain"
