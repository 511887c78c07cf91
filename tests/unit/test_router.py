"""
Unit tests for URL router.
"""

import pytest

from userserver.http.router import Router
from userserver.http.request import HTTPRequest
from userserver.http.response import HTTPResponse, ResponseBuilder, HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ResponseBuilder().json({"path": request.path}).build()


@pytest.fixture
def users_router() -> Router:
    """Router with the same shape as the users resource."""
    router = Router()
    router.add_route("/users/:id", dummy_handler, method="GET", name="get_user")
    router.add_route("/users", dummy_handler, method="GET", name="list_users")
    router.add_route("/users", dummy_handler, method="POST", name="create_user")
    router.add_route("/users", dummy_handler, method="PUT", name="update_user")
    router.add_route("/users", dummy_handler, method="DELETE", name="delete_user")
    return router


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        route = router.add_route("/users", dummy_handler, method="get")

        assert router.routes() == [route]
        assert route.path == "/users"
        assert route.method == "GET"
        assert route.name == "dummy_handler"

    def test_match_with_method(self, users_router: Router):
        """Test method-based routing."""
        assert users_router.match("GET", "/users").route.name == "list_users"
        assert users_router.match("POST", "/users").route.name == "create_user"
        assert users_router.match("PUT", "/users").route.name == "update_user"
        assert users_router.match("DELETE", "/users").route.name == "delete_user"

    def test_match_path_parameter(self, users_router: Router):
        """Test that :id captures one path segment."""
        match = users_router.match("GET", "/users/42")

        assert match.route.name == "get_user"
        assert match.params == {"id": "42"}

    def test_parameter_keeps_raw_value(self, users_router: Router):
        """Test that non-numeric ids still match; validation is the handler's job."""
        match = users_router.match("GET", "/users/abc")

        assert match.params == {"id": "abc"}

    def test_trailing_slash_is_ignored(self, users_router: Router):
        """Test that /users/ and /users/7/ route like /users and /users/7."""
        assert users_router.match("GET", "/users/").route.name == "list_users"
        assert users_router.match("GET", "/users/7/").params == {"id": "7"}

    def test_segment_boundaries(self, users_router: Router):
        """Test that /usersx and nested paths do not match."""
        assert users_router.match("GET", "/usersx") is None
        assert users_router.match("GET", "/users/1/2") is None

    def test_first_registered_route_wins(self):
        """Test that registration order decides between overlapping routes."""
        router = Router()
        router.add_route("/users/:id", dummy_handler, method="GET", name="param")
        router.add_route("/users/me", dummy_handler, method="GET", name="static")

        assert router.match("GET", "/users/me").route.name == "param"

    def test_root_route(self):
        """Test that "/" matches only the root."""
        router = Router()
        router.add_route("/", dummy_handler, method="GET")

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/users") is None

    def test_get_allowed_methods(self, users_router: Router):
        """Test the methods reported for a path."""
        assert users_router.get_allowed_methods("/users") == ["DELETE", "GET", "POST", "PUT"]
        assert users_router.get_allowed_methods("/users/7") == ["GET"]
        assert users_router.get_allowed_methods("/nowhere") == []


class TestRouterHandle:
    """Tests for Router.handle dispatch."""

    def test_handle_sets_path_params(self):
        """Test that the handler sees the captured parameters."""
        seen = {}

        def capture(request: HTTPRequest) -> HTTPResponse:
            seen.update(request.path_params)
            return dummy_handler(request)

        router = Router()
        router.add_route("/users/:id", capture, method="GET")

        response = router.handle(make_request("GET", "/users/9"))

        assert response.status == HTTPStatus.OK
        assert seen == {"id": "9"}

    def test_handle_not_found(self, users_router: Router):
        """Test the 404 response for unknown paths."""
        response = users_router.handle(make_request("GET", "/nowhere"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "404 Not Found"

    def test_handle_method_not_allowed(self, users_router: Router):
        """Test the 405 response with Allow header."""
        response = users_router.handle(make_request("PATCH", "/users"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "DELETE, GET, POST, PUT"

    def test_handle_wrong_method_on_item(self, users_router: Router):
        """Test that DELETE /users/7 is 405, not a match for /users."""
        response = users_router.handle(make_request("DELETE", "/users/7"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"


class TestRouterDecorators:
    """Tests for decorator-style route registration."""

    def test_decorators_register_routes(self):
        router = Router()

        @router.get("/a")
        def get_a(request):
            return dummy_handler(request)

        @router.post("/a")
        def post_a(request):
            return dummy_handler(request)

        @router.put("/a")
        def put_a(request):
            return dummy_handler(request)

        @router.delete("/a", name="remove_a")
        def delete_a(request):
            return dummy_handler(request)

        assert [(r.method, r.name) for r in router.routes()] == [
            ("GET", "get_a"),
            ("POST", "post_a"),
            ("PUT", "put_a"),
            ("DELETE", "remove_a"),
        ]

    def test_decorator_returns_handler(self):
        """Test that the decorated function is returned unchanged."""
        router = Router()
        decorated = router.get("/x")(dummy_handler)

        assert decorated is dummy_handler
