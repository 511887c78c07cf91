"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler function.

    GET    /users/:id   → get_user
    GET    /users       → list_users
    POST   /users       → create_user
    PUT    /users       → update_user     (id in ?id=)
    DELETE /users       → delete_user     (id in ?id=)
    GET    /hello       → hello

Routes are tried in registration order and the first match wins, so the
more specific "/users/:id" is registered before "/users".

Matching is per path segment. A trailing slash is ignored ("/users/" is
"/users"), and "/usersx" does NOT match "/users".

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Dict, List
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found, method_not_allowed


logger = logging.getLogger(__name__)

# A handler takes a request and returns a response.
Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A URL pattern bound to a handler.

        Route(
            path="/users/:id",
            method="GET",
            handler=get_user,
            _pattern=re.compile(r"^/users/(?P<id>[^/]+)$"),
            _param_names=["id"],
        )
    """

    path: str
    method: str
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """A matched route plus the path parameters extracted from the URL."""
    route: Route
    params: Dict[str, str]


class Router:
    """
    HTTP request router with dynamic path parameters.

        router = Router()

        @router.get("/users/:id")
        def get_user(request):
            return ok({"id": request.path_params["id"]})

    Unknown paths produce 404; known paths requested with the wrong method
    produce 405 with an Allow header.
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: str,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern (e.g., /users/:id)
            handler: Function taking a request and returning a response
            method: HTTP method (case-insensitive)
            name: Optional route name, shown in the route listing

        Returns:
            The registered Route object
        """
        pattern, param_names = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method.upper(),
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str]]:
        """
        Compile a path pattern into an anchored regex.

            "/users/:id"  →  ^/users/(?P<id>[^/]+)$

        Returns:
            Tuple of (compiled regex, list of parameter names)
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            else:
                regex_parts.append(re.escape(segment))

        if len(regex_parts) == 1:
            regex_parts.append("/")

        regex_parts.append("$")
        return re.compile("".join(regex_parts)), param_names

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    @staticmethod
    def _normalize(path: str) -> str:
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and path.

        Returns:
            RouteMatch if found, None otherwise
        """
        path = self._normalize(path)

        for route in self._routes:
            if route.method != method.upper():
                continue

            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """
        Methods registered for a path, used for the 405 Allow header.

        Returns:
            Sorted list of methods (e.g., ["DELETE", "GET", "POST", "PUT"])
        """
        path = self._normalize(path)
        methods = set()

        for route in self._routes:
            if route._pattern.match(path):
                methods.add(route.method)

        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        The matched path parameters are stored on request.path_params
        before the handler is called.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        logger.debug(f"No route for {request.method} {request.path}")
        return not_found()

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================
    #
    #     @router.get("/users")
    #     def list_users(request):
    #         return ok([])
    #
    # is the same as router.add_route("/users", list_users, method="GET").
    # =========================================================================

    def route(
        self,
        path: str,
        method: str,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator for registering routes; returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(path, "POST", name)

    def put(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a PUT route."""
        return self.route(path, "PUT", name)

    def delete(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Register a DELETE route."""
        return self.route(path, "DELETE", name)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, in matching order."""
        return list(self._routes)

    def log_routes(self, level: int = logging.INFO) -> None:
        """
        Log the route table.

            GET      /users/:id   get_user
            GET      /users       list_users
        """
        for route in self._routes:
            logger.log(level, f"  {route.method:8} {route.path:20} {route.name or ''}")
