"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, request target) to a handler function.

Supports:
- Static paths: /, /user-agent
- Dynamic parameters: /files/:name (one path segment)
- Wildcard paths: /echo/*text (everything after the prefix, may be empty,
  may contain "/")

=============================================================================
MATCHING RULES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTE MATCHING                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /echo/abc      →  /echo/*text      text = "abc"               │
    │   GET /echo/         →  /echo/*text      text = ""                  │
    │   GET /echo/a/b      →  /echo/*text      text = "a/b"               │
    │   GET /echo          →  (no match)       404                        │
    │   PUT /              →  (no match)       404                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

- The target is matched exactly as received: no URL-decoding, no
  trailing-slash normalization, no query-string splitting.
- Methods are compared exactly ("get" is not "GET").
- Routes are tried in registration order; the first match wins.
- Anything unmatched answers 404, a known path with another method
  included.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Dict, List, Tuple
import re

from .request import HTTPRequest
from .response import HTTPResponse, not_found


# =============================================================================
# TYPE DEFINITIONS
# =============================================================================

Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    Represents a registered route.

        @router.get("/files/*name")
        def download(request):
            ...

        Route(
            path="/files/*name",       # URL pattern
            method="GET",              # HTTP method filter
            handler=download,          # Handler function
            _pattern=<compiled>,       # Compiled regex for matching
            _param_names=["name"],     # Captured parameter names
        )
    """
    path: str
    method: Optional[str]            # None matches any method
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional["re.Pattern"] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    """
    Result of a successful route match.

    Example:
        Pattern: /echo/*text
        Target:  /echo/hello
        Result:  RouteMatch(route=<Route>, params={"text": "hello"})
    """
    route: Route
    params: Dict[str, str]


class Router:
    """
    HTTP request router with dynamic path parameters.

    Routes can be registered directly or with decorators:

        router = Router()

        @router.get("/")
        def index(request):
            return ok()

        router.add_route("/files/*name", upload, method="POST")
    """

    def __init__(self):
        self._routes: List[Route] = []

    @property
    def routes(self) -> List[Route]:
        """Registered routes, in matching order."""
        return list(self._routes)

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern (e.g., /files/*name)
            handler: Function taking a request, returning a response
            method: HTTP method (None for any method)
            name: Optional route name, used in logs

        Returns:
            The registered Route object
        """
        pattern, param_names = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method,
            handler=handler,
            name=name or getattr(handler, "__name__", None),
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> Tuple["re.Pattern", List[str]]:
        """
        Compile a path pattern into a regex.

        =====================================================================
        PATTERN COMPILATION
        =====================================================================

            "/"               →  ^/$
            "/user-agent"     →  ^/user\\-agent$
            "/files/:name"    →  ^/files/(?P<name>[^/]+)$
            "/echo/*text"     →  ^/echo/(?P<text>.*)$

        A wildcard must be the last segment; anything after it is ignored.
        =====================================================================
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        segments = path.split("/")[1:] if path.startswith("/") else path.split("/")

        for segment in segments:
            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")

            elif segment.startswith("*"):
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break  # Wildcard consumes everything, stop here

            else:
                regex_parts.append(re.escape(segment))

        regex_parts.append("$")
        return re.compile("".join(regex_parts), re.DOTALL), param_names

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, target: str) -> Optional[RouteMatch]:
        """
        Find the first route matching this method and target.

        Returns:
            RouteMatch if found, None otherwise
        """
        for route in self._routes:
            if route.method is not None and route.method != method:
                continue

            match = route._pattern.match(target)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request to its handler.

        The handler receives a copy of the request with path_params set.
        No match at all answers 404 with an empty body.
        """
        match = self.match(request.method, request.target)
        if match is None:
            return not_found()

        return match.route.handler(replace(request, path_params=match.params))

    # =========================================================================
    # DECORATOR-STYLE ROUTE REGISTRATION
    # =========================================================================

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator for registering routes.

        Usage:
            @router.route("/files/*name", method="POST")
            def upload(request):
                return created()
        """
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
