"""Routing table for exact-path handlers with a catch-all fallback."""

from collections.abc import Callable

from request import HTTPRequest
from response import HTTPResponse

Handler = Callable[[HTTPRequest], HTTPResponse]


class Router:
    def __init__(self) -> None:
        self._routes: dict[str, Handler] = {}
        self._fallback: Handler | None = None

    def add_route(self, path: str, handler: Handler) -> None:
        if not path.startswith("/"):
            raise ValueError("path must start with '/'")
        self._routes[path] = handler

    def set_fallback(self, handler: Handler) -> None:
        """Handle every path that has no exact route."""
        self._fallback = handler

    def resolve(self, path: str) -> Handler | None:
        """Return the handler registered for ``path`` exactly, else the fallback."""
        return self._routes.get(path, self._fallback)
