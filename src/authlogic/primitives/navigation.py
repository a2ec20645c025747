"""Navigation capability used by the flow engine.

The engine never touches a browser directly: it reads the current location,
navigates away to the authorization server with ``assign`` and rewrites the
visible location after a callback with ``replace``.
"""

from __future__ import annotations

from typing import Protocol


class Navigator(Protocol):
    """Protocol for the host's location and history primitives."""

    def current_url(self) -> str:
        """Return the full current location, including the query string."""
        ...

    def assign(self, url: str) -> None:
        """Navigate to ``url``. Fire-and-forget."""
        ...

    def replace(self, url: str) -> None:
        """Replace the visible location with ``url`` without reloading."""
        ...


class InMemoryNavigator:
    """Navigator for non-browser hosts.

    Keeps the location in memory and records every navigation so the host
    (a CLI opening a browser, a test) can act on them.
    """

    def __init__(self, url: str = "http://localhost/"):
        self.url = url
        self.assigned: list[str] = []
        self.replaced: list[str] = []

    def current_url(self) -> str:
        return self.url

    def assign(self, url: str) -> None:
        self.assigned.append(url)

    def replace(self, url: str) -> None:
        self.replaced.append(url)
        self.url = url
