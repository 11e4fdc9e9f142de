"""RequestContext: plain request descriptor for the authenticator."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from starlette.datastructures import Headers


@dataclass(frozen=True)
class RequestContext:
    """Headers, path, and method of an incoming HTTP request.

    Attributes:
        headers: Header mapping. Starlette ``Headers`` are case-insensitive;
            plain dicts are looked up case-insensitively by the authenticator.
        path: Request path as sent on the wire (percent-escapes kept),
            without query string.
        method: HTTP method.
        scope: The ASGI scope this context was built from, if any.
    """

    headers: Mapping[str, str]
    path: str
    method: str
    scope: dict[str, Any] | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_scope(cls, scope: dict[str, Any]) -> RequestContext:
        """Build a context from an ASGI HTTP scope.

        The path is taken from ``raw_path`` so percent-escapes survive
        exactly as sent; ``path`` (already decoded) is the fallback.
        """
        raw_path = scope.get("raw_path")
        if raw_path:
            path = raw_path.decode("latin-1").split("?", 1)[0]
        else:
            path = scope.get("path", "")
        return cls(
            headers=Headers(raw=list(scope.get("headers", []))),
            path=path,
            method=scope.get("method", "GET"),
            scope=scope,
        )
