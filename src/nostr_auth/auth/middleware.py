"""ASGI middleware that authenticates Nostr-signed requests."""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from http import HTTPStatus
from typing import Any

from nostr_auth.auth.nostr import NostrAuthenticator
from nostr_auth.auth.request import RequestContext
from nostr_auth.constants import AUTH_SCHEME
from nostr_auth.outcome import AuthError, AuthFailure, AuthSuccess

logger = logging.getLogger(__name__)

# Bridge between ASGI middleware and downstream handlers
auth_identity_var: ContextVar[Any | None] = ContextVar("nostr_auth_identity", default=None)


class NostrAuthMiddleware:
    """ASGI middleware that authenticates requests and sets ``auth_identity_var``.

    Args:
        app: The ASGI application to wrap.
        authenticator: A ``NostrAuthenticator``.
        exempt_paths: Exact paths that bypass authentication.
        exempt_prefixes: Path prefixes that bypass authentication.
        require_auth: If True, rejected requests receive the failure status.
            If False, they proceed without identity (permissive mode).
            Resolver errors always receive 500.
    """

    def __init__(
        self,
        app: Any,
        authenticator: NostrAuthenticator,
        *,
        exempt_paths: set[str] | None = None,
        exempt_prefixes: set[str] | None = None,
        require_auth: bool = True,
    ) -> None:
        self._app = app
        self._authenticator = authenticator
        self._exempt_paths = exempt_paths if exempt_paths is not None else {"/health"}
        self._exempt_prefixes = exempt_prefixes or set()
        self._require_auth = require_auth

    def _is_exempt(self, path: str) -> bool:
        if path in self._exempt_paths:
            return True
        return any(path.startswith(prefix) for prefix in self._exempt_prefixes)

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        path = scope.get("path", "")
        if self._is_exempt(path):
            await self._app(scope, receive, send)
            return

        request = RequestContext.from_scope(scope)
        outcome = await self._authenticator.authenticate(request)

        if isinstance(outcome, AuthError):
            logger.error(
                "Identity resolver failed for %s %s",
                request.method,
                path,
                exc_info=outcome.cause,
            )
            await self._send_json(send, 500, {"error": "Internal Server Error"})
            return

        identity = None
        if isinstance(outcome, AuthSuccess):
            identity = outcome.identity
            state = scope.setdefault("state", {})
            state["nostr_identity"] = identity
            state["nostr_pubkey"] = outcome.pubkey
        elif isinstance(outcome, AuthFailure) and self._require_auth:
            await self._send_failure(send, outcome)
            return

        token = auth_identity_var.set(identity)
        try:
            await self._app(scope, receive, send)
        finally:
            auth_identity_var.reset(token)

    @classmethod
    async def _send_failure(cls, send: Any, failure: AuthFailure) -> None:
        """Send the failure as JSON with its status code."""
        extra: list[list[bytes]] = []
        if failure.status_code == 401:
            extra.append([b"www-authenticate", AUTH_SCHEME.encode("latin-1")])
        body = {"error": HTTPStatus(failure.status_code).phrase, "detail": failure.message}
        await cls._send_json(send, failure.status_code, body, extra)

    @staticmethod
    async def _send_json(
        send: Any,
        status: int,
        payload: dict[str, Any],
        extra_headers: list[list[bytes]] | None = None,
    ) -> None:
        body = json.dumps(payload).encode()
        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                    *(extra_headers or []),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
