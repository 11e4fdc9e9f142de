"""Starlette app protected by Nostr HTTP auth, served with uvicorn."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from nostr_auth.auth.middleware import NostrAuthMiddleware
from nostr_auth.auth.nostr import NostrAuthenticator
from nostr_auth.outcome import NostrIdentity

logger = logging.getLogger(__name__)

WHOAMI_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


async def _health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def _whoami(request: Request) -> JSONResponse:
    pubkey = getattr(request.state, "nostr_pubkey", None)
    identity = getattr(request.state, "nostr_identity", None)
    payload: dict[str, Any] = {"authenticated": pubkey is not None, "pubkey": pubkey}
    if identity is not None and not isinstance(identity, NostrIdentity):
        payload["user"] = identity if isinstance(identity, (dict, str, int)) else repr(identity)
    return JSONResponse(payload)


def create_app(
    authenticator: NostrAuthenticator | None = None,
    *,
    exempt_paths: Iterable[str] | None = None,
    require_auth: bool = True,
) -> Starlette:
    """Build a Starlette app with ``/health`` and ``/whoami`` behind the middleware.

    Args:
        authenticator: Authenticator to use. Defaults to one with no resolver.
        exempt_paths: Exact paths that bypass authentication (default: /health).
        require_auth: Reject unauthenticated requests (False = permissive).
    """
    authenticator = authenticator or NostrAuthenticator()
    return Starlette(
        routes=[
            Route("/health", endpoint=_health, methods=["GET"]),
            Route("/whoami", endpoint=_whoami, methods=WHOAMI_METHODS),
        ],
        middleware=[
            Middleware(
                NostrAuthMiddleware,
                authenticator=authenticator,
                exempt_paths=set(exempt_paths) if exempt_paths is not None else None,
                require_auth=require_auth,
            )
        ],
    )


def _validate_host_port(host: str, port: int) -> None:
    if not host:
        raise ValueError("Host must not be empty")
    if not isinstance(port, int) or port < 1 or port > 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")


def serve(
    authenticator: NostrAuthenticator | None = None,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    exempt_paths: Iterable[str] | None = None,
    require_auth: bool = True,
    log_level: str | None = None,
) -> None:
    """Run the protected app with uvicorn. Blocks until shutdown."""
    _validate_host_port(host, port)
    if log_level is not None:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if log_level.upper() not in valid_levels:
            raise ValueError(f"Unknown log level: {log_level!r}. Valid: {sorted(valid_levels)}")
        logging.getLogger("nostr_auth").setLevel(getattr(logging, log_level.upper()))

    app = create_app(authenticator, exempt_paths=exempt_paths, require_auth=require_auth)
    logger.info("Starting Nostr-authenticated server on %s:%d", host, port)
    config = uvicorn.Config(app, host=host, port=port, log_level="info")
    uvicorn.Server(config).run()
