"""Tests for NostrAuthMiddleware."""

from __future__ import annotations

import json
import logging
from typing import Any
from unittest.mock import AsyncMock

import pytest

from nostr_auth.auth.middleware import NostrAuthMiddleware, auth_identity_var
from nostr_auth.auth.nostr import NostrAuthenticator
from nostr_auth.outcome import NostrIdentity
from tests.conftest import PATH, EventSigner, encode_header


def _build_scope(
    path: str = PATH,
    headers: list[tuple[bytes, bytes]] | None = None,
    scope_type: str = "http",
    method: str = "GET",
) -> dict[str, Any]:
    return {
        "type": scope_type,
        "path": path,
        "method": method,
        "headers": headers or [],
    }


def _build_auth_header(value: str) -> list[tuple[bytes, bytes]]:
    return [(b"authorization", value.encode("latin-1"))]


class _Capture:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def status(self) -> int:
        return self.messages[0]["status"]

    @property
    def headers(self) -> list:
        return self.messages[0]["headers"]

    @property
    def body(self) -> dict:
        return json.loads(self.messages[1]["body"])


class TestRejections:
    async def test_missing_header_returns_401(self, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config))
        send = _Capture()

        await mw(_build_scope(), AsyncMock(), send)
        assert send.status == 401
        assert send.body == {"error": "Unauthorized", "detail": "Missing Authorization header"}
        assert [b"www-authenticate", b"Nostr"] in send.headers
        app.assert_not_called()

    async def test_bad_scheme_returns_400(self, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config))
        send = _Capture()

        await mw(_build_scope(headers=_build_auth_header("Bearer abc")), AsyncMock(), send)
        assert send.status == 400
        assert send.body == {"error": "Bad Request", "detail": "Invalid authorization scheme"}
        assert not any(h[0] == b"www-authenticate" for h in send.headers)
        app.assert_not_called()

    async def test_path_mismatch_returns_401(self, signer: EventSigner, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config))
        send = _Capture()

        scope = _build_scope(path="/v1/other", headers=_build_auth_header(encode_header(signer.sign())))
        await mw(scope, AsyncMock(), send)
        assert send.status == 401
        assert send.body["detail"] == "URL tag does not match request path"


class TestSuccess:
    async def test_valid_event_sets_identity(self, signer: EventSigner, config):
        captured: list[Any] = []

        async def app(scope: Any, receive: Any, send: Any) -> None:
            captured.append(auth_identity_var.get())
            captured.append(scope["state"]["nostr_pubkey"])

        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config))
        scope = _build_scope(headers=_build_auth_header(encode_header(signer.sign())))
        await mw(scope, AsyncMock(), AsyncMock())

        assert captured == [NostrIdentity(signer.pubkey), signer.pubkey]

    async def test_identity_reset_after_request(self, signer: EventSigner, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config))
        scope = _build_scope(headers=_build_auth_header(encode_header(signer.sign())))

        await mw(scope, AsyncMock(), AsyncMock())
        app.assert_called_once()
        assert auth_identity_var.get() is None

    async def test_resolver_user_is_exposed(self, signer: EventSigner, config):
        captured: list[Any] = []

        async def app(scope: Any, receive: Any, send: Any) -> None:
            captured.append(auth_identity_var.get())

        authenticator = NostrAuthenticator(lambda pubkey: {"name": "alice"}, config=config)
        mw = NostrAuthMiddleware(app, authenticator)
        scope = _build_scope(headers=_build_auth_header(encode_header(signer.sign())))
        await mw(scope, AsyncMock(), AsyncMock())

        assert captured == [{"name": "alice"}]


class TestResolverError:
    async def test_resolver_error_returns_500(self, signer: EventSigner, config, caplog):
        def resolver(pubkey: str) -> None:
            raise RuntimeError("db down")

        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(resolver, config=config))
        send = _Capture()
        scope = _build_scope(headers=_build_auth_header(encode_header(signer.sign())))

        with caplog.at_level(logging.ERROR, logger="nostr_auth.auth.middleware"):
            await mw(scope, AsyncMock(), send)

        assert send.status == 500
        assert send.body == {"error": "Internal Server Error"}
        assert "Identity resolver failed" in caplog.text
        app.assert_not_called()

    async def test_resolver_error_is_500_in_permissive_mode(self, signer: EventSigner, config):
        def resolver(pubkey: str) -> None:
            raise RuntimeError("db down")

        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(resolver, config=config), require_auth=False)
        send = _Capture()
        scope = _build_scope(headers=_build_auth_header(encode_header(signer.sign())))

        await mw(scope, AsyncMock(), send)
        assert send.status == 500
        app.assert_not_called()


class TestExemptPaths:
    async def test_health_exempt(self, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config))

        await mw(_build_scope(path="/health"), AsyncMock(), AsyncMock())
        app.assert_called_once()

    async def test_custom_exempt_paths(self, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config), exempt_paths={"/custom"})

        await mw(_build_scope(path="/custom"), AsyncMock(), AsyncMock())
        app.assert_called_once()

    async def test_custom_exempt_paths_replace_default(self, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config), exempt_paths={"/custom"})
        send = _Capture()

        await mw(_build_scope(path="/health"), AsyncMock(), send)
        assert send.status == 401
        app.assert_not_called()

    async def test_exempt_prefixes(self, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config), exempt_prefixes={"/public/"})

        await mw(_build_scope(path="/public/logo.png"), AsyncMock(), AsyncMock())
        app.assert_called_once()


class TestPermissiveMode:
    async def test_failure_passes_without_identity(self, config):
        captured: list[Any] = []

        async def app(scope: Any, receive: Any, send: Any) -> None:
            captured.append(auth_identity_var.get())

        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config), require_auth=False)
        await mw(_build_scope(), AsyncMock(), AsyncMock())
        assert captured == [None]


class TestNonHttpScope:
    @pytest.mark.parametrize("scope_type", ["websocket", "lifespan"])
    async def test_passes_through(self, scope_type, config):
        app = AsyncMock()
        mw = NostrAuthMiddleware(app, NostrAuthenticator(config=config))

        await mw(_build_scope(scope_type=scope_type), AsyncMock(), AsyncMock())
        app.assert_called_once()
