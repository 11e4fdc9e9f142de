"""Shared test fixtures for nostr-auth tests."""

from __future__ import annotations

import base64
import json
from typing import Any

import pytest
from coincurve import PrivateKey

from nostr_auth.auth.nostr import AuthConfig
from nostr_auth.event import SignedEvent, compute_event_id

# Fixed wall clock for deterministic freshness checks (milliseconds)
NOW_MS = 1_700_000_000_000
NOW_S = NOW_MS // 1000

SECRET_KEY = bytes.fromhex("7f" * 32)
OTHER_SECRET_KEY = bytes.fromhex("3c" * 32)

URL = "https://api.example.com/v1/items"
PATH = "/v1/items"


class EventSigner:
    """Builds and signs kind-27235 events the way a client would."""

    def __init__(self, secret: bytes) -> None:
        self._key = PrivateKey(secret)
        # x-only key: compressed SEC1 encoding without its parity byte
        self.pubkey = self._key.public_key.format(compressed=True)[1:].hex()

    def sign(
        self,
        *,
        created_at: int = NOW_S,
        kind: int = 27235,
        tags: list[list[str]] | None = None,
        content: str = "",
        url: str = URL,
        method: str = "GET",
    ) -> dict[str, Any]:
        if tags is None:
            tags = [["url", url], ["method", method]]
        event = {
            "pubkey": self.pubkey,
            "created_at": created_at,
            "kind": kind,
            "tags": tags,
            "content": content,
        }
        event_id = compute_event_id(SignedEvent.from_dict(event))
        sig = self._key.sign_schnorr(bytes.fromhex(event_id), bytes(32))
        event["id"] = event_id
        event["sig"] = sig.hex()
        return event


def encode_header(event: dict[str, Any] | str, scheme: str = "Nostr") -> str:
    """Encode an event (or raw text) as an Authorization header value."""
    text = event if isinstance(event, str) else json.dumps(event)
    token = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"{scheme} {token}"


@pytest.fixture
def signer() -> EventSigner:
    return EventSigner(SECRET_KEY)


@pytest.fixture
def other_signer() -> EventSigner:
    return EventSigner(OTHER_SECRET_KEY)


@pytest.fixture
def config() -> AuthConfig:
    return AuthConfig(clock=lambda: NOW_MS)
