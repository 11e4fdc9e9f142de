"""Nostr HTTP authentication."""

from nostr_auth.auth.middleware import NostrAuthMiddleware, auth_identity_var
from nostr_auth.auth.nostr import AuthConfig, NostrAuthenticator
from nostr_auth.auth.protocol import (
    EventVerifier,
    HttpRequest,
    IdentityResolver,
    ResolveByIdentity,
    ResolveByRequest,
)
from nostr_auth.auth.request import RequestContext

__all__ = [
    "AuthConfig",
    "NostrAuthenticator",
    "NostrAuthMiddleware",
    "auth_identity_var",
    "RequestContext",
    "HttpRequest",
    "EventVerifier",
    "IdentityResolver",
    "ResolveByIdentity",
    "ResolveByRequest",
]
