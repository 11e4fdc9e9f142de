"""nostr-auth: Nostr (NIP-98 style) HTTP request authentication."""

from __future__ import annotations

from nostr_auth.auth import (
    AuthConfig,
    NostrAuthenticator,
    NostrAuthMiddleware,
    RequestContext,
    ResolveByIdentity,
    ResolveByRequest,
    auth_identity_var,
)
from nostr_auth.constants import AUTH_SCHEME, DEFAULT_TIME_TOLERANCE_MS, HTTP_AUTH_KIND
from nostr_auth.event import SignedEvent, compute_event_id, verify_event
from nostr_auth.outcome import AuthError, AuthFailure, AuthOutcome, AuthSuccess, NostrIdentity

__all__ = [
    # Authenticator
    "AuthConfig",
    "NostrAuthenticator",
    "ResolveByIdentity",
    "ResolveByRequest",
    "RequestContext",
    # ASGI
    "NostrAuthMiddleware",
    "auth_identity_var",
    # Events
    "SignedEvent",
    "compute_event_id",
    "verify_event",
    # Outcomes
    "AuthOutcome",
    "AuthSuccess",
    "AuthFailure",
    "AuthError",
    "NostrIdentity",
    # Constants
    "AUTH_SCHEME",
    "HTTP_AUTH_KIND",
    "DEFAULT_TIME_TOLERANCE_MS",
]

__version__ = "0.1.0"
