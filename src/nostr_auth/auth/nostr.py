"""Nostr HTTP auth (kind 27235) authenticator implementation."""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from nostr_auth._utils import decode_base64_text, get_header, parse_absolute_url
from nostr_auth.auth.protocol import (
    EventVerifier,
    HttpRequest,
    IdentityResolver,
    ResolveByIdentity,
    ResolveByRequest,
)
from nostr_auth.constants import (
    AUTH_SCHEME,
    DEFAULT_TIME_TOLERANCE_MS,
    HTTP_AUTH_KIND,
    METHOD_TAG,
    URL_TAG,
)
from nostr_auth.event import EventParseError, SignedEvent, verify_event
from nostr_auth.outcome import (
    INVALID_JSON,
    INVALID_SCHEME,
    INVALID_SIGNATURE,
    MALFORMED_TOKEN,
    MALFORMED_URL_TAG,
    METHOD_MISMATCH,
    MISSING_HEADER,
    TIMESTAMP_OUT_OF_RANGE,
    URL_MISMATCH,
    WRONG_KIND,
    AuthError,
    AuthFailure,
    AuthOutcome,
    AuthSuccess,
    NostrIdentity,
)

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class AuthConfig:
    """Immutable authenticator configuration.

    Attributes:
        pass_request_to_resolver: Give the resolver the request instead of
            the verified public key.
        time_tolerance_ms: Maximum allowed distance between the event's
            ``created_at`` and the current time, in either direction.
        clock: Returns the current time in milliseconds.
    """

    pass_request_to_resolver: bool = False
    time_tolerance_ms: int = DEFAULT_TIME_TOLERANCE_MS
    clock: Callable[[], float] = field(default=_now_ms, compare=False, repr=False)

    def __post_init__(self) -> None:
        tolerance = self.time_tolerance_ms
        if not isinstance(tolerance, int) or isinstance(tolerance, bool):
            raise ValueError(f"time_tolerance_ms must be an integer, got {tolerance!r}")
        if tolerance < 0:
            raise ValueError(f"time_tolerance_ms must not be negative, got {tolerance}")


class NostrAuthenticator:
    """Validates ``Authorization: Nostr <base64 event>`` headers.

    Args:
        resolver: Maps the verified pubkey (or the request, when
            ``config.pass_request_to_resolver`` is set) to an application
            user. May return None, a user, or an awaitable of either. A
            ``ResolveByIdentity`` / ``ResolveByRequest`` instance is used
            as given.
        config: Authenticator configuration.
        verifier: Checks the event id hash and signature.
    """

    scheme = AUTH_SCHEME

    def __init__(
        self,
        resolver: Callable[[Any], Any] | IdentityResolver | None = None,
        *,
        config: AuthConfig | None = None,
        verifier: EventVerifier = verify_event,
    ) -> None:
        self._config = config or AuthConfig()
        self._verifier = verifier
        self._resolver: IdentityResolver | None
        if resolver is None or isinstance(resolver, (ResolveByIdentity, ResolveByRequest)):
            self._resolver = resolver
        elif self._config.pass_request_to_resolver:
            self._resolver = ResolveByRequest(resolver)
        else:
            self._resolver = ResolveByIdentity(resolver)

    @property
    def config(self) -> AuthConfig:
        return self._config

    def validate(self, request: HttpRequest) -> SignedEvent | AuthFailure:
        """Run every check up to (not including) identity resolution.

        Returns the verified event, or the first ``AuthFailure`` hit.
        """
        auth_header = get_header(request.headers, "authorization")
        if not auth_header:
            return self._reject(MISSING_HEADER)

        prefix = f"{self.scheme} "
        if not auth_header.startswith(prefix):
            return self._reject(INVALID_SCHEME)

        token = auth_header[len(prefix) :].strip()
        envelope = decode_base64_text(token)
        if not envelope or not envelope.startswith("{"):
            return self._reject(MALFORMED_TOKEN)

        try:
            event = SignedEvent.from_json(envelope)
        except EventParseError:
            return self._reject(INVALID_JSON)

        if not self._verifier(event):
            return self._reject(INVALID_SIGNATURE)

        if event.kind != HTTP_AUTH_KIND:
            return self._reject(WRONG_KIND)

        # A custom verifier may pass events it never type-checked
        created_at = event.created_at
        if not _is_number(created_at):
            return self._reject(TIMESTAMP_OUT_OF_RANGE)
        if abs(created_at * 1000 - self._config.clock()) > self._config.time_tolerance_ms:
            return self._reject(TIMESTAMP_OUT_OF_RANGE)

        url = parse_absolute_url(event.tag_value(URL_TAG))
        if url is None:
            return self._reject(MALFORMED_URL_TAG)
        if url.path != request.path:
            return self._reject(URL_MISMATCH)

        method = event.tag_value(METHOD_TAG)
        if not isinstance(method, str) or not method or method.lower() != request.method.lower():
            return self._reject(METHOD_MISMATCH)

        return event

    async def authenticate(self, request: HttpRequest) -> AuthOutcome:
        """Validate the request and resolve the application user."""
        checked = self.validate(request)
        if isinstance(checked, AuthFailure):
            return checked
        event = checked

        if self._resolver is None:
            return AuthSuccess(identity=NostrIdentity(event.pubkey), pubkey=event.pubkey, event=event)

        try:
            user = self._resolver(request, event)
            if inspect.isawaitable(user):
                user = await user
        except Exception as exc:
            logger.debug("Identity resolver raised %s", type(exc).__name__, exc_info=True)
            return AuthError(exc)

        if user is None:
            user = NostrIdentity(event.pubkey)
        return AuthSuccess(identity=user, pubkey=event.pubkey, event=event)

    @staticmethod
    def _reject(failure: AuthFailure) -> AuthFailure:
        logger.debug("Nostr auth rejected: %s", failure.message)
        return failure
