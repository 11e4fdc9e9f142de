"""Authentication outcomes: success, failure, and error."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from nostr_auth.event import SignedEvent


@dataclass(frozen=True)
class NostrIdentity:
    """Identity used when the resolver supplies no application user."""

    pubkey: str


@dataclass(frozen=True)
class AuthSuccess:
    """The request carries a valid, fresh, request-bound event.

    Attributes:
        identity: Application user returned by the resolver, or a
            ``NostrIdentity`` when the resolver returned ``None``.
        pubkey: Hex public key of the verified signer.
        event: The verified event.
    """

    identity: Any
    pubkey: str
    event: SignedEvent | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class AuthFailure:
    """Expected rejection with a stable message and HTTP status code."""

    message: str
    status_code: int


@dataclass(frozen=True)
class AuthError:
    """The identity resolver raised; ``cause`` is the raw exception."""

    cause: BaseException


AuthOutcome = Union[AuthSuccess, AuthFailure, AuthError]


MISSING_HEADER = AuthFailure("Missing Authorization header", 401)
INVALID_SCHEME = AuthFailure("Invalid authorization scheme", 400)
MALFORMED_TOKEN = AuthFailure("Malformed token", 400)
INVALID_JSON = AuthFailure("Invalid JSON format", 400)
INVALID_SIGNATURE = AuthFailure("Invalid Nostr event signature", 401)
WRONG_KIND = AuthFailure("Invalid Nostr event, wrong kind", 401)
TIMESTAMP_OUT_OF_RANGE = AuthFailure("Invalid Nostr event, timestamp out of range", 401)
MALFORMED_URL_TAG = AuthFailure("Malformed URL tag", 400)
URL_MISMATCH = AuthFailure("URL tag does not match request path", 401)
METHOD_MISMATCH = AuthFailure("Method tag does not match request method", 401)
