"""Protocols for requests, event verifiers, and identity resolvers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, Union, runtime_checkable

from nostr_auth.event import SignedEvent


@runtime_checkable
class HttpRequest(Protocol):
    """Minimal request descriptor the authenticator needs.

    ``headers`` lookup of ``Authorization`` is done case-insensitively.
    """

    headers: Mapping[str, str]
    path: str
    method: str


@runtime_checkable
class EventVerifier(Protocol):
    """Verifies an event's id hash and signature against its pubkey.

    Every cryptographic fault is reported uniformly as ``False``.
    """

    def __call__(self, event: SignedEvent) -> bool: ...


# A resolver returns an application user, None, or an awaitable of either.
ResolverResult = Union[Any, Awaitable[Any]]


@dataclass(frozen=True)
class ResolveByIdentity:
    """Resolves the application user from the verified public key."""

    func: Callable[[str], ResolverResult]

    def __call__(self, request: HttpRequest, event: SignedEvent) -> ResolverResult:
        return self.func(event.pubkey)


@dataclass(frozen=True)
class ResolveByRequest:
    """Resolves the application user from the full request."""

    func: Callable[[HttpRequest], ResolverResult]

    def __call__(self, request: HttpRequest, event: SignedEvent) -> ResolverResult:
        return self.func(request)


IdentityResolver = Union[ResolveByIdentity, ResolveByRequest]
