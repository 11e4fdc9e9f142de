"""Signed Nostr event record, parsing, and BIP-340 signature verification."""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from coincurve import PublicKeyXOnly

logger = logging.getLogger(__name__)

_HEX64 = re.compile(r"^[0-9a-f]{64}$")
_HEX128 = re.compile(r"^[0-9a-f]{128}$")


class EventParseError(ValueError):
    """Raised when an envelope is not a JSON object."""


@dataclass(frozen=True)
class SignedEvent:
    """A Nostr event as received on the wire.

    Field values are kept exactly as decoded; ``verify_event`` is what
    checks their shape.
    """

    id: Any
    pubkey: Any
    created_at: Any
    kind: Any
    tags: Any
    content: Any
    sig: Any

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignedEvent:
        return cls(
            id=data.get("id"),
            pubkey=data.get("pubkey"),
            created_at=data.get("created_at"),
            kind=data.get("kind"),
            tags=data.get("tags"),
            content=data.get("content"),
            sig=data.get("sig"),
        )

    @classmethod
    def from_json(cls, text: str) -> SignedEvent:
        """Parse a JSON envelope into a ``SignedEvent``.

        Raises:
            EventParseError: If the text is not valid JSON or not an object.
        """
        try:
            data = json.loads(text, parse_constant=_reject_constant)
        except ValueError as exc:
            raise EventParseError(str(exc)) from exc
        if not isinstance(data, dict):
            raise EventParseError("event must be a JSON object")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": self.tags,
            "content": self.content,
            "sig": self.sig,
        }

    def tag_value(self, name: str) -> str | None:
        """Return the value of the first tag-row named ``name``.

        Later rows with the same name are ignored. Returns None when no row
        matches or the first match has no value.
        """
        if not isinstance(self.tags, list):
            return None
        for row in self.tags:
            if isinstance(row, list) and row and row[0] == name:
                return row[1] if len(row) > 1 else None
        return None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant: {name}")


def compute_event_id(event: SignedEvent) -> str:
    """Compute the event id: sha256 of ``[0, pubkey, created_at, kind, tags, content]``."""
    serialized = json.dumps(
        [0, event.pubkey, event.created_at, event.kind, event.tags, event.content],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _has_valid_shape(event: SignedEvent) -> bool:
    if not isinstance(event.id, str) or not _HEX64.match(event.id):
        return False
    if not isinstance(event.pubkey, str) or not _HEX64.match(event.pubkey):
        return False
    if not isinstance(event.sig, str) or not _HEX128.match(event.sig):
        return False
    if not _is_int(event.created_at) or not _is_int(event.kind):
        return False
    if not isinstance(event.content, str):
        return False
    if not isinstance(event.tags, list):
        return False
    for row in event.tags:
        if not isinstance(row, list) or not all(isinstance(item, str) for item in row):
            return False
    return True


def verify_event(event: SignedEvent) -> bool:
    """Check the event's shape, id hash, and Schnorr signature.

    Every kind of fault (bad shape, id mismatch, bad key, bad signature)
    yields False.
    """
    if not _has_valid_shape(event):
        logger.debug("Event rejected: invalid shape")
        return False

    if compute_event_id(event) != event.id:
        logger.debug("Event rejected: id does not match content hash")
        return False

    try:
        pubkey = PublicKeyXOnly(bytes.fromhex(event.pubkey))
        return bool(pubkey.verify(bytes.fromhex(event.sig), bytes.fromhex(event.id)))
    except (ValueError, TypeError):
        logger.debug("Event rejected: signature verification error", exc_info=True)
        return False
