"""Internal utility functions for nostr-auth."""

from __future__ import annotations

import base64
import binascii
import string
from collections.abc import Mapping
from typing import Any
from urllib.parse import SplitResult, quote, urlsplit

from nostr_auth.constants import SPECIAL_SCHEMES

_B64_ALPHABET = frozenset(string.ascii_letters + string.digits + "+/-_")
_URLSAFE_TO_STD = str.maketrans("-_", "+/")
_C0_AND_SPACE = "".join(chr(c) for c in range(0x21))

# Printable ASCII left as-is in special-scheme paths; everything else is percent-encoded
_PATH_SAFE = "!$%&'()*+,/:;=@[]^|"
_SINGLE_DOT = frozenset({".", "%2e"})
_DOUBLE_DOT = frozenset({"..", ".%2e", "%2e.", "%2e%2e"})


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Look up a header by name, case-insensitively."""
    value = headers.get(name)
    if value is not None:
        return value
    value = headers.get(name.lower())
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def decode_base64_text(token: str) -> str:
    """Decode base64 (standard or url-safe) to text without ever raising.

    Characters outside both alphabets are skipped, decoding stops at the
    first ``=``, a dangling single character is dropped, and invalid UTF-8
    is replaced with U+FFFD.
    """
    chars: list[str] = []
    for ch in token:
        if ch == "=":
            break
        if ch in _B64_ALPHABET:
            chars.append(ch)

    if len(chars) % 4 == 1:
        chars.pop()
    if not chars:
        return ""

    data = "".join(chars).translate(_URLSAFE_TO_STD)
    data += "=" * (-len(data) % 4)
    try:
        raw = base64.b64decode(data)
    except (binascii.Error, ValueError):
        return ""
    return raw.decode("utf-8", errors="replace")


def _split_special(cleaned: str, scheme: str) -> str:
    """Rewrite a special-scheme URL to ``scheme://authority/path...`` form.

    Slashes after the scheme are optional and ``\\`` counts as ``/`` before
    the query or fragment.
    """
    rest = cleaned[len(scheme) + 1 :]
    cut = min((i for i in (rest.find("?"), rest.find("#")) if i != -1), default=len(rest))
    head = rest[:cut].replace("\\", "/").lstrip("/")
    return f"{scheme}://{head}{rest[cut:]}"


def _canonical_path(path: str) -> str:
    """Percent-encode a special-scheme path and resolve its dot segments."""
    segments = quote(path, safe=_PATH_SAFE).split("/")[1:]
    resolved: list[str] = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        lowered = segment.lower()
        if lowered in _DOUBLE_DOT:
            if resolved:
                resolved.pop()
            if last:
                resolved.append("")
        elif lowered in _SINGLE_DOT:
            if last:
                resolved.append("")
        else:
            resolved.append(segment)
    return "/" + "/".join(resolved)


def parse_absolute_url(value: Any) -> SplitResult | None:
    """Parse ``value`` as an absolute URL, or return None.

    Special schemes (http, https, ws, wss, ftp) must carry a host. Their
    path is canonicalised the way browsers do it: empty becomes ``/``,
    ``.`` and ``..`` segments are resolved, and spaces, quotes, braces and
    non-ASCII characters are percent-encoded. Existing escapes are kept.
    """
    if not isinstance(value, str):
        return None

    cleaned = value.strip(_C0_AND_SPACE)
    cleaned = cleaned.replace("\t", "").replace("\n", "").replace("\r", "")
    try:
        parts = urlsplit(cleaned)
    except ValueError:
        return None
    if not parts.scheme:
        return None

    scheme = parts.scheme.lower()
    if scheme not in SPECIAL_SCHEMES:
        return parts

    try:
        parts = urlsplit(_split_special(cleaned, parts.scheme))
        # Port is validated lazily by urllib
        _ = parts.port
    except ValueError:
        return None
    if not parts.hostname:
        return None
    return parts._replace(path=_canonical_path(parts.path or "/"))
