"""Constants for the Nostr HTTP authorization scheme."""

from __future__ import annotations

# Authorization header auth-scheme (case-sensitive, followed by one space)
AUTH_SCHEME = "Nostr"

# Reserved event kind for HTTP auth events
HTTP_AUTH_KIND = 27235

# Allowed clock skew between event created_at and server time (5 minutes)
DEFAULT_TIME_TOLERANCE_MS = 5 * 60 * 1000

URL_TAG = "url"
METHOD_TAG = "method"

# URL schemes that require a host to be absolute
SPECIAL_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp"})
