"""CLI entry point: python -m nostr_auth."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

from nostr_auth.auth.nostr import AuthConfig, NostrAuthenticator
from nostr_auth.auth.request import RequestContext
from nostr_auth.constants import DEFAULT_TIME_TOLERANCE_MS
from nostr_auth.outcome import AuthFailure, AuthSuccess
from nostr_auth.server import serve

logger = logging.getLogger(__name__)

TOLERANCE_ENV_VAR = "NOSTR_AUTH_TIME_TOLERANCE_MS"


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the nostr-auth CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m nostr_auth",
        description="Validate Nostr HTTP auth headers or run a protected demo server.",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="INFO",
        help="Logging level (default: INFO).",
    )
    parser.add_argument(
        "--time-tolerance-ms",
        type=int,
        default=None,
        help=(
            f"Allowed clock skew in milliseconds (default: ${TOLERANCE_ENV_VAR} "
            f"or {DEFAULT_TIME_TOLERANCE_MS})."
        ),
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Validate an Authorization header offline.")
    check.add_argument("--header", required=True, help='Full header value, e.g. "Nostr eyJ...".')
    check.add_argument("--url-path", required=True, help="Request path the header must be bound to.")
    check.add_argument("--method", required=True, help="Request method the header must be bound to.")

    run = subparsers.add_parser("serve", help="Serve /health and /whoami behind Nostr auth.")
    run.add_argument("--host", default="127.0.0.1", help="Host address (default: 127.0.0.1).")
    run.add_argument("--port", type=int, default=8000, help="Port (default: 8000, range: 1-65535).")
    run.add_argument(
        "--require-auth",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Reject unauthenticated requests (default: True). Use --no-require-auth for permissive mode.",
    )
    run.add_argument(
        "--exempt-paths",
        default=None,
        help="Comma-separated paths exempt from auth (default: /health).",
    )
    return parser


def _resolve_tolerance(value: int | None, parser: argparse.ArgumentParser) -> int:
    """Resolve tolerance: --time-tolerance-ms -> env var -> default."""
    if value is None:
        raw = os.environ.get(TOLERANCE_ENV_VAR)
        if raw is None:
            return DEFAULT_TIME_TOLERANCE_MS
        try:
            value = int(raw)
        except ValueError:
            parser.error(f"{TOLERANCE_ENV_VAR} must be an integer, got {raw!r}")
    if value < 0:
        parser.error(f"--time-tolerance-ms must not be negative, got {value}")
    return value


def _run_check(authenticator: NostrAuthenticator, args: argparse.Namespace) -> int:
    request = RequestContext(
        headers={"authorization": args.header},
        path=args.url_path,
        method=args.method,
    )
    outcome = asyncio.run(authenticator.authenticate(request))
    if isinstance(outcome, AuthSuccess):
        print(json.dumps({"ok": True, "pubkey": outcome.pubkey, "event": outcome.event.to_dict()}))
        return 0
    if isinstance(outcome, AuthFailure):
        print(json.dumps({"ok": False, "status": outcome.status_code, "message": outcome.message}))
        return 1
    print(json.dumps({"ok": False, "error": str(outcome.cause)}))
    return 2


def main() -> None:
    """CLI entry point.

    Exit codes:
        0 - Valid header / normal shutdown
        1 - Header rejected
        2 - Invalid arguments or server startup failure
    """
    parser = _build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    tolerance = _resolve_tolerance(args.time_tolerance_ms, parser)
    authenticator = NostrAuthenticator(config=AuthConfig(time_tolerance_ms=tolerance))

    if args.command == "check":
        sys.exit(_run_check(authenticator, args))

    exempt_paths_set = None
    if args.exempt_paths:
        exempt_paths_set = set(p.strip() for p in args.exempt_paths.split(","))

    try:
        serve(
            authenticator,
            host=args.host,
            port=args.port,
            exempt_paths=exempt_paths_set,
            require_auth=args.require_auth,
        )
    except Exception:
        logger.exception("Server startup failed.")
        sys.exit(2)


if __name__ == "__main__":
    main()
