"""CLI entrypoint for login-tap."""
import argparse
import asyncio
import json
import logging
import os
import sys
import uuid
from dataclasses import replace

from .engine.orchestrator import perform_login
from .meta import fetch_meta
from .models import Credentials, FlowTimings
from .telemetry import LoginEventLogger

PASSWORD_ENV = "LOGIN_TAP_PASSWORD"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="login-tap",
        description="Log in through a controlled browser and capture the session token.",
    )
    parser.add_argument("--email", help="Google account email")
    parser.add_argument("--password", help=f"Account password (default: ${PASSWORD_ENV})")
    parser.add_argument("--recovery-email", default=None)
    parser.add_argument("--proxy", default=None, help="Proxy server, e.g. socks5://127.0.0.1:1080")
    parser.add_argument("--headless", action="store_true")
    parser.add_argument("--final-settle", type=float, default=None,
                        help="Seconds to keep watching traffic after the flow ends")
    parser.add_argument("--event-log-dir", default="",
                        help="Write JSONL attempt events into this directory")
    parser.add_argument("--meta", action="store_true",
                        help="Only fetch the server metadata value and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


async def _login(args: argparse.Namespace, password: str) -> dict:
    credentials = Credentials(
        email=args.email,
        password=password,
        recovery_email=args.recovery_email,
        proxy=args.proxy,
        headless=args.headless,
    )
    timings = FlowTimings()
    if args.final_settle is not None:
        timings = replace(timings, final_settle=args.final_settle)

    if not args.event_log_dir:
        result = await perform_login(credentials, timings=timings)
        return result.to_dict()
    with LoginEventLogger(uuid.uuid4().hex[:12], log_dir=args.event_log_dir) as events:
        result = await perform_login(credentials, timings=timings, event_logger=events)
    return result.to_dict()


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.meta:
        meta = asyncio.run(fetch_meta())
        print(json.dumps({"meta": meta}))
        return 0 if meta else 1

    password = args.password or os.environ.get(PASSWORD_ENV, "")
    if not args.email or not password:
        parser.error(f"--email and --password (or ${PASSWORD_ENV}) are required")

    payload = asyncio.run(_login(args, password))
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0 if payload["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
