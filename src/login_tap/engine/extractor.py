"""Token extraction from forwarded request events.

The Growtopia login endpoint receives the session token as a form field of a
POST body. The extractor filters events by host and path against the URL,
checks the host-qualified body for the token pattern, then scans the form
fragments for the first key containing ``token``.
"""
import asyncio
import logging
import re
from urllib.parse import unquote

from ..models import NetworkRequestEvent

log = logging.getLogger(__name__)

TARGET_HOST = "growtopiagame.com"
TARGET_PATH = "login"


def token_pattern(host: str) -> re.Pattern:
    """Pattern for the domain-qualified phrase: the host, then "token" later on."""
    return re.compile(re.escape(host) + r".*?token", re.IGNORECASE | re.DOTALL)


def mask_token(token: str) -> str:
    """Shorten a token for log output."""
    return f"{token[:6]}…({len(token)} chars)" if len(token) > 6 else "***"


class TokenSlot:
    """Captured token for one attempt, guarded by an asyncio lock.

    The lock is held for a single read or write only. Later writes replace
    earlier ones; the orchestrator reads the final value after the
    background tasks are cancelled.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._value: str | None = None

    async def set(self, value: str) -> None:
        async with self._lock:
            self._value = value

    async def get(self) -> str | None:
        async with self._lock:
            return self._value


def _decode(value: str) -> str:
    if "%" not in value:
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


class TokenExtractor:
    """Consume request events and store the first token found in each."""

    def __init__(self, slot: TokenSlot, *, host: str = TARGET_HOST, path: str = TARGET_PATH,
                 pattern: re.Pattern | None = None, event_logger=None):
        self._slot = slot
        self._host = host
        self._path = path
        self._pattern = pattern or token_pattern(host)
        self._event_logger = event_logger
        self.matches = 0

    def is_target(self, url: str) -> bool:
        return self._host in url and self._path in url

    def parse(self, event: NetworkRequestEvent) -> str | None:
        """Return the token carried by *event*, or None."""
        if not self.is_target(event.url):
            return None
        body = event.body
        if not body:
            return None
        # the URL only selects the request; "token" must come from the body
        if not self._pattern.search(f"{self._host} {body}"):
            log.debug(f"Target request without token pattern: {event.url[:80]}")
            return None
        return self._scan_fragments(body)

    def _scan_fragments(self, body: str) -> str | None:
        for fragment in body.split("&"):
            key, sep, value = fragment.partition("=")
            if "token" not in key.lower():
                continue
            if not sep or not value:
                continue
            return _decode(value)
        return None

    async def handle(self, event: NetworkRequestEvent) -> bool:
        """Parse *event* and write any token into the slot."""
        token = self.parse(event)
        if token is None:
            return False
        await self._slot.set(token)
        self.matches += 1
        log.info(f"Captured token {mask_token(token)} from {event.url[:80]}")
        if self._event_logger is not None:
            self._event_logger.log_token_captured(event.url, len(token))
        return True
