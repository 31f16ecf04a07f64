"""Shared fakes for the browser side, no actual browser needed."""
from unittest.mock import AsyncMock, MagicMock

import pytest


class FakeEmitter:
    """Minimal stand-in for a Playwright event emitter (context/browser)."""

    def __init__(self):
        self.handlers: dict[str, list] = {}

    def on(self, name, handler):
        self.handlers.setdefault(name, []).append(handler)

    def remove_listener(self, name, handler):
        self.handlers.get(name, []).remove(handler)

    def emit(self, name, *args):
        for handler in list(self.handlers.get(name, [])):
            handler(*args)


def make_request(url, post_data=None, method="POST"):
    request = MagicMock()
    request.url = url
    request.post_data = post_data
    request.method = method
    return request


def make_element():
    element = MagicMock()
    element.click = AsyncMock()
    element.type = AsyncMock()
    return element


def make_page(present: dict | None = None):
    """Page whose query_selector returns elements from *present* (else None)."""
    present = present or {}
    page = MagicMock()
    page.goto = AsyncMock()
    page.query_selector = AsyncMock(side_effect=lambda selector: present.get(selector))
    return page


@pytest.fixture
def emitter():
    return FakeEmitter()
