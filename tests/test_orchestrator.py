"""Tests for perform_login with a fake browser session."""
import asyncio
import re
from unittest.mock import AsyncMock

import pytest

from login_tap.browser.session import BrowserConfig, SessionLoop
from login_tap.engine.errors import LaunchError
from login_tap.engine.flow import EMAIL_INPUT, PASSWORD_INPUT, TARGET_LOGIN_URL
from login_tap.engine.orchestrator import perform_login
from login_tap.models import Credentials, FlowTimings

from conftest import FakeEmitter, make_element, make_page, make_request

NO_DELAY = FlowTimings(step_delay=0, input_delay=0, pre_target_delay=0,
                       target_delay=0, final_settle=0.05, flow_timeout=5)
CREDS = Credentials(email="user@example.com", password="hunter2", proxy="http://proxy:8080")
TOKEN_URL = "https://www.growtopiagame.com/player/growid/login/validate"


class FakeLoop:
    def __init__(self):
        self.cancelled = 0

    def cancel(self):
        self.cancelled += 1


class FakeSession:
    def __init__(self, page, context=None, loop=None):
        self.page = page
        self.context = context or FakeEmitter()
        self.loop = loop or FakeLoop()
        self.closed = False

    async def close(self):
        self.closed = True


def _launcher(session, seen_configs=None):
    async def launch(config):
        if seen_configs is not None:
            seen_configs.append(config)
        return session
    return launch


def _logged_in_page(context, body="_token=&growId=&password=&token=abc%2Fdef"):
    """Page that sends the token-bearing request when the target URL loads."""
    page = make_page({EMAIL_INPUT: make_element(), PASSWORD_INPUT: make_element()})

    async def goto(url):
        if url == TARGET_LOGIN_URL:
            context.emit("request", make_request(TOKEN_URL, body))

    page.goto = AsyncMock(side_effect=goto)
    return page


@pytest.mark.asyncio
async def test_token_captured_from_target_traffic():
    context = FakeEmitter()
    session = FakeSession(_logged_in_page(context), context)
    configs = []
    result = await perform_login(CREDS, timings=NO_DELAY, launcher=_launcher(session, configs))

    assert result.success
    assert result.token == "abc/def"
    assert result.error is None
    assert re.match(r"^([0-9A-F]{2}:){5}[0-9A-F]{2}$", result.mac_address)
    assert result.user_agent.startswith("Mozilla/5.0")
    assert session.closed
    assert session.loop.cancelled == 1
    assert configs[0].proxy == "http://proxy:8080"
    assert configs[0].headless is False


@pytest.mark.asyncio
async def test_identifier_step_failure_reported():
    session = FakeSession(make_page({}))
    result = await perform_login(CREDS, timings=NO_DELAY, launcher=_launcher(session))

    assert not result.success
    assert result.token is None
    assert "identifier" in result.error
    assert session.closed


@pytest.mark.asyncio
async def test_token_wins_over_driver_failure():
    context = FakeEmitter()
    page = make_page({})

    async def goto(url):
        context.emit("request", make_request(TOKEN_URL, "growtopia=1&token=early"))

    page.goto = AsyncMock(side_effect=goto)
    session = FakeSession(page, context)
    result = await perform_login(CREDS, timings=NO_DELAY, launcher=_launcher(session))
    assert result.success
    assert result.token == "early"


@pytest.mark.asyncio
async def test_no_token_captured_is_distinct_failure():
    page = make_page({EMAIL_INPUT: make_element(), PASSWORD_INPUT: make_element()})
    session = FakeSession(page)
    result = await perform_login(CREDS, timings=NO_DELAY, launcher=_launcher(session))

    assert not result.success
    assert result.error == "Login completed but no token was captured"
    assert session.closed


@pytest.mark.asyncio
async def test_launch_error_becomes_failed_result():
    async def launch(config):
        raise LaunchError("no chromium")

    result = await perform_login(CREDS, timings=NO_DELAY, launcher=launch)
    assert not result.success
    assert "no chromium" in result.error


@pytest.mark.asyncio
async def test_flow_timeout_reported_and_session_closed():
    page = make_page({EMAIL_INPUT: make_element(), PASSWORD_INPUT: make_element()})

    async def hang(url):
        await asyncio.sleep(10)

    page.goto = AsyncMock(side_effect=hang)
    session = FakeSession(page)
    timings = FlowTimings(step_delay=0, input_delay=0, pre_target_delay=0,
                          target_delay=0, final_settle=0, flow_timeout=0.05)
    result = await asyncio.wait_for(
        perform_login(CREDS, timings=timings, launcher=_launcher(session)), timeout=2)

    assert not result.success
    assert result.error == "Login flow timed out after 0.05s"
    assert session.closed


@pytest.mark.asyncio
async def test_background_cancellation_does_not_block():
    class NeverDisconnects(FakeEmitter):
        pass

    browser = NeverDisconnects()
    page = make_page({EMAIL_INPUT: make_element(), PASSWORD_INPUT: make_element()})
    session = FakeSession(page, loop=SessionLoop(browser))

    result = await asyncio.wait_for(
        perform_login(CREDS, timings=NO_DELAY, launcher=_launcher(session)), timeout=2)
    await asyncio.sleep(0.01)
    assert not result.success
    assert session.loop.done


@pytest.mark.asyncio
async def test_session_closed_when_driver_raises_unexpected():
    page = make_page({})
    page.goto = AsyncMock(side_effect=RuntimeError("boom"))
    session = FakeSession(page)
    with pytest.raises(RuntimeError):
        await perform_login(CREDS, timings=NO_DELAY, launcher=_launcher(session))
    assert session.closed


@pytest.mark.asyncio
async def test_browser_config_not_mutated():
    config = BrowserConfig(headless=False, proxy=None)
    context = FakeEmitter()
    session = FakeSession(_logged_in_page(context), context)
    creds = Credentials(email="u@example.com", password="p", headless=True)
    configs = []
    await perform_login(creds, timings=NO_DELAY, launcher=_launcher(session, configs),
                        browser_config=config)
    assert config.headless is False
    assert configs[0].headless is True


@pytest.mark.asyncio
async def test_event_logger_receives_attempt_events(tmp_path):
    from login_tap.telemetry import LoginEventLogger
    import json

    context = FakeEmitter()
    session = FakeSession(_logged_in_page(context), context)
    with LoginEventLogger("run1", log_dir=str(tmp_path)) as events:
        await perform_login(CREDS, timings=NO_DELAY, launcher=_launcher(session),
                            event_logger=events)

    lines = (tmp_path / "login_run1.jsonl").read_text().splitlines()
    kinds = [json.loads(line)["event"] for line in lines]
    assert kinds[0] == "attempt_start"
    assert "step_result" in kinds
    assert "token_captured" in kinds
    assert kinds[-1] == "attempt_end"
    assert "hunter2" not in "".join(lines)


@pytest.mark.asyncio
async def test_extractor_task_finished_before_return():
    context = FakeEmitter()
    session = FakeSession(_logged_in_page(context), context)
    await perform_login(CREDS, timings=NO_DELAY, launcher=_launcher(session))

    pending = [t for t in asyncio.all_tasks() if t.get_name() == "token-extractor"]
    assert pending == []
