"""Browser session lifecycle for one login attempt.

``launch_session`` starts Playwright, opens a browser (system Chrome over CDP
when available, Playwright's bundled Chromium otherwise) and returns a
``BrowserSession`` holding the page, its context, and the ``SessionLoop``
background task. The orchestrator owns the session and must close it.

System Chrome runs on a throwaway profile unless ``user_data_dir`` is set;
the profile is deleted when the session closes.
"""
import asyncio
import logging
import tempfile
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import async_playwright

from ..engine.errors import LaunchError
from .chrome import build_launch_args, find_system_chrome, launch_cdp_browser, terminate_chrome

log = logging.getLogger(__name__)


@dataclass
class BrowserConfig:
    """Launch options. All paths are runtime-injected."""
    headless: bool = False
    proxy: str | None = None
    use_system_chrome: bool = True
    chrome_path: str = ""
    user_data_dir: str = ""
    extra_args: list[str] = field(default_factory=list)


class SessionLoop:
    """Cancellable background task bound to the browser connection.

    The task stays pending while the browser is connected and finishes on
    its own when the browser disconnects. ``cancel()`` stops it without
    waiting and is safe to call any number of times, including after the
    task already finished.
    """

    def __init__(self, browser: Any):
        self._disconnected = asyncio.Event()
        browser.on("disconnected", self._on_disconnected)
        self._task = asyncio.create_task(self._run(), name="browser-session-loop")

    def _on_disconnected(self, *_args) -> None:
        self._disconnected.set()

    async def _run(self) -> None:
        await self._disconnected.wait()
        log.info("Browser disconnected; session loop finished")

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()
            log.debug("Session loop cancelled")


class BrowserSession:
    """Everything opened for one attempt; ``close()`` releases all of it."""

    def __init__(self, playwright: Any, browser: Any, context: Any, page: Any,
                 chrome_proc: Any = None, profile_dir: Any = None):
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.page = page
        self.chrome_proc = chrome_proc
        self.profile_dir = profile_dir
        self.loop = SessionLoop(browser)
        self._closed = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.loop.cancel()
        try:
            await self.context.close()
        except Exception as e:
            log.debug(f"Browser context close failed: {e}")
        try:
            await self.browser.close()
        except Exception as e:
            log.warning(f"Failed to close browser cleanly: {e}")
        if self.chrome_proc is not None:
            await terminate_chrome(self.chrome_proc)
        try:
            await self.playwright.stop()
        except Exception as e:
            log.debug(f"Playwright stop failed: {e}")
        if self.profile_dir is not None:
            _cleanup_profile(self.profile_dir)
        log.info("Browser session closed")


def _cleanup_profile(profile_dir: tempfile.TemporaryDirectory) -> None:
    try:
        profile_dir.cleanup()
    except OSError as e:
        log.warning(f"Failed to remove temporary Chrome profile: {e}")


async def _open_cdp(playwright, chrome_path: str, config: BrowserConfig, args: list[str],
                    user_data_dir: str):
    browser, proc = await launch_cdp_browser(
        playwright, chrome_path,
        headless=config.headless,
        user_data_dir=user_data_dir,
        extra_args=args,
    )
    try:
        context = browser.contexts[0] if browser.contexts else await browser.new_context()
        page = context.pages[0] if context.pages else await context.new_page()
    except Exception:
        await browser.close()
        await terminate_chrome(proc)
        raise
    return browser, context, page, proc


async def _open_bundled(playwright, config: BrowserConfig, args: list[str]):
    browser = await playwright.chromium.launch(headless=config.headless, args=args)
    try:
        context = await browser.new_context()
        page = await context.new_page()
    except Exception:
        await browser.close()
        raise
    return browser, context, page


async def launch_session(config: BrowserConfig) -> BrowserSession:
    """Launch a browser for one attempt.

    Tries system Chrome over CDP first (when enabled and found), then falls
    back to Playwright's bundled Chromium. Raises ``LaunchError`` if neither
    comes up; anything already started is released first.
    """
    args = build_launch_args(proxy=config.proxy, extra_args=config.extra_args)
    try:
        playwright = await async_playwright().start()
    except Exception as e:
        raise LaunchError(f"Failed to start Playwright: {e}") from e

    if config.use_system_chrome:
        chrome_path = config.chrome_path or find_system_chrome()
        if chrome_path:
            profile_dir = None
            user_data_dir = config.user_data_dir
            if not user_data_dir:
                profile_dir = tempfile.TemporaryDirectory(prefix="login-tap-profile-")
                user_data_dir = profile_dir.name
            try:
                browser, context, page, proc = await _open_cdp(
                    playwright, chrome_path, config, args, user_data_dir)
                log.info("Using CDP mode (system Chrome)")
                return BrowserSession(playwright, browser, context, page,
                                      chrome_proc=proc, profile_dir=profile_dir)
            except Exception as e:
                if profile_dir is not None:
                    _cleanup_profile(profile_dir)
                log.warning(f"CDP launch failed ({e}), falling back to Playwright Chromium")

    try:
        browser, context, page = await _open_bundled(playwright, config, args)
    except Exception as e:
        try:
            await playwright.stop()
        except Exception:
            log.debug("Playwright stop failed after launch error", exc_info=True)
        raise LaunchError(f"Failed to launch browser: {e}") from e
    log.info("Using Playwright Chromium mode (headless=%s)", config.headless)
    return BrowserSession(playwright, browser, context, page)
