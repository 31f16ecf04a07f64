"""Orchestrator — entry point for one login attempt.

Owns the browser session for the attempt: launches it, starts the network
tap and token extractor, runs the scripted flow, waits a final settle
window, then cancels the background tasks, closes the browser and derives
the result from the token slot.
"""
import asyncio
import logging
import time
from dataclasses import replace

from ..browser.session import BrowserConfig, launch_session
from ..browser.ua import random_user_agent
from ..ids import generate_mac_address
from ..models import Credentials, FlowTimings, LoginResult
from .errors import FlowTimeout, LaunchError, LoginError, NoTokenCaptured
from .extractor import TokenExtractor, TokenSlot
from .flow import LoginFlowDriver
from .network_tap import NetworkTap

log = logging.getLogger(__name__)


async def _run_flow(driver: LoginFlowDriver, timeout: float | None) -> str | None:
    """Run the driver; return its error description, or None on success."""
    try:
        if timeout is None:
            await driver.run()
        else:
            await asyncio.wait_for(driver.run(), timeout=timeout)
    except asyncio.TimeoutError:
        return str(FlowTimeout(timeout))
    except LoginError as e:
        return str(e)
    return None


async def perform_login(credentials: Credentials, *,
                        timings: FlowTimings | None = None,
                        launcher=launch_session,
                        browser_config: BrowserConfig | None = None,
                        event_logger=None) -> LoginResult:
    """Log in with *credentials* and capture the token from network traffic.

    Args:
        credentials: Account and browser options for this attempt.
        timings: Settle delays; defaults to ``FlowTimings()``.
        launcher: Coroutine function ``(BrowserConfig) -> BrowserSession``.
        browser_config: Extra launch options. ``headless`` and ``proxy``
            always come from *credentials*.
        event_logger: Optional LoginEventLogger for telemetry.

    Returns:
        Exactly one LoginResult. Never raises for launch, navigation or
        element failures; the browser is closed before returning.
    """
    timings = timings or FlowTimings()
    config = replace(browser_config or BrowserConfig(),
                     headless=credentials.headless, proxy=credentials.proxy)
    started = time.monotonic()

    if event_logger is not None:
        event_logger.log_attempt_start(credentials.headless, bool(credentials.proxy),
                                       bool(credentials.recovery_email))

    try:
        session = await launcher(config)
    except LaunchError as e:
        log.error(f"Browser launch failed: {e}")
        result = LoginResult.failed(str(e))
        _log_end(event_logger, result, started)
        return result

    slot = TokenSlot()
    tap = NetworkTap(session.context)
    extractor = TokenExtractor(slot, event_logger=event_logger)
    tap.start()
    extract_task = asyncio.create_task(tap.run(extractor), name="token-extractor")

    try:
        driver = LoginFlowDriver(session.page, credentials, timings, event_logger=event_logger)
        flow_error = await _run_flow(driver, timings.flow_timeout)
        if flow_error:
            log.warning(f"Login flow failed: {flow_error}")
        await asyncio.sleep(timings.final_settle)
    finally:
        session.loop.cancel()
        extract_task.cancel()
        tap.stop()
        await session.close()
        await asyncio.gather(extract_task, return_exceptions=True)

    if tap.dropped:
        log.warning(f"Network tap dropped {tap.dropped} request events")

    token = await slot.get()
    if token is not None:
        result = LoginResult.captured(token, random_user_agent(), generate_mac_address())
    elif flow_error:
        result = LoginResult.failed(flow_error)
    else:
        result = LoginResult.failed(str(NoTokenCaptured()))
    _log_end(event_logger, result, started)
    return result


def _log_end(event_logger, result: LoginResult, started: float) -> None:
    log.info(f"Login attempt finished: success={result.success}"
             + (f", error={result.error}" if result.error else ""))
    if event_logger is not None:
        event_logger.log_attempt_end(result.success, result.error, time.monotonic() - started)
