"""Scripted Google sign-in followed by the Growtopia Google-login navigation.

The flow is an explicit list of ``FlowStep`` tuples run in order. Required
steps abort the attempt with a ``LoginError`` naming the step; optional
steps tolerate provider UI variants (missing "Next" buttons, no recovery
prompt) and never abort.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from playwright.async_api import Error as PlaywrightError

from ..models import Credentials, FlowTimings
from .errors import ElementNotFound, InteractionError, LoginError, NavigationError

log = logging.getLogger(__name__)

PROVIDER_URL = "https://accounts.google.com/signin/v2/identifier"
TARGET_LOGIN_URL = "https://www.growtopiagame.com/google/login"

EMAIL_INPUT = "#identifierId"
EMAIL_NEXT = "#identifierNext"
PASSWORD_INPUT = "input[name='password']"
PASSWORD_NEXT = "#passwordNext"
RECOVERY_INPUT = "input[name='knowledgePreregisteredEmailResponse']"
RECOVERY_NEXT = "//button/span[text()='Next']"


@dataclass(frozen=True)
class FlowStep:
    name: str
    required: bool
    action: Callable[[], Awaitable[None]]
    settle: float = 0.0
    requires: str | None = None     # earlier step that must have completed


class LoginFlowDriver:
    """Drive the sign-in UI on *page* for one set of credentials."""

    def __init__(self, page: Any, credentials: Credentials, timings: FlowTimings | None = None,
                 *, event_logger=None):
        self._page = page
        self._credentials = credentials
        self._timings = timings or FlowTimings()
        self._event_logger = event_logger

    # ── Primitive interactions ──────────────────────────────────────────────

    async def _goto(self, step: str, url: str) -> None:
        try:
            await self._page.goto(url)
        except PlaywrightError as e:
            raise NavigationError(step, f"Failed to open {url}: {e}") from e

    async def _find(self, step: str, selector: str, description: str = ""):
        try:
            element = await self._page.query_selector(selector)
        except PlaywrightError as e:
            raise ElementNotFound(step, selector, description) from e
        if element is None:
            raise ElementNotFound(step, selector, description)
        return element

    async def _fill(self, step: str, selector: str, text: str, description: str) -> None:
        element = await self._find(step, selector, description)
        try:
            await element.click()
            await element.type(text)
        except PlaywrightError as e:
            raise InteractionError(step, f"Failed to enter {description.lower()}: {e}") from e

    async def _click(self, step: str, selector: str, description: str) -> None:
        element = await self._find(step, selector, description)
        try:
            await element.click()
        except PlaywrightError as e:
            raise InteractionError(step, f"Failed to click {description.lower()}: {e}") from e

    # ── Script ──────────────────────────────────────────────────────────────

    def build_steps(self) -> list[FlowStep]:
        """Return the ordered step list for these credentials."""
        t = self._timings
        creds = self._credentials
        steps = [
            FlowStep("navigate_to_provider", True,
                     lambda: self._goto("navigate_to_provider", PROVIDER_URL), t.step_delay),
            FlowStep("enter_identifier", True,
                     lambda: self._fill("enter_identifier", EMAIL_INPUT, creds.email, "Email input"),
                     t.input_delay),
            FlowStep("advance_past_identifier", False,
                     lambda: self._click("advance_past_identifier", EMAIL_NEXT, "Next button"),
                     t.step_delay),
            FlowStep("enter_secret", True,
                     lambda: self._fill("enter_secret", PASSWORD_INPUT, creds.password, "Password input"),
                     t.input_delay),
            FlowStep("advance_past_secret", False,
                     lambda: self._click("advance_past_secret", PASSWORD_NEXT, "Password next button"),
                     t.step_delay),
        ]
        if creds.recovery_email:
            recovery = creds.recovery_email
            steps += [
                FlowStep("enter_recovery_identifier", False,
                         lambda: self._fill("enter_recovery_identifier", RECOVERY_INPUT, recovery,
                                            "Recovery email input"),
                         t.input_delay),
                FlowStep("advance_past_recovery", False,
                         lambda: self._click("advance_past_recovery", RECOVERY_NEXT, "Recovery next button"),
                         t.step_delay, requires="enter_recovery_identifier"),
            ]
        steps += [
            FlowStep("settle", True, _noop, t.pre_target_delay),
            FlowStep("navigate_to_target", True,
                     lambda: self._goto("navigate_to_target", TARGET_LOGIN_URL), t.target_delay),
        ]
        return steps

    async def run(self) -> list[str]:
        """Run every step in order. Returns the names of completed steps.

        Raises the ``LoginError`` of the first failing required step.
        """
        completed: list[str] = []
        log.info("Starting login automation")
        for step in self.build_steps():
            if step.requires and step.requires not in completed:
                log.debug(f"  {step.name}: skipped ({step.requires} did not complete)")
                self._record(step, "skipped", 0.0)
                continue
            started = time.monotonic()
            try:
                await step.action()
            except ElementNotFound as e:
                if step.required:
                    self._record(step, "failed", time.monotonic() - started, str(e))
                    raise
                log.debug(f"  {step.name}: not present, continuing")
                self._record(step, "absent", time.monotonic() - started)
                continue
            except LoginError as e:
                if step.required:
                    self._record(step, "failed", time.monotonic() - started, str(e))
                    raise
                log.warning(f"  {step.name}: ignored failure: {e}")
                self._record(step, "ignored", time.monotonic() - started, str(e))
                continue
            if step.settle > 0:
                await asyncio.sleep(step.settle)
            completed.append(step.name)
            log.info(f"  {step.name}: ok")
            self._record(step, "ok", time.monotonic() - started)
        log.info("Login automation complete")
        return completed

    def _record(self, step: FlowStep, outcome: str, duration: float, error: str | None = None):
        if self._event_logger is not None:
            self._event_logger.log_step_result(step.name, step.required, outcome, duration, error)


async def _noop() -> None:
    return None
