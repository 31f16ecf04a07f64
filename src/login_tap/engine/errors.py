"""Normalized error signals for a login attempt.

Every failure the core can report maps to one ``LoginSignal``. Mandatory-step
failures surface as the ``error`` field of the ``LoginResult``; nothing here
is retried, the caller owns retry policy.
"""
from enum import Enum


class LoginSignal(Enum):
    """What went wrong during a login attempt."""
    LAUNCH = "launch"                         # browser failed to start/connect
    NAVIGATION = "navigation"                 # page failed to load a URL
    ELEMENT_NOT_FOUND = "element_not_found"   # mandatory UI element missing
    INTERACTION = "interaction"               # click/type failed on a found element
    NO_TOKEN = "no_token"                     # flow completed, nothing captured
    TIMEOUT = "timeout"                       # scripted flow exceeded its bound


class LoginError(Exception):
    """Exception carrying a LoginSignal and, when known, the failing step."""

    def __init__(self, signal: LoginSignal, message: str = "", step: str | None = None):
        self.signal = signal
        self.step = step
        message = message or signal.value
        if step:
            message = f"[{step}] {message}"
        super().__init__(message)


class LaunchError(LoginError):
    def __init__(self, message: str = ""):
        super().__init__(LoginSignal.LAUNCH, message)


class NavigationError(LoginError):
    def __init__(self, step: str, message: str = ""):
        super().__init__(LoginSignal.NAVIGATION, message, step=step)


class ElementNotFound(LoginError):
    def __init__(self, step: str, selector: str, description: str = ""):
        self.selector = selector
        what = description or "Element"
        super().__init__(
            LoginSignal.ELEMENT_NOT_FOUND,
            f"{what} not found ({selector})",
            step=step,
        )


class InteractionError(LoginError):
    def __init__(self, step: str, message: str = ""):
        super().__init__(LoginSignal.INTERACTION, message, step=step)


class FlowTimeout(LoginError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(LoginSignal.TIMEOUT, f"Login flow timed out after {timeout:g}s")


class NoTokenCaptured(LoginError):
    def __init__(self, message: str = "Login completed but no token was captured"):
        super().__init__(LoginSignal.NO_TOKEN, message)
