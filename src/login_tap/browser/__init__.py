"""browser — Playwright browser launch and session lifecycle.

No login-specific logic. System Chrome discovery is macOS and Linux only.
"""
from .chrome import ANTI_AUTOMATION_ARGS, build_launch_args, find_system_chrome, launch_cdp_browser  # noqa: F401
from .session import BrowserConfig, BrowserSession, SessionLoop, launch_session  # noqa: F401
from .ua import build_user_agent, random_user_agent  # noqa: F401
