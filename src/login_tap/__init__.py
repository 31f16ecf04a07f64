"""login-tap — capture a login token from browser network traffic.

Drives a scripted Google sign-in in a Playwright-controlled browser, then
navigates to the Growtopia Google-login endpoint and captures the session
token from the outgoing request body instead of parsing the final page.
"""
from .models import Credentials, FlowTimings, LoginResult, NetworkRequestEvent  # noqa: F401
from .engine.errors import LoginError, LoginSignal  # noqa: F401
from .engine.orchestrator import perform_login  # noqa: F401
from .ids import generate_mac_address, generate_random_hex, generate_rid  # noqa: F401
from .meta import fetch_meta  # noqa: F401
