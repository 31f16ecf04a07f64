"""engine — login flow, network tap, token extraction and attempt orchestration.

``perform_login`` lives in ``engine.orchestrator`` and is re-exported from
the package root; it is not imported here because the browser layer imports
``engine.errors``.
"""
from .errors import (  # noqa: F401
    ElementNotFound,
    FlowTimeout,
    InteractionError,
    LaunchError,
    LoginError,
    LoginSignal,
    NavigationError,
    NoTokenCaptured,
)
from .extractor import TokenExtractor, TokenSlot  # noqa: F401
from .flow import FlowStep, LoginFlowDriver  # noqa: F401
from .network_tap import NetworkTap  # noqa: F401
