"""telemetry — structured per-attempt event logging."""
from .logger import LoginEventLogger  # noqa: F401
