"""Value types for one login attempt."""
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class Credentials:
    """Account details and browser options for one login attempt."""
    email: str
    password: str = field(repr=False)
    recovery_email: str | None = None
    proxy: str | None = None
    headless: bool = False


@dataclass(frozen=True)
class NetworkRequestEvent:
    """Snapshot of one outbound request as seen by the network tap."""
    url: str
    body: str | None = None
    method: str = "GET"

    @classmethod
    def from_request(cls, request: Any) -> "NetworkRequestEvent":
        """Build an event from a Playwright ``Request``.

        ``post_data`` decodes the body as UTF-8 and raises on binary
        payloads; those are treated as having no body.
        """
        try:
            body = request.post_data
        except Exception:
            body = None
        return cls(url=request.url, body=body, method=request.method or "GET")


@dataclass(frozen=True)
class FlowTimings:
    """Settle delays (seconds) used by the login flow and the orchestrator.

    Defaults are the values the flow was tuned with. Shortening them risks
    interacting with a page that has not finished its transition, or
    cancelling the tap before the token request is sent.
    """
    step_delay: float = 3.0          # after navigation and each "Next"
    input_delay: float = 1.0         # after typing into a field
    pre_target_delay: float = 5.0    # before navigating to the target login
    target_delay: float = 5.0        # after navigating to the target login
    final_settle: float = 5.0        # before cancelling background tasks
    flow_timeout: float | None = 180.0


@dataclass(frozen=True)
class LoginResult:
    """Terminal output of one login attempt."""
    success: bool
    token: str | None = None
    user_agent: str | None = None
    mac_address: str | None = None   # synthesized device identifier
    error: str | None = None

    @classmethod
    def captured(cls, token: str, user_agent: str, mac_address: str) -> "LoginResult":
        return cls(success=True, token=token, user_agent=user_agent, mac_address=mac_address)

    @classmethod
    def failed(cls, error: str) -> "LoginResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        return asdict(self)
