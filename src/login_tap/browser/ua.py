"""User-Agent construction."""
import random

# Chrome builds the synthesized client user agent is drawn from.
CHROME_VERSIONS = (
    "91.0.4472.124",
    "92.0.4515.107",
    "93.0.4577.63",
    "94.0.4606.81",
    "95.0.4638.54",
)

_WINDOWS_TEMPLATE = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/{version} Safari/537.36"
)


def build_user_agent(chrome_version: str, template: str = "") -> str:
    """Build a User-Agent string for the given Chrome version.

    If *template* is empty, uses the Windows 10 x64 Chrome template.
    """
    if not template:
        template = _WINDOWS_TEMPLATE
    return template.format(version=chrome_version)


def random_user_agent() -> str:
    """Return a Windows Chrome User-Agent for a randomly chosen version."""
    return build_user_agent(random.choice(CHROME_VERSIONS))
