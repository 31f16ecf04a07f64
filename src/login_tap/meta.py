"""Growtopia server metadata fetch.

Independent of the login flow: one form POST to the server-data endpoint,
returning the ``meta|<value>`` field of the plain-text response.
"""
import logging
import re

import httpx

log = logging.getLogger(__name__)

SERVER_DATA_URL = "https://www.growtopia1.com/growtopia/server_data.php"
SERVER_DATA_BODY = "version=5.11&platform=0&protocol=216"
_HEADERS = {
    "User-Agent": "UbiServices_SDK_2022.Release.9_PC64_ansi_static",
    "Accept": "*/*",
    "Content-Type": "application/x-www-form-urlencoded",
    "Cache-Control": "no-cache",
}
_META_RE = re.compile(r"meta\|([^ \n\r]+)")


def parse_meta(text: str) -> str | None:
    """Return the value of the first ``meta|...`` field in *text*, or None."""
    match = _META_RE.search(text)
    return match.group(1) if match else None


async def fetch_meta(client: httpx.AsyncClient | None = None,
                     url: str = SERVER_DATA_URL) -> str | None:
    """POST the server-data form and return the meta value.

    Returns None on any HTTP failure. TLS verification is disabled when the
    client is created here; the endpoint's certificate does not validate.
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(verify=False, timeout=15.0)
    try:
        response = await client.post(url, content=SERVER_DATA_BODY, headers=_HEADERS)
        response.raise_for_status()
        return parse_meta(response.text)
    except httpx.HTTPError as e:
        log.debug(f"Metadata fetch failed: {e}")
        return None
    finally:
        if owns_client:
            await client.aclose()
