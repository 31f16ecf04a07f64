"""Chrome discovery, launch arguments, and CDP launch.

macOS and Linux only for system Chrome discovery.
"""
import asyncio
import logging
import os
import platform
import shutil
import socket
import subprocess
import urllib.request

log = logging.getLogger(__name__)

# Passed on every launch; suppresses the most obvious automation signatures.
ANTI_AUTOMATION_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--disable-web-security",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-features=IsolateOrigins,site-per-process",
)

# Readiness polling for the remote debugging endpoint.
CDP_PROBE_ATTEMPTS = 30
CDP_PROBE_INTERVAL = 0.3


def build_launch_args(*, proxy: str | None = None,
                      extra_args: list[str] | None = None) -> list[str]:
    """Return the Chromium command-line flags for one session.

    The proxy flag is only added when *proxy* is a non-empty string.
    """
    args = list(ANTI_AUTOMATION_ARGS)
    if proxy:
        args.append(f"--proxy-server={proxy}")
    if extra_args:
        args.extend(extra_args)
    return args


def find_system_chrome() -> str | None:
    """Find Chrome or Edge binary on the system.

    Returns the path to the browser executable, or None if not found.
    """
    system = platform.system()
    if system == "Darwin":
        candidates = [
            "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
            "/Applications/Chromium.app/Contents/MacOS/Chromium",
            "/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge",
        ]
    elif system == "Linux":
        candidates = [
            "google-chrome",
            "google-chrome-stable",
            "chromium-browser",
            "chromium",
            "microsoft-edge",
        ]
    else:
        return None

    for candidate in candidates:
        if system == "Darwin":
            if os.path.isfile(candidate):
                return candidate
        else:
            path = shutil.which(candidate)
            if path:
                return path
    return None


def find_free_port() -> int:
    """Find a free TCP port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _probe(url: str) -> None:
    urllib.request.urlopen(url, timeout=1)


async def _terminate(proc) -> None:
    if proc.returncode is not None:
        return
    proc.terminate()
    try:
        await asyncio.wait_for(proc.wait(), timeout=5)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()


async def launch_cdp_browser(
    playwright,
    chrome_path: str,
    *,
    headless: bool = False,
    port: int = 0,
    user_data_dir: str = "",
    extra_args: list[str] | None = None,
):
    """Launch system Chrome with remote debugging and connect via CDP.

    Returns ``(browser, chrome_proc)`` on success. The spawned process is
    terminated before re-raising if Chrome exits early, never opens its
    debugger port, or the CDP connection fails.
    """
    port = port or find_free_port()
    if user_data_dir:
        os.makedirs(user_data_dir, exist_ok=True)

    args = [chrome_path, f"--remote-debugging-port={port}"]
    if user_data_dir:
        args.append(f"--user-data-dir={user_data_dir}")
    if extra_args:
        args.extend(extra_args)
    if headless:
        args.append("--headless=new")
    args.append("--window-size=1280,900")
    args.append("about:blank")

    log.info("Launching Chrome via CDP: %s", os.path.basename(chrome_path))
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )

    cdp_url = f"http://127.0.0.1:{port}"
    for _ in range(CDP_PROBE_ATTEMPTS):
        if proc.returncode is not None:
            raise RuntimeError(f"Chrome exited unexpectedly (code {proc.returncode})")
        try:
            await asyncio.to_thread(_probe, f"{cdp_url}/json/version")
            break
        except OSError:
            await asyncio.sleep(CDP_PROBE_INTERVAL)
    else:
        await _terminate(proc)
        raise RuntimeError("Chrome failed to start with remote debugging")

    try:
        browser = await playwright.chromium.connect_over_cdp(cdp_url)
    except Exception:
        await _terminate(proc)
        raise
    log.info("Connected to Chrome via CDP (port %d)", port)
    return browser, proc


async def terminate_chrome(proc) -> None:
    """Terminate a Chrome process started by :func:`launch_cdp_browser`."""
    try:
        await _terminate(proc)
    except ProcessLookupError:
        pass
