"""Structured JSONL event logging for login attempts."""
import json
import logging
import os
import time

log = logging.getLogger(__name__)


class LoginEventLogger:
    """Writes one JSON line per event to a per-run JSONL file.

    All logging is best-effort: methods never raise exceptions.
    Supports context-manager protocol for automatic close.

    Credentials and token values are never written; token events record
    the token length only.
    """

    def __init__(self, run_id: str, log_dir: str = "data/logs/login_events"):
        self._run_id = run_id
        self._f = None
        self.path = ""
        try:
            os.makedirs(log_dir, exist_ok=True)
            safe_run_id = run_id.replace("/", "_").replace("\\", "_")
            self.path = os.path.join(log_dir, f"login_{safe_run_id}.jsonl")
            self._f = open(self.path, "a", encoding="utf-8")
        except Exception as e:
            log.warning(f"LoginEventLogger: failed to open log file: {e}")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _write(self, event: dict):
        if self._f is None:
            return
        try:
            event["ts"] = time.time()
            event["run_id"] = self._run_id
            self._f.write(json.dumps(event, ensure_ascii=False) + "\n")
            self._f.flush()
        except Exception as e:
            log.warning(f"LoginEventLogger: write failed: {e}")

    def log_attempt_start(self, headless: bool, proxy: bool, recovery: bool):
        self._write({
            "event": "attempt_start",
            "headless": headless,
            "proxy": proxy,
            "recovery": recovery,
        })

    def log_step_result(self, step: str, required: bool, outcome: str,
                        duration: float, error: str | None = None):
        """Log the outcome of one flow step.

        Valid ``outcome`` values:
        - ``ok``: step completed (settle delay included in duration)
        - ``absent``: optional element not on the page, step skipped
        - ``ignored``: optional step failed, failure swallowed
        - ``skipped``: prerequisite step did not complete
        - ``failed``: required step failed, attempt aborted
        """
        self._write({
            "event": "step_result",
            "step": step,
            "required": required,
            "outcome": outcome,
            "duration": round(duration, 3),
            "error": error,
        })

    def log_token_captured(self, url: str, token_len: int):
        self._write({
            "event": "token_captured",
            "url": url,
            "token_len": token_len,
        })

    def log_attempt_end(self, success: bool, error: str | None, duration: float):
        self._write({
            "event": "attempt_end",
            "success": success,
            "error": error,
            "duration": round(duration, 3),
        })

    def close(self):
        if self._f is not None:
            try:
                self._f.flush()
                self._f.close()
            except Exception:
                pass
            self._f = None
