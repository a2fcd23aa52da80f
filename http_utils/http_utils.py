from __future__ import annotations

import time, random, email.utils, requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from datetime import datetime, timezone

#status class
CODES = {
    "COMPLETE": {200, 201},
    "MORE":     {202},
    "AUTH":     {401},
}
def is_complete(s): return s in CODES["COMPLETE"]
def is_more(s): return s in CODES["MORE"]
def is_auth(s): return s in CODES["AUTH"]
def is_success(s): return 200 <= s < 300

#Backoff helpers
def backoff_delay(attempt: int, base: float) -> float:
    if base <= 0:
        return 0.0
    return attempt * base + random.random() * 0.3

def parse_retry_after(header_val):
    if header_val is None:
        return None
    try:
        return float(header_val)  # seconds
    except (TypeError, ValueError):
        try:
            dt = email.utils.parsedate_to_datetime(header_val)
        except (TypeError, ValueError):
            return None
        if dt is None:
            return None
        now = datetime.now(dt.tzinfo or timezone.utc)
        return max(0.0, (dt - now).total_seconds())

def retry_delay(attempt: int, base: float, resp=None, max_delay=None) -> float:
    if base <= 0:
        return 0.0
    ra = parse_retry_after(resp.headers.get("Retry-After")) if resp is not None else None
    delay = ra if ra and ra > 0 else backoff_delay(attempt, base)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay

def sleep_before_attempt(attempt: int, base: float, resp=None, *, max_delay=None, cancel_event=None) -> bool:
    """
    Wait before retry `attempt`; Retry-After from the last response wins,
    capped at `max_delay`. With `cancel_event` the wait ends as soon as it
    is set. Returns True if it was set.
    """
    delay = retry_delay(attempt, base, resp, max_delay)
    if cancel_event is not None:
        return cancel_event.wait(delay) if delay > 0 else cancel_event.is_set()
    if delay > 0:
        time.sleep(delay)
    return False

# Session factory
def new_session(user_agent="onedrive-client"):
    s = requests.Session()
    # connection/read errors only; status codes are interpreted by the caller
    retry = Retry(
        total=5,
        connect=5,
        read=5,
        status=0,
        backoff_factor=0.6,
        allowed_methods=None,   # retry all methods on conn/read err
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    ad = HTTPAdapter(max_retries=retry, pool_connections=50, pool_maxsize=50)
    s.mount("https://", ad); s.mount("http://", ad)
    s.headers.update({"User-Agent": user_agent})
    return s

def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
