"""
Terminal tap simulator: type (or wedge-scan) one tag UID per line and it is
posted to the /scan endpoint. Keeps its own cooldown independent of the server.

    python -m backend.terminal
"""

import sys
import time

import requests

from backend.config import API_URL, REQUEST_TIMEOUT_SECONDS, SCAN_COOLDOWN_SECONDS
from backend.debounce import Debouncer

READY_BANNER = "🚀 NFC Clock-in Terminal Ready\n📡 Tap a card (or type UID)...\n"
NEXT_PROMPT = "📡 Tap next card:"


def format_result(uid: str, data: dict) -> str:
    action = str(data.get("action", "")).replace("_", " ")
    return (
        f"✅ {data.get('owner_name')} (UID: {uid}) {action} | "
        f"Clock In: {data.get('clockin_time') or '-'} | "
        f"Clock Out: {data.get('clockout_time') or '-'} | "
        f"Date: {data.get('date')}\n"
    )


def _error_message(res: requests.Response) -> str | None:
    try:
        body = res.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error") or body.get("detail")
    return None


def handle_line(
    line: str,
    *,
    debouncer: Debouncer,
    session: requests.Session,
    api_url: str = API_URL,
    now: float | None = None,
) -> str | None:
    """Return the text to print for one input line, or None for blank input."""
    uid = line.strip()
    if not uid:
        return None

    stamp = time.time() if now is None else now
    if not debouncer.accept(uid, stamp):
        remaining = debouncer.retry_after(uid, stamp)
        return f"⏳ Wait {remaining}s before scanning UID {uid} again.\n"

    try:
        res = session.post(api_url, json={"tag_uid": uid}, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        return f"❌ Request failed: {e}"

    if not res.ok:
        message = _error_message(res)
        if message:
            return f"❌ API Error: {message}"
        return f"❌ Request failed: HTTP {res.status_code}"

    try:
        data = res.json()
    except ValueError:
        return f"❌ Request failed: HTTP {res.status_code} returned a non-JSON body"
    return format_result(uid, data)


def main() -> None:
    debouncer = Debouncer(SCAN_COOLDOWN_SECONDS)
    print(READY_BANNER, flush=True)
    with requests.Session() as session:
        try:
            for line in sys.stdin:
                message = handle_line(line, debouncer=debouncer, session=session)
                if message is None:
                    continue
                print(message, flush=True)
                print(NEXT_PROMPT, flush=True)
        except KeyboardInterrupt:
            return


if __name__ == "__main__":
    main()
