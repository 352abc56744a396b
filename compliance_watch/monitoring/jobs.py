from __future__ import annotations

import json
import threading
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.error import HTTPError
from urllib.parse import quote
from urllib.request import Request, urlopen

from compliance_watch.common.local_bind import ensure_local_url
from compliance_watch.monitoring.errors import CheckCallbackError

if TYPE_CHECKING:
    from compliance_watch.monitoring.factory import Monitor


CALLBACK_TIMEOUT_S = 300.0

_default_monitor: Optional["Monitor"] = None
_default_lock = threading.Lock()


def get_default_monitor() -> "Monitor":
    global _default_monitor
    with _default_lock:
        if _default_monitor is None:
            from compliance_watch.config import load_monitor_config
            from compliance_watch.monitoring.factory import build_monitor

            _default_monitor = build_monitor(load_monitor_config())
        return _default_monitor


def check_run_url(api_url: str, target_id: str) -> str:
    return f"{api_url.rstrip('/')}/targets/{quote(target_id, safe='')}/check/run"


def run_check_now(target_id: str, api_url: str, timeout_s: float = CALLBACK_TIMEOUT_S) -> Dict[str, Any]:
    # Targets, sessions and snapshots live in the API process; the worker
    # asks it to run the check so admission happens against that state.
    url = check_run_url(api_url, target_id)
    ensure_local_url(url)
    request = Request(url, data=b"", method="POST")
    try:
        with urlopen(request, timeout=timeout_s) as response:  # nosec B310 - local-only enforced
            payload = response.read()
    except HTTPError as exc:
        raise CheckCallbackError(target_id, exc.code, exc.read().decode("utf-8", "replace")) from exc
    if not payload:
        return {}
    return json.loads(payload)
