from __future__ import annotations

import threading
import time
from typing import Dict


_lock = threading.Lock()
_counters: Dict[str, int] = {}
_started_ms = int(time.time() * 1000)


def inc_counter(name: str, value: int = 1) -> None:
    n = str(name or "").strip()
    if not n:
        return
    with _lock:
        _counters[n] = int(_counters.get(n, 0)) + int(value)


def get_counter(name: str) -> int:
    with _lock:
        return int(_counters.get(str(name), 0))


def reset() -> None:
    global _started_ms
    with _lock:
        _counters.clear()
        _started_ms = int(time.time() * 1000)


def snapshot() -> dict:
    with _lock:
        now = int(time.time() * 1000)
        return {
            "ts_ms": now,
            "started_ms": int(_started_ms),
            "uptime_ms": now - int(_started_ms),
            "counters": dict(_counters),
        }
