from __future__ import annotations

import threading
import time
from collections import defaultdict
from typing import Dict, Optional


_lock = threading.Lock()
_counters: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
_timers: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))


def increment(metric: str, label: str, value: int = 1) -> None:
    with _lock:
        _counters[metric][label] += value


def observe_latency(metric: str, label: str, duration_seconds: float) -> None:
    with _lock:
        _timers[metric]["sum"] += duration_seconds
        _timers[metric]["count"] += 1
        _timers[metric + ":per_label"][label] += duration_seconds


def snapshot() -> Dict[str, Dict[str, float]]:
    with _lock:
        counters_copy = {k: dict(v) for k, v in _counters.items()}
        timers_copy = {k: dict(v) for k, v in _timers.items()}
    return {"counters": counters_copy, "timers": timers_copy}


def reset() -> None:
    with _lock:
        _counters.clear()
        _timers.clear()


class EngineCallTimer:
    """Times one engine call and counts it under ``ok`` or ``error``."""

    def __init__(self, operation: str, engine: str) -> None:
        self.operation = operation
        self.label = f"engine={engine} op={operation}"
        self.start = time.perf_counter()

    def __enter__(self) -> "EngineCallTimer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, traceback) -> Optional[bool]:
        observe_latency("engine_call_seconds", self.label, time.perf_counter() - self.start)
        outcome = "error" if exc_type is not None else "ok"
        increment("engine_calls_total", f"{self.label} outcome={outcome}")
        return None
