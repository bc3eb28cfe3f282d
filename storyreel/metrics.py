"""
In-memory pipeline metrics.

Counters for runs, paths and failure kinds, per-stage durations, and a short
trail of recent failures. Everything lives in process memory and is gone
after a restart.
"""

import time
import threading
from typing import Dict, List
from collections import defaultdict, deque

_lock = threading.Lock()

_counters: Dict[str, int] = defaultdict(int)
_gauges: Dict[str, float] = {}

# Stage durations in ms, newest last
MAX_SAMPLES = 100
_stage_durations: Dict[str, deque] = defaultdict(lambda: deque(maxlen=MAX_SAMPLES))

MAX_ERRORS = 50
_failures: deque = deque(maxlen=MAX_ERRORS)


def inc_counter(name: str, amount: int = 1):
    """Bump a counter such as 'requests.pipeline' or 'errors.MISSING_ASSET'."""
    with _lock:
        _counters[name] += amount


def record_latency(stage: str, duration_ms: float):
    with _lock:
        _stage_durations[stage].append(duration_ms)


def set_gauge(name: str, value: float):
    with _lock:
        _gauges[name] = value


def record_error(stage: str, error_type: str, message: str, job_id: str = ""):
    """Remember which stage a run died in and why."""
    with _lock:
        _failures.append({
            "timestamp": time.time(),
            "job_id": job_id,
            "stage": stage,
            "error_type": error_type,
            "message": message[:300],
        })


def reset():
    with _lock:
        _counters.clear()
        _gauges.clear()
        _stage_durations.clear()
        _failures.clear()


def _summarize(samples) -> dict:
    ordered = sorted(samples)
    n = len(ordered)
    return {
        "count": n,
        "p50": ordered[n // 2],
        "p95": ordered[min(n - 1, int(n * 0.95))],
        "max": ordered[-1],
        "avg": sum(ordered) / n,
    }


def get_snapshot() -> dict:
    """Everything collected so far, shaped for the /metrics endpoint."""
    now = time.time()

    with _lock:
        started = _counters.get("requests.pipeline", 0)
        completed = _counters.get("pipeline.completed", 0)

        failures_by_stage: Dict[str, int] = defaultdict(int)
        for failure in _failures:
            failures_by_stage[failure["stage"]] += 1

        recent: List[dict] = list(_failures)[-10:]

        return {
            "timestamp": now,
            "uptime_seconds": now - _gauges.get("start_time", now),
            "counters": dict(_counters),
            "gauges": dict(_gauges),
            "pipeline": {
                "started": started,
                "completed": completed,
                "success_rate": round(completed / started * 100, 2) if started else None,
            },
            "stage_latency_ms": {
                stage: _summarize(samples)
                for stage, samples in _stage_durations.items()
                if samples
            },
            "failures_by_stage": dict(failures_by_stage),
            "recent_errors": recent,
        }
