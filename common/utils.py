from __future__ import annotations

from datetime import datetime, timezone
import functools
import math
import time


def iso_now_ms() -> str:
    """UTC ISO-8601 timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def wrap_deg(angle: float) -> float:
    """Wrap an angle to [0, 360)."""
    a = math.fmod(float(angle), 360.0)
    if a < 0:
        a += 360.0
    return 0.0 if a >= 360.0 else a


def angle_diff_deg(a: float, b: float) -> float:
    """Signed smallest difference a - b in degrees, in [-180, 180)."""
    return (float(a) - float(b) + 180.0) % 360.0 - 180.0


def timer_ms(func):
    """
    Decorator that returns (result, elapsed_ms) for benchmarking small functions.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        t0 = time.perf_counter()
        out = func(*args, **kwargs)
        dt_ms = (time.perf_counter() - t0) * 1e3
        return out, dt_ms
    return wrapper
