"""Small helpers shared by the endpoint wrappers."""

import time
import uuid


def create_random_string(length: int) -> str:
    """Return ``length`` random hex characters."""
    result = ""
    while len(result) < length:
        result += uuid.uuid4().hex
    return result[:length]


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as ``"850ms"``, ``"2s"`` or ``"1.5s"``."""
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    seconds = duration_ms / 1000
    if seconds.is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:.1f}s"


def current_time_millis() -> int:
    return time.time_ns() // 1_000_000


def generate_uuid() -> str:
    return str(uuid.uuid4())
