from __future__ import annotations

from .models import Time

SESSION_COOKIE = "PHPSESSID"


def normalize_session_id(session_id: str) -> str:
    """Strip a leading ``PHPSESSID=`` so both the cookie and the bare id are accepted."""
    prefix = f"{SESSION_COOKIE}="
    if session_id.startswith(prefix):
        return session_id[len(prefix) :]
    return session_id


def seconds_to_time(seconds: float) -> Time:
    """Convert a run time in seconds into the structured form used by run settings.

    Args:
        seconds (float): Non-negative duration in seconds.

    Returns:
        Time: Hours, minutes, seconds and milliseconds.

    Raises:
        ValueError: If ``seconds`` is negative.
    """
    if seconds < 0:
        raise ValueError(f"Run time cannot be negative: {seconds!r}")
    total_ms = round(seconds * 1000)
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, ms = divmod(rest, 1000)
    return Time(hour=hours, minute=minutes, second=secs, millisecond=ms)
