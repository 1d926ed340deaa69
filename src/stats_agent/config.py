"""Defaults and invocation-argument parsing for stats-agent."""

import logging

log = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5  # Seconds between daemon ticks
DEFAULT_WATCH_INTERVAL = 2
WARMUP_DELAY = 0.5  # Seconds between the throw-away CPU refresh and the first sample
TOP_PROCESSES = 10
MIN_POLL_RATE = 0.1


def parse_interval(text: str | None, default: int = DEFAULT_INTERVAL) -> int:
    """
    Parse a whole number of seconds, falling back to ``default``.

    Missing, non-numeric or negative values never fail the invocation.
    """
    if text is None:
        return default
    try:
        value = int(text.strip())
    except ValueError:
        log.warning("invalid interval %r, using default %ss", text, default)
        return default
    if value < 0:
        log.warning("negative interval %r, using default %ss", text, default)
        return default
    return value
