import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_ms() -> int:
    """Wall clock in epoch milliseconds, the unit clients use for cursors."""
    return int(time.time() * 1000)
