"""
Epoch-second helpers. Every time column is stored as integer seconds.
"""
import time
from datetime import datetime, timezone
from typing import Optional, Union

Timestamp = Union[int, float, datetime]


def now_epoch() -> int:
    """Current time in whole epoch seconds."""
    return int(time.time())


def to_epoch(value: Optional[Timestamp]) -> Optional[int]:
    """Convert a datetime (naive values are treated as UTC) or number to epoch seconds."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return int(value)

