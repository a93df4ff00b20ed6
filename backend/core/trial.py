"""
Trial clock.

Pure time comparisons over a trial-expiry timestamp. The boundary is
inclusive: a trial whose end equals "now" is already expired.
"""

import logging
import math
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from core.clock import utc_now

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Normalize a datetime or ISO-8601 string to an aware UTC datetime.

    Naive values are taken to be UTC. Malformed strings are treated as absent.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            logger.warning("Ignoring malformed trial timestamp: %r", value)
            return None
    else:
        logger.warning("Ignoring trial timestamp of type %s", type(value).__name__)
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def is_expired(trial_ends_at: Any, now: Optional[datetime] = None) -> bool:
    """True when a trial end is set and is at or before *now*."""
    ends_at = parse_timestamp(trial_ends_at)
    if ends_at is None:
        return False
    return ends_at <= (now or utc_now())


def days_left(trial_ends_at: Any, now: Optional[datetime] = None) -> int:
    """Whole days remaining, rounded up and never negative."""
    ends_at = parse_timestamp(trial_ends_at)
    if ends_at is None:
        return 0
    remaining = ends_at - (now or utc_now())
    return max(0, math.ceil(remaining / ONE_DAY))
