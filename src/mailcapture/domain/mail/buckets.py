"""Weekly bucket naming.

Buckets are keyed by UTC ISO week and ISO week-numbering year, rendered as
``w<week>-<year>`` without zero padding (``w7-2024``).
"""

from datetime import datetime, timezone
from typing import Optional, Tuple


def bucket_name(year: int, week: int) -> str:
    return f"w{week}-{year}"


def bucket_name_for(moment: datetime) -> str:
    """Bucket holding a given instant."""
    year, week, _ = moment.astimezone(timezone.utc).isocalendar()
    return bucket_name(year, week)


def current_bucket(now: Optional[datetime] = None) -> Tuple[int, int]:
    """(year, week) of the bucket for the present UTC instant."""
    now = now or datetime.now(timezone.utc)
    year, week, _ = now.astimezone(timezone.utc).isocalendar()
    return year, week
