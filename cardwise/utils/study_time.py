"""Utilities for day and week boundaries used by review statistics."""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple


def now() -> datetime:
    """Current local time truncated to whole seconds (the store's resolution)."""
    return datetime.now().replace(microsecond=0)


def to_ts(dt: datetime) -> int:
    """Convert a naive local datetime to a Unix timestamp."""
    return int(dt.timestamp())


def from_ts(ts: Optional[int]) -> Optional[datetime]:
    """Convert a Unix timestamp back to a naive local datetime."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts)


class StudyTime:
    """Utility class for calendar days and weeks in local time."""

    def __init__(self, rollover_hour: int = 0):
        """
        Initialize study time utilities.

        Args:
            rollover_hour: Hour of day when the study day rolls over (default midnight)
        """
        if not 0 <= rollover_hour <= 23:
            raise ValueError(f"rollover_hour must be between 0 and 23, got {rollover_hour}")
        self.rollover_hour = rollover_hour

    def start_of_day(self, moment: Optional[datetime] = None) -> datetime:
        """First second of the study day containing ``moment``."""
        if moment is None:
            moment = now()

        start = moment.replace(hour=self.rollover_hour, minute=0, second=0, microsecond=0)
        if moment < start:
            start -= timedelta(days=1)
        return start

    def end_of_day(self, moment: Optional[datetime] = None) -> datetime:
        """Last second of the study day containing ``moment``."""
        return self.start_of_day(moment) + timedelta(days=1) - timedelta(seconds=1)

    def day_bounds(self, moment: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """Inclusive (start, end) of the study day containing ``moment``."""
        return self.start_of_day(moment), self.end_of_day(moment)

    def week_bounds(self, moment: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """
        Inclusive bounds of the week containing ``moment``.

        Weeks start on Monday 00:00:00 and end on Sunday 23:59:59.
        """
        day_start = self.start_of_day(moment)
        week_start = day_start - timedelta(days=day_start.weekday())
        week_end = week_start + timedelta(days=7) - timedelta(seconds=1)
        return week_start, week_end

    def recent_days(self, days: int, moment: Optional[datetime] = None) -> List[Tuple[datetime, datetime]]:
        """
        Bounds of the last ``days`` study days, oldest first, today included.

        Args:
            days: Number of days to return
            moment: Reference time (defaults to now)

        Returns:
            List of inclusive (start, end) tuples
        """
        today_start = self.start_of_day(moment)
        bounds = []
        for offset in range(days - 1, -1, -1):
            # Calendar arithmetic on naive datetimes stays on local midnight across DST
            start = today_start - timedelta(days=offset)
            bounds.append((start, start + timedelta(days=1) - timedelta(seconds=1)))
        return bounds


# Global instance with default settings
study_time = StudyTime()
