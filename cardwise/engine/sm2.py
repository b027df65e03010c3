"""SM-2 spaced repetition algorithm.

Pure functions: no database access, no clock reads unless ``now`` is omitted.
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Optional

from .models import ReviewSchedule
from ..utils.study_time import now as current_time

INITIAL_INTERVAL = 1        # Days
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MARGINAL_MULTIPLIER = 0.8   # Interval shrink on a rating of 2
MARGINAL_EASE_PENALTY = 0.15
FAIL_EASE_PENALTY = 0.2


class Rating(IntEnum):
    """Self-assessed recall quality, 0 (blackout) to 5 (perfect)."""
    BLACKOUT = 0
    WRONG = 1
    MARGINAL = 2
    HARD = 3
    GOOD = 4
    PERFECT = 5

    @property
    def passed(self) -> bool:
        return self >= Rating.HARD


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positive values (2.5 -> 3, not 2)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def new_schedule(card_id: str, now: Optional[datetime] = None) -> ReviewSchedule:
    """Default schedule for a card that has never been reviewed; due immediately."""
    if now is None:
        now = current_time()
    return ReviewSchedule(
        card_id=card_id,
        due_date=now,
        interval=INITIAL_INTERVAL,
        repetitions=0,
        ease_factor=DEFAULT_EASE_FACTOR,
        performance_history=[],
    )


def compute_next_schedule(current: ReviewSchedule, rating: int,
                          now: Optional[datetime] = None) -> ReviewSchedule:
    """Calculate the schedule that follows a review.

    Args:
        current: Schedule before the review
        rating: Recall quality 0-5
        now: Review time (defaults to now)

    Returns:
        A new ReviewSchedule; ``current`` is left untouched.
    """
    rating = Rating(rating)
    if now is None:
        now = current_time()

    interval = current.interval
    repetitions = current.repetitions
    ease = current.ease_factor

    if rating >= Rating.HARD:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = 6
        else:
            interval = int(round_half_up(interval * ease))
        repetitions += 1
        miss = 5 - rating
        ease = ease + (0.1 - miss * (0.08 + miss * 0.02))
    elif rating == Rating.MARGINAL:
        if repetitions > 0:
            interval = max(1, int(round_half_up(interval * MARGINAL_MULTIPLIER)))
        else:
            interval = 1
        repetitions += 1
        ease = max(MIN_EASE_FACTOR, ease - MARGINAL_EASE_PENALTY)
    else:
        interval = INITIAL_INTERVAL
        repetitions = 0
        ease = max(MIN_EASE_FACTOR, ease - FAIL_EASE_PENALTY)

    ease = max(MIN_EASE_FACTOR, ease)

    return replace(
        current,
        interval=interval,
        repetitions=repetitions,
        ease_factor=round_half_up(ease, 2),
        due_date=now + timedelta(days=interval),
        last_reviewed=now,
        performance_history=current.performance_history + [int(rating)],
    )


def review_priority(schedule: ReviewSchedule, now: Optional[datetime] = None) -> int:
    """Sort key for presenting cards: overdue first (most overdue highest), then soonest due."""
    if now is None:
        now = current_time()

    days_until_due = math.ceil((schedule.due_date - now).total_seconds() / 86400)

    if days_until_due <= 0:
        return 1000 + abs(days_until_due)

    return 100 - days_until_due
