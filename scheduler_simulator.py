#!/usr/bin/env python3
"""
Time-based simulation of the review scheduler.
Steps a simulated clock day by day, reviews whatever is due with a scripted
rating pattern, and prints how intervals and ease develop.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from cardwise.engine.scheduler import Scheduler


class TimeSimulator:
    """Simulates time progression for testing scheduler behavior."""

    def __init__(self, start=None):
        self.current_time = start or datetime.now().replace(hour=9, minute=0, second=0, microsecond=0)

    def __call__(self):
        return self.current_time

    def advance_hours(self, hours):
        self.current_time += timedelta(hours=hours)
        return self.current_time

    def advance_days(self, days):
        """Advance simulated time by days."""
        return self.advance_hours(days * 24)

    def format_time(self, moment=None):
        return (moment or self.current_time).strftime("%Y-%m-%d %H:%M")


# Rating patterns per card: reviews beyond the list repeat the last rating
PATTERNS = {
    "always perfect": [5],
    "steady good": [4],
    "struggling": [3, 1, 2, 3, 4, 1, 3],
    "forgets once": [4, 5, 5, 0, 4, 4],
}


def run_simulation(days=60):
    clock = TimeSimulator()
    temp_dir = tempfile.mkdtemp()
    db_path = os.path.join(temp_dir, "simulation.sqlite")
    scheduler = Scheduler(db_path, clock=clock)

    try:
        cards = {}
        for name in PATTERNS:
            card = scheduler.create_card(name, f"answer for {name}", ["simulation"])
            cards[card.id] = name
        reviews_done = {card_id: 0 for card_id in cards}

        print(f"🧪 Simulating {days} days from {clock.format_time()}")
        print("=" * 60)

        for day in range(days):
            session = scheduler.build_session()
            for card in session:
                pattern = PATTERNS[cards[card.id]]
                index = min(reviews_done[card.id], len(pattern) - 1)
                rating = pattern[index]
                schedule = scheduler.record_review(card.id, rating)
                reviews_done[card.id] += 1

                print(f"Day {day:3d} | {cards[card.id]:<15} rated {rating} -> "
                      f"interval {schedule.interval:3d}d, ease {schedule.ease_factor:.2f}, "
                      f"next {clock.format_time(schedule.due_date)}")

            clock.advance_days(1)

        print("=" * 60)
        summary = scheduler.get_stats_summary()
        print(f"📊 Retention: {summary['retentionRate']}% over {sum(reviews_done.values())} reviews")
        for card_id, name in cards.items():
            schedule = scheduler.get_schedule(card_id)
            print(f"  - {name:<15} reps {schedule.repetitions}, interval {schedule.interval}d, "
                  f"history {schedule.performance_history}")
    finally:
        scheduler.close()
        if os.path.exists(db_path):
            os.unlink(db_path)


if __name__ == "__main__":
    run_simulation(int(sys.argv[1]) if len(sys.argv) > 1 else 60)
