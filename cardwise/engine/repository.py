"""Card and review schedule storage with due-set and statistics queries."""

from datetime import datetime
from typing import Callable, Dict, List, Optional

from .db import Database
from .errors import AlreadyExists, NotFound
from .models import Answer, Card, ReviewSchedule
from .sm2 import Rating, new_schedule, round_half_up
from ..utils.study_time import StudyTime, from_ts, now as current_time, study_time, to_ts


class ReviewRepository:
    """Owns the cards and review_schedules collections.

    Cards and schedules live in separate tables linked by ``card_id``; a schedule
    never embeds its card. Aggregate statistics are recomputed from range queries
    on every call, which is fine for a personal collection of a few thousand cards.
    """

    def __init__(self, db: Database, clock: Optional[Callable[[], datetime]] = None,
                 days: Optional[StudyTime] = None):
        self.db = db
        self.clock = clock or current_time
        self.days = days or study_time

    # Row conversion

    def _card_from_row(self, row: Dict) -> Card:
        return Card(
            id=row["id"],
            question=row["question"],
            answer=Answer.from_dict(row["answer"]),
            tags=row["tags"],
            created_at=from_ts(row["created_ts"]),
            updated_at=from_ts(row["updated_ts"]),
        )

    def _card_to_row(self, card: Card) -> Dict:
        return {
            "id": card.id,
            "question": card.question,
            "answer": card.answer.to_dict(),
            "tags": list(card.tags),
            "created_ts": to_ts(card.created_at),
            "updated_ts": to_ts(card.updated_at),
        }

    def _schedule_from_row(self, row: Dict) -> ReviewSchedule:
        return ReviewSchedule(
            card_id=row["card_id"],
            due_date=from_ts(row["due_ts"]),
            interval=row["interval_days"],
            repetitions=row["repetitions"],
            ease_factor=row["ease"],
            performance_history=row["history"],
            last_reviewed=from_ts(row["last_review_ts"]),
        )

    def _schedule_to_row(self, schedule: ReviewSchedule) -> Dict:
        return {
            "card_id": schedule.card_id,
            "due_ts": to_ts(schedule.due_date),
            "interval_days": schedule.interval,
            "repetitions": schedule.repetitions,
            "ease": schedule.ease_factor,
            "history": list(schedule.performance_history),
            "last_review_ts": to_ts(schedule.last_reviewed) if schedule.last_reviewed else None,
        }

    # Cards

    def add_card(self, card: Card) -> Card:
        """Store a new card. Raises AlreadyExists if the id is taken."""
        if not self.db.insert_card(self._card_to_row(card)):
            raise AlreadyExists("Card", card.id)
        return card

    def get_card(self, card_id: str) -> Card:
        row = self.db.get_card(card_id)
        if row is None:
            raise NotFound("Card", card_id)
        return self._card_from_row(row)

    def has_card(self, card_id: str) -> bool:
        return self.db.get_card(card_id) is not None

    def update_card(self, card: Card) -> Card:
        """Replace a stored card. Raises NotFound for unknown ids."""
        with self.db.transaction():
            if self.db.get_card(card.id) is None:
                raise NotFound("Card", card.id)
            self.db.put_card(self._card_to_row(card))
        return card

    def delete_card(self, card_id: str) -> None:
        """Delete a card together with its schedule, atomically."""
        with self.db.transaction():
            self.db.delete_schedule(card_id)
            if not self.db.delete_card(card_id):
                # Raising inside the transaction rolls back the schedule delete too
                raise NotFound("Card", card_id)

    def list_cards(self) -> List[Card]:
        return [self._card_from_row(row) for row in self.db.list_cards()]

    def total_cards(self) -> int:
        return self.db.count_cards()

    def search_cards(self, query: str) -> List[Card]:
        """Case-insensitive match against question, answer content and tags."""
        needle = query.strip().lower()
        cards = self.list_cards()
        if not needle:
            return cards
        return [
            card for card in cards
            if needle in card.question.lower()
            or needle in card.answer.content.lower()
            or any(needle in tag.lower() for tag in card.tags)
        ]

    def cards_by_tag(self, tag: str) -> List[Card]:
        wanted = tag.strip().lower()
        return [card for card in self.list_cards()
                if any(t.lower() == wanted for t in card.tags)]

    def all_tags(self) -> List[str]:
        """Distinct tags across all cards, sorted."""
        tags = set()
        for card in self.list_cards():
            tags.update(card.tags)
        return sorted(tags)

    # Schedules

    def init_schedule(self, card_id: str) -> ReviewSchedule:
        """Create the initial schedule for a card: due now, interval 1, ease 2.5.

        Raises AlreadyExists if the card already has a schedule.
        """
        schedule = new_schedule(card_id, self.clock())
        if not self.db.insert_schedule(self._schedule_to_row(schedule)):
            raise AlreadyExists("ReviewSchedule", card_id)
        return schedule

    def get_schedule(self, card_id: str) -> ReviewSchedule:
        row = self.db.get_schedule(card_id)
        if row is None:
            raise NotFound("ReviewSchedule", card_id)
        return self._schedule_from_row(row)

    def find_schedule(self, card_id: str) -> Optional[ReviewSchedule]:
        """Like get_schedule, but returns None instead of raising."""
        row = self.db.get_schedule(card_id)
        return self._schedule_from_row(row) if row else None

    def put_schedule(self, schedule: ReviewSchedule) -> ReviewSchedule:
        self.db.put_schedule(self._schedule_to_row(schedule))
        return schedule

    def all_cards_with_schedule(self) -> List[Dict]:
        """Every card paired with its schedule (None when missing)."""
        schedules = {s["card_id"]: self._schedule_from_row(s) for s in self.db.list_schedules()}
        return [{"card": card, "schedule": schedules.get(card.id)} for card in self.list_cards()]

    # Due set

    def due_schedules(self, now: Optional[datetime] = None) -> List[ReviewSchedule]:
        if now is None:
            now = self.clock()
        return [self._schedule_from_row(row) for row in self.db.schedules_due(to_ts(now))]

    def due_cards(self, now: Optional[datetime] = None) -> List[Card]:
        """Cards whose schedule has due_date <= now, earliest due first."""
        return self.get_cards([s.card_id for s in self.due_schedules(now)])

    def get_cards(self, card_ids: List[str]) -> List[Card]:
        """Cards for the given ids in the same order; unknown ids are left out."""
        return [self._card_from_row(row) for row in self.db.get_cards(card_ids)]

    def due_count(self, now: Optional[datetime] = None) -> int:
        if now is None:
            now = self.clock()
        return self.db.count_due(to_ts(now))

    # Statistics

    def completed_today_count(self, now: Optional[datetime] = None) -> int:
        """Schedules last reviewed within today's bounds (inclusive)."""
        start, end = self.days.day_bounds(now or self.clock())
        return self.db.count_reviewed_between(to_ts(start), to_ts(end))

    def retention_rate(self) -> float:
        """Percentage of all historical ratings that passed (>= 3), one decimal.

        Returns 0 when nothing has been reviewed yet.
        """
        total = 0
        passed = 0
        for row in self.db.list_schedules():
            history = row["history"] or []
            total += len(history)
            passed += sum(1 for rating in history if rating >= Rating.HARD)

        if total == 0:
            return 0.0

        return round_half_up(passed / total * 100, 1)

    def _activity(self, start: datetime, end: datetime) -> Dict:
        """newCards / reviewsCompleted / averageRating between two inclusive bounds."""
        start_ts, end_ts = to_ts(start), to_ts(end)
        new_cards = len(self.db.cards_created_between(start_ts, end_ts))
        reviewed = self.db.schedules_reviewed_between(start_ts, end_ts)
        return self._summarize(new_cards, reviewed)

    def _summarize(self, new_cards: int, reviewed: List[Dict]) -> Dict:
        # The last history entry is the rating given at last_review_ts
        last_ratings = [row["history"][-1] for row in reviewed if row["history"]]
        average = sum(last_ratings) / len(last_ratings) if last_ratings else 0
        return {
            "newCards": new_cards,
            "reviewsCompleted": len(reviewed),
            "averageRating": round_half_up(average, 1),
        }

    def weekly_stats(self, now: Optional[datetime] = None) -> Dict:
        """Activity for the current Monday-to-Sunday week."""
        start, end = self.days.week_bounds(now or self.clock())
        return self._activity(start, end)

    def daily_stats(self, days: int = 7, now: Optional[datetime] = None) -> List[Dict]:
        """Per-day activity for the last ``days`` days, oldest first, today included."""
        if days <= 0:
            return []

        bounds = self.days.recent_days(days, now or self.clock())
        window_start, window_end = to_ts(bounds[0][0]), to_ts(bounds[-1][1])

        # One range query per collection, then bucket in memory
        created = [row["created_ts"] for row in self.db.cards_created_between(window_start, window_end)]
        reviewed = self.db.schedules_reviewed_between(window_start, window_end)

        stats = []
        for start, end in bounds:
            start_ts, end_ts = to_ts(start), to_ts(end)
            new_cards = sum(1 for ts in created if start_ts <= ts <= end_ts)
            day_reviews = [row for row in reviewed if start_ts <= row["last_review_ts"] <= end_ts]
            entry = {"date": start.strftime("%Y-%m-%d")}
            entry.update(self._summarize(new_cards, day_reviews))
            stats.append(entry)
        return stats
