# engine/scheduler.py

import json
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from .db import Database
from .errors import StorageFailure, ValidationError
from .models import Answer, AnswerKind, Attachment, Card, ReviewSchedule, TagUsage, clean_tags
from .repository import ReviewRepository
from .sm2 import Rating, compute_next_schedule, new_schedule, review_priority
from .tags import DEFAULT_MAX_SIZE, TagCache
from ..utils.study_time import StudyTime, now as current_time


def _make_answer(answer: Any) -> Answer:
    if isinstance(answer, Answer):
        return answer
    if isinstance(answer, str):
        return Answer(AnswerKind.TEXT, answer)
    return Answer.from_dict(answer)


class Scheduler:
    """Entry point used by the UI.

    Ties a user action to the SM-2 engine, the review repository and the tag
    cache:
    - card create/edit initializes the schedule and records tag usage
    - a rating runs the SM-2 step and persists the new schedule
    - statistics are recomputed on demand
    """

    def __init__(self, db_path: str, tag_cache_size: int = DEFAULT_MAX_SIZE,
                 clock: Optional[Callable[[], datetime]] = None,
                 days: Optional[StudyTime] = None):
        self.db_path = db_path
        self.clock = clock or current_time
        self.db = Database(db_path)
        self.repo = ReviewRepository(self.db, self.clock, days)
        self.tags = TagCache(self.db, tag_cache_size, self.clock)

    def close(self) -> None:
        self.db.close()

    # Cards

    def create_card(self, question: str, answer: Any, tags: Optional[List[str]] = None) -> Card:
        """Create a card, its initial schedule and its tag usage in one step.

        Args:
            question: Question text (required)
            answer: Answer, answer dict, or plain text
            tags: Optional tag list

        Returns:
            The stored Card
        """
        if not question or not question.strip():
            raise ValidationError("Card is missing a question")
        answer = _make_answer(answer)
        if not answer.content.strip() and not answer.attachments:
            raise ValidationError("Card is missing an answer")

        now = self.clock()
        card = Card(
            id=str(uuid.uuid4()),
            question=question,
            answer=answer,
            tags=clean_tags(tags),
            created_at=now,
            updated_at=now,
        )

        with self.db.transaction():
            self.repo.add_card(card)
            self.repo.init_schedule(card.id)
            self.tags.use_many(card.tags, now)

        return card

    def create_cards(self, inputs: Iterable[Dict]) -> List[Card]:
        """Bulk create from dicts with question / answer / tags keys."""
        with self.db.transaction():
            return [self.create_card(item.get("question", ""), item.get("answer"), item.get("tags"))
                    for item in inputs]

    def update_card(self, card_id: str, question: Optional[str] = None,
                    answer: Optional[Dict] = None, tags: Optional[List[str]] = None) -> Card:
        """Edit a card. Answer fields (type/content/attachments) merge individually."""
        with self.db.transaction():
            card = self.repo.get_card(card_id)

            if question is not None:
                if not question.strip():
                    raise ValidationError("Card is missing a question")
                card.question = question

            if answer is not None:
                card.answer = self._merge_answer(card.answer, answer)
                if not card.answer.content.strip() and not card.answer.attachments:
                    raise ValidationError("Card is missing an answer")

            if tags is not None:
                card.tags = clean_tags(tags)

            now = self.clock()
            card.updated_at = max(now, card.created_at)
            self.repo.update_card(card)

            if tags is not None:
                self.tags.use_many(card.tags, now)

        return card

    def _merge_answer(self, current: Answer, changes: Any) -> Answer:
        if isinstance(changes, Answer):
            return changes
        if not isinstance(changes, dict):
            raise ValidationError("Answer update must be a dict")

        kind = current.kind
        raw_kind = changes.get("type", changes.get("kind"))
        if raw_kind is not None:
            try:
                kind = AnswerKind(raw_kind)
            except ValueError as e:
                raise ValidationError(f"Unknown answer type: {raw_kind!r}") from e

        attachments = current.attachments
        if changes.get("attachments") is not None:
            attachments = [a if isinstance(a, Attachment) else Attachment.from_dict(a)
                           for a in changes["attachments"]]

        content = changes.get("content", current.content)
        return Answer(kind, content if content is not None else current.content, attachments)

    def delete_card(self, card_id: str) -> None:
        """Delete a card and its schedule."""
        self.repo.delete_card(card_id)

    def get_card(self, card_id: str) -> Card:
        return self.repo.get_card(card_id)

    def list_cards(self) -> List[Card]:
        return self.repo.list_cards()

    def search_cards(self, query: str) -> List[Card]:
        return self.repo.search_cards(query)

    def cards_by_tag(self, tag: str) -> List[Card]:
        return self.repo.cards_by_tag(tag)

    def all_tags(self) -> List[str]:
        return self.repo.all_tags()

    # Reviews

    def record_review(self, card_id: str, rating: int, now: Optional[datetime] = None) -> ReviewSchedule:
        """Record a review result and update card scheduling.

        Args:
            card_id: Card being reviewed
            rating: 0-5 recall quality
            now: Timestamp of review (defaults to now)

        Returns:
            The card's new schedule
        """
        message = f"Rating must be an integer from 0 to 5, got {rating!r}"
        if isinstance(rating, bool):
            raise ValidationError(message)
        try:
            if rating != int(rating):
                raise ValidationError(message)
            rating = Rating(int(rating))
        except (TypeError, ValueError, OverflowError) as e:
            raise ValidationError(message) from e

        if now is None:
            now = self.clock()

        with self.db.transaction():
            # Raises NotFound before any schedule is touched
            self.repo.get_card(card_id)
            current = self.repo.find_schedule(card_id) or new_schedule(card_id, now)
            updated = compute_next_schedule(current, rating, now)
            self.repo.put_schedule(updated)

        return updated

    def due_cards(self, now: Optional[datetime] = None) -> List[Card]:
        return self.repo.due_cards(now)

    def build_session(self, now: Optional[datetime] = None, limit: Optional[int] = None) -> List[Card]:
        """Due cards, most urgent first (see review_priority)."""
        if now is None:
            now = self.clock()

        schedules = self.repo.due_schedules(now)
        # Stable sort keeps earliest-due order among equal priorities
        schedules.sort(key=lambda s: review_priority(s, now), reverse=True)
        if limit is not None:
            schedules = schedules[:limit]

        return self.repo.get_cards([s.card_id for s in schedules])

    def get_schedule(self, card_id: str) -> ReviewSchedule:
        return self.repo.get_schedule(card_id)

    # Statistics

    def completed_today_count(self, now: Optional[datetime] = None) -> int:
        return self.repo.completed_today_count(now)

    def retention_rate(self) -> float:
        return self.repo.retention_rate()

    def weekly_stats(self, now: Optional[datetime] = None) -> Dict:
        return self.repo.weekly_stats(now)

    def daily_stats(self, days: int = 7, now: Optional[datetime] = None) -> List[Dict]:
        return self.repo.daily_stats(days, now)

    def get_stats_summary(self, now: Optional[datetime] = None) -> Dict:
        """Dashboard numbers; each one falls back to zero if its query fails."""
        if now is None:
            now = self.clock()

        def safe(name, func, default):
            try:
                return func()
            except StorageFailure as e:
                print(f"Warning: could not load {name}: {e}")
                return default

        return {
            "dailyReviewCount": safe("completed today", lambda: self.completed_today_count(now), 0),
            "retentionRate": safe("retention rate", self.retention_rate, 0.0),
            "totalCards": safe("card count", self.repo.total_cards, 0),
            "dueCards": safe("due count", lambda: self.repo.due_count(now), 0),
            "weeklyProgress": safe(
                "weekly stats", lambda: self.weekly_stats(now),
                {"newCards": 0, "reviewsCompleted": 0, "averageRating": 0},
            ),
        }

    # Tags

    def use_tag(self, tag: str) -> Optional[TagUsage]:
        return self.tags.use(tag)

    def use_tags(self, tags: Iterable[str]) -> None:
        self.tags.use_many(tags)

    def tag_suggestions(self, query: str = "", limit: int = 10) -> List[TagUsage]:
        return self.tags.filter(query, limit)

    def initialize_tag_cache(self) -> None:
        """Merge tag usage derived from all stored cards into the cache."""
        self.tags.initialize_from_cards(self.repo.list_cards())

    # Import / export

    def export_cards(self) -> str:
        """All cards as a pretty-printed JSON array."""
        return json.dumps([card.to_dict() for card in self.repo.list_cards()],
                          ensure_ascii=False, indent=2)

    def import_cards(self, json_data: str) -> List[Card]:
        """Import cards exported by another instance.

        Every entry is validated before anything is written; one bad entry aborts
        the whole import. Cards whose id already exists are skipped.
        """
        try:
            raw = json.loads(json_data)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Import file is not valid JSON: {e}") from e
        if not isinstance(raw, list):
            raise ValidationError("Import file must contain a JSON array of cards")

        parsed = []
        for index, item in enumerate(raw):
            try:
                parsed.append(Card.from_dict(item))
            except ValidationError as e:
                raise ValidationError(f"Card #{index + 1}: {e}") from e

        now = self.clock()
        imported = []
        with self.db.transaction():
            for card in parsed:
                if card.id and self.repo.has_card(card.id):
                    print(f"[import] skipping existing card {card.id}")
                    continue

                card = replace(
                    card,
                    id=card.id or str(uuid.uuid4()),
                    created_at=min(card.created_at or now, now),
                    updated_at=now,
                )
                self.repo.add_card(card)
                self.repo.init_schedule(card.id)
                self.tags.use_many(card.tags, now)
                imported.append(card)

        return imported
