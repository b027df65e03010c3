#!/usr/bin/env python3
"""
End-to-end tests for the review flow through the Scheduler:
card creation, ratings, session building, editing and statistics.
"""

import os
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from cardwise.engine.errors import NotFound, ValidationError
from cardwise.engine.models import AnswerKind
from cardwise.engine.scheduler import Scheduler
from cardwise.utils.study_time import StudyTime

START = datetime(2024, 1, 1, 9, 0, 0)


class FakeClock:
    """Settable clock so due dates can be stepped through deterministically."""

    def __init__(self, moment):
        self.moment = moment

    def __call__(self):
        return self.moment

    def advance(self, **kwargs):
        self.moment += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def scheduler(clock):
    temp_dir = tempfile.mkdtemp()
    s = Scheduler(os.path.join(temp_dir, "flow.sqlite"), tag_cache_size=5, clock=clock)
    yield s
    s.close()


def test_create_card(scheduler):
    card = scheduler.create_card("der Hund", "the dog", ["German", " a1 ", "german"])

    assert card.answer.kind == AnswerKind.TEXT
    assert card.tags == ["German", "a1"]
    assert card.created_at == START

    schedule = scheduler.get_schedule(card.id)
    assert schedule.due_date == START
    assert schedule.repetitions == 0

    # Equal counts and times: the most recently used tag ranks first
    assert [u.tag for u in scheduler.tag_suggestions("")] == ["a1", "german"]
    assert scheduler.due_cards()[0].id == card.id


def test_create_card_validation(scheduler):
    with pytest.raises(ValidationError):
        scheduler.create_card("   ", "answer")
    with pytest.raises(ValidationError):
        scheduler.create_card("question", "  ")
    with pytest.raises(ValidationError):
        scheduler.create_card("question", {"type": "video", "content": "x"})
    assert scheduler.list_cards() == []


def test_create_cards_bulk(scheduler):
    cards = scheduler.create_cards([
        {"question": "eins", "answer": "one", "tags": ["numbers"]},
        {"question": "zwei", "answer": {"type": "markdown", "content": "**two**"}},
    ])

    assert len(cards) == 2
    assert cards[1].answer.kind == AnswerKind.MARKDOWN
    assert scheduler.repo.due_count(START) == 2


def test_create_cards_bulk_is_atomic(scheduler):
    with pytest.raises(ValidationError):
        scheduler.create_cards([
            {"question": "eins", "answer": "one"},
            {"question": "", "answer": "two"},
        ])
    assert scheduler.list_cards() == []


def test_record_review_sequence(scheduler, clock):
    """Rating 4 on day one, then 5 on day two."""
    card = scheduler.create_card("laufen", "to run")

    first = scheduler.record_review(card.id, 4)
    assert first.interval == 1
    assert first.repetitions == 1
    assert first.due_date == START + timedelta(days=1)
    assert scheduler.due_cards() == []

    clock.advance(days=1)
    assert [c.id for c in scheduler.due_cards()] == [card.id]

    second = scheduler.record_review(card.id, 5)
    assert second.repetitions == 2
    assert second.interval == 6
    assert second.due_date.date() == datetime(2024, 1, 8).date()
    assert scheduler.get_schedule(card.id).performance_history == [4, 5]


def test_record_review_failure_resets(scheduler):
    card = scheduler.create_card("sprechen", "to speak")
    for rating in [5, 5, 5]:
        scheduler.record_review(card.id, rating)

    result = scheduler.record_review(card.id, 1)
    assert result.repetitions == 0
    assert result.interval == 1


def test_record_review_errors(scheduler):
    card = scheduler.create_card("essen", "to eat")

    with pytest.raises(ValidationError):
        scheduler.record_review(card.id, 7)
    with pytest.raises(ValidationError):
        scheduler.record_review(card.id, "good")
    with pytest.raises(ValidationError):
        scheduler.record_review(card.id, 3.9)
    with pytest.raises(ValidationError):
        scheduler.record_review(card.id, True)
    with pytest.raises(NotFound):
        scheduler.record_review("missing", 4)

    assert scheduler.get_schedule(card.id).performance_history == []


def test_rollover_hour_moves_day_boundary(clock):
    """A 2 AM review counts toward the previous day with a 4 AM rollover."""
    temp_dir = tempfile.mkdtemp()
    late = Scheduler(os.path.join(temp_dir, "late.sqlite"), clock=clock, days=StudyTime(4))
    try:
        card = late.create_card("spät", "late")
        late.record_review(card.id, 4, now=datetime(2024, 1, 2, 2, 0, 0))

        assert late.completed_today_count(now=datetime(2024, 1, 1, 23, 0, 0)) == 1
        assert late.completed_today_count(now=datetime(2024, 1, 2, 5, 0, 0)) == 0
    finally:
        late.close()


def test_record_review_recreates_missing_schedule(scheduler):
    card = scheduler.create_card("schlafen", "to sleep")
    scheduler.db.delete_schedule(card.id)

    result = scheduler.record_review(card.id, 3)
    assert result.repetitions == 1
    assert result.performance_history == [3]


def test_build_session_orders_by_priority(scheduler, clock):
    a = scheduler.create_card("a", "1")
    b = scheduler.create_card("b", "2")
    c = scheduler.create_card("c", "3")

    # b is most overdue, then a; c is due only later today
    for card_id, offset in [(a.id, -1), (b.id, -3)]:
        schedule = scheduler.get_schedule(card_id)
        schedule.due_date = START + timedelta(days=offset)
        scheduler.repo.put_schedule(schedule)
    schedule = scheduler.get_schedule(c.id)
    schedule.due_date = START + timedelta(hours=2)
    scheduler.repo.put_schedule(schedule)

    assert [card.id for card in scheduler.build_session()] == [b.id, a.id]
    assert [card.id for card in scheduler.build_session(limit=1)] == [b.id]

    clock.advance(hours=3)
    assert len(scheduler.build_session()) == 3


def test_update_card(scheduler, clock):
    card = scheduler.create_card("der Hund", {"type": "text", "content": "the dog"}, ["animals"])
    scheduler.record_review(card.id, 4)

    clock.advance(hours=1)
    updated = scheduler.update_card(card.id, answer={"type": "markdown"}, tags=["animals", "nouns"])

    assert updated.question == "der Hund"
    assert updated.answer.kind == AnswerKind.MARKDOWN
    assert updated.answer.content == "the dog"
    assert updated.updated_at == START + timedelta(hours=1)
    assert scheduler.get_card(card.id).tags == ["animals", "nouns"]
    assert scheduler.tags.get("animals").count == 2
    # Editing never resets the schedule
    assert scheduler.get_schedule(card.id).repetitions == 1


def test_update_card_errors(scheduler):
    card = scheduler.create_card("q", "a")
    with pytest.raises(NotFound):
        scheduler.update_card("missing", question="x")
    with pytest.raises(ValidationError):
        scheduler.update_card(card.id, question=" ")
    with pytest.raises(ValidationError):
        scheduler.update_card(card.id, answer={"type": "hologram"})
    with pytest.raises(ValidationError):
        scheduler.update_card(card.id, answer={"content": "  "})
    assert scheduler.get_card(card.id).question == "q"


def test_delete_card(scheduler):
    card = scheduler.create_card("q", "a")
    scheduler.delete_card(card.id)

    with pytest.raises(NotFound):
        scheduler.get_card(card.id)
    with pytest.raises(NotFound):
        scheduler.get_schedule(card.id)
    with pytest.raises(NotFound):
        scheduler.delete_card(card.id)


def test_stats_summary(scheduler, clock):
    first = scheduler.create_card("a", "1")
    scheduler.create_card("b", "2")
    scheduler.record_review(first.id, 5)

    summary = scheduler.get_stats_summary()
    assert summary == {
        "dailyReviewCount": 1,
        "retentionRate": 100.0,
        "totalCards": 2,
        "dueCards": 1,
        "weeklyProgress": {"newCards": 2, "reviewsCompleted": 1, "averageRating": 5},
    }


def test_stats_summary_survives_storage_failure(scheduler):
    scheduler.create_card("a", "1")
    scheduler.db.conn.execute("DROP TABLE review_schedules")

    summary = scheduler.get_stats_summary()
    assert summary["dailyReviewCount"] == 0
    assert summary["retentionRate"] == 0.0
    assert summary["dueCards"] == 0
    assert summary["totalCards"] == 1
    assert summary["weeklyProgress"] == {"newCards": 0, "reviewsCompleted": 0, "averageRating": 0}


def test_tag_suggestions(scheduler):
    scheduler.create_card("q1", "a", ["verbs"])
    scheduler.create_card("q2", "a", ["verbs", "irregular verbs"])
    scheduler.create_card("q3", "a", ["nouns"])

    assert [u.tag for u in scheduler.tag_suggestions("verb")] == ["verbs", "irregular verbs"]
    assert scheduler.all_tags() == ["irregular verbs", "nouns", "verbs"]
    assert sorted(c.question for c in scheduler.cards_by_tag("VERBS")) == ["q1", "q2"]


def test_use_tags_respects_cache_size(scheduler, clock):
    usage = scheduler.use_tag(" Grammar ")
    assert usage.tag == "grammar"
    assert usage.count == 1
    assert scheduler.use_tag("") is None

    for i in range(6):
        clock.advance(minutes=1)
        scheduler.use_tags([f"extra{i}"])

    # Cache was built with room for five tags
    assert len(scheduler.tags) == 5
    assert scheduler.tags.get("grammar") is None


def test_initialize_tag_cache(scheduler):
    scheduler.create_card("q1", "a", ["verbs"])
    scheduler.tags.clear()

    scheduler.initialize_tag_cache()
    assert scheduler.tags.get("verbs").count == 1


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
