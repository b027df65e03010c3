#!/usr/bin/env python3
"""Add sample cards to the configured database for manual UI testing."""

import sys

from cardwise.engine.errors import CardwiseError
from cardwise.engine.scheduler import Scheduler
from cardwise.utils.config import config

SAMPLE_CARDS = [
    {
        "question": "der Hund",
        "answer": {"type": "text", "content": "the dog"},
        "tags": ["german", "nouns", "animals"],
    },
    {
        "question": "essen",
        "answer": {
            "type": "markdown",
            "content": "**to eat**\n\n- ich esse\n- du isst\n- er isst\n\n*Präteritum:* aß",
        },
        "tags": ["german", "verbs", "irregular verbs"],
    },
    {
        "question": "die Katze",
        "answer": {"type": "text", "content": "the cat"},
        "tags": ["german", "nouns", "animals"],
    },
    {
        "question": "What is the capital of France?",
        "answer": {"type": "text", "content": "Paris"},
        "tags": ["geography", "europe"],
    },
    {
        "question": "Derivative of sin(x)?",
        "answer": {"type": "markdown", "content": "`cos(x)`"},
        "tags": ["math", "calculus"],
    },
    {
        "question": "schnell",
        "answer": {"type": "text", "content": "fast, quick"},
        "tags": ["german", "adjectives"],
    },
]


def add_sample_cards(db_path=None):
    """Add sample cards, skipping questions that already exist."""
    scheduler = Scheduler(db_path or config.get_db_path(), config.get_tag_cache_size())

    try:
        existing = {card.question for card in scheduler.list_cards()}
        new_cards = [c for c in SAMPLE_CARDS if c["question"] not in existing]

        if not new_cards:
            print("All sample cards already exist")
            return 0

        created = scheduler.create_cards(new_cards)
        for card in created:
            print(f"✓ Added: {card.question} [{', '.join(card.tags)}]")

        summary = scheduler.get_stats_summary()
        print(f"\nTotal cards: {summary['totalCards']}, due now: {summary['dueCards']}")
        return len(created)
    finally:
        scheduler.close()


if __name__ == "__main__":
    try:
        add_sample_cards(sys.argv[1] if len(sys.argv) > 1 else None)
    except CardwiseError as e:
        print(f"❌ Could not add sample cards: {e}")
        sys.exit(1)
