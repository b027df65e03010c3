#!/usr/bin/env python3
"""Tests for JSON export and import of cards."""

import json
import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from cardwise.engine.errors import ValidationError
from cardwise.engine.scheduler import Scheduler

NOW = datetime(2024, 5, 10, 18, 30, 0)


def make_scheduler(name):
    temp_dir = tempfile.mkdtemp()
    return Scheduler(os.path.join(temp_dir, name), clock=lambda: NOW)


@pytest.fixture
def source():
    s = make_scheduler("source.sqlite")
    yield s
    s.close()


@pytest.fixture
def target():
    s = make_scheduler("target.sqlite")
    yield s
    s.close()


def test_export_format(source):
    source.create_card("der Hund", {"type": "markdown", "content": "*the dog*"}, ["nouns"])

    exported = json.loads(source.export_cards())
    assert len(exported) == 1
    card = exported[0]
    assert set(card) == {"id", "question", "answer", "tags", "createdAt", "updatedAt"}
    assert card["answer"] == {"type": "markdown", "content": "*the dog*", "attachments": []}
    assert card["createdAt"] == "2024-05-10T18:30:00"


def test_export_keeps_unicode(source):
    source.create_card("die Größe", "the size")
    assert "Größe" in source.export_cards()


def test_export_then_import(source, target):
    source.create_card("eins", "one", ["numbers"])
    source.create_card("zwei", "two", ["numbers"])

    imported = target.import_cards(source.export_cards())

    assert sorted(c.question for c in imported) == ["eins", "zwei"]
    assert target.repo.total_cards() == 2
    assert target.repo.due_count(NOW) == 2
    assert target.tags.get("numbers").count == 2


def test_import_skips_existing_ids(source):
    card = source.create_card("eins", "one")
    imported = source.import_cards(source.export_cards())

    assert imported == []
    assert source.repo.total_cards() == 1
    assert source.get_card(card.id).question == "eins"


def test_import_assigns_missing_ids_and_clamps_dates(target):
    data = json.dumps([
        {"question": "drei", "answer": {"type": "text", "content": "three"}},
        {"id": "future", "question": "vier", "answer": {"content": "four"},
         "createdAt": "2030-01-01T00:00:00"},
        {"id": "past", "question": "fünf", "answer": {"type": "text", "content": "five"},
         "createdAt": "2023-02-01T08:00:00", "updatedAt": "2023-03-01T08:00:00"},
    ])

    imported = {c.question: c for c in target.import_cards(data)}

    assert imported["drei"].id
    assert imported["drei"].created_at == NOW
    assert imported["vier"].created_at == NOW
    assert imported["fünf"].created_at == datetime(2023, 2, 1, 8, 0, 0)
    assert imported["fünf"].updated_at == NOW


def test_import_is_all_or_nothing(target):
    data = json.dumps([
        {"question": "ok", "answer": {"type": "text", "content": "fine"}},
        {"question": "", "answer": {"type": "text", "content": "no question"}},
    ])

    with pytest.raises(ValidationError) as excinfo:
        target.import_cards(data)
    assert "Card #2" in str(excinfo.value)
    assert target.repo.total_cards() == 0


@pytest.mark.parametrize("payload", [
    "not json",
    json.dumps({"question": "q"}),
    json.dumps([{"question": "q"}]),
    json.dumps([{"question": "q", "answer": {"type": "smell", "content": "x"}}]),
    json.dumps([{"question": "q", "answer": {"content": "x"}, "tags": "a,b"}]),
    json.dumps([{"question": "q", "answer": {"content": "x"}, "createdAt": "yesterday"}]),
    json.dumps([{"question": "q", "answer": {"type": "text", "content": ""}}]),
    json.dumps([{"question": "q", "answer": {"type": "text", "content": "   ", "attachments": []}}]),
    json.dumps([{"question": "q", "answer": {"type": "image", "content": "",
                                           "attachments": [{"name": "a.png", "data": "AA==", "size": "big"}]}}]),
])
def test_import_rejects_malformed(target, payload):
    with pytest.raises(ValidationError):
        target.import_cards(payload)
    assert target.repo.total_cards() == 0


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
