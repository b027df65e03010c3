"""Data classes shared by the engine, the store and the UI."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ValidationError


class AnswerKind(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    AUDIO = "audio"
    IMAGE = "image"
    MIXED = "mixed"


def normalize_tag(tag: str) -> str:
    """Tag cache key: trimmed and lower-cased."""
    return tag.strip().lower()


def clean_tags(tags: Optional[List[str]]) -> List[str]:
    """Trim tags, drop blanks and case-insensitive duplicates, keep first spelling."""
    result = []
    seen = set()
    for tag in tags or []:
        trimmed = tag.strip()
        key = trimmed.lower()
        if trimmed and key not in seen:
            seen.add(key)
            result.append(trimmed)
    return result


def _parse_datetime(value: Any, name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(microsecond=0)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid {name} timestamp: {value!r}") from e
    if parsed.tzinfo is not None:
        # Exports from other instances may carry UTC offsets; the store is local-naive
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed.replace(microsecond=0)


@dataclass
class Attachment:
    """A file attached to an answer, carried inline as base64."""

    name: str
    type: str
    data: str
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "data": self.data, "size": self.size}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        if not isinstance(data, dict) or "data" not in data:
            raise ValidationError("Attachment must be an object with a 'data' field")
        try:
            size = int(data.get("size", 0) or 0)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Attachment size must be an integer, got {data.get('size')!r}") from e
        return cls(
            name=str(data.get("name", "")),
            type=str(data.get("type", "application/octet-stream")),
            data=str(data["data"]),
            size=size,
        )


@dataclass
class Answer:
    kind: AnswerKind
    content: str
    attachments: List[Attachment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "content": self.content,
            "attachments": [a.to_dict() for a in self.attachments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        if not isinstance(data, dict):
            raise ValidationError("Answer must be an object")
        raw_kind = data.get("type", data.get("kind", AnswerKind.TEXT.value))
        try:
            kind = AnswerKind(raw_kind)
        except ValueError as e:
            raise ValidationError(f"Unknown answer type: {raw_kind!r}") from e
        return cls(
            kind=kind,
            content=str(data.get("content", "") or ""),
            attachments=[Attachment.from_dict(a) for a in data.get("attachments") or []],
        )


@dataclass
class Card:
    id: str
    question: str
    answer: Answer
    tags: List[str]
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Plain structure used for JSON export."""
        return {
            "id": self.id,
            "question": self.question,
            "answer": self.answer.to_dict(),
            "tags": list(self.tags),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Card":
        """Build a card from an exported structure, validating required fields."""
        if not isinstance(data, dict):
            raise ValidationError("Card must be an object")

        question = data.get("question")
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("Card is missing a question")
        if not data.get("answer"):
            raise ValidationError(f"Card '{question[:40]}' is missing an answer")

        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise ValidationError("Card tags must be a list")

        answer = Answer.from_dict(data["answer"])
        if not answer.content.strip() and not answer.attachments:
            raise ValidationError(f"Card '{question[:40]}' is missing an answer")

        created_at = _parse_datetime(data.get("createdAt"), "createdAt")
        updated_at = _parse_datetime(data.get("updatedAt"), "updatedAt") or created_at
        return cls(
            id=str(data.get("id") or ""),
            question=question,
            answer=answer,
            tags=clean_tags([str(t) for t in tags]),
            created_at=created_at,
            updated_at=updated_at,
        )


@dataclass
class ReviewSchedule:
    """Scheduling state of one card, keyed by ``card_id``."""

    card_id: str
    due_date: datetime
    interval: int = 1
    repetitions: int = 0
    ease_factor: float = 2.5
    performance_history: List[int] = field(default_factory=list)
    last_reviewed: Optional[datetime] = None


@dataclass
class TagUsage:
    tag: str
    count: int
    last_used: datetime
