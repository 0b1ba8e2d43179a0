"""Shared data types for feedback sessions and stored records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .config import FeedbackCategory

ANONYMOUS_NAME = "Anonymous"
MISSING_EMAIL = "N/A"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True, slots=True)
class Question:
    """A single question surfaced to the user."""

    id: str
    text: str

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Question text must not be empty.")


@dataclass(frozen=True, slots=True)
class Answer:
    """Answer captured for a question, with the question text snapshot."""

    question_id: str
    question_text: str
    answer_text: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "answer_text": self.answer_text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        return cls(
            question_id=str(data.get("question_id", "")),
            question_text=str(data.get("question_text", "")),
            answer_text=str(data.get("answer_text", "")),
        )


@dataclass(slots=True)
class UserDetails:
    """Contact details typed in before the conversation starts."""

    name: str = ""
    email: str = ""

    def validate(self) -> List[str]:
        """Return human readable validation problems (empty when valid)."""
        errors: List[str] = []
        name = self.name.strip()
        if len(name) < 2:
            errors.append("Name must be at least 2 characters.")
        elif len(name) > 50:
            errors.append("Name is too long.")
        if not _EMAIL_PATTERN.match(self.email.strip()):
            errors.append("Invalid email address.")
        return errors

    @property
    def display_name(self) -> str:
        return self.name.strip() or ANONYMOUS_NAME

    @property
    def stored_email(self) -> str:
        return self.email.strip() or MISSING_EMAIL


def _empty_answers() -> List[Answer]:
    return []


@dataclass(slots=True)
class FeedbackRecord:
    """Feedback submission as persisted in the document store."""

    name: str
    email: str
    category: FeedbackCategory
    answers: List[Answer] = field(default_factory=_empty_answers)
    raw_text: Optional[str] = None
    submitted_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    summary: Optional[str] = None
    id: Optional[str] = None

    def feedback_text(self) -> str:
        """Text handed to the summarizer."""
        if self.raw_text:
            return self.raw_text
        return format_answers(self.answers)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.name,
            "email": self.email,
            "category": self.category.value,
            "answers": [answer.to_dict() for answer in self.answers],
            "submitted_at": self.submitted_at.isoformat(),
            "summary": self.summary,
        }
        if self.raw_text is not None:
            payload["raw_text"] = self.raw_text
        if self.id is not None:
            payload["id"] = self.id
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeedbackRecord":
        submitted_raw = data.get("submitted_at")
        if isinstance(submitted_raw, str) and submitted_raw:
            submitted_at = datetime.fromisoformat(submitted_raw)
        else:
            submitted_at = datetime.now(timezone.utc)
        answers_raw = data.get("answers") or []
        return cls(
            name=str(data.get("name") or ANONYMOUS_NAME),
            email=str(data.get("email") or MISSING_EMAIL),
            category=FeedbackCategory.from_string(data.get("category")),
            answers=[
                Answer.from_dict(item)
                for item in answers_raw
                if isinstance(item, dict)
            ],
            raw_text=data.get("raw_text"),
            submitted_at=submitted_at,
            summary=data.get("summary"),
            id=data.get("id"),
        )


def format_answers(answers: List[Answer]) -> str:
    """Render answers as ``Q:``/``A:`` blocks separated by blank lines."""
    return "\n\n".join(
        f"Q: {answer.question_text}\nA: {answer.answer_text}"
        for answer in answers
    )
