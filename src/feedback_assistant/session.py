"""Framework-free state machine for one feedback conversation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from .config import FeedbackCategory
from .models import Answer, Question, format_answers

logger = logging.getLogger(__name__)

FREE_TEXT_SENTINEL = "done"


class SessionStatus(str, Enum):
    """Lifecycle of a feedback session."""

    COLLECTING_DETAILS = "collecting-details"
    AWAITING_QUESTIONS = "awaiting-questions"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"


class SubmitResult(str, Enum):
    """Outcome of :meth:`FeedbackSession.submit`."""

    IGNORED = "ignored"
    REJECTED = "rejected"
    ADVANCED = "advanced"
    COMPLETED = "completed"


class SessionClosedError(RuntimeError):
    """Raised when a completed session is asked to change category."""


@dataclass(frozen=True, slots=True)
class QuestionRequest:
    """Tag for an outstanding question fetch."""

    category: FeedbackCategory
    token: int


def _empty_questions() -> List[Question]:
    return []


def _empty_answers() -> List[Answer]:
    return []


@dataclass(slots=True)
class FeedbackSession:
    """Linear one-question-at-a-time protocol for a single category.

    ``current_index`` always equals ``len(answers)``. Outside free-text mode
    the session is complete exactly when every question has been answered.
    Changing category discards everything gathered for the previous one.
    """

    category: Optional[FeedbackCategory] = None
    questions: List[Question] = field(default_factory=_empty_questions)
    current_index: int = 0
    answers: List[Answer] = field(default_factory=_empty_answers)
    status: SessionStatus = SessionStatus.COLLECTING_DETAILS
    free_text: bool = False
    raw_text: Optional[str] = None
    pending_request: Optional[QuestionRequest] = None
    request_counter: int = field(default=0, repr=False)

    @property
    def accepting_input(self) -> bool:
        return self.status is SessionStatus.IN_PROGRESS

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETE

    @property
    def current_question(self) -> Optional[Question]:
        if self.status is not SessionStatus.IN_PROGRESS or self.free_text:
            return None
        if self.current_index >= len(self.questions):
            return None
        return self.questions[self.current_index]

    def select_category(self, category: FeedbackCategory) -> QuestionRequest:
        """Reset the session for ``category`` and tag the question fetch."""

        if self.status is SessionStatus.COMPLETE:
            raise SessionClosedError(
                "Feedback for this session has already been completed."
            )
        if self.category is not None and self.category is not category:
            logger.debug(
                "Category changed from %s to %s; discarding %d answers",
                self.category.value,
                category.value,
                len(self.answers),
            )
        self.category = category
        self.questions = []
        self.current_index = 0
        self.answers = []
        self.free_text = False
        self.raw_text = None

        self.request_counter += 1
        request = QuestionRequest(category=category, token=self.request_counter)
        self.pending_request = request
        self.status = SessionStatus.AWAITING_QUESTIONS
        return request

    def is_current(self, request: QuestionRequest) -> bool:
        return (
            self.pending_request == request
            and self.category is request.category
        )

    def apply_questions(
        self, request: QuestionRequest, texts: Sequence[str]
    ) -> bool:
        """Install fetched questions; returns ``False`` for stale results."""

        if not self.is_current(request):
            logger.info(
                "Discarding stale question list for %s (request %d)",
                request.category.value,
                request.token,
            )
            return False
        self.pending_request = None
        batch = uuid4().hex[:6]
        cleaned = [text.strip() for text in texts if text and text.strip()]
        self.questions = [
            Question(id=f"q-{index}-{batch}", text=text)
            for index, text in enumerate(cleaned)
        ]
        self.current_index = 0
        self.free_text = not self.questions
        self.status = SessionStatus.IN_PROGRESS
        return True

    def submit(self, text: str) -> SubmitResult:
        """Record ``text`` as the answer to the current question."""

        if not text or not text.strip():
            return SubmitResult.IGNORED
        if not self.accepting_input:
            return SubmitResult.REJECTED

        if self.free_text:
            self.raw_text = text
            self.status = SessionStatus.COMPLETE
            return SubmitResult.COMPLETED

        question = self.questions[self.current_index]
        self.answers.append(
            Answer(
                question_id=question.id,
                question_text=question.text,
                answer_text=text,
            )
        )
        self.current_index += 1
        if self.current_index >= len(self.questions):
            self.status = SessionStatus.COMPLETE
            return SubmitResult.COMPLETED
        return SubmitResult.ADVANCED

    def feedback_text(self) -> str:
        if self.raw_text:
            return self.raw_text
        return format_answers(self.answers)

    def to_dict(self) -> Dict[str, Any]:
        current = self.current_question
        return {
            "category": self.category.value if self.category else None,
            "status": self.status.value,
            "free_text": self.free_text,
            "current_index": self.current_index,
            "current_question": current.text if current else None,
            "questions": [
                {"id": question.id, "text": question.text}
                for question in self.questions
            ],
            "answers": [answer.to_dict() for answer in self.answers],
            "raw_text": self.raw_text,
        }
