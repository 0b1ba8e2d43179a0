"""Drives a feedback session against the document store and the model."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Literal, Optional, Sequence

from .config import FeedbackCategory
from .generation import FeedbackSummarizer, GenerationEmptyError
from .models import FeedbackRecord, UserDetails
from .normalizer import GenerationParseError
from .session import (
    FREE_TEXT_SENTINEL,
    FeedbackSession,
    SessionClosedError,
    SessionStatus,
    SubmitResult,
)
from .store import FeedbackNotFoundError, FeedbackStore, StoreUnavailableError

logger = logging.getLogger(__name__)

QuestionLoader = Callable[[FeedbackCategory], Awaitable[Sequence[str]]]

WELCOME_MESSAGE = (
    "Welcome! Please fill in your details and select a feedback category "
    "to begin."
)
NO_QUESTIONS_MESSAGE = (
    "No pre-generated questions found for '{category}'. You can share general "
    "feedback if you'd like. Type '" + FREE_TEXT_SENTINEL + "' when finished "
    "or select another category."
)
SELECT_CATEGORY_MESSAGE = "Please select a feedback category to begin."
PROCESSING_MESSAGE = "Thank you for your answers! We are processing your feedback."
GENERAL_THANKS_MESSAGE = "Thank you for your general feedback!"
RECORDED_MESSAGE = "Your feedback has been recorded. Generating summary..."
SUBMISSION_FAILED_MESSAGE = (
    "Sorry, we encountered an error saving your feedback. Your answers are "
    "still here, please try submitting again."
)
SUMMARY_FAILED_MESSAGE = (
    "Sorry, we couldn't generate a summary at this time. Your feedback has "
    "been recorded."
)

QUESTION_FETCH_ERRORS = (
    StoreUnavailableError,
    GenerationEmptyError,
    GenerationParseError,
)

NoticeLevel = Literal["info", "success", "warning", "error"]


@dataclass(frozen=True, slots=True)
class Notice:
    """User-visible side-channel message (toast) for the host UI."""

    level: NoticeLevel
    title: str
    message: str


def _empty_notices() -> List[Notice]:
    return []


@dataclass(slots=True)
class FeedbackConversation:
    """Couples a :class:`FeedbackSession` with its external collaborators.

    Every failure of the store or the model is turned into a notice and a
    degraded path; none of them propagates out of the conversation.
    """

    store: FeedbackStore
    summarizer: FeedbackSummarizer
    question_loader: Optional[QuestionLoader] = None
    details: UserDetails = field(default_factory=UserDetails)
    session: FeedbackSession = field(default_factory=FeedbackSession)
    notices: List[Notice] = field(default_factory=_empty_notices)
    record_id: Optional[str] = None
    summary: Optional[str] = None
    submission_failed: bool = False
    submitting: bool = False

    def update_details(self, name: str, email: str) -> List[str]:
        """Store contact details and return validation problems."""

        self.details = UserDetails(name=name, email=email)
        return self.details.validate()

    def detail_errors(self) -> List[str]:
        return self.details.validate()

    def drain_notices(self) -> List[Notice]:
        drained = list(self.notices)
        self.notices.clear()
        return drained

    def _notify(self, level: NoticeLevel, title: str, message: str) -> None:
        self.notices.append(Notice(level=level, title=title, message=message))

    async def _load_questions(self, category: FeedbackCategory) -> Sequence[str]:
        if self.question_loader is not None:
            return await self.question_loader(category)
        return await asyncio.to_thread(self.store.get_questions, category)

    async def choose_category(
        self, category: FeedbackCategory | str
    ) -> List[str]:
        """Reset for ``category``, fetch its questions and open the chat."""

        selected = FeedbackCategory.from_string(category)
        try:
            request = self.session.select_category(selected)
        except SessionClosedError as exc:
            self._notify("warning", "Feedback Already Submitted", str(exc))
            return []
        self.record_id = None
        self.summary = None
        self.submission_failed = False

        try:
            texts = await self._load_questions(selected)
        except QUESTION_FETCH_ERRORS as exc:
            logger.warning(
                "Error fetching questions for %s: %s", selected.value, exc
            )
            if self.session.is_current(request):
                self._notify("warning", "Error Loading Questions", str(exc))
            texts = []

        if not self.session.apply_questions(request, texts):
            return []

        question = self.session.current_question
        if question is None:
            message = NO_QUESTIONS_MESSAGE.format(category=selected.value)
            self._notify("info", "Questions Not Found", message)
            return [message]
        return [question.text]

    async def handle_user_message(self, user_text: str) -> List[str]:
        """Process a chat message and return assistant utterances."""

        updates: List[str] = []
        result = self.session.submit(user_text)
        if result is SubmitResult.IGNORED:
            return updates
        if result is SubmitResult.REJECTED:
            if self.session.status is SessionStatus.COLLECTING_DETAILS:
                updates.append(SELECT_CATEGORY_MESSAGE)
            return updates
        if result is SubmitResult.ADVANCED:
            question = self.session.current_question
            assert question is not None  # for type checkers
            updates.append(question.text)
            return updates

        if self.session.free_text:
            updates.append(GENERAL_THANKS_MESSAGE)
        else:
            updates.append(PROCESSING_MESSAGE)
        updates.extend(await self._submit_feedback())
        return updates

    async def retry_submission(self) -> List[str]:
        """Submit again after a store outage; no-op otherwise."""

        if not self.session.is_complete or self.record_id is not None:
            return []
        return await self._submit_feedback()

    def build_record(self) -> FeedbackRecord:
        category = self.session.category
        if category is None:
            raise RuntimeError("Cannot build feedback without a category.")
        return FeedbackRecord(
            name=self.details.display_name,
            email=self.details.stored_email,
            category=category,
            answers=list(self.session.answers),
            raw_text=self.session.raw_text,
        )

    async def _submit_feedback(self) -> List[str]:
        # Only one store write may be outstanding per conversation.
        if self.submitting or self.record_id is not None:
            return []
        self.submitting = True
        try:
            return await self._store_and_summarize()
        finally:
            self.submitting = False

    async def _store_and_summarize(self) -> List[str]:
        updates: List[str] = []
        record = self.build_record()
        try:
            record_id = await asyncio.to_thread(self.store.append_feedback, record)
        except StoreUnavailableError as exc:
            logger.warning("Feedback submission failed: %s", exc)
            self.submission_failed = True
            self._notify(
                "error",
                "Submission Error",
                "Failed to save feedback. Please try again.",
            )
            updates.append(SUBMISSION_FAILED_MESSAGE)
            return updates

        self.submission_failed = False
        self.record_id = record_id
        updates.append(RECORDED_MESSAGE)
        name = self.details.display_name

        try:
            summary = await self.summarizer.summarize(
                record.feedback_text(), record.category
            )
        except (GenerationEmptyError, ValueError) as exc:
            logger.warning("Summary generation failed for %s: %s", record_id, exc)
            self._notify(
                "warning",
                "Feedback Submitted (Summary Failed)",
                str(exc) or "Could not generate summary.",
            )
            updates.append(SUMMARY_FAILED_MESSAGE)
            updates.append(
                f"Thank you, {name}, for your valuable feedback! "
                "It has been submitted (summary failed)."
            )
            return updates

        self.summary = summary
        try:
            await asyncio.to_thread(
                self.store.update_feedback_summary, record_id, summary
            )
        except (StoreUnavailableError, FeedbackNotFoundError) as exc:
            logger.warning("Could not store summary for %s: %s", record_id, exc)
            self._notify(
                "warning",
                "Summary Not Saved",
                "Your feedback was submitted but its summary could not be saved.",
            )
        else:
            self._notify(
                "success",
                "Feedback Submitted!",
                "Thank you for helping us improve. Summary generated.",
            )
        updates.append(f"Here's a summary of your feedback:\n{summary}")
        updates.append(
            f"Thank you, {name}, for your valuable feedback! "
            "It has been submitted and summarized."
        )
        return updates
