"""Question generation and feedback summarization on top of a text model."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol

from .config import (
    DEFAULT_QUESTION_COUNT,
    MAX_QUESTIONS_TO_GENERATE,
    MIN_QUESTIONS_TO_GENERATE,
    FeedbackCategory,
    GuidanceConfig,
)
from .normalizer import Strategy, normalize_questions
from .prompts import (
    QUESTION_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_question_prompt,
    build_summary_prompt,
)

logger = logging.getLogger(__name__)


class GenerationEmptyError(RuntimeError):
    """Raised when the completion endpoint fails or returns no text."""


class CompletionClient(Protocol):
    """Single request/response text completion endpoint."""

    async def complete_text(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
    ) -> str:
        ...


@dataclass(frozen=True, slots=True)
class QuestionGenerationRequest:
    """Inputs for a question generation call."""

    category: FeedbackCategory
    core_values: str
    quality_subsets: str
    count: int = DEFAULT_QUESTION_COUNT

    def __post_init__(self) -> None:
        if not isinstance(self.category, FeedbackCategory):
            raise ValueError(f"Unsupported feedback category: {self.category!r}")
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise ValueError("Question count must be an integer.")
        if not (
            MIN_QUESTIONS_TO_GENERATE <= self.count <= MAX_QUESTIONS_TO_GENERATE
        ):
            raise ValueError(
                "Question count must be between "
                f"{MIN_QUESTIONS_TO_GENERATE} and {MAX_QUESTIONS_TO_GENERATE}."
            )

    @classmethod
    def from_guidance(
        cls,
        category: FeedbackCategory,
        guidance: GuidanceConfig,
        count: int = DEFAULT_QUESTION_COUNT,
    ) -> "QuestionGenerationRequest":
        return cls(
            category=category,
            core_values=guidance.core_values,
            quality_subsets=guidance.quality_subsets,
            count=count,
        )


@dataclass(frozen=True, slots=True)
class GeneratedQuestions:
    """Normalized output of a question generation call."""

    category: FeedbackCategory
    questions: List[str]
    strategy: Strategy


async def request_completion(
    client: CompletionClient,
    prompt: str,
    *,
    system_prompt: Optional[str] = None,
) -> str:
    """Call the completion endpoint, treating failures and blanks as empty."""

    try:
        text = await client.complete_text(prompt, system_prompt=system_prompt)
    except GenerationEmptyError:
        raise
    except Exception as exc:
        logger.warning("Completion request failed: %s", exc)
        raise GenerationEmptyError(f"Completion request failed: {exc}") from exc
    if not text or not text.strip():
        raise GenerationEmptyError("No response from AI model.")
    return text


class QuestionGenerator:
    """Produces category questions through the normalizer."""

    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    async def generate(
        self, request: QuestionGenerationRequest
    ) -> GeneratedQuestions:
        prompt = build_question_prompt(
            category=request.category.value,
            core_values=request.core_values,
            quality_subsets=request.quality_subsets,
            count=request.count,
        )
        raw = await request_completion(
            self._client, prompt, system_prompt=QUESTION_SYSTEM_PROMPT
        )
        normalized = normalize_questions(raw)
        questions = normalized.questions[: request.count]
        if len(normalized.questions) > request.count:
            logger.info(
                "Model returned %d questions for %s, keeping %d",
                len(normalized.questions),
                request.category.value,
                request.count,
            )
        logger.debug(
            "Generated %d questions for %s via %s parsing",
            len(questions),
            request.category.value,
            normalized.strategy,
        )
        return GeneratedQuestions(
            category=request.category,
            questions=questions,
            strategy=normalized.strategy,
        )


class FeedbackSummarizer:
    """Returns the model's free-text summary of collected feedback."""

    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    async def summarize(self, feedback: str, category: FeedbackCategory) -> str:
        if not feedback or not feedback.strip():
            raise ValueError("Feedback text is required for summarization.")
        prompt = build_summary_prompt(
            category=category.value, feedback=feedback.strip()
        )
        raw = await request_completion(
            self._client, prompt, system_prompt=SUMMARY_SYSTEM_PROMPT
        )
        return raw.strip()
