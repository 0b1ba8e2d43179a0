"""Administrator operations: guidance, question lists and summaries."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .config import NUM_QUESTIONS_FOR_PREVIEW, FeedbackCategory, GuidanceConfig
from .generation import (
    FeedbackSummarizer,
    GeneratedQuestions,
    QuestionGenerationRequest,
    QuestionGenerator,
)
from .models import FeedbackRecord
from .store import FeedbackStore, StoreUnavailableError

logger = logging.getLogger(__name__)


def load_guidance(store: FeedbackStore) -> GuidanceConfig:
    """Read guidance from the store, using defaults while it is unavailable."""

    try:
        return store.get_config()
    except StoreUnavailableError as exc:
        logger.warning(
            "Could not fetch configuration, using default values: %s", exc
        )
        return GuidanceConfig.defaults()


class AdminConsole:
    """Dashboard actions for maintaining questions and reviewing feedback."""

    def __init__(
        self,
        store: FeedbackStore,
        generator: QuestionGenerator,
        summarizer: FeedbackSummarizer,
        *,
        question_count: int = NUM_QUESTIONS_FOR_PREVIEW,
    ) -> None:
        self._store = store
        self._generator = generator
        self._summarizer = summarizer
        self.question_count = question_count

    def load_config(self) -> GuidanceConfig:
        """Return stored guidance, seeding the defaults on first use."""

        try:
            stored = self._store.load_config()
        except StoreUnavailableError as exc:
            logger.warning(
                "Could not fetch configuration, using default values: %s", exc
            )
            return GuidanceConfig.defaults()
        if stored is not None:
            return stored
        defaults = GuidanceConfig.defaults()
        try:
            self._store.save_config(defaults)
        except StoreUnavailableError as exc:
            logger.warning("Error saving default configuration: %s", exc)
        return defaults

    def save_config(self, core_values: str, quality_subsets: str) -> GuidanceConfig:
        core_values = core_values.strip()
        quality_subsets = quality_subsets.strip()
        if not core_values or not quality_subsets:
            raise ValueError("Core values and quality subsets must not be empty.")
        config = GuidanceConfig(
            core_values=core_values, quality_subsets=quality_subsets
        )
        self._store.save_config(config)
        logger.info("Guidance configuration saved")
        return config

    async def generate_questions(
        self,
        category: FeedbackCategory,
        count: Optional[int] = None,
        *,
        save: bool = True,
    ) -> GeneratedQuestions:
        """Generate questions with the current guidance and store them.

        ``count`` falls back to the console's configured question count.
        """

        if count is None:
            count = self.question_count
        guidance = await asyncio.to_thread(load_guidance, self._store)
        request = QuestionGenerationRequest.from_guidance(
            category, guidance, count=count
        )
        generated = await self._generator.generate(request)
        if save and generated.questions:
            await asyncio.to_thread(
                self._store.save_questions, category, generated.questions
            )
        return generated

    def list_feedbacks(self, limit: Optional[int] = None) -> List[FeedbackRecord]:
        return self._store.list_feedbacks(limit)

    async def regenerate_summary(self, record_id: str) -> str:
        """Summarize a stored submission again and persist the result."""

        record = await asyncio.to_thread(self._store.get_feedback, record_id)
        summary = await self._summarizer.summarize(
            record.feedback_text(), record.category
        )
        await asyncio.to_thread(
            self._store.update_feedback_summary, record_id, summary
        )
        logger.info("Summary regenerated for %s", record_id)
        return summary
