"""Wires settings into the store, the model client and the controllers."""

from __future__ import annotations

from dataclasses import dataclass

from .admin import AdminConsole
from .config import NUM_QUESTIONS_FOR_PREVIEW, AppSettings
from .conversation import FeedbackConversation
from .generation import CompletionClient, FeedbackSummarizer, QuestionGenerator
from .store import FeedbackStore, RedisFeedbackStore


@dataclass(slots=True)
class Services:
    """Collaborators shared by every conversation in a process."""

    store: FeedbackStore
    generator: QuestionGenerator
    summarizer: FeedbackSummarizer
    admin: AdminConsole

    @classmethod
    def create(
        cls,
        store: FeedbackStore,
        client: CompletionClient,
        *,
        question_count: int = NUM_QUESTIONS_FOR_PREVIEW,
    ) -> "Services":
        generator = QuestionGenerator(client)
        summarizer = FeedbackSummarizer(client)
        return cls(
            store=store,
            generator=generator,
            summarizer=summarizer,
            admin=AdminConsole(
                store, generator, summarizer, question_count=question_count
            ),
        )

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "Services":
        from .maf_client import MAFChatClient

        return cls.create(
            RedisFeedbackStore(settings.redis_url),
            MAFChatClient(settings.model),
            question_count=settings.question_count,
        )

    def new_conversation(self) -> FeedbackConversation:
        return FeedbackConversation(store=self.store, summarizer=self.summarizer)
