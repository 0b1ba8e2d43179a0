"""FastAPI surface that renders conversations and admin actions as JSON."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import (
    MAX_QUESTIONS_TO_GENERATE,
    MIN_QUESTIONS_TO_GENERATE,
    FeedbackCategory,
)
from .conversation import WELCOME_MESSAGE, FeedbackConversation
from .generation import GenerationEmptyError
from .models import FeedbackRecord
from .normalizer import GenerationParseError
from .services import Services
from .store import FeedbackNotFoundError, StoreUnavailableError


class DetailsBody(BaseModel):
    name: str = ""
    email: str = ""


class CategoryBody(BaseModel):
    category: FeedbackCategory


class MessageBody(BaseModel):
    text: str


class ConfigBody(BaseModel):
    core_values: str
    quality_subsets: str


class GenerateQuestionsBody(BaseModel):
    category: FeedbackCategory
    count: Optional[int] = Field(
        default=None,
        ge=MIN_QUESTIONS_TO_GENERATE,
        le=MAX_QUESTIONS_TO_GENERATE,
    )
    save: bool = True


def _conversation_payload(
    session_id: str,
    conversation: FeedbackConversation,
    messages: List[str],
    errors: Optional[List[str]] = None,
) -> Dict[str, Any]:
    return {
        "session_id": session_id,
        "messages": messages,
        "errors": errors or [],
        "notices": [asdict(notice) for notice in conversation.drain_notices()],
        "session": conversation.session.to_dict(),
        "record_id": conversation.record_id,
        "summary": conversation.summary,
        "submission_failed": conversation.submission_failed,
    }


def _record_payload(record: FeedbackRecord) -> Dict[str, Any]:
    return record.to_dict()


def create_app(services: Services) -> FastAPI:
    """Build the application around already-wired services."""

    app = FastAPI(title="Customer Feedback Assistant")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    sessions: Dict[str, FeedbackConversation] = {}

    def _get_conversation(session_id: str) -> FeedbackConversation:
        conversation = sessions.get(session_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Unknown session.")
        return conversation

    def _finish(
        session_id: str, conversation: FeedbackConversation, messages: List[str]
    ) -> Dict[str, Any]:
        payload = _conversation_payload(session_id, conversation, messages)
        # A stored submission ends the session.
        if conversation.record_id is not None:
            sessions.pop(session_id, None)
        return payload

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/sessions", status_code=201)
    async def create_session() -> Dict[str, Any]:
        session_id = uuid4().hex
        conversation = services.new_conversation()
        sessions[session_id] = conversation
        return _conversation_payload(session_id, conversation, [WELCOME_MESSAGE])

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str) -> Dict[str, Any]:
        conversation = _get_conversation(session_id)
        return _conversation_payload(session_id, conversation, [])

    @app.delete("/sessions/{session_id}", status_code=204)
    async def discard_session(session_id: str) -> None:
        _get_conversation(session_id)
        sessions.pop(session_id, None)

    @app.put("/sessions/{session_id}/details")
    async def update_details(session_id: str, body: DetailsBody) -> Dict[str, Any]:
        conversation = _get_conversation(session_id)
        errors = conversation.update_details(body.name, body.email)
        return _conversation_payload(session_id, conversation, [], errors)

    @app.post("/sessions/{session_id}/category")
    async def choose_category(
        session_id: str, body: CategoryBody
    ) -> Dict[str, Any]:
        conversation = _get_conversation(session_id)
        messages = await conversation.choose_category(body.category)
        return _conversation_payload(
            session_id, conversation, messages, conversation.detail_errors()
        )

    @app.post("/sessions/{session_id}/messages")
    async def send_message(session_id: str, body: MessageBody) -> Dict[str, Any]:
        conversation = _get_conversation(session_id)
        messages = await conversation.handle_user_message(body.text)
        return _finish(session_id, conversation, messages)

    @app.post("/sessions/{session_id}/retry")
    async def retry_submission(session_id: str) -> Dict[str, Any]:
        conversation = _get_conversation(session_id)
        messages = await conversation.retry_submission()
        return _finish(session_id, conversation, messages)

    @app.get("/admin/config")
    def get_config() -> Dict[str, str]:
        return services.admin.load_config().to_dict()

    @app.put("/admin/config")
    def put_config(body: ConfigBody) -> Dict[str, str]:
        try:
            config = services.admin.save_config(
                body.core_values, body.quality_subsets
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except StoreUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return config.to_dict()

    @app.post("/admin/questions")
    async def generate_questions(body: GenerateQuestionsBody) -> Dict[str, Any]:
        try:
            generated = await services.admin.generate_questions(
                body.category, body.count, save=body.save
            )
        except (GenerationEmptyError, GenerationParseError) as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except StoreUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {
            "category": generated.category.value,
            "questions": generated.questions,
            "strategy": generated.strategy,
            "saved": body.save and bool(generated.questions),
        }

    @app.get("/admin/feedbacks")
    def list_feedbacks(limit: Optional[int] = None) -> List[Dict[str, Any]]:
        try:
            records = services.admin.list_feedbacks(limit)
        except StoreUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return [_record_payload(record) for record in records]

    @app.post("/admin/feedbacks/{record_id}/summary")
    async def regenerate_summary(record_id: str) -> Dict[str, str]:
        try:
            summary = await services.admin.regenerate_summary(record_id)
        except FeedbackNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Unknown feedback.") from exc
        except (GenerationEmptyError, ValueError) as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except StoreUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {"id": record_id, "summary": summary}

    return app
