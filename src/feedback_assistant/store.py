"""Redis-backed document store for guidance, questions and feedback."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import uuid4

import redis
from redis import Redis
from redis.exceptions import RedisError

from .config import FeedbackCategory, GuidanceConfig
from .models import FeedbackRecord

logger = logging.getLogger(__name__)

CONFIG_KEY = "settings:ai_config"
QUESTIONS_KEY = "settings:pregenerated_questions"
FEEDBACK_INDEX_KEY = "feedbacks:index"
FEEDBACK_CATEGORY_KEY = "feedbacks:category"


class StoreUnavailableError(RuntimeError):
    """Raised when the document store cannot be read or written."""


class FeedbackNotFoundError(LookupError):
    """Raised when a feedback record id is unknown."""


class FeedbackStore(Protocol):
    """Operations the application needs from the document store."""

    def load_config(self) -> Optional[GuidanceConfig]:
        ...

    def get_config(self) -> GuidanceConfig:
        ...

    def save_config(self, config: GuidanceConfig) -> None:
        ...

    def get_questions(self, category: FeedbackCategory) -> List[str]:
        ...

    def save_questions(
        self, category: FeedbackCategory, questions: Sequence[str]
    ) -> None:
        ...

    def append_feedback(self, record: FeedbackRecord) -> str:
        ...

    def update_feedback_summary(self, record_id: str, summary: str) -> None:
        ...

    def get_feedback(self, record_id: str) -> FeedbackRecord:
        ...

    def list_feedbacks(self, limit: Optional[int] = None) -> List[FeedbackRecord]:
        ...


def _feedback_key(record_id: str) -> str:
    return f"feedback:{record_id}"


class RedisFeedbackStore:
    """Stores configuration, question lists and feedback records in Redis.

    Layout:

    * ``settings:ai_config`` hash with ``core_values`` and ``quality_subsets``.
    * ``settings:pregenerated_questions`` hash, one JSON array per category
      field, so saving one category never touches the others.
    * ``feedback:<id>`` JSON documents indexed by ``feedbacks:index`` (sorted
      by submission timestamp) and ``feedbacks:category``.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        client: Optional[Redis] = None,
    ) -> None:
        if client is None and not redis_url:
            raise ValueError("Either redis_url or client is required.")
        self._redis_url = redis_url
        self._redis: Optional[Redis] = client

    def _get_redis(self) -> Redis:
        if self._redis is None:
            try:
                self._redis = redis.from_url(  # type: ignore[call-overload]
                    self._redis_url,
                    decode_responses=True,
                )
            except RedisError as exc:  # pragma: no cover - network guarded
                raise StoreUnavailableError(
                    f"Redis connection failed: {exc}"
                ) from exc
        return self._redis

    @staticmethod
    def _decode(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    def load_config(self) -> Optional[GuidanceConfig]:
        """Return the stored guidance, or ``None`` when nothing is stored."""
        try:
            raw = self._get_redis().hgetall(CONFIG_KEY)
        except RedisError as exc:
            logger.warning("Could not read guidance configuration: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc
        if not raw:
            return None
        data = {self._decode(k): self._decode(v) for k, v in raw.items()}
        defaults = GuidanceConfig.defaults()
        return GuidanceConfig(
            core_values=data.get("core_values") or defaults.core_values,
            quality_subsets=(
                data.get("quality_subsets") or defaults.quality_subsets
            ),
        )

    def get_config(self) -> GuidanceConfig:
        return self.load_config() or GuidanceConfig.defaults()

    def save_config(self, config: GuidanceConfig) -> None:
        try:
            self._get_redis().hset(CONFIG_KEY, mapping=config.to_dict())
        except RedisError as exc:
            logger.warning("Could not save guidance configuration: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc

    def get_questions(self, category: FeedbackCategory) -> List[str]:
        try:
            raw = self._get_redis().hget(QUESTIONS_KEY, category.value)
        except RedisError as exc:
            logger.warning(
                "Could not read questions for %s: %s", category.value, exc
            )
            raise StoreUnavailableError(str(exc)) from exc
        decoded = self._decode(raw)
        if not decoded:
            return []
        try:
            payload = json.loads(decoded)
        except json.JSONDecodeError:
            logger.warning(
                "Stored questions for %s are not valid JSON", category.value
            )
            return []
        if not isinstance(payload, list):
            return []
        return [str(item) for item in payload if str(item).strip()]

    def save_questions(
        self, category: FeedbackCategory, questions: Sequence[str]
    ) -> None:
        blob = json.dumps(list(questions), ensure_ascii=False)
        try:
            self._get_redis().hset(QUESTIONS_KEY, category.value, blob)
        except RedisError as exc:
            logger.warning(
                "Could not save questions for %s: %s", category.value, exc
            )
            raise StoreUnavailableError(str(exc)) from exc
        logger.info(
            "Saved %d questions for %s", len(questions), category.value
        )

    def append_feedback(self, record: FeedbackRecord) -> str:
        record_id = "fb-{}-{}".format(
            record.submitted_at.strftime("%Y%m%d%H%M%S"),
            uuid4().hex[:6],
        )
        payload = record.to_dict()
        payload["id"] = record_id
        client = self._get_redis()
        try:
            # The document and its index entries land together or not at all.
            with client.pipeline(transaction=True) as pipe:
                pipe.set(
                    _feedback_key(record_id),
                    json.dumps(payload, ensure_ascii=False),
                )
                pipe.zadd(
                    FEEDBACK_INDEX_KEY,
                    {record_id: record.submitted_at.timestamp()},
                )
                pipe.hset(  # type: ignore[call-overload]
                    FEEDBACK_CATEGORY_KEY,
                    record_id,
                    record.category.value,
                )
                pipe.execute()
        except RedisError as exc:
            logger.warning("Could not store feedback %s: %s", record_id, exc)
            raise StoreUnavailableError(str(exc)) from exc
        record.id = record_id
        return record_id

    def _read_payload(self, record_id: str) -> Dict[str, Any]:
        try:
            raw = self._get_redis().get(_feedback_key(record_id))
        except RedisError as exc:
            logger.warning("Could not read feedback %s: %s", record_id, exc)
            raise StoreUnavailableError(str(exc)) from exc
        decoded = self._decode(raw)
        if not decoded:
            raise FeedbackNotFoundError(record_id)
        try:
            payload = json.loads(decoded)
        except json.JSONDecodeError as exc:
            raise FeedbackNotFoundError(record_id) from exc
        if not isinstance(payload, dict):
            raise FeedbackNotFoundError(record_id)
        payload.setdefault("id", record_id)
        return payload

    def update_feedback_summary(self, record_id: str, summary: str) -> None:
        payload = self._read_payload(record_id)
        payload["summary"] = summary
        try:
            self._get_redis().set(
                _feedback_key(record_id),
                json.dumps(payload, ensure_ascii=False),
            )
        except RedisError as exc:
            logger.warning(
                "Could not update summary for %s: %s", record_id, exc
            )
            raise StoreUnavailableError(str(exc)) from exc

    def get_feedback(self, record_id: str) -> FeedbackRecord:
        return FeedbackRecord.from_dict(self._read_payload(record_id))

    def list_feedbacks(self, limit: Optional[int] = None) -> List[FeedbackRecord]:
        """Return feedback records, newest first."""
        if limit is not None and limit <= 0:
            return []
        end = -1 if limit is None else limit - 1
        try:
            record_ids = self._get_redis().zrevrange(FEEDBACK_INDEX_KEY, 0, end)
        except RedisError as exc:
            logger.warning("Could not list feedback: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc
        records: List[FeedbackRecord] = []
        for raw_id in record_ids:
            record_id = self._decode(raw_id) or ""
            try:
                records.append(self.get_feedback(record_id))
            except FeedbackNotFoundError:
                logger.warning("Indexed feedback %s is missing", record_id)
        return records
