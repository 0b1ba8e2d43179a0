"""Shared fixtures: an in-memory Redis double and a scripted model."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from feedback_assistant.generation import FeedbackSummarizer, QuestionGenerator
from feedback_assistant.services import Services
from feedback_assistant.store import RedisFeedbackStore


class FakeRedis:
    """Implements the handful of Redis commands the store issues."""

    def __init__(self) -> None:
        self.strings: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.fail = False
        self.failing_commands: Set[str] = set()

    def _check(self, command: str = "") -> None:
        if self.fail or command in self.failing_commands:
            raise RedisConnectionError("redis is down")

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)

    def get(self, key: str) -> Optional[str]:
        self._check("get")
        return self.strings.get(key)

    def set(self, key: str, value: str) -> bool:
        self._check("set")
        self.strings[key] = value
        return True

    def hget(self, name: str, key: str) -> Optional[str]:
        self._check("hget")
        return self.hashes.get(name, {}).get(key)

    def hgetall(self, name: str) -> Dict[str, str]:
        self._check("hgetall")
        return dict(self.hashes.get(name, {}))

    def hset(
        self,
        name: str,
        key: Optional[str] = None,
        value: Optional[str] = None,
        mapping: Optional[Dict[str, str]] = None,
    ) -> int:
        self._check("hset")
        bucket = self.hashes.setdefault(name, {})
        items = dict(mapping or {})
        if key is not None:
            items[key] = value  # type: ignore[assignment]
        bucket.update(items)
        return len(items)

    def zadd(self, name: str, mapping: Dict[str, float]) -> int:
        self._check("zadd")
        self.zsets.setdefault(name, {}).update(mapping)
        return len(mapping)

    def zrevrange(self, name: str, start: int, end: int) -> List[str]:
        self._check("zrevrange")
        ordered = sorted(
            self.zsets.get(name, {}).items(),
            key=lambda item: item[1],
            reverse=True,
        )
        members = [member for member, _ in ordered]
        if end == -1:
            return members[start:]
        return members[start:end + 1]


class FakePipeline:
    """Queues writes and applies them only if every one of them succeeds."""

    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._queued: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []

    def __enter__(self) -> "FakePipeline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._queued.clear()

    def _queue(self, command: str, *args: Any, **kwargs: Any) -> "FakePipeline":
        self._queued.append((command, args, kwargs))
        return self

    def set(self, *args: Any, **kwargs: Any) -> "FakePipeline":
        return self._queue("set", *args, **kwargs)

    def zadd(self, *args: Any, **kwargs: Any) -> "FakePipeline":
        return self._queue("zadd", *args, **kwargs)

    def hset(self, *args: Any, **kwargs: Any) -> "FakePipeline":
        return self._queue("hset", *args, **kwargs)

    def execute(self) -> List[Any]:
        for command, _, _ in self._queued:
            self._redis._check(command)
        results = [
            getattr(self._redis, command)(*args, **kwargs)
            for command, args, kwargs in self._queued
        ]
        self._queued.clear()
        return results


Scripted = Union[str, BaseException]


class ScriptedCompletionClient:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: Sequence[Scripted] = ()) -> None:
        self.responses: List[Scripted] = list(responses)
        self.prompts: List[str] = []
        self.system_prompts: List[Optional[str]] = []

    async def complete_text(
        self, prompt: str, *, system_prompt: Optional[str] = None
    ) -> str:
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        if not self.responses:
            return ""
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis: FakeRedis) -> RedisFeedbackStore:
    return RedisFeedbackStore(client=fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def completion() -> ScriptedCompletionClient:
    return ScriptedCompletionClient()


@pytest.fixture
def summarizer(completion: ScriptedCompletionClient) -> FeedbackSummarizer:
    return FeedbackSummarizer(completion)


@pytest.fixture
def generator(completion: ScriptedCompletionClient) -> QuestionGenerator:
    return QuestionGenerator(completion)


@pytest.fixture
def services(
    store: RedisFeedbackStore, completion: ScriptedCompletionClient
) -> Services:
    return Services.create(store, completion)

