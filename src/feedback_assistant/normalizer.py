"""Turn raw model output into a clean list of question strings.

Models are asked for a JSON array but do not always comply, so two formats are
accepted: a JSON array (optionally wrapped in a single code fence) and a
free-text list with one question per line, possibly numbered.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Literal, Optional

logger = logging.getLogger(__name__)

Strategy = Literal["structured", "free_text"]

_FENCE_LINE = re.compile(r"^```[\w+.-]*$")
_FENCED_BLOCK = re.compile(r"^```[\w+.-]*\s*\n(?P<body>.*?)\n?```$", re.DOTALL)
_ORDINAL_PREFIX = re.compile(r"^[0-9]+\.\s*")
_BRACKETS = re.compile(r"[\[\]]")


class GenerationParseError(ValueError):
    """Raised when model output yields no questions in any accepted format."""


@dataclass(frozen=True, slots=True)
class NormalizedQuestions:
    """Questions extracted from model output and the strategy that found them."""

    questions: List[str]
    strategy: Strategy


def normalize_questions(raw: str) -> NormalizedQuestions:
    """Extract an ordered list of non-empty questions from ``raw``."""

    structured = _parse_structured(raw)
    if structured is not None:
        if structured:
            return NormalizedQuestions(questions=structured, strategy="structured")
        if _is_empty_array(raw):
            return NormalizedQuestions(questions=[], strategy="structured")

    questions = _parse_free_text(raw)
    if questions:
        return NormalizedQuestions(questions=questions, strategy="free_text")

    logger.debug("Unable to extract questions from model output: %r", raw[:200])
    raise GenerationParseError("Model output did not contain any questions.")


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        pass
    match = _FENCED_BLOCK.match(text.strip())
    if match is None:
        raise ValueError("not JSON")
    try:
        return json.loads(match.group("body"))
    except json.JSONDecodeError as exc:
        raise ValueError("fenced body is not JSON") from exc


def _parse_structured(raw: str) -> Optional[List[str]]:
    """Return cleaned array items, or ``None`` when ``raw`` is not an array."""

    try:
        payload = _load_json(raw)
    except ValueError:
        return None
    if not isinstance(payload, list):
        return None
    cleaned = (_as_text(item).strip() for item in payload)
    return [item for item in cleaned if item]


def _is_empty_array(raw: str) -> bool:
    try:
        return _load_json(raw) == []
    except ValueError:
        return False


def _as_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    return json.dumps(item, ensure_ascii=False)


def _parse_free_text(raw: str) -> List[str]:
    questions: List[str] = []
    for line in raw.splitlines():
        candidate = line.strip()
        if not candidate or _FENCE_LINE.match(candidate):
            continue
        candidate = _ORDINAL_PREFIX.sub("", candidate)
        candidate = _BRACKETS.sub("", candidate).strip()
        if candidate:
            questions.append(candidate)
    return questions
