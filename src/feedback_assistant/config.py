"""Configuration helpers for the customer feedback assistant."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from importlib import import_module
from typing import Optional

MIN_QUESTIONS_TO_GENERATE = 1
MAX_QUESTIONS_TO_GENERATE = 10
DEFAULT_QUESTION_COUNT = 5
NUM_QUESTIONS_FOR_PREVIEW = 3

DEFAULT_CORE_VALUES = (
    "Integrity, Customer Focus, Innovation, Collaboration, Excellence"
)
DEFAULT_QUALITY_SUBSETS = (
    "Product Quality, Service Speed, Communication Clarity, Problem Resolution"
)


class FeedbackCategory(str, Enum):
    """Closed set of feedback topics."""

    LEADERSHIP = "Leadership"
    DELIVERY = "Delivery"
    VENDOR_MANAGEMENT = "Vendor Management"

    @classmethod
    def from_string(
        cls,
        category: str | None,
        default: Optional["FeedbackCategory"] = None,
    ) -> "FeedbackCategory":
        """Normalize arbitrary user input into a valid category."""
        if isinstance(category, cls):
            return category
        if not category or not category.strip():
            if default is None:
                raise ValueError("Feedback category is required.")
            return default
        normalized = " ".join(category.replace("_", " ").split()).lower()
        for candidate in cls:
            if candidate.value.lower() == normalized:
                return candidate
        if default is not None:
            return default
        raise ValueError(f"Unsupported feedback category: {category}")


@dataclass(frozen=True, slots=True)
class GuidanceConfig:
    """Admin-managed guidance fed into question generation."""

    core_values: str
    quality_subsets: str

    @classmethod
    def defaults(cls) -> "GuidanceConfig":
        return cls(
            core_values=DEFAULT_CORE_VALUES,
            quality_subsets=DEFAULT_QUALITY_SUBSETS,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "core_values": self.core_values,
            "quality_subsets": self.quality_subsets,
        }


@dataclass(slots=True)
class ModelSettings:
    """Holds model-related configuration for the runtime."""

    provider: str
    model: str
    endpoint: Optional[str]
    api_key: str
    api_version: Optional[str]


@dataclass(slots=True)
class AppSettings:
    """Top-level application settings loaded from environment variables."""

    model: ModelSettings
    redis_url: str
    question_count: int
    otlp_endpoint: Optional[str]

    @classmethod
    def load(cls) -> "AppSettings":
        """Load settings from the environment or .env file."""
        _ensure_dotenv()
        provider = os.getenv("FEEDBACK_MODEL_PROVIDER", "openai")
        model = os.getenv("FEEDBACK_MODEL")
        if not model:
            raise RuntimeError("FEEDBACK_MODEL environment variable is required.")
        endpoint = os.getenv("FEEDBACK_MODEL_ENDPOINT")
        api_key = os.getenv("FEEDBACK_MODEL_API_KEY")
        if not api_key:
            raise RuntimeError(
                "FEEDBACK_MODEL_API_KEY environment variable is required."
            )
        api_version = os.getenv("FEEDBACK_MODEL_API_VERSION")
        redis_url = os.getenv(
            "FEEDBACK_REDIS_URL", "redis://localhost:6379/0"
        ).strip()
        if not redis_url:
            raise RuntimeError("FEEDBACK_REDIS_URL must not be empty.")
        count_raw = os.getenv(
            "FEEDBACK_QUESTION_COUNT", str(DEFAULT_QUESTION_COUNT)
        )
        try:
            question_count = int(count_raw)
        except ValueError as exc:
            raise RuntimeError(
                "FEEDBACK_QUESTION_COUNT must be an integer"
            ) from exc
        if not (
            MIN_QUESTIONS_TO_GENERATE
            <= question_count
            <= MAX_QUESTIONS_TO_GENERATE
        ):
            raise RuntimeError(
                "FEEDBACK_QUESTION_COUNT must be between "
                f"{MIN_QUESTIONS_TO_GENERATE} and {MAX_QUESTIONS_TO_GENERATE}"
            )
        otlp_endpoint = os.getenv("FEEDBACK_OTLP_ENDPOINT") or None
        return cls(
            model=ModelSettings(
                provider=provider,
                model=model,
                endpoint=endpoint,
                api_key=api_key,
                api_version=api_version,
            ),
            redis_url=redis_url,
            question_count=question_count,
            otlp_endpoint=otlp_endpoint,
        )


def _ensure_dotenv() -> None:
    """Load dotenv variables and provide a helpful error if missing."""

    try:
        dotenv_module = import_module("dotenv")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dep
        raise RuntimeError(
            "python-dotenv is required. Install with `pip install "
            "python-dotenv`."
        ) from exc

    load_dotenv = getattr(dotenv_module, "load_dotenv")
    load_dotenv()
