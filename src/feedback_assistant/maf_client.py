"""Text completion through Microsoft Agent Framework chat clients.

The rest of the application only sees ``complete_text(prompt)``; this module
picks the Agent Framework (MAF) client for the configured provider and turns a
prompt into a single chat request.
"""

from __future__ import annotations

from importlib import import_module
from typing import List, Optional

from agent_framework import ChatMessage, Role

from .config import ModelSettings


class MAFIntegrationError(RuntimeError):
    """Raised when the MAF client cannot be initialized."""


class MAFChatClient:
    """Completion client that dispatches prompts through MAF chat clients."""

    def __init__(self, settings: ModelSettings) -> None:
        self._settings = settings
        self._client = self._create_client(settings)

    @staticmethod
    def _create_client(settings: ModelSettings):
        provider = settings.provider.lower()
        try:
            if provider in {"azure-openai", "azure_openai", "azure"}:
                module = import_module("agent_framework.azure")
                client_cls = getattr(module, "AzureOpenAIChatClient")
                return client_cls(
                    api_key=settings.api_key,
                    deployment_name=settings.model,
                    endpoint=settings.endpoint,
                    api_version=settings.api_version,
                )
            if provider in {"openai", "oai"}:
                module = import_module("agent_framework.openai")
                client_cls = getattr(module, "OpenAIChatClient")
                return client_cls(
                    api_key=settings.api_key,
                    model_id=settings.model,
                    base_url=settings.endpoint,
                )
        except ModuleNotFoundError as exc:  # pragma: no cover - MAF runtime
            missing = exc.name or "a required dependency"
            raise MAFIntegrationError(
                "Microsoft Agent Framework dependency '{missing}' is missing. "
                "Reinstall the project dependencies (e.g. `pip install -e .`)."
                .format(missing=missing)
            ) from exc
        raise MAFIntegrationError(
            f"Unsupported MAF provider '{settings.provider}'."
        )

    @staticmethod
    def build_messages(
        prompt: str, system_prompt: Optional[str] = None
    ) -> List[ChatMessage]:
        messages: List[ChatMessage] = []
        if system_prompt:
            messages.append(ChatMessage(role=Role.SYSTEM, text=system_prompt))
        messages.append(ChatMessage(role=Role.USER, text=prompt))
        return messages

    async def complete_text(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Send one prompt and return the response text (possibly empty)."""

        response = await self._client.get_response(
            messages=self.build_messages(prompt, system_prompt)
        )
        return response.text or ""
