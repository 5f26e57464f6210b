"""Chat-completion clients for the AI-assisted lookups (OpenAI or Gemini)."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from backoffice.core.config import settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 30.0


@dataclass
class ChatMessage:
    role: str  # system / user / assistant
    content: str


@dataclass
class ChatResponse:
    content: str
    total_tokens: int
    model: str


class AIProvider(ABC):
    name: str
    default_model: str
    base_url: str

    def __init__(self, api_key: str, model: str | None = None):
        self.api_key = api_key
        self.model = model or self.default_model

    async def _post(self, path: str, body: dict[str, Any], **kwargs) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            response = await client.post(f"{self.base_url}{path}", json=body, **kwargs)
            response.raise_for_status()
            return response.json()

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        temperature: float = 0.0,
        max_tokens: int = 200,
    ) -> ChatResponse:
        """Send the conversation and return the first answer."""


class OpenAIProvider(AIProvider):
    name = "openai"
    default_model = "gpt-4o-mini"
    base_url = "https://api.openai.com/v1"

    async def chat(self, messages, temperature=0.0, max_tokens=200):
        data = await self._post(
            "/chat/completions",
            {
                "model": self.model,
                "messages": [{"role": m.role, "content": m.content} for m in messages],
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        tokens = data.get("usage", {}).get("total_tokens", 0)
        logger.info("AI chat completed", extra={"provider": self.name, "tokens": tokens})
        return ChatResponse(
            content=data["choices"][0]["message"]["content"] or "",
            total_tokens=tokens,
            model=self.model,
        )


class GeminiProvider(AIProvider):
    name = "gemini"
    default_model = "gemini-2.0-flash"
    base_url = "https://generativelanguage.googleapis.com/v1beta"

    async def chat(self, messages, temperature=0.0, max_tokens=200):
        # Gemini has no system role; it takes a separate systemInstruction
        system = [m.content for m in messages if m.role == "system"]
        body: dict[str, Any] = {
            "contents": [
                {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
                for m in messages
                if m.role != "system"
            ],
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": "\n".join(system)}]}

        data = await self._post(
            f"/models/{self.model}:generateContent", body, params={"key": self.api_key}
        )
        tokens = data.get("usageMetadata", {}).get("totalTokenCount", 0)
        logger.info("AI chat completed", extra={"provider": self.name, "tokens": tokens})
        parts = data["candidates"][0]["content"].get("parts", [])
        return ChatResponse(
            content="".join(p.get("text", "") for p in parts),
            total_tokens=tokens,
            model=self.model,
        )


PROVIDERS: dict[str, type[AIProvider]] = {
    OpenAIProvider.name: OpenAIProvider,
    GeminiProvider.name: GeminiProvider,
}


def get_provider(provider_name: str, api_key: str, model: str | None = None) -> AIProvider:
    provider_class = PROVIDERS.get(provider_name.strip().lower())
    if provider_class is None:
        raise ValueError(f"Unknown AI provider: {provider_name}")
    return provider_class(api_key, model=model)


def get_configured_provider() -> AIProvider | None:
    """Provider from settings, or None when AI is not configured."""
    if not settings.ai_enabled:
        return None
    return get_provider(settings.AI_PROVIDER, settings.AI_API_KEY, settings.AI_MODEL or None)
