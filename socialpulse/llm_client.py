"""LLM capability used by the pipeline: prompt in, free text out.

Anthropic is the default provider; OpenRouter is reachable through the
OpenAI-compatible SDK. Callers only see :class:`LLMClient.complete`.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import anthropic
import openai

from socialpulse.config import settings
from socialpulse.errors import UpstreamFailure
from socialpulse.services import logger as log_service
from socialpulse.services.prompt_store import json_only_system_prompt


class LLMMode(str, Enum):
    RESEARCH = "research"
    RANKING = "ranking"
    DRAFTING = "drafting"
    BRAINSTORM = "brainstorm"


@dataclass
class ModeConfig:
    model: str
    max_tokens: int


def mode_config(mode: LLMMode) -> ModeConfig:
    if mode is LLMMode.RESEARCH:
        return ModeConfig(settings.research_model, settings.research_max_tokens)
    if mode is LLMMode.RANKING:
        return ModeConfig(settings.ranking_model, settings.ranking_max_tokens)
    if mode is LLMMode.DRAFTING:
        return ModeConfig(settings.drafting_model, settings.drafting_max_tokens)
    return ModeConfig(settings.brainstorm_model, settings.brainstorm_max_tokens)


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class TextBlock:
    type: str
    text: str


@dataclass
class MessageResponse:
    content: list[Any]
    usage: Usage


def extract_text(response: Any) -> str:
    """Concatenate the text parts of a response, skipping tool-use blocks."""
    blocks = getattr(response, "content", None) or []
    parts: list[str] = []
    for block in blocks:
        if getattr(block, "type", None) != "text":
            continue
        text = getattr(block, "text", None)
        if isinstance(text, str):
            parts.append(text)
    return "\n".join(parts)


class MessagesBackend(Protocol):
    async def create(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        prompt: str,
        search: bool,
    ) -> Any: ...


class AnthropicBackend:
    def __init__(self, anthropic_client: Any):
        self._client = anthropic_client

    async def create(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        prompt: str,
        search: bool,
    ) -> Any:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
        if search:
            kwargs["tools"] = [
                {
                    "type": "web_search_20250305",
                    "name": "web_search",
                    "max_uses": settings.web_search_max_uses,
                }
            ]
        return await self._client.messages.create(**kwargs)


class OpenRouterBackend:
    def __init__(self, openai_client: Any):
        self._client = openai_client

    async def create(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        prompt: str,
        search: bool,
    ) -> MessageResponse:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        if search:
            kwargs["extra_body"] = {
                "plugins": [{"id": "web", "max_results": settings.web_search_max_uses}]
            }
        response = await self._client.chat.completions.create(**kwargs)

        message = response.choices[0].message
        text = getattr(message, "content", None)
        usage = getattr(response, "usage", None)
        return MessageResponse(
            content=[TextBlock(type="text", text=text)] if text else [],
            usage=Usage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )


class LLMClient:
    """Single-shot, JSON-only completions keyed by pipeline mode."""

    def __init__(self, backend: MessagesBackend):
        self.backend = backend

    async def complete(self, mode: LLMMode, prompt: str, *, search: bool = False) -> str:
        config = mode_config(mode)
        t0 = time.monotonic()
        try:
            response = await self.backend.create(
                model=config.model,
                max_tokens=config.max_tokens,
                system=json_only_system_prompt(),
                prompt=prompt,
                search=search,
            )
        except (anthropic.APIError, openai.APIError) as exc:
            log_service.log_llm_call(
                model=config.model,
                mode=mode.value,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(exc),
            )
            raise UpstreamFailure(mode.value, str(exc)) from exc

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=config.model,
            mode=mode.value,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return extract_text(response)


def get_client() -> LLMClient:
    """Build the client for the configured provider."""
    provider = settings.llm_provider.strip().lower()
    if provider == "openrouter":
        base_url = settings.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
        return LLMClient(
            OpenRouterBackend(
                openai.AsyncOpenAI(api_key=settings.openrouter_api_key, base_url=base_url)
            )
        )
    if provider != "anthropic":
        raise ValueError(f"Unknown llm_provider: {settings.llm_provider}")
    return LLMClient(
        AnthropicBackend(anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key or None))
    )


_client: LLMClient | None = None


def client() -> LLMClient:
    """Get or create the shared LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client
