"""Chat-completion client for OpenAI-compatible providers (xAI, OpenAI).

Calls are made over aiohttp against an ordered provider chain. Failures are
returned as values (``AIResult`` with an ``AIError``) so callers decide how
to fall back; nothing here raises for provider problems. API keys never
appear in log lines or error messages.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

import aiohttp

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class AIError:
    """Why an AI call produced no usable value."""

    kind: str  # not_configured, timeout, http, transport, parse
    message: str
    provider: Optional[str] = None
    status: Optional[int] = None

    def __str__(self) -> str:
        where = f"{self.provider}: " if self.provider else ""
        return f"{where}{self.kind} ({self.message})"


@dataclass
class AIResult(Generic[T]):
    """Either a value or an error, never both."""

    value: Optional[T] = None
    error: Optional[AIError] = None
    provider: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, provider: Optional[str] = None) -> "AIResult[T]":
        return cls(value=value, provider=provider)

    @classmethod
    def failure(cls, error: AIError) -> "AIResult[T]":
        return cls(error=error, provider=error.provider)


@dataclass(frozen=True)
class ProviderConfig:
    """One OpenAI-compatible endpoint in the provider chain."""

    name: str
    base_url: str
    api_key: str
    model: str

    def __repr__(self) -> str:
        return f"<ProviderConfig {self.name} model={self.model}>"


class ChatCompletionClient:
    """Send JSON-mode chat completions, trying each provider in order."""

    def __init__(
        self,
        providers: list[ProviderConfig],
        timeout_seconds: float = 20.0,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
    ):
        """
        Initialize client.

        Args:
            providers: Ordered provider chain; the first success wins
            timeout_seconds: Total timeout for each provider call
            session_factory: Creates the aiohttp session (injectable for tests)
        """
        self.providers = [p for p in providers if p.api_key]
        self.timeout_seconds = timeout_seconds
        self._session_factory = session_factory

    @classmethod
    def from_settings(cls, settings) -> "ChatCompletionClient":
        """Build the xAI -> OpenAI chain from application settings."""
        providers = []
        if settings.xai_api_key:
            providers.append(
                ProviderConfig("xai", settings.xai_base_url, settings.xai_api_key, settings.xai_model)
            )
        if settings.openai_api_key:
            providers.append(
                ProviderConfig("openai", settings.openai_base_url, settings.openai_api_key, settings.openai_model)
            )
        return cls(providers, timeout_seconds=settings.ai_timeout_seconds)

    @property
    def configured(self) -> bool:
        return bool(self.providers)

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
    ) -> AIResult[dict]:
        """Return the first provider's reply parsed as a JSON object."""
        if not self.providers:
            return AIResult.failure(AIError("not_configured", "no AI provider API key set"))

        last_error: Optional[AIError] = None
        for provider in self.providers:
            result = await self._call(provider, system_prompt, user_prompt, temperature)
            if result.ok:
                logger.debug("AI completion served by %s", provider.name)
                return result
            last_error = result.error
            logger.warning("AI provider %s failed: %s", provider.name, result.error)

        return AIResult.failure(last_error)

    async def _call(
        self,
        provider: ProviderConfig,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
    ) -> AIResult[dict]:
        url = f"{provider.base_url.rstrip('/')}/chat/completions"
        payload = {
            "model": provider.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": temperature,
        }
        headers = {
            "Authorization": f"Bearer {provider.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with self._session_factory() as session:
                async with session.post(
                    url,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        return AIResult.failure(
                            AIError("http", f"HTTP {resp.status}", provider.name, resp.status)
                        )
                    body = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            return AIResult.failure(
                AIError("timeout", f"no reply within {self.timeout_seconds:.0f}s", provider.name)
            )
        except aiohttp.ClientError as e:
            # Exception text can echo request headers; keep only the type
            return AIResult.failure(AIError("transport", type(e).__name__, provider.name))
        except ValueError:
            return AIResult.failure(AIError("parse", "response body is not JSON", provider.name))

        return self._parse_completion(body, provider.name)

    @staticmethod
    def _parse_completion(body: Any, provider_name: str) -> AIResult[dict]:
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return AIResult.failure(AIError("parse", "unexpected completion shape", provider_name))

        if not content:
            return AIResult.failure(AIError("parse", "empty completion content", provider_name))

        try:
            parsed = json.loads(content)
        except (TypeError, ValueError):
            return AIResult.failure(AIError("parse", "completion content is not JSON", provider_name))

        if not isinstance(parsed, dict):
            return AIResult.failure(AIError("parse", "completion JSON is not an object", provider_name))

        return AIResult.success(parsed, provider_name)
