"""LLM providers — HTTP connections to the text-generation vendors.

The orchestrator talks to every vendor through one protocol:

    async def complete(self, model: str, prompt: str) -> str: ...

Each provider also declares its candidate models per tier and how a quota
exhaustion should cool it down ("tier" parks only the exhausted tier,
"provider" parks the whole vendor).

Two implementations are provided:

    GeminiProvider — Google Generative Language REST API (generateContent).
    GroqProvider   — OpenAI-compatible chat completions (Groq by default).

Production code builds both with build_providers(settings). Tests use
scripted providers defined in the test modules instead.
"""

from __future__ import annotations

import logging
import traceback
from typing import Literal, Protocol

import httpx

from glutton.config import GEMINI_MODELS, GROQ_MODELS, Settings
from glutton.models import ModelTier

logger = logging.getLogger(__name__)

CooldownScope = Literal["tier", "provider"]


# ---------------------------------------------------------------------------
# Protocol: every provider must match this shape
# ---------------------------------------------------------------------------

class LLMProvider(Protocol):
    name: str
    models: dict[ModelTier, list[str]]
    cooldown_scope: CooldownScope

    @property
    def available(self) -> bool: ...

    async def complete(self, model: str, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ProviderError(RuntimeError):
    """Raised when a provider cannot be reached or returns an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderUnavailable(ProviderError):
    """The provider has no credential configured."""


def is_quota_error(exc: BaseException) -> bool:
    """True for rate-limit/quota signatures: HTTP 429, RESOURCE_EXHAUSTED, or "quota"."""
    if getattr(exc, "status_code", None) == 429:
        return True
    message = str(exc)
    if "RESOURCE_EXHAUSTED" in message or "quota" in message.lower():
        return True
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return "quota" in stack.lower()


# ---------------------------------------------------------------------------
# Shared HTTP plumbing
# ---------------------------------------------------------------------------

class _HttpProvider:
    name = "http"
    cooldown_scope: CooldownScope = "tier"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        models: dict[ModelTier, list[str]],
        timeout: float = 60.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self.models = models

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _build_request(self, model: str, prompt: str) -> tuple[str, dict]:
        raise NotImplementedError

    def _parse_response(self, data: dict) -> str:
        raise NotImplementedError

    async def complete(self, model: str, prompt: str) -> str:
        if not self.available:
            raise ProviderUnavailable(f"{self.name}: no API key configured")

        url, body = self._build_request(model, prompt)
        logger.debug("llm call provider=%s model=%s prompt_len=%d", self.name, model, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise ProviderError(f"{self.name}: cannot connect to {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderError(
                f"{self.name}: HTTP {status}: {e.response.text[:300]}",
                status_code=status,
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderError(f"{self.name}: timed out after {self._timeout}s") from e

        text = self._parse_response(resp.json())
        logger.debug("llm response provider=%s model=%s len=%d", self.name, model, len(text))
        return text


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------

class GeminiProvider(_HttpProvider):
    """Google Generative Language API.

    POST {base}/v1beta/models/{model}:generateContent
         {"contents": [{"parts": [{"text": ...}]}]}
    Response: {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}

    Quota exhaustion parks only the exhausted tier.
    """

    name = "gemini"
    cooldown_scope: CooldownScope = "tier"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com",
        models: dict[ModelTier, list[str]] | None = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(base_url, api_key, models or GEMINI_MODELS, timeout)

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self._api_key}

    def _build_request(self, model: str, prompt: str) -> tuple[str, dict]:
        url = f"{self._base_url}/v1beta/models/{model}:generateContent"
        return url, {"contents": [{"parts": [{"text": prompt}]}]}

    def _parse_response(self, data: dict) -> str:
        candidates = data.get("candidates")
        if not candidates:
            raise ProviderError("gemini: unexpected response format (no candidates)")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts = [p["text"] for p in parts if isinstance(p, dict) and "text" in p]
        if not texts:
            raise ProviderError("gemini: unexpected response format (no text parts)")
        return "".join(texts)


# ---------------------------------------------------------------------------
# Groq (OpenAI-compatible)
# ---------------------------------------------------------------------------

class GroqProvider(_HttpProvider):
    """OpenAI-compatible chat completions endpoint.

    POST {base}/chat/completions
         {"model": ..., "messages": [{"role": "user", "content": ...}]}
    Response: {"choices": [{"message": {"content": "..."}}]}

    Quota exhaustion parks the whole provider.
    """

    name = "groq"
    cooldown_scope: CooldownScope = "provider"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        models: dict[ModelTier, list[str]] | None = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(base_url, api_key, models or GROQ_MODELS, timeout)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _build_request(self, model: str, prompt: str) -> tuple[str, dict]:
        url = f"{self._base_url}/chat/completions"
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }
        return url, body

    def _parse_response(self, data: dict) -> str:
        choices = data.get("choices")
        if not choices:
            raise ProviderError("groq: unexpected response format (no choices)")
        content = (choices[0].get("message") or {}).get("content")
        if not isinstance(content, str):
            raise ProviderError("groq: unexpected response format (no message content)")
        return content


def build_providers(settings: Settings) -> list[LLMProvider]:
    return [
        GeminiProvider(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout=settings.llm_timeout,
        ),
        GroqProvider(
            api_key=settings.groq_api_key,
            base_url=settings.groq_base_url,
            timeout=settings.llm_timeout,
        ),
    ]
