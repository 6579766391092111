"""Text generation orchestrator.

generate(prompt, context, tier) always returns a string:

  1. Pick a provider: the primary unless it is unavailable (no key, provider
     cooling, or the requested tier cooling) and the alternate is usable.
  2. Call it with the tier's current model. Success resets the tier's failure
     count and writes the text to the context's cache.
  3. Quota errors rotate to the next model (and eventually park the tier or
     provider), then retry with a linear backoff, at most max_attempts calls.
     Every attempt re-resolves the provider, so an exhausted vendor hands over
     to the other one.
  4. Anything else (a non-quota error, attempts used up, or no provider at all)
     falls back to a random cached text for the context, then to
     FALLBACK_TEXT.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from glutton.models import ModelTier
from glutton.provider_state import ProviderStateTracker
from glutton.providers import LLMProvider, is_quota_error
from glutton.storage import Storage

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
BACKOFF_SECONDS = 0.5

# Degraded output per context. List values are sampled at random.
FALLBACK_TEXT: dict[str, str | list[str]] = {
    "thought": ["(´ω｀)", "(o^^o)", "(・_・)", "(｡•̀ᴗ-)✧", "(˘ω˘)", "(°ロ°)"],
    "name": ["cipher", "flux", "echo", "null", "void", "spark", "drift", "nexus", "core", "shade"],
    "paragraph": [
        "In the quiet corners of the digital void, a creature made of forgotten syntax roams.",
        "Language is not just a tool; it is a living tissue, an organic mesh of meaning.",
        "Every letter carries a weight of history. The vowel 'A' once stood for an ox.",
        "To consume is to remember. The glutton preserves words in a dance of floating geometry.",
        "Beware the silence between the words. It is there that the glutton waits.",
        "Code is poetry written for machines, but digested by the soul.",
        "A function without a return value is like a question without an answer.",
        "Recursion is the echo of the universe looking at itself.",
    ],
    "story_outline": "{}",
    "story_background": "[]",
    "story_stream": "[]",
}
DEFAULT_FALLBACK = "..."


def default_text(context: str, rng: random.Random | None = None) -> str:
    value = FALLBACK_TEXT.get(context, DEFAULT_FALLBACK)
    if isinstance(value, list):
        return (rng or random).choice(value)
    return value


class TextGenerator:
    def __init__(
        self,
        providers: Sequence[LLMProvider],
        storage: Storage,
        primary: str = "gemini",
        state: ProviderStateTracker | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        backoff: float = BACKOFF_SECONDS,
    ) -> None:
        self._providers = list(providers)
        self._storage = storage
        self._primary = primary
        self.state = state or ProviderStateTracker()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._max_attempts = max_attempts
        self._backoff = backoff

    # ------------------------------------------------------------------
    # Provider selection
    # ------------------------------------------------------------------

    def _usable(self, provider: LLMProvider, tier: ModelTier) -> bool:
        return (
            provider.available
            and bool(provider.models.get(tier))
            and not self.state.is_provider_cooling(provider.name)
            and not self.state.is_tier_cooling(provider.name, tier)
        )

    def resolve_provider(self, tier: ModelTier) -> LLMProvider | None:
        """Primary first; swap to an alternate only when the primary is unusable."""
        ordered = sorted(self._providers, key=lambda p: p.name != self._primary)
        for provider in ordered:
            if self._usable(provider, tier):
                return provider
        return None

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, prompt: str, context: str, tier: ModelTier = "fast") -> str:
        last_error: BaseException | None = None

        for attempt in range(self._max_attempts):
            provider = self.resolve_provider(tier)
            if provider is None:
                logger.warning("no provider available context=%s tier=%s", context, tier)
                break

            if attempt > 0:
                await self._sleep(self._backoff * attempt)

            models = provider.models[tier]
            model = self.state.select_model(provider.name, tier, models)
            try:
                text = (await provider.complete(model, prompt)).strip()
                if not text:
                    raise ValueError(f"{provider.name}/{model} returned empty text")
            except Exception as e:
                last_error = e
                if is_quota_error(e):
                    logger.warning(
                        "quota hit provider=%s model=%s context=%s attempt=%d",
                        provider.name, model, context, attempt + 1,
                    )
                    self.state.record_quota_failure(
                        provider.name, tier, len(models), provider.cooldown_scope
                    )
                    continue
                logger.warning(
                    "generation failed provider=%s model=%s context=%s: %s",
                    provider.name, model, context, e,
                )
                break

            self.state.record_success(provider.name, tier)
            self._cache_write(context, text)
            return text

        if last_error is not None:
            logger.info("falling back for context=%s after: %s", context, last_error)
        return self._fallback(context)

    def _cache_write(self, context: str, text: str) -> None:
        try:
            self._storage.save_generated_content(context, text)
        except OSError as e:
            logger.warning("could not cache generated content context=%s: %s", context, e)

    def _fallback(self, context: str) -> str:
        try:
            cached = self._storage.get_cached_content(context, rng=self._rng)
        except OSError as e:
            logger.warning("cache read failed context=%s: %s", context, e)
            cached = None
        if cached:
            logger.info("serving cached content for context=%s", context)
            return cached
        logger.info("serving hardcoded fallback for context=%s", context)
        return default_text(context, self._rng)

    def status(self) -> dict[str, Any]:
        return {
            "primary": self._primary,
            "providers": [
                {"name": p.name, "available": p.available, "cooldown_scope": p.cooldown_scope}
                for p in self._providers
            ],
            "state": self.state.snapshot(),
        }
