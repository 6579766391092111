"""Tests for glutton.generation — provider swap, model rotation, retry and fallback."""

import random

import pytest

from glutton.generation import FALLBACK_TEXT, TextGenerator, default_text
from glutton.provider_state import ProviderStateTracker
from glutton.providers import ProviderError
from glutton.storage import Storage


class ScriptedProvider:
    """Returns canned responses in order; exceptions in the script are raised."""

    def __init__(self, name, responses=(), models=None, scope="tier", available=True):
        self.name = name
        self.models = models or {"fast": ["f0", "f1"], "advanced": ["a0"]}
        self.cooldown_scope = scope
        self._available = available
        self.responses = list(responses)
        self.calls: list[tuple[str, str]] = []

    @property
    def available(self) -> bool:
        return self._available

    async def complete(self, model: str, prompt: str) -> str:
        self.calls.append((model, prompt))
        item = self.responses.pop(0) if self.responses else ProviderError("script empty")
        if isinstance(item, BaseException):
            raise item
        return item


def _limited(code: int = 429) -> ProviderError:
    return ProviderError("rate limited", status_code=code)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


def _generator(storage, providers, sleep, clock=None, **kwargs) -> TextGenerator:
    state = ProviderStateTracker(clock=clock or FakeClock())
    return TextGenerator(providers, storage, state=state, sleep=sleep,
                         rng=random.Random(0), **kwargs)


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestSuccess:
    @pytest.mark.asyncio
    async def test_returns_stripped_text_and_caches(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", ["  hello worm \n"])
        gen = _generator(storage, [gemini], sleep)
        assert await gen.generate("p", "paragraph") == "hello worm"
        assert storage.get_cached_content("paragraph") == "hello worm"
        assert gemini.calls == [("f0", "p")]

    @pytest.mark.asyncio
    async def test_advanced_tier_uses_advanced_models(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", ["{}"])
        gen = _generator(storage, [gemini], sleep)
        await gen.generate("p", "story_outline", tier="advanced")
        assert gemini.calls[0][0] == "a0"

    @pytest.mark.asyncio
    async def test_primary_preferred(self, storage: Storage, sleep) -> None:
        groq = ScriptedProvider("groq", ["from groq"], scope="provider")
        gemini = ScriptedProvider("gemini", ["from gemini"])
        gen = _generator(storage, [groq, gemini], sleep)
        assert await gen.generate("p", "name") == "from gemini"
        assert groq.calls == []

    @pytest.mark.asyncio
    async def test_groq_as_primary(self, storage: Storage, sleep) -> None:
        groq = ScriptedProvider("groq", ["from groq"], scope="provider")
        gemini = ScriptedProvider("gemini", ["from gemini"])
        gen = _generator(storage, [gemini, groq], sleep, primary="groq")
        assert await gen.generate("p", "name") == "from groq"


# ---------------------------------------------------------------------------
# Quota handling
# ---------------------------------------------------------------------------

class TestQuota:
    @pytest.mark.asyncio
    async def test_rotates_to_next_model_and_backs_off(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", [_limited(), "second model"])
        gen = _generator(storage, [gemini], sleep)
        assert await gen.generate("p", "paragraph") == "second model"
        assert [m for m, _ in gemini.calls] == ["f0", "f1"]
        assert sleep.delays == [0.5]
        assert gen.state.provider("gemini").tier("fast").failure_count == 0

    @pytest.mark.asyncio
    async def test_swaps_provider_when_tier_exhausted(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", [_limited(), _limited()])
        groq = ScriptedProvider("groq", ["groq saves the day"], scope="provider")
        gen = _generator(storage, [gemini, groq], sleep)

        assert await gen.generate("p", "paragraph") == "groq saves the day"
        assert len(gemini.calls) == 2
        assert gen.state.is_tier_cooling("gemini", "fast")
        assert sleep.delays == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_cooling_tier_skipped_on_next_call(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", [_limited(), _limited(), "advanced ok"])
        groq = ScriptedProvider("groq", ["first", "second"], scope="provider")
        gen = _generator(storage, [gemini, groq], sleep)

        await gen.generate("p", "paragraph")
        assert await gen.generate("p", "paragraph") == "second"
        assert await gen.generate("p", "story_outline", tier="advanced") == "advanced ok"

    @pytest.mark.asyncio
    async def test_cooldown_expiry_returns_to_primary(self, storage: Storage, sleep) -> None:
        clock = FakeClock()
        gemini = ScriptedProvider("gemini", [_limited(), _limited(), "gemini back"])
        groq = ScriptedProvider("groq", ["groq"], scope="provider")
        gen = _generator(storage, [gemini, groq], sleep, clock=clock)

        await gen.generate("p", "paragraph")
        clock.now += 121
        assert await gen.generate("p", "paragraph") == "gemini back"

    @pytest.mark.asyncio
    async def test_all_quota_empty_cache_uses_name_fallback(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", [_limited()] * 10)
        groq = ScriptedProvider("groq", [_limited()] * 10, models={"fast": ["g0"]},
                                scope="provider")
        gen = _generator(storage, [gemini, groq], sleep)

        result = await gen.generate("p", "name")
        assert result in FALLBACK_TEXT["name"]
        assert storage.cache_size("name") == 0

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", [_limited()] * 20,
                                  models={"fast": [f"m{i}" for i in range(10)]})
        gen = _generator(storage, [gemini], sleep)

        await gen.generate("p", "paragraph")
        assert len(gemini.calls) == 5
        assert sleep.delays == [0.5, 1.0, 1.5, 2.0]

    @pytest.mark.asyncio
    async def test_all_quota_serves_cached_text(self, storage: Storage, sleep) -> None:
        storage.save_generated_content("thought", "(cached)")
        gemini = ScriptedProvider("gemini", [_limited()] * 10)
        gen = _generator(storage, [gemini], sleep)
        assert await gen.generate("p", "thought") == "(cached)"


# ---------------------------------------------------------------------------
# Non-quota failures + no providers
# ---------------------------------------------------------------------------

class TestFallback:
    @pytest.mark.asyncio
    async def test_non_quota_error_does_not_retry(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", [ProviderError("boom", status_code=500), "never"])
        groq = ScriptedProvider("groq", ["never either"], scope="provider")
        gen = _generator(storage, [gemini, groq], sleep)

        result = await gen.generate("p", "story_background")
        assert result == "[]"
        assert len(gemini.calls) == 1
        assert groq.calls == []
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_empty_text_falls_back(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", ["   "])
        gen = _generator(storage, [gemini], sleep)
        assert await gen.generate("p", "paragraph") in FALLBACK_TEXT["paragraph"]
        assert storage.cache_size("paragraph") == 0

    @pytest.mark.asyncio
    async def test_no_available_provider(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", ["unused"], available=False)
        gen = _generator(storage, [gemini], sleep)
        assert await gen.generate("p", "story_outline") == "{}"
        assert gemini.calls == []

    @pytest.mark.asyncio
    async def test_unknown_context_default(self, storage: Storage, sleep) -> None:
        gen = _generator(storage, [], sleep)
        assert await gen.generate("p", "mystery") == "..."

    @pytest.mark.asyncio
    async def test_unavailable_primary_swaps(self, storage: Storage, sleep) -> None:
        gemini = ScriptedProvider("gemini", available=False)
        groq = ScriptedProvider("groq", ["from groq"], scope="provider")
        gen = _generator(storage, [gemini, groq], sleep)
        assert await gen.generate("p", "name") == "from groq"


def test_default_text_list_contexts_sample() -> None:
    rng = random.Random(1)
    assert default_text("thought", rng) in FALLBACK_TEXT["thought"]
    assert default_text("story_background") == "[]"


def test_status_reports_providers(storage: Storage) -> None:
    gen = TextGenerator([ScriptedProvider("gemini", available=False)], storage)
    status = gen.status()
    assert status["primary"] == "gemini"
    assert status["providers"] == [
        {"name": "gemini", "available": False, "cooldown_scope": "tier"}
    ]
