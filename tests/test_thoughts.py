"""Tests for glutton.thoughts — kaomoji filter, thought and name generation."""

import random

import pytest

from glutton.generation import FALLBACK_TEXT
from glutton.thoughts import (
    EMPTY_THOUGHT,
    filter_thought,
    generate_name,
    generate_thought,
    is_kaomoji,
)


class CannedGenerator:
    """Stands in for TextGenerator: returns one canned text and records calls."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.calls: list[tuple[str, str, str]] = []

    async def generate(self, prompt: str, context: str, tier: str = "fast") -> str:
        self.calls.append((prompt, context, tier))
        return self.text


# ---------------------------------------------------------------------------
# filter_thought
# ---------------------------------------------------------------------------

class TestFilterThought:
    def test_keeps_vocabulary_words(self) -> None:
        assert filter_thought("apple rain", ["apple", "rain"]) == "apple rain"

    def test_drops_unknown_words(self) -> None:
        assert filter_thought("I love apple pie", ["apple"]) == "apple"

    def test_keeps_kaomoji(self) -> None:
        assert filter_thought("(o^^o) apple", ["apple"]) == "(o^^o) apple"

    def test_matches_after_normalising(self) -> None:
        assert filter_thought("Apple!", ["apple"]) == "Apple!"

    def test_caps_at_four_words(self) -> None:
        result = filter_thought("a a a a a a", ["a"])
        assert result == "a a a a"

    def test_empty_result_uses_default(self) -> None:
        assert filter_thought("hello world", ["apple"]) == EMPTY_THOUGHT
        assert filter_thought("", []) == EMPTY_THOUGHT

    def test_kaomoji_detection(self) -> None:
        assert is_kaomoji("(´ω｀)")
        assert is_kaomoji("^_^")
        assert not is_kaomoji("apple")


# ---------------------------------------------------------------------------
# generate_thought / generate_name
# ---------------------------------------------------------------------------

class TestGenerateThought:
    @pytest.mark.asyncio
    async def test_filters_generated_text(self) -> None:
        gen = CannedGenerator("yum apple (o^^o) tasty")
        result = await generate_thought(gen, ["apple"])
        assert result == "apple (o^^o)"
        prompt, context, tier = gen.calls[0]
        assert context == "thought"
        assert tier == "fast"
        assert "[apple]" in prompt

    @pytest.mark.asyncio
    async def test_empty_vocabulary_skips_generation(self) -> None:
        gen = CannedGenerator("anything")
        assert await generate_thought(gen, []) == "..."
        assert gen.calls == []


class TestGenerateName:
    @pytest.mark.asyncio
    async def test_single_lowercase_word(self) -> None:
        gen = CannedGenerator("  Glimmer.\n")
        assert await generate_name(gen, ["apple"]) == "glimmer"
        assert gen.calls[0][1] == "name"

    @pytest.mark.asyncio
    async def test_first_word_of_a_sentence(self) -> None:
        gen = CannedGenerator("Sprout is a fine name")
        assert await generate_name(gen, ["apple"]) == "sprout"

    @pytest.mark.asyncio
    async def test_unusable_text_picks_default(self) -> None:
        gen = CannedGenerator("!!!")
        result = await generate_name(gen, ["apple"], rng=random.Random(3))
        assert result in FALLBACK_TEXT["name"]
