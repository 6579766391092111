"""Reactive thoughts and names built from a worm's eaten words."""

import logging
import random
import re

from glutton.generation import TextGenerator, default_text
from glutton.models import normalize_word
from glutton.prompts import NAME_PROMPT, THOUGHT_PROMPT, render_prompt

logger = logging.getLogger(__name__)

MAX_THOUGHT_WORDS = 4
EMPTY_THOUGHT = "(´ω｀)"
VOCAB_PROMPT_LIMIT = 50

_KAOMOJI = re.compile(r"[()^._´ω]")
_NAME = re.compile(r"[a-z]{2,12}")


def is_kaomoji(word: str) -> bool:
    return bool(_KAOMOJI.search(word))


def filter_thought(text: str, vocabulary: list[str] | set[str]) -> str:
    """Keep only eaten words and kaomoji, at most four of them."""
    allowed = {normalize_word(w) for w in vocabulary}
    kept = [
        word for word in text.split()
        if normalize_word(word) in allowed or is_kaomoji(word)
    ]
    if not kept:
        return EMPTY_THOUGHT
    return " ".join(kept[:MAX_THOUGHT_WORDS])


async def generate_thought(generator: TextGenerator, vocabulary: list[str]) -> str:
    if not vocabulary:
        return "..."
    prompt = render_prompt(THOUGHT_PROMPT, {"vocab": ", ".join(vocabulary[:VOCAB_PROMPT_LIMIT])})
    text = await generator.generate(prompt, "thought", tier="fast")
    return filter_thought(text, vocabulary)


async def generate_name(
    generator: TextGenerator, vocabulary: list[str], rng: random.Random | None = None
) -> str:
    prompt = render_prompt(NAME_PROMPT, {"vocab": ", ".join(vocabulary[:VOCAB_PROMPT_LIMIT])})
    text = await generator.generate(prompt, "name", tier="fast")
    match = _NAME.search(text.lower())
    if match is None:
        logger.info("unusable name %r, picking a default", text)
        return default_text("name", rng)
    return match.group(0)
