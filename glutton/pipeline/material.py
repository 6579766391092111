"""Phases 2–4 — background passages, stream fragments, keyword coverage.

Background passages are the only place a worm can find a story's keywords to
eat, so every keyword must show up in at least two of them. When the model
under-delivers, filler sentences are synthesised until it does.
"""

import asyncio
import logging
import random
import re
import time

from glutton.generation import TextGenerator
from glutton.models import Outline, StreamFragment
from glutton.prompts import BACKGROUND_PROMPT, STREAM_PROMPT, render_prompt

from .errors import InsufficientMaterial, ParseFailure
from .extractors import parse_string_list

logger = logging.getLogger(__name__)

MIN_BACKGROUND_TEXTS = 5
MIN_STREAM_FRAGMENTS = 5
MIN_KEYWORD_OCCURRENCES = 2

FALLBACK_STREAM = [
    "the kettle clicks off in another room",
    "someone left the window open again",
    "a page turns by itself",
    "the floor remembers every footstep",
    "letters drift upward like warm ash",
]

FILLER_TEMPLATES = [
    "Somewhere in the margins, a {keyword} waited to be noticed.",
    "The journal mentions a {keyword} twice, then goes quiet.",
    "Nobody could say why the {keyword} felt so familiar.",
    "A faint outline of a {keyword} was pressed into the page.",
    "The word {keyword} was scratched into the corner, half erased.",
]


async def build_material(
    generator: TextGenerator,
    outline: Outline,
    rng: random.Random | None = None,
) -> tuple[list[str], list[StreamFragment]]:
    """Generate background passages and stream fragments concurrently."""
    keywords = outline_keywords(outline)
    ctx = {
        "title": outline.title,
        "setting": outline.setting,
        "keywords": ", ".join(keywords),
    }
    background_raw, stream_raw = await asyncio.gather(
        generator.generate(render_prompt(BACKGROUND_PROMPT, ctx), "story_background", tier="advanced"),
        generator.generate(render_prompt(STREAM_PROMPT, ctx), "story_stream", tier="advanced"),
    )

    background = _parse_or_empty(background_raw, "background")
    if len(background) < MIN_BACKGROUND_TEXTS:
        raise InsufficientMaterial(
            f"only {len(background)} background passages, need {MIN_BACKGROUND_TEXTS}"
        )

    stream = _parse_or_empty(stream_raw, "stream")
    if len(stream) < MIN_STREAM_FRAGMENTS:
        logger.warning("only %d stream fragments, using fallback stream", len(stream))
        stream = list(FALLBACK_STREAM)

    background = ensure_keyword_coverage(background, keywords, rng=rng)
    return background, make_stream_fragments(stream)


def outline_keywords(outline: Outline) -> list[str]:
    """Every keyword of the outline, in segment order, without duplicates."""
    seen: dict[str, None] = {}
    for segment in outline.segments:
        for keyword in segment.keywords:
            seen.setdefault(keyword, None)
    return list(seen)


def _parse_or_empty(raw: str, label: str) -> list[str]:
    try:
        return parse_string_list(raw)
    except ParseFailure as e:
        logger.warning("%s material unparseable: %s", label, e)
        return []


def make_stream_fragments(texts: list[str]) -> list[StreamFragment]:
    now_ms = int(time.time() * 1000)
    return [
        StreamFragment(id=f"stream-{i}", text=text, source="story", timestamp=now_ms + i)
        for i, text in enumerate(texts)
    ]


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


def count_keyword(texts: list[str], keyword: str) -> int:
    """Number of passages containing keyword as a whole word."""
    pattern = _keyword_pattern(keyword)
    return sum(1 for text in texts if pattern.search(text))


def ensure_keyword_coverage(
    texts: list[str],
    keywords: list[str],
    minimum: int = MIN_KEYWORD_OCCURRENCES,
    rng: random.Random | None = None,
) -> list[str]:
    """Return texts plus filler sentences so each keyword appears in ≥ minimum passages."""
    rng = rng or random.Random()
    patched = list(texts)
    for keyword in keywords:
        count = count_keyword(patched, keyword)
        if count < minimum:
            logger.info("keyword %r in %d passages, adding %d filler", keyword, count, minimum - count)
        while count < minimum:
            patched.append(rng.choice(FILLER_TEMPLATES).format(keyword=keyword))
            count += 1
    return patched
