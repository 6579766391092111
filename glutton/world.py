"""Floating world text: the paragraphs a worm swims through and eats from.

A worm reading a story sees its template's background passages. Fresh
paragraphs are generated on demand, seeded from the story's setting (or a
default setting when the worm has none) and an optional theme override.
"""

import asyncio
import logging

from glutton.generation import FALLBACK_TEXT, TextGenerator
from glutton.models import StoryTemplate
from glutton.prompts import PARAGRAPH_PROMPT, render_prompt

logger = logging.getLogger(__name__)

DEFAULT_SETTING = (
    "The quiet corners of a digital void, where a creature made of forgotten "
    "syntax drifts between floating words."
)
DEFAULT_PARAGRAPHS: list[str] = list(FALLBACK_TEXT["paragraph"])
MAX_PARAGRAPHS = 10


def world_text(template: StoryTemplate | None) -> list[str]:
    """Background passages of the worm's story, or the default paragraphs."""
    if template is None or not template.background_texts:
        return list(DEFAULT_PARAGRAPHS)
    return list(template.background_texts)


async def generate_paragraphs(
    generator: TextGenerator,
    setting: str | None = None,
    count: int = 3,
    theme: str | None = None,
) -> list[str]:
    """Generate count paragraphs concurrently, clamped to 1..MAX_PARAGRAPHS."""
    count = max(1, min(count, MAX_PARAGRAPHS))
    prompt = render_prompt(PARAGRAPH_PROMPT, {
        "setting": setting or DEFAULT_SETTING,
        "theme": theme or "",
    })
    logger.info("generating %d paragraphs theme=%s", count, theme or "default")
    results = await asyncio.gather(*(
        generator.generate(prompt, "paragraph", tier="advanced") for _ in range(count)
    ))
    return [text for text in results if text.strip()]
