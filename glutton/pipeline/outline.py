"""Phase 1 — build the story outline from an identity prompt."""

import logging

from pydantic import ValidationError

from glutton.generation import TextGenerator
from glutton.models import Outline, StorySegment
from glutton.prompts import OUTLINE_PROMPT, render_prompt

from .errors import InvalidOutline
from .extractors import extract_first_object

logger = logging.getLogger(__name__)

SEGMENT_COUNT = 10


async def build_outline(generator: TextGenerator, identity_text: str) -> Outline:
    """Ask for a structured outline and validate its shape.

    Keyword counts per segment are not checked here; coverage is enforced
    later by density (see material.ensure_keyword_coverage).
    """
    prompt = render_prompt(OUTLINE_PROMPT, {"identity": identity_text})
    raw = await generator.generate(prompt, "story_outline", tier="advanced")
    return parse_outline(raw)


def parse_outline(raw: str) -> Outline:
    data = extract_first_object(raw)
    if data is None:
        raise InvalidOutline("no JSON object in outline response")

    title = str(data.get("title") or "").strip()
    setting = str(data.get("setting") or "").strip()
    if not title or not setting:
        raise InvalidOutline("outline is missing a title or setting")

    raw_segments = data.get("segments")
    if not isinstance(raw_segments, list) or len(raw_segments) < SEGMENT_COUNT:
        count = len(raw_segments) if isinstance(raw_segments, list) else 0
        raise InvalidOutline(f"outline has {count} segments, need {SEGMENT_COUNT}")

    try:
        segments = [
            StorySegment.model_validate({**seg, "index": i})
            for i, seg in enumerate(raw_segments[:SEGMENT_COUNT])
        ]
    except (TypeError, ValidationError) as e:
        raise InvalidOutline(f"malformed outline segment: {e}") from e

    if len(raw_segments) > SEGMENT_COUNT:
        logger.info("outline returned %d segments, keeping the first %d",
                    len(raw_segments), SEGMENT_COUNT)

    return Outline(
        title=title,
        tagline=str(data.get("tagline") or "").strip(),
        setting=setting,
        segments=segments,
    )
