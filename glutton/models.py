"""Core domain models.

Storage, the generation orchestrator and the story pipeline all operate on
these types. Pydantic is used for validation and serialisation at every data
boundary; the view models at the bottom are what the HTTP layer returns and
serialise with camelCase keys.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ModelTier = Literal["fast", "advanced"]

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_word(text: str) -> str:
    """Lowercase and strip every non-alphanumeric character.

    "Mirror!" → "mirror"
    """
    return _NON_ALNUM.sub("", text.lower())


class CacheEntry(BaseModel):
    """One previously generated text, kept for offline reuse."""

    context: str
    content: str
    created_at: str


class ConsumedWord(BaseModel):
    """A word a worm has eaten."""

    id: str
    text: str
    eaten_at: str


class StorySegment(BaseModel):
    """One keyword-gated narrative beat of a story template."""

    index: int
    keywords: list[str] = Field(default_factory=list)
    hint: str = ""
    narrative: str = ""

    @field_validator("keywords", mode="before")
    @classmethod
    def _lowercase_keywords(cls, value: object) -> object:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            return [str(k).strip().lower() for k in value if str(k).strip()]
        return value


class StreamFragment(BaseModel):
    id: str
    text: str
    source: str
    timestamp: int  # epoch ms


class Outline(BaseModel):
    """Phase-1 result: the story skeleton before any material exists."""

    title: str
    tagline: str = ""
    setting: str
    segments: list[StorySegment]


class StoryTemplate(BaseModel):
    """A finished, persisted story. Immutable once saved."""

    id: str
    title: str
    tagline: str = ""
    setting: str
    background_texts: list[str] = Field(default_factory=list)
    stream_fragments: list[StreamFragment] = Field(default_factory=list)
    segments: list[StorySegment] = Field(default_factory=list)

    def all_keywords(self) -> set[str]:
        return {normalize_word(k) for seg in self.segments for k in seg.keywords}


class StoryOutline(BaseModel):
    """Per-worm pointer to the template it is currently reading."""

    id: str
    worm_id: str
    template_id: str
    total_segments: int
    created_at: str
    completed_at: str | None = None


class StoryFragment(BaseModel):
    """A revealed segment. Its existence is the only 'revealed' signal."""

    story_id: str
    worm_id: str
    segment_index: int
    narrative_text: str
    created_at: str


# ---------------------------------------------------------------------------
# Views returned to callers
# ---------------------------------------------------------------------------

class _View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeywordProgress(_View):
    keyword: str  # masked ("sh____") until in vocabulary and spoken
    in_vocab: bool
    spoken: bool


class SegmentView(_View):
    index: int
    hint: str
    narrative: str | None = None  # present once revealed
    revealed: bool = False
    keyword_progress: list[KeywordProgress] = Field(default_factory=list)


class StoryStateView(_View):
    has_story: bool
    story_id: str | None = None
    template_id: str | None = None
    title: str = ""
    tagline: str = ""
    setting: str = ""
    total_segments: int = 0
    revealed_count: int = 0
    is_complete: bool = False
    background_texts: list[str] = Field(default_factory=list)
    stream_fragments: list[StreamFragment] = Field(default_factory=list)
    segments: list[SegmentView] = Field(default_factory=list)


class UnlockResult(_View):
    unlocked: bool
    segment: SegmentView | None = None
    revealed_count: int = 0
    total_segments: int = 0
    is_complete: bool = False
    locked_segments: list[SegmentView] = Field(default_factory=list)
