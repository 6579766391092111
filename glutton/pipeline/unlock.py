"""Keyword-gated segment reveal.

Per segment: Locked → Revealed (one way). Per story: InProgress → Complete,
reached the moment every segment is revealed.

Each utterance is evaluated once:
  1. Every utterance word that matches a story keyword is recorded as spoken.
  2. Segments are scanned in index order; the first locked segment whose every
     keyword is both in the worm's vocabulary and spoken is revealed, and the
     scan stops. At most one segment is revealed per call.
  3. Revealing the last locked segment completes the story.
"""

import logging

from glutton.models import (
    KeywordProgress,
    SegmentView,
    StoryOutline,
    StorySegment,
    StoryTemplate,
    UnlockResult,
    normalize_word,
)
from glutton.storage import Storage

logger = logging.getLogger(__name__)

MASK_VISIBLE_LETTERS = 2


def mask_keyword(keyword: str) -> str:
    """'shadow' → 'sh____'"""
    return keyword[:MASK_VISIBLE_LETTERS] + "_" * max(0, len(keyword) - MASK_VISIBLE_LETTERS)


def keyword_progress(
    segment: StorySegment, vocabulary: set[str], spoken: set[str]
) -> list[KeywordProgress]:
    progress = []
    for keyword in segment.keywords:
        norm = normalize_word(keyword)
        in_vocab = norm in vocabulary
        was_spoken = norm in spoken
        progress.append(KeywordProgress(
            keyword=keyword if in_vocab and was_spoken else mask_keyword(keyword),
            in_vocab=in_vocab,
            spoken=was_spoken,
        ))
    return progress


def is_satisfied(segment: StorySegment, vocabulary: set[str], spoken: set[str]) -> bool:
    return all(
        normalize_word(k) in vocabulary and normalize_word(k) in spoken
        for k in segment.keywords
    )


def segment_view(
    segment: StorySegment,
    revealed: dict[int, str],
    vocabulary: set[str],
    spoken: set[str],
) -> SegmentView:
    if segment.index in revealed:
        return SegmentView(
            index=segment.index,
            hint=segment.hint,
            narrative=revealed[segment.index],
            revealed=True,
            keyword_progress=[
                KeywordProgress(keyword=k, in_vocab=True, spoken=True) for k in segment.keywords
            ],
        )
    return SegmentView(
        index=segment.index,
        hint=segment.hint,
        keyword_progress=keyword_progress(segment, vocabulary, spoken),
    )


def record_spoken(
    storage: Storage, worm_id: str, template: StoryTemplate, words: list[str]
) -> set[str]:
    """Mark utterance words that are story keywords as spoken. Returns the new ones."""
    keywords = template.all_keywords()
    newly_spoken = set()
    for word in words:
        norm = normalize_word(word)
        if norm in keywords and storage.mark_keyword_spoken(worm_id, norm):
            newly_spoken.add(norm)
    if newly_spoken:
        logger.info("worm=%s spoke keywords %s", worm_id, sorted(newly_spoken))
    return newly_spoken


def check_unlock(
    storage: Storage,
    worm_id: str,
    words: list[str],
    template: StoryTemplate,
    outline: StoryOutline,
) -> UnlockResult:
    record_spoken(storage, worm_id, template, words)

    vocabulary = storage.get_vocabulary(worm_id)
    spoken = storage.get_spoken_keywords(worm_id)
    revealed = {f.segment_index: f.narrative_text for f in storage.get_fragments(outline.id)}
    total = len(template.segments)

    unlocked: StorySegment | None = None
    if outline.completed_at is None:
        for segment in sorted(template.segments, key=lambda s: s.index):
            if segment.index in revealed:
                continue
            if is_satisfied(segment, vocabulary, spoken):
                fragment = storage.save_fragment(
                    outline.id, worm_id, segment.index, segment.narrative
                )
                revealed[segment.index] = fragment.narrative_text
                unlocked = segment
                logger.info("worm=%s revealed segment %d of %s", worm_id, segment.index, outline.id)
                break

    is_complete = outline.completed_at is not None or len(revealed) >= total
    if unlocked is not None and is_complete:
        storage.mark_complete(outline.id)
        logger.info("worm=%s completed story %s", worm_id, outline.id)

    return UnlockResult(
        unlocked=unlocked is not None,
        segment=segment_view(unlocked, revealed, vocabulary, spoken) if unlocked else None,
        revealed_count=len(revealed),
        total_segments=total,
        is_complete=is_complete,
        locked_segments=[
            segment_view(s, revealed, vocabulary, spoken)
            for s in template.segments
            if s.index not in revealed
        ],
    )
