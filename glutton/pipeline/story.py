"""Story engine — generates one story per worm and serves its reveal state.

Generation flow:
  1. Reuse the worm's outline if its template still resolves (idempotent).
     A stale outline (template gone) is deleted and generation continues.
  2. Claim the worm: a second request arriving while a generation is in
     flight awaits that generation instead of starting its own.
  3. Phase 1 outline → phases 2-3 material (concurrent) → phase 4 coverage.
  4. Persist the template, then point the worm's outline at it. Nothing is
     persisted if any phase fails, or if the worm was reset in the meantime.
"""

from __future__ import annotations

import asyncio
import logging
import random

from glutton.generation import TextGenerator
from glutton.models import (
    StoryOutline,
    StoryStateView,
    StoryTemplate,
    UnlockResult,
)
from glutton.storage import Storage, safe_key

from .errors import StoryGenerationError
from .material import build_material
from .outline import build_outline
from .unlock import check_unlock, segment_view

logger = logging.getLogger(__name__)


class StoryEngine:
    def __init__(
        self,
        storage: Storage,
        generator: TextGenerator,
        rng: random.Random | None = None,
    ) -> None:
        self._storage = storage
        self._generator = generator
        self._rng = rng
        self._in_flight: dict[str, asyncio.Task[StoryOutline]] = {}
        self._resets: dict[str, int] = {}  # bumped by reset_worm

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _resolve(self, worm_id: str) -> tuple[StoryOutline, StoryTemplate] | None:
        """Return the worm's live (outline, template), deleting a stale outline."""
        outline = self._storage.get_outline(worm_id)
        if outline is None:
            return None
        template = self._storage.get_template(outline.template_id)
        if template is None:
            logger.warning(
                "stale outline for worm=%s (template %s missing), deleting",
                worm_id, outline.template_id,
            )
            self._storage.delete_outline(worm_id)
            return None
        return outline, template

    def get_template(self, worm_id: str) -> StoryTemplate | None:
        """The template the worm is currently reading, if any."""
        resolved = self._resolve(worm_id)
        return resolved[1] if resolved else None

    def get_story_state(self, worm_id: str) -> StoryStateView:
        resolved = self._resolve(worm_id)
        if resolved is None:
            return StoryStateView(has_story=False)
        return self._view(worm_id, *resolved)

    def _view(self, worm_id: str, outline: StoryOutline, template: StoryTemplate) -> StoryStateView:
        vocabulary = self._storage.get_vocabulary(worm_id)
        spoken = self._storage.get_spoken_keywords(worm_id)
        revealed = {
            f.segment_index: f.narrative_text for f in self._storage.get_fragments(outline.id)
        }
        total = len(template.segments)
        return StoryStateView(
            has_story=True,
            story_id=outline.id,
            template_id=template.id,
            title=template.title,
            tagline=template.tagline,
            setting=template.setting,
            total_segments=total,
            revealed_count=len(revealed),
            is_complete=outline.completed_at is not None or len(revealed) >= total,
            background_texts=template.background_texts,
            stream_fragments=template.stream_fragments,
            segments=[segment_view(s, revealed, vocabulary, spoken) for s in template.segments],
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_story(self, worm_id: str, identity_text: str) -> StoryStateView:
        safe_key(worm_id)
        resolved = self._resolve(worm_id)
        if resolved is not None:
            logger.info("worm=%s already has story %s", worm_id, resolved[0].id)
            return self._view(worm_id, *resolved)

        task = self._in_flight.get(worm_id)
        if task is None:
            task = asyncio.create_task(self._generate(worm_id, identity_text))
            self._in_flight[worm_id] = task
            task.add_done_callback(lambda t: self._release(worm_id, t))
        else:
            logger.info("worm=%s story generation already in flight, joining", worm_id)

        outline = await asyncio.shield(task)
        template = self._storage.get_template(outline.template_id)
        assert template is not None, "template vanished right after generation"
        return self._view(worm_id, outline, template)

    def _release(self, worm_id: str, task: asyncio.Task[StoryOutline]) -> None:
        if self._in_flight.get(worm_id) is task:
            del self._in_flight[worm_id]

    async def _generate(self, worm_id: str, identity_text: str) -> StoryOutline:
        epoch = self._resets.get(worm_id, 0)
        logger.info("worm=%s generating story", worm_id)
        outline = await build_outline(self._generator, identity_text)
        background, stream = await build_material(self._generator, outline, rng=self._rng)

        if self._resets.get(worm_id, 0) != epoch:
            raise StoryGenerationError(f"worm {worm_id} was reset while its story was generating")

        template = self._storage.save_template(StoryTemplate(
            id="pending",
            title=outline.title,
            tagline=outline.tagline,
            setting=outline.setting,
            background_texts=background,
            stream_fragments=stream,
            segments=outline.segments,
        ))
        story = self._storage.save_outline(worm_id, template.id, len(template.segments))
        logger.info("worm=%s story %s saved as %s", worm_id, story.id, template.id)
        return story

    # ------------------------------------------------------------------
    # Unlock + reset
    # ------------------------------------------------------------------

    async def check_unlock(self, worm_id: str, words: list[str]) -> UnlockResult:
        resolved = self._resolve(worm_id)
        if resolved is None:
            return UnlockResult(unlocked=False)
        outline, template = resolved
        return check_unlock(self._storage, worm_id, words, template, outline)

    def reset_worm(self, worm_id: str) -> None:
        """Forget the worm. A generation still in flight for it will not persist."""
        self._resets[worm_id] = self._resets.get(worm_id, 0) + 1
        if self._in_flight.pop(worm_id, None) is not None:
            logger.info("worm=%s reset during story generation, discarding it", worm_id)
        self._storage.reset_worm(worm_id)
