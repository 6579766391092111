"""JSON file storage.

All state is stored in flat JSON files under a configurable base directory.
There is no database or ORM; reads and writes go through plain helper
methods that load and dump JSON.

Directory layout:

    {base}/
      generated_content.json        ← {context: [CacheEntry, ...]}, ≤ 50 per context
      outlines.json                 ← {worm_id: StoryOutline}
      templates/
        generated-{n}.json          ← StoryTemplate
      fragments/
        {story_id}.json             ← append-only list of StoryFragment
      worms/
        {worm_id}/
          words.json                ← list of ConsumedWord (the stomach)
          spoken.json               ← list of spoken keywords (set semantics)
"""

from __future__ import annotations

import json
import random
import re
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from glutton.models import (
    CacheEntry,
    ConsumedWord,
    StoryFragment,
    StoryOutline,
    StoryTemplate,
    normalize_word,
)

CACHE_LIMIT_PER_CONTEXT = 50
STOMACH_LIMIT = 50

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


def safe_key(value: str) -> str:
    """Return value unchanged if it is safe to use in a file name."""
    if not _SAFE_KEY.match(value):
        raise ValueError(f"Invalid identifier: {value!r}")
    return value


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._templates = base_path / "templates"
        self._fragments = base_path / "fragments"
        self._worms = base_path / "worms"
        for d in (self._templates, self._fragments, self._worms):
            d.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _cache_file(self) -> Path:
        return self._base / "generated_content.json"

    def _outlines_file(self) -> Path:
        return self._base / "outlines.json"

    def _template_file(self, template_id: str) -> Path:
        return self._templates / f"{safe_key(template_id)}.json"

    def _fragments_file(self, story_id: str) -> Path:
        return self._fragments / f"{safe_key(story_id)}.json"

    def _worm_dir(self, worm_id: str) -> Path:
        path = self._worms / safe_key(worm_id)
        path.mkdir(exist_ok=True)
        return path

    def _read_json(self, path: Path, default: Any) -> Any:
        if not path.is_file():
            return default
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2))

    # ------------------------------------------------------------------
    # Generated content cache
    # ------------------------------------------------------------------

    def save_generated_content(self, context: str, content: str) -> None:
        """Append to the context's cache, evicting the oldest beyond the limit."""
        cache = self._read_json(self._cache_file(), {})
        entries = cache.setdefault(context, [])
        entries.append(
            CacheEntry(context=context, content=content, created_at=_now()).model_dump()
        )
        if len(entries) > CACHE_LIMIT_PER_CONTEXT:
            del entries[: len(entries) - CACHE_LIMIT_PER_CONTEXT]
        self._write_json(self._cache_file(), cache)

    def get_cache_entries(self, context: str) -> list[CacheEntry]:
        cache = self._read_json(self._cache_file(), {})
        return [CacheEntry.model_validate(e) for e in cache.get(context, [])]

    def get_cached_content(
        self, context: str, rng: random.Random | None = None
    ) -> str | None:
        """Return a uniformly random cached text for context, or None."""
        entries = self.get_cache_entries(context)
        if not entries:
            return None
        return (rng or random).choice(entries).content

    def cache_size(self, context: str) -> int:
        return len(self.get_cache_entries(context))

    # ------------------------------------------------------------------
    # Stomach (consumed words)
    # ------------------------------------------------------------------

    def _words_file(self, worm_id: str) -> Path:
        return self._worm_dir(worm_id) / "words.json"

    def _all_words(self, worm_id: str) -> list[ConsumedWord]:
        return [
            ConsumedWord.model_validate(w)
            for w in self._read_json(self._words_file(worm_id), [])
        ]

    def add_word(self, worm_id: str, text: str, word_id: str | None = None) -> ConsumedWord:
        words = self._all_words(worm_id)
        word = ConsumedWord(id=word_id or uuid.uuid4().hex, text=text, eaten_at=_now())
        words.append(word)
        self._write_json(self._words_file(worm_id), [w.model_dump() for w in words])
        return word

    def get_words(self, worm_id: str, limit: int = STOMACH_LIMIT) -> list[ConsumedWord]:
        """Most recently eaten words first."""
        return list(reversed(self._all_words(worm_id)))[:limit]

    def delete_word(self, worm_id: str, word_id: str) -> bool:
        words = self._all_words(worm_id)
        kept = [w for w in words if w.id != word_id]
        if len(kept) == len(words):
            return False
        self._write_json(self._words_file(worm_id), [w.model_dump() for w in kept])
        return True

    def clear_words(self, worm_id: str) -> None:
        self._write_json(self._words_file(worm_id), [])

    def get_vocabulary(self, worm_id: str) -> set[str]:
        """Normalised set of every word the worm has eaten."""
        vocab = {normalize_word(w.text) for w in self._all_words(worm_id)}
        vocab.discard("")
        return vocab

    # ------------------------------------------------------------------
    # Spoken keywords (set semantics, only grows)
    # ------------------------------------------------------------------

    def _spoken_file(self, worm_id: str) -> Path:
        return self._worm_dir(worm_id) / "spoken.json"

    def get_spoken_keywords(self, worm_id: str) -> set[str]:
        return set(self._read_json(self._spoken_file(worm_id), []))

    def mark_keyword_spoken(self, worm_id: str, keyword: str) -> bool:
        """Record keyword as spoken. Returns False if it already was."""
        spoken = self._read_json(self._spoken_file(worm_id), [])
        if keyword in spoken:
            return False
        spoken.append(keyword)
        self._write_json(self._spoken_file(worm_id), spoken)
        return True

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def _next_template_id(self) -> str:
        numbers = [
            int(p.stem.removeprefix("generated-"))
            for p in self._templates.glob("generated-*.json")
            if p.stem.removeprefix("generated-").isdigit()
        ]
        return f"generated-{max(numbers, default=0) + 1}"

    def save_template(self, template: StoryTemplate) -> StoryTemplate:
        """Persist a template, assigning a fresh generated-{n} id."""
        stored = template.model_copy(update={"id": self._next_template_id()})
        self._template_file(stored.id).write_text(stored.model_dump_json(indent=2))
        return stored

    def get_template(self, template_id: str) -> StoryTemplate | None:
        try:
            path = self._template_file(template_id)
        except ValueError:
            return None
        if not path.is_file():
            return None
        return StoryTemplate.model_validate_json(path.read_text())

    def delete_template(self, template_id: str) -> bool:
        path = self._template_file(template_id)
        if not path.is_file():
            return False
        path.unlink()
        return True

    # ------------------------------------------------------------------
    # Outlines (one per worm)
    # ------------------------------------------------------------------

    def _outlines(self) -> dict[str, StoryOutline]:
        raw = self._read_json(self._outlines_file(), {})
        return {worm: StoryOutline.model_validate(o) for worm, o in raw.items()}

    def _save_outlines(self, outlines: dict[str, StoryOutline]) -> None:
        self._write_json(
            self._outlines_file(),
            {worm: o.model_dump() for worm, o in outlines.items()},
        )

    def save_outline(self, worm_id: str, template_id: str, total_segments: int) -> StoryOutline:
        """Point worm_id at template_id, replacing any previous outline."""
        outlines = self._outlines()
        outline = StoryOutline(
            id=f"story-{uuid.uuid4().hex[:12]}",
            worm_id=safe_key(worm_id),
            template_id=template_id,
            total_segments=total_segments,
            created_at=_now(),
        )
        outlines[worm_id] = outline
        self._save_outlines(outlines)
        return outline

    def get_outline(self, worm_id: str) -> StoryOutline | None:
        return self._outlines().get(worm_id)

    def delete_outline(self, worm_id: str) -> bool:
        outlines = self._outlines()
        if outlines.pop(worm_id, None) is None:
            return False
        self._save_outlines(outlines)
        return True

    def mark_complete(self, story_id: str) -> StoryOutline | None:
        outlines = self._outlines()
        for outline in outlines.values():
            if outline.id == story_id:
                if outline.completed_at is None:
                    outline.completed_at = _now()
                    self._save_outlines(outlines)
                return outline
        return None

    # ------------------------------------------------------------------
    # Revealed fragments (append-only)
    # ------------------------------------------------------------------

    def get_fragments(self, story_id: str) -> list[StoryFragment]:
        return [
            StoryFragment.model_validate(f)
            for f in self._read_json(self._fragments_file(story_id), [])
        ]

    def save_fragment(
        self, story_id: str, worm_id: str, segment_index: int, narrative_text: str
    ) -> StoryFragment:
        """Record a revealed segment. A second save for the same index is a no-op."""
        fragments = self.get_fragments(story_id)
        for existing in fragments:
            if existing.segment_index == segment_index:
                return existing
        fragment = StoryFragment(
            story_id=story_id,
            worm_id=worm_id,
            segment_index=segment_index,
            narrative_text=narrative_text,
            created_at=_now(),
        )
        fragments.append(fragment)
        self._write_json(
            self._fragments_file(story_id), [f.model_dump() for f in fragments]
        )
        return fragment

    # ------------------------------------------------------------------
    # Resets
    # ------------------------------------------------------------------

    def reset_worm(self, worm_id: str) -> None:
        """Forget everything about one worm: words, spoken keywords, story progress."""
        outline = self.get_outline(worm_id)
        if outline is not None:
            self._fragments_file(outline.id).unlink(missing_ok=True)
            self.delete_outline(worm_id)
        shutil.rmtree(self._worms / safe_key(worm_id), ignore_errors=True)

    def reset_all(self) -> None:
        """Wipe every file under the base directory, including the cache."""
        shutil.rmtree(self._base, ignore_errors=True)
        for d in (self._templates, self._fragments, self._worms):
            d.mkdir(parents=True, exist_ok=True)
