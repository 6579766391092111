"""Handlebars prompt templates for every generation context."""

from collections.abc import Callable
from typing import Any

import pybars


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Story outline (phase 1) ─────────────────────────────

OUTLINE_PROMPT = """\
You are designing a short mystery that a tiny word-eating creature will uncover
one fragment at a time. The creature's identity:

"{{{identity}}}"

Write a story outline as a single JSON object with these fields:
  "title":   a short evocative title
  "tagline": one sentence describing who the creature is
  "setting": two or three sentences describing the world
  "segments": an array of EXACTLY 10 objects, each
      {"keywords": [...], "hint": "...", "narrative": "..."}

Keyword budget (strict):
  - segments 0 to 6 have EXACTLY 1 keyword each
  - segments 7 to 9 have EXACTLY 2 keywords each
  - 13 keywords in total, all different
  - every keyword is a common lowercase noun or adjective of 4 to 8 letters
  - no proper nouns, no names, no made-up words

Narrative arc across the 10 segments:
  segments 0-2 discovery, 3-5 tension, 6-7 twist, 8-9 resolution.

"hint" is a short teaser shown while the segment is locked, with the keyword
replaced by ______. "narrative" is 2-4 sentences in a journal narrator's voice
and must use its keywords.

Return only the JSON object, no other text.
"""

# ── Background passages (phase 2) ───────────────────────

BACKGROUND_PROMPT = """\
Story: {{{title}}}
Setting: {{{setting}}}

Write at least 20 short journal-style passages (1-2 sentences each) that drift
through this world like half-remembered notes. Every one of these keywords must
appear, as a whole word, in at least TWO different passages:

{{{keywords}}}

Do not explain the keywords or the story. Return only a JSON array of strings.
"""

# ── Stream fragments (phase 3) ──────────────────────────

STREAM_PROMPT = """\
Story: {{{title}}}
Setting: {{{setting}}}

Write 15 very short fragments (under 15 words each) for a stream of
consciousness scrolling past the creature. The first five are mundane, the
middle five are mysterious, the last five are surreal.

Return only a JSON array of 15 strings.
"""

# ── Reactive thought ────────────────────────────────────

THOUGHT_PROMPT = """\
I have eaten these words: [{{{vocab}}}].
Respond as a lively blob.
1. ONLY use words from the list or Japanese kaomoji like (o^^o) or (´ω｀).
2. NO standard emojis.
3. Be happy.
4. 1-4 words.
5. No explanation.
6. Repeats are fine.
"""

# ── Name ────────────────────────────────────────────────

NAME_PROMPT = """\
A small creature has eaten these words: [{{{vocab}}}].
Give it a one-word name: lowercase, 3 to 8 letters, no punctuation.
Return only the name.
"""

# ── World paragraph ─────────────────────────────────────

PARAGRAPH_PROMPT = """\
Setting: {{{setting}}}
{{#if theme}}Theme: {{{theme}}}
{{/if}}
Write one short paragraph (2-3 sentences) of drifting, half-remembered prose
from this world, as if torn from a journal. No title, no quotes, no
explanation. Return only the paragraph.
"""
