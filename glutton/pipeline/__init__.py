"""Keyword-gated story pipeline.

Builds a ten-segment story from a single identity prompt and drives its
reveal as a worm eats and speaks the story's keywords:

  1. Outline     — title, setting and ten segments with keyword sets
                   (advanced tier, one call).
  2. Background  — ≥20 journal passages weaving every keyword in twice.
  3. Stream      — 15 mundane → mysterious → surreal fragments.
                   Phases 2 and 3 run concurrently.
  4. Coverage    — filler sentences patch any keyword seen fewer than twice.
  5. Unlock      — on each utterance, reveal at most one segment whose
                   keywords are all eaten and spoken.

Segment keyword budget: segments 0–6 carry one keyword, 7–9 carry two.
"""

from .errors import (  # noqa: F401
    InsufficientMaterial,
    InvalidOutline,
    ParseFailure,
    StoryGenerationError,
)
from .extractors import (  # noqa: F401
    extract_first_array,
    extract_first_object,
    parse_string_list,
)
from .material import build_material, ensure_keyword_coverage  # noqa: F401
from .outline import build_outline, parse_outline  # noqa: F401
from .story import StoryEngine  # noqa: F401
from .unlock import check_unlock, keyword_progress, mask_keyword  # noqa: F401
