"""FastAPI API endpoints under /api.

Endpoint groups: health/providers/reset, stomach (per-worm eaten words),
story (generation, reveal state, unlock checks), thoughts (reactive
thought and name generation) and world (floating paragraphs). Per-worm resources are nested under
/api/worms/{worm_id}/ and /api/story/{worm_id}.

Shared services (Storage, TextGenerator, StoryEngine) live on app.state and
are built by backend.app.create_app.
"""

from fastapi import APIRouter

from .settings import router as settings_router
from .stomach import router as stomach_router
from .story import router as story_router
from .thoughts import router as thoughts_router
from .world import router as world_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(stomach_router)
router.include_router(story_router)
router.include_router(thoughts_router)
router.include_router(world_router)
