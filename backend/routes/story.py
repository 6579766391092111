"""Story generation, reveal state, and unlock endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Request

from glutton.pipeline import StoryEngine, StoryGenerationError
from glutton.storage import safe_key

from .models import CheckUnlockBody, GenerateStoryBody

logger = logging.getLogger(__name__)

router = APIRouter()


def _engine(request: Request, worm_id: str) -> StoryEngine:
    try:
        safe_key(worm_id)
    except ValueError:
        raise HTTPException(400, "Invalid worm id")
    return request.app.state.engine


@router.post("/story/{worm_id}")
async def generate_story(worm_id: str, body: GenerateStoryBody, request: Request):
    """Generate the worm's story, or return the one it already has."""
    engine = _engine(request, worm_id)
    try:
        view = await engine.generate_story(worm_id, body.identity)
    except StoryGenerationError as e:
        logger.warning("story generation failed worm=%s: %s", worm_id, e)
        raise HTTPException(502, "Story generation failed, try again")
    return view.model_dump(by_alias=True)


@router.get("/story/{worm_id}")
async def get_story(worm_id: str, request: Request):
    """Current reveal state of the worm's story."""
    view = _engine(request, worm_id).get_story_state(worm_id)
    return view.model_dump(by_alias=True)


@router.post("/story/{worm_id}/check-unlock")
async def check_unlock(worm_id: str, body: CheckUnlockBody, request: Request):
    """Record spoken words and reveal at most one segment."""
    result = await _engine(request, worm_id).check_unlock(worm_id, body.words)
    return result.model_dump(by_alias=True)


@router.delete("/story/{worm_id}")
async def reset_worm(worm_id: str, request: Request):
    """Forget the worm entirely: story progress, spoken keywords, stomach."""
    _engine(request, worm_id).reset_worm(worm_id)
    return {"ok": True}
