"""Floating world text endpoints: the current paragraphs and fresh ones."""

from fastapi import APIRouter, HTTPException, Query, Request

from glutton.models import StoryTemplate
from glutton.storage import safe_key
from glutton.world import generate_paragraphs, world_text

from .models import GenerateParagraphsBody

router = APIRouter()


def _template(request: Request, worm_id: str | None) -> StoryTemplate | None:
    if not worm_id:
        return None
    try:
        safe_key(worm_id)
    except ValueError:
        raise HTTPException(400, "Invalid worm id")
    return request.app.state.engine.get_template(worm_id)


@router.get("/world-text")
async def get_world_text(request: Request, worm_id: str | None = Query(None, alias="wormId")):
    """The worm's story passages, or the default paragraphs without a story."""
    return {"paragraphs": world_text(_template(request, worm_id))}


@router.post("/generate-paragraphs")
async def post_generate_paragraphs(body: GenerateParagraphsBody, request: Request):
    """Generate new paragraphs in the worm's story setting."""
    template = _template(request, body.worm_id)
    paragraphs = await generate_paragraphs(
        request.app.state.generator,
        setting=template.setting if template else None,
        count=body.count,
        theme=body.theme_override,
    )
    return {"paragraphs": paragraphs}
