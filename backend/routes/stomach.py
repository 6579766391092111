"""Per-worm stomach endpoints: eat, list, and forget words."""

from fastapi import APIRouter, HTTPException, Request

from glutton.models import normalize_word
from glutton.storage import STOMACH_LIMIT

from .models import EatBody

router = APIRouter()


def _storage(request: Request):
    return request.app.state.storage


@router.post("/worms/{worm_id}/eat")
async def eat_word(worm_id: str, body: EatBody, request: Request):
    """Feed a word to a worm."""
    if not normalize_word(body.text):
        raise HTTPException(400, "Nothing edible in that word")
    try:
        word = _storage(request).add_word(worm_id, body.text.strip(), word_id=body.id)
    except ValueError:
        raise HTTPException(400, "Invalid worm id")
    return word


@router.get("/worms/{worm_id}/stomach")
async def get_stomach(worm_id: str, request: Request):
    """The most recently eaten words, newest first."""
    try:
        return _storage(request).get_words(worm_id, limit=STOMACH_LIMIT)
    except ValueError:
        raise HTTPException(400, "Invalid worm id")


@router.delete("/worms/{worm_id}/stomach/{word_id}")
async def delete_word(worm_id: str, word_id: str, request: Request):
    """Remove a single eaten word."""
    try:
        deleted = _storage(request).delete_word(worm_id, word_id)
    except ValueError:
        raise HTTPException(400, "Invalid worm id")
    if not deleted:
        raise HTTPException(404, "Word not found")
    return {"ok": True}


@router.delete("/worms/{worm_id}/stomach")
async def clear_stomach(worm_id: str, request: Request):
    """Forget every word a worm has eaten."""
    try:
        _storage(request).clear_words(worm_id)
    except ValueError:
        raise HTTPException(400, "Invalid worm id")
    return {"ok": True}
