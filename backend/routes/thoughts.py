"""Reactive thought and name generation endpoints."""

from fastapi import APIRouter, Request

from glutton.thoughts import generate_name, generate_thought

from .models import VocabBody

router = APIRouter()


@router.post("/thought")
async def thought(body: VocabBody, request: Request):
    """A short thought made only of eaten words and kaomoji."""
    text = await generate_thought(request.app.state.generator, body.vocab)
    return {"thought": text}


@router.post("/name")
async def name(body: VocabBody, request: Request):
    """A one-word name for the worm."""
    text = await generate_name(request.app.state.generator, body.vocab)
    return {"name": text}
