"""Health check, provider status, and full reset endpoints."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/providers")
async def providers(request: Request):
    """Provider availability, cooldowns and model rotation cursors."""
    return request.app.state.generator.status()


@router.post("/reset")
async def reset(request: Request):
    """Wipe all stored data: cache, templates, outlines, worms."""
    request.app.state.storage.reset_all()
    return {"ok": True}
