"""Per-user lore and stats."""

from fastapi import APIRouter, Depends, Request

from violet_eightfold.models import IntegrationResult

from backend.auth import User, authenticate

router = APIRouter()


@router.get("/profile")
async def get_profile(request: Request, user: User = Depends(authenticate)):
    """Get the caller's lore text and stats."""
    store = request.app.state.profiles
    return {"lore": store.get_lore(user.id), "stats": store.get_stats(user.id).to_wire()}


@router.post("/profile/integrate")
async def apply_integration(
    body: IntegrationResult, request: Request, user: User = Depends(authenticate)
):
    """Apply a Scribe result to the caller's profile and return the updated profile."""
    lore, stats = request.app.state.profiles.apply_integration(user.id, body)
    return {"lore": lore, "stats": stats.to_wire()}
