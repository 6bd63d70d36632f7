"""FastAPI API endpoints under /api.

Endpoint groups: health + login (public), council + integrate (LLM proxy),
profile (lore and stats). Everything except health and login requires a
bearer token from /api/login.
"""

from fastapi import APIRouter

from .council import router as council_router
from .profile import router as profile_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(council_router)
router.include_router(profile_router)
