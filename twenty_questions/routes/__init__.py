"""FastAPI API endpoints under /api.

Endpoint groups: game actions (start-game, ask-question, get-hint,
make-guess, submit-answer, finalize-result, quit), session lookup, and
meta (health, categories).
"""

from fastapi import APIRouter

from .game import router as game_router
from .meta import router as meta_router

router = APIRouter()
router.include_router(meta_router)
router.include_router(game_router)
