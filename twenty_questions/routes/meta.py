"""Health check and category listing endpoints."""

import os

from fastapi import APIRouter

from twenty_questions.categories import list_categories
from twenty_questions.llm.config import validate_environment

router = APIRouter()


@router.get("/health")
async def health():
    """Health check, plus whether the default LLM provider has its credentials."""
    provider = (os.getenv("LLM_PROVIDER") or "anthropic").strip().lower()
    configured, missing = validate_environment(provider)
    return {
        "status": "ok",
        "llm": {"provider": provider, "configured": configured, "missing": missing},
    }


@router.get("/categories")
async def categories():
    """Categories a game can be started in."""
    return {"categories": list_categories()}
