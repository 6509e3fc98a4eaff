"""
Health Check Route: GET /health
"""

from __future__ import annotations

from fastapi import APIRouter

from must_be_handled import __version__
from must_be_handled.config import settings

router = APIRouter()


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": __version__,
        "enabled": settings.enabled,
    }
