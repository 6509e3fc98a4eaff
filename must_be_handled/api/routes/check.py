"""
Check Route: POST /check

Accepts {"files": [{"path": str, "content": str}]}, binds the files together
and returns every unhandled call to a @must_be_handled callable.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from must_be_handled.api.dependencies import get_check_worker
from must_be_handled.config import settings
from must_be_handled.models.check_models import CheckRequest, CheckResponse
from must_be_handled.workers.check_worker import CheckWorker

logger = logging.getLogger("must_be_handled.api.check")
router = APIRouter()


@router.post("/check", response_model=CheckResponse)
async def check_files(
    req: CheckRequest,
    worker: CheckWorker = Depends(get_check_worker),
):
    """Check submitted files for unhandled calls to marked callables."""
    if not req.files:
        return CheckResponse(message="error", error="No files submitted")

    if len(req.files) > settings.max_files_per_request:
        raise HTTPException(
            status_code=413,
            detail=f"At most {settings.max_files_per_request} files per request",
        )

    try:
        return await worker.run_check(req.files)
    except Exception:
        logger.exception("Unexpected check error")
        return CheckResponse(message="error", error="Check failed safely.")
