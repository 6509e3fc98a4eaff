"""
FastAPI Dependencies: shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from must_be_handled.workers.check_worker import CheckWorker


@lru_cache
def get_check_worker() -> CheckWorker:
    """Shared check worker singleton."""
    return CheckWorker()
