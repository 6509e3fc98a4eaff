"""
Check Worker: async orchestrator for one analysis pass.

Pipeline:
1. Filter submitted files (excluded directories, size limit)
2. Bind all remaining files together (parse, parent links, scopes)
3. Run the rule engine
4. Assemble the CheckResponse

Binding and rule evaluation are CPU-bound and run in a worker thread so the
API event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import PurePosixPath

from must_be_handled.config import settings
from must_be_handled.core.binder import ParseError, bind_modules
from must_be_handled.core.rule_engine import RuleEngine
from must_be_handled.models.check_models import (
    CheckReport,
    CheckResponse,
    FileInput,
    SkippedFile,
)
from must_be_handled.models.rule_models import CheckResult

logger = logging.getLogger("must_be_handled.worker")


def is_excluded(path: str) -> bool:
    """True if any directory component of ``path`` is configured as excluded."""
    parts = PurePosixPath(path.replace("\\", "/")).parts[:-1]
    excluded = set(settings.exclude_dirs)
    return any(part in excluded for part in parts)


class CheckWorker:
    """Runs the must_be_handled analysis over a batch of files."""

    def __init__(self, rule_engine: RuleEngine | None = None) -> None:
        self.rule_engine = rule_engine or RuleEngine()

    async def run_check(
        self, files: list[FileInput], filter_excluded: bool = True
    ) -> CheckResponse:
        """
        Execute one analysis pass.

        Args:
            files: Files to check; they are bound together so calls resolve
                across them.
            filter_excluded: Skip files under excluded directories. Callers
                that already walked a root themselves pass False, so the
                directories above that root are never matched.

        Returns:
            CheckResponse carrying the report for this pass.
        """
        check_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()

        logger.info(f"[{check_id}] Starting check of {len(files)} files")

        if not settings.enabled:
            logger.info(f"[{check_id}] Rule disabled by configuration, nothing to do")
            return CheckResponse(
                check_id=check_id,
                report=CheckReport(enabled=False),
            )

        # ── Step 1: Filter ──
        sources: dict[str, str] = {}
        skipped: list[SkippedFile] = []
        for f in files:
            if filter_excluded and is_excluded(f.path):
                skipped.append(SkippedFile(path=f.path, reason="excluded"))
                continue
            size = len(f.content.encode("utf-8"))
            if size > settings.max_file_size_bytes:
                skipped.append(
                    SkippedFile(path=f.path, reason="too_large", detail=f"{size} bytes")
                )
                logger.warning(f"[{check_id}] Skipping {f.path}: {size} bytes")
                continue
            sources[f.path] = f.content

        # ── Step 2-3: Bind and run rules ──
        result, parse_errors = await asyncio.to_thread(self._analyse, sources)
        skipped.extend(
            SkippedFile(path=error.path, reason="syntax_error", detail=error.message)
            for error in parse_errors
        )
        logger.info(
            f"[{check_id}] Diagnostics: {len(result.diagnostics)} "
            f"({result.suppressed} suppressed, {result.check_duration_ms:.1f}ms)"
        )

        # ── Step 4: Assemble response ──
        elapsed_ms = (time.monotonic() - start_time) * 1000
        report = CheckReport(
            diagnostics=result.diagnostics,
            files_checked=result.total_files_checked,
            skipped=skipped,
            suppressed=result.suppressed,
            enabled=True,
            duration_ms=round(elapsed_ms, 2),
        )

        logger.info(
            f"[{check_id}] Check complete in {elapsed_ms:.0f}ms: "
            f"{len(report.diagnostics)} diagnostics in {report.files_checked} files"
        )
        return CheckResponse(message="check_complete", check_id=check_id, report=report)

    def _analyse(self, sources: dict[str, str]) -> tuple[CheckResult, list[ParseError]]:
        project = bind_modules(sources)
        return self.rule_engine.run(project), project.parse_errors
